"""Settings for the centerhub backend with observability configuration."""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_field(default, *env_names: str):
    if env_names:
        alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
        return Field(default=default, validation_alias=alias)
    return Field(default=default)


class Settings(BaseSettings):
    redis_url: str = _env_field("redis://localhost:6379/0", "REDIS_URL")
    secret_key: str = _env_field("dev-secret-change-me", "SECRET_KEY")

    environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
    obs_enabled: bool = _env_field(True, "OBS_ENABLED")
    obs_metrics_public: bool = _env_field(False, "OBS_METRICS_PUBLIC")
    obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
    obs_log_sampling_rate_info: float = _env_field(0.1, "LOG_SAMPLING_RATE_INFO")
    obs_admin_token: Optional[str] = _env_field(None, "OBS_ADMIN_TOKEN")
    service_name: str = _env_field("centerhub-api", "SERVICE_NAME")
    git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")

    # Keyed-tree store
    tree_key_prefix: str = _env_field("tree", "TREE_KEY_PREFIX")
    tree_changes_channel: str = _env_field("tree:changes", "TREE_CHANGES_CHANNEL")
    tree_transaction_retries: int = _env_field(25, "TREE_TRANSACTION_RETRIES")
    tree_feed_enabled: bool = _env_field(True, "TREE_FEED_ENABLED")

    # Text generation collaborator
    ai_enabled: bool = _env_field(True, "AI_ENABLED")
    openai_api_key: Optional[str] = _env_field(None, "OPENAI_API_KEY")
    ai_model: str = _env_field("gpt-4o-mini", "AI_MODEL", "OPENAI_MODEL")
    ai_timeout_seconds: float = _env_field(30.0, "AI_TIMEOUT_SECONDS")

    # Security/cross-origin knobs
    cors_allow_origins: Any = _env_field((), "CORS_ALLOW_ORIGINS")
    access_ttl_minutes: int = _env_field(60, "ACCESS_TTL_MINUTES")

    # Environment helpers
    def is_prod(self) -> bool:
        return self.environment.lower() in ("prod", "production", "live")

    def is_dev(self) -> bool:
        return self.environment.lower() in ("dev", "development")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("cors_allow_origins", mode="before")
    def _split_cors(cls, value):  # type: ignore[override]
        """Normalise env/JSON formats for cors_allow_origins.

        Supports:
        - empty / missing -> ()
        - comma-separated string -> tuple of origins
        - JSON string (e.g. '["http://a","http://b"]') -> tuple of origins
        - list / tuple / set -> tuple of origins
        """
        if value in (None, ""):
            return ()
        if isinstance(value, (list, tuple, set)):
            return tuple(str(item).strip() for item in value if str(item).strip())
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                try:
                    data = json.loads(text)
                except ValueError:
                    data = None
                if isinstance(data, list):
                    return tuple(str(item).strip() for item in data if str(item).strip())
            return tuple(part.strip() for part in text.split(",") if part.strip())
        return ()


def _normalise_level(level: str) -> str:
    return level.upper()


settings = Settings()
settings.obs_log_level = _normalise_level(settings.obs_log_level)

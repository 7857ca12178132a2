"""JSON logs carrying the request or socket context they were emitted in."""

from __future__ import annotations

import json
import logging
import random
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional

from centerhub.settings import settings

_LOGGER_NAME = "centerhub"

# request_id, route, user_id, center_id, sid, ip
_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("obs_log_context", default={})

# Member documents, message bodies and prompts never reach the logs.
_REDACTED_KEYS = (
	"token",
	"secret",
	"authorization",
	"password",
	"document",
	"text",
	"content",
	"description",
	"prompt",
)

_MAX_STRING = 256
_MAX_ITEMS = 10
_MAX_DEPTH = 3

_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge non-empty fields into the current log context; reset with the token."""
	merged = dict(_CONTEXT.get())
	merged.update({key: str(value) for key, value in fields.items() if value})
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


@contextmanager
def log_context(**fields: Optional[str]) -> Iterator[None]:
	token = bind_context(**fields)
	try:
		yield
	finally:
		reset_context(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def scrub(key: str, value: Any, depth: int = 0) -> Any:
	"""Redact sensitive keys and bound the size of everything else."""
	if any(word in key.lower() for word in _REDACTED_KEYS):
		return "[redacted]"
	if value is None or isinstance(value, (bool, int, float)):
		return value
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING else value[:_MAX_STRING] + "…"
	if depth >= _MAX_DEPTH:
		return f"<{type(value).__name__}>"
	if isinstance(value, Mapping):
		items = list(value.items())
		scrubbed = {str(k): scrub(str(k), v, depth + 1) for k, v in items[:_MAX_ITEMS]}
		if len(items) > _MAX_ITEMS:
			scrubbed["…"] = f"+{len(items) - _MAX_ITEMS} keys"
		return scrubbed
	if isinstance(value, (list, tuple, set, frozenset)):
		values = list(value)
		scrubbed_list = [scrub(key, item, depth + 1) for item in values[:_MAX_ITEMS]]
		if len(values) > _MAX_ITEMS:
			scrubbed_list.append(f"+{len(values) - _MAX_ITEMS} items")
		return scrubbed_list
	return str(value)


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per record: static service fields, bound context, then extras."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"event": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		payload.update(_CONTEXT.get())
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in vars(record).items():
			if key not in _RECORD_ATTRS and key not in payload:
				payload[key] = scrub(key, value)
		return json.dumps(payload, separators=(",", ":"), default=str, ensure_ascii=False)


class InfoSamplingFilter(logging.Filter):
	"""Keep a share of info records; everything else passes."""

	def __init__(self, rate: float) -> None:
		super().__init__()
		self.rate = max(0.0, min(1.0, rate))

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO or self.rate >= 1.0:
			return True
		return random.random() < self.rate


def configure_logging() -> logging.Logger:
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter(settings.obs_log_sampling_rate_info))
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)

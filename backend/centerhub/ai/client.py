"""OpenAI chat-completions client returning raw JSON text."""

from __future__ import annotations

from typing import Optional, Protocol

from openai import AsyncOpenAI

from centerhub.settings import settings


class Generator(Protocol):
	async def __call__(self, system: str, user: str) -> Optional[str]: ...


class GeneratorUnavailable(RuntimeError):
	"""Raised when text generation is disabled or not configured."""


class OpenAIGenerator:
	"""Sends one system + user prompt pair in JSON mode."""

	def __init__(self, *, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
		self._client = client
		self.model = model or settings.ai_model

	def _ensure_client(self) -> AsyncOpenAI:
		if self._client is None:
			if not settings.ai_enabled:
				raise GeneratorUnavailable("ai_disabled")
			if not settings.openai_api_key or not settings.openai_api_key.strip():
				raise GeneratorUnavailable("openai_api_key_missing")
			self._client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_timeout_seconds)
		return self._client

	async def __call__(self, system: str, user: str) -> Optional[str]:
		client = self._ensure_client()
		response = await client.chat.completions.create(
			model=self.model,
			messages=[
				{"role": "system", "content": system},
				{"role": "user", "content": user},
			],
			temperature=0.2,
			response_format={"type": "json_object"},
		)
		if not response.choices:
			return None
		return response.choices[0].message.content


_generator: Generator | None = None


def get_generator() -> Generator:
	global _generator
	if _generator is None:
		_generator = OpenAIGenerator()
	return _generator


def set_generator(generator: Generator | None) -> None:
	global _generator
	_generator = generator

"""Shared Redis handle for the keyed-tree store and probes.

``redis_client`` is a stable proxy: modules import it once and the concrete
client behind it is created on first use, closed on shutdown and replaced
by fakeredis in tests.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as redis

from centerhub.settings import settings

_LOG = logging.getLogger(__name__)


class RedisProxy:
	def __init__(self, url: str) -> None:
		self._url = url
		self._client: Optional[redis.Redis] = None

	@property
	def client(self) -> redis.Redis:
		if self._client is None:
			self._client = redis.from_url(self._url, decode_responses=True, health_check_interval=30)
		return self._client

	def set_client(self, client: Optional[redis.Redis]) -> None:
		self._client = client

	async def close(self) -> None:
		if self._client is None:
			return
		client, self._client = self._client, None
		await client.aclose()
		_LOG.info("redis.closed")

	def __getattr__(self, item):
		return getattr(self.client, item)


redis_client = RedisProxy(settings.redis_url)


def set_redis_client(client: Optional[redis.Redis]) -> None:
	redis_client.set_client(client)

"""Relay keyed-tree change announcements published by other processes."""

from __future__ import annotations

import asyncio
import json
import logging

from redis.exceptions import RedisError

from centerhub.infra.tree import InvalidPathError, TreeStore, get_store, split_path
from centerhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class ChangeFeed:
	"""Subscribes to the store's change channel and dispatches foreign writes locally."""

	def __init__(self, *, store: TreeStore | None = None, poll_interval: float = 1.0) -> None:
		self.store = store or get_store()
		self.poll_interval = poll_interval
		self._running = False

	async def run_forever(self) -> None:
		self._running = True
		while self._running:
			try:
				await self._consume()
			except asyncio.CancelledError:
				raise
			except RedisError:
				_LOG.warning("changefeed.connection_lost", exc_info=True)
				await asyncio.sleep(self.poll_interval)

	@property
	def running(self) -> bool:
		return self._running

	def stop(self) -> None:
		self._running = False

	async def _consume(self) -> None:
		pubsub = self.store.client.pubsub()
		await pubsub.subscribe(self.store.channel)
		try:
			while self._running:
				message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=self.poll_interval)
				if message is None:
					continue
				await self.handle_message(message.get("data"))
		finally:
			await pubsub.unsubscribe(self.store.channel)
			await pubsub.aclose()

	async def handle_message(self, data) -> bool:
		"""Dispatch one announcement; returns False when it was ignored."""
		try:
			payload = json.loads(data)
			origin = payload["origin"]
			paths = [split_path(path) for path in payload["paths"]]
		except (TypeError, ValueError, KeyError, InvalidPathError):
			obs_metrics.tree_feed_message("invalid")
			_LOG.warning("changefeed.invalid_message", extra={"data": data})
			return False
		if origin == self.store.origin:
			obs_metrics.tree_feed_message("own")
			return False
		obs_metrics.tree_feed_message("relayed")
		await self.store.dispatch(paths)
		return True

"""Liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Optional, Tuple

from redis.exceptions import RedisError

from centerhub.infra.changefeed import ChangeFeed
from centerhub.infra.tree import TreeStore
from centerhub.obs import metrics
from centerhub.settings import settings

_LOG = logging.getLogger(__name__)

PING_TIMEOUT_SECONDS = 0.2


async def store_check(store: TreeStore) -> Dict[str, Any]:
	started = perf_counter()
	try:
		await asyncio.wait_for(store.client.ping(), timeout=PING_TIMEOUT_SECONDS)
	except (RedisError, OSError, asyncio.TimeoutError) as exc:
		metrics.mark_redis(False)
		_LOG.warning("health.store_unreachable", extra={"error": repr(exc)})
		return {"ok": False, "error": type(exc).__name__}
	latency = perf_counter() - started
	metrics.mark_redis(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2), "listeners": store.listener_count()}


def feed_check(feed: Optional[ChangeFeed]) -> Dict[str, Any]:
	"""The change feed only matters when it is enabled; a stopped feed means stale live views."""
	if not settings.tree_feed_enabled:
		return {"ok": True, "enabled": False}
	return {"ok": feed is not None and feed.running, "enabled": True}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness(store: TreeStore, feed: Optional[ChangeFeed] = None) -> Tuple[int, Dict[str, Any]]:
	checks = {"store": await store_check(store), "change_feed": feed_check(feed)}
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}

"""Live data synchronisation over keyed-tree subtrees.

A ``LiveQuery`` keeps one consumer in step with one subtree: every change
triggers a full re-read of the subtree and delivers the projected snapshot,
which replaces whatever the consumer held before. Queries are independent of
each other and make no promise about relative delivery order.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar, Union

from centerhub.infra.tree import TreeStore
from centerhub.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

T = TypeVar("T")

Projection = Callable[[Any], T]
SnapshotCallback = Callable[[T], Union[Awaitable[None], None]]


def keyed_list(
	value: Any,
	*,
	sort_key: Optional[Callable[[Dict[str, Any]], Any]] = None,
	reverse: bool = False,
	id_field: str = "id",
) -> List[Dict[str, Any]]:
	"""Turn a ``{key: record}`` mapping into a list of records stamped with their key.

	Without ``sort_key`` the keys' own order is kept; generated keys sort by
	creation time so that is insertion order.
	"""
	if not isinstance(value, Mapping):
		return []
	items: List[Dict[str, Any]] = []
	for key in sorted(value.keys()):
		record = value[key]
		if isinstance(record, Mapping):
			items.append({**record, id_field: key})
		else:
			items.append({id_field: key, "value": record})
	if sort_key is not None:
		items.sort(key=sort_key, reverse=reverse)
	elif reverse:
		items.reverse()
	return items


def newest_first(field: str) -> Callable[[Any], List[Dict[str, Any]]]:
	def project(value: Any) -> List[Dict[str, Any]]:
		return keyed_list(value, sort_key=lambda item: (str(item.get(field) or ""), item["id"]), reverse=True)

	return project


def oldest_first(field: str) -> Callable[[Any], List[Dict[str, Any]]]:
	def project(value: Any) -> List[Dict[str, Any]]:
		return keyed_list(value, sort_key=lambda item: (str(item.get(field) or ""), item["id"]))

	return project


def entries_in_order(value: Any) -> List[Dict[str, Any]]:
	"""Scalar mapping in stored (insertion) order, e.g. course scores."""
	if not isinstance(value, Mapping):
		return []
	return [{"name": key, "value": item} for key, item in value.items()]


class LiveQuery(Generic[T]):
	"""Standing subscription delivering full projected snapshots of one path."""

	def __init__(
		self,
		store: TreeStore,
		path: str,
		*,
		project: Projection = lambda value: value,
		on_snapshot: SnapshotCallback,
		name: str = "query",
	) -> None:
		self.store = store
		self.path = path
		self.name = name
		self._project = project
		self._on_snapshot = on_snapshot
		self._handle: Optional[int] = None
		self._closed = False
		self._started = False
		self._dirty = False
		self._delivering = False
		self.current: Optional[T] = None

	@property
	def closed(self) -> bool:
		return self._closed

	async def start(self) -> "LiveQuery[T]":
		if self._started:
			return self
		self._started = True
		self._handle = self.store.listen(self.path, self._on_change)
		obs_metrics.live_subscribed(self.name)
		await self.refresh()
		return self

	async def _on_change(self, _path: str) -> None:
		await self.refresh()

	async def refresh(self) -> None:
		"""Deliver the latest snapshot.

		Deliveries are serialized: a call made while a delivery is in flight
		(including one made from inside ``on_snapshot``) only marks the query
		dirty, and the running delivery re-reads the subtree once its callback
		has returned. Snapshots therefore reach the consumer in order and the
		last one always reflects the latest write.
		"""
		if self._closed:
			return
		self._dirty = True
		if self._delivering:
			obs_metrics.live_delivery("coalesced")
			return
		self._delivering = True
		try:
			while self._dirty and not self._closed:
				self._dirty = False
				await self._deliver_latest()
		finally:
			self._delivering = False

	async def _deliver_latest(self) -> None:
		try:
			raw = await self.store.get(self.path)
			if self._closed:
				obs_metrics.live_delivery("stale")
				return
			snapshot = self._project(raw)
		except Exception:
			obs_metrics.live_delivery("error")
			_LOG.exception("sync.snapshot_failed", extra={"path": self.path, "query": self.name})
			return
		try:
			result = self._on_snapshot(snapshot)
			if inspect.isawaitable(result):
				await result
		except Exception:
			obs_metrics.live_delivery("error")
			_LOG.exception("sync.callback_failed", extra={"path": self.path, "query": self.name})
			return
		self.current = snapshot
		obs_metrics.live_delivery("ok")

	async def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		if self._handle is not None:
			self.store.unlisten(self._handle)
			self._handle = None
			obs_metrics.live_unsubscribed(self.name)


class LiveSession:
	"""Owns the queries of one consumer (a socket connection) for joint teardown."""

	def __init__(self) -> None:
		self._queries: Dict[str, List[LiveQuery[Any]]] = {}

	def add(self, key: str, *queries: LiveQuery[Any]) -> None:
		self._queries.setdefault(key, []).extend(queries)

	def keys(self) -> Iterable[str]:
		return list(self._queries.keys())

	def __contains__(self, key: str) -> bool:
		return key in self._queries

	async def drop(self, key: str) -> bool:
		queries = self._queries.pop(key, None)
		if not queries:
			return False
		for query in queries:
			await query.close()
		return True

	async def close(self) -> None:
		for key in list(self._queries.keys()):
			await self.drop(key)

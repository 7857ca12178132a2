"""Hierarchical keyed-tree store backed by Redis.

Values are JSON-like trees addressed by ``/``-separated paths. The first two
segments of a path name a partition (``centers/{id}``, ``notifications/{uid}``).
Each partition is one Redis hash holding one field per leaf, keyed by the leaf
path relative to the partition and storing its JSON encoding.

``push`` writes under a fresh key, so it only adds fields and commits in a
plain MULTI without WATCH; concurrent pushes never conflict. ``set``,
``update``, ``remove`` and ``transaction`` run inside WATCH/MULTI over the
partitions they touch, which makes multi-location updates and
read-modify-write transactions atomic.

Committed writes are announced to in-process listeners whose path overlaps a
written path, and published on a Redis channel so other processes can relay
them to their own listeners (see ``centerhub.infra.changefeed``).
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import json
import logging
import re
import secrets
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from redis.exceptions import RedisError, WatchError

from centerhub.infra.redis import redis_client
from centerhub.obs import metrics as obs_metrics
from centerhub.settings import settings

_LOG = logging.getLogger(__name__)

PARTITION_DEPTH = 2

_INVALID_SEGMENT = re.compile(r"[.#$\[\]/\x00-\x1f\x7f]")
_PUSH_ALPHABET = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

Segments = Tuple[str, ...]
Listener = Callable[[str], Awaitable[None]]


class TreeError(Exception):
	"""Base class for keyed-tree store failures."""


class InvalidPathError(TreeError, ValueError):
	"""Raised for empty, too short or malformed paths and keys."""


class TreeWriteError(TreeError):
	"""Raised when the backend rejects a write or a transaction cannot commit."""


class _Abort:
	def __repr__(self) -> str:
		return "ABORT"


ABORT = _Abort()


@dataclass(slots=True)
class TransactionResult:
	committed: bool
	value: Any


def split_path(path: str | Sequence[str], *, allow_root: bool = False) -> Segments:
	if isinstance(path, str):
		text = path.strip("/")
		parts: Segments = tuple(text.split("/")) if text else ()
	else:
		parts = tuple(str(part) for part in path)
	if not parts:
		if allow_root:
			return ()
		raise InvalidPathError("empty_path")
	for part in parts:
		if not part or _INVALID_SEGMENT.search(part):
			raise InvalidPathError(f"invalid_segment:{part!r}")
	return parts


def is_valid_key(value: str) -> bool:
	return bool(value) and not _INVALID_SEGMENT.search(value)


def join_path(*segments: Any) -> str:
	text = "/".join(str(segment).strip("/") for segment in segments if str(segment).strip("/"))
	return "/".join(split_path(text))


def overlaps(left: Segments, right: Segments) -> bool:
	"""True when one path is an ancestor of (or equal to) the other."""
	size = min(len(left), len(right))
	return left[:size] == right[:size]


class PushKeyGenerator:
	"""Unique child keys that sort in creation order.

	8 characters of millisecond timestamp followed by 12 random characters;
	keys generated within the same millisecond increment the random tail so
	they stay ordered.
	"""

	def __init__(self) -> None:
		self._last_ms = 0
		self._last_random: List[int] = [0] * 12

	def __call__(self) -> str:
		now = max(int(time.time() * 1000), self._last_ms)
		duplicate = now == self._last_ms
		self._last_ms = now
		stamp = []
		for _ in range(8):
			stamp.append(_PUSH_ALPHABET[now % 64])
			now //= 64
		if not duplicate:
			self._last_random = [secrets.randbelow(64) for _ in range(12)]
		else:
			index = 11
			while index >= 0 and self._last_random[index] == 63:
				self._last_random[index] = 0
				index -= 1
			if index >= 0:
				self._last_random[index] += 1
		return "".join(reversed(stamp)) + "".join(_PUSH_ALPHABET[i] for i in self._last_random)


def _clean(value: Any) -> Any:
	"""Return a JSON-compatible copy; ``None`` entries inside mappings are dropped."""
	if isinstance(value, Mapping):
		result: Dict[str, Any] = {}
		for key, nested in value.items():
			key = str(key)
			if not key or _INVALID_SEGMENT.search(key):
				raise InvalidPathError(f"invalid_key:{key!r}")
			if nested is None:
				continue
			result[key] = _clean(nested)
		return result
	if isinstance(value, (list, tuple)):
		return [_clean(item) for item in value]
	if value is None or isinstance(value, (str, int, float, bool)):
		return value
	raise TypeError(f"unsupported value type: {type(value).__name__}")


def _read_in(node: Any, segments: Segments) -> Any:
	for segment in segments:
		if not isinstance(node, dict):
			return None
		node = node.get(segment)
	return node


def _write_in(node: Any, segments: Segments, value: Any) -> Any:
	"""Return ``node`` with ``value`` stored at ``segments``.

	Removing a child that leaves its parent empty removes the parent too.
	"""
	if not segments:
		return value
	if not isinstance(node, dict):
		if value is None:
			return node
		node = {}
	head, tail = segments[0], segments[1:]
	child = _write_in(node.get(head), tail, value)
	if child is None:
		node.pop(head, None)
		return node or None
	node[head] = child
	return node


def _encode(value: Any) -> str:
	return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _flatten(value: Any, prefix: Segments = ()) -> Dict[str, str]:
	"""Hash fields for ``value`` stored at ``prefix``.

	Non-empty mappings are split into their children; every other value
	(scalars, lists and the empty mapping) is one field.
	"""
	if value is None:
		return {}
	if isinstance(value, dict) and value:
		fields: Dict[str, str] = {}
		for key, nested in value.items():
			fields.update(_flatten(nested, prefix + (key,)))
		return fields
	return {"/".join(prefix): _encode(value)}


def _assemble(fields: Mapping[str, str]) -> Any:
	"""Rebuild a partition document from its hash fields."""
	doc: Any = None
	for field in sorted(fields, key=lambda name: name.count("/") + bool(name)):
		segments = tuple(field.split("/")) if field else ()
		doc = _write_in(doc, segments, json.loads(fields[field]))
	return doc


def _ancestor_fields(segments: Segments) -> List[str]:
	return ["/".join(segments[:size]) for size in range(len(segments))]


_Mutation = Callable[[Dict[Segments, Any]], Optional[List[Segments]]]


class TreeStore:
	"""Async keyed-tree store with atomic writes and change listeners."""

	def __init__(
		self,
		client=None,
		*,
		key_prefix: str | None = None,
		channel: str | None = None,
		max_retries: int | None = None,
		publish: bool = True,
	) -> None:
		self._redis = client if client is not None else redis_client
		self.key_prefix = key_prefix or settings.tree_key_prefix
		self.channel = channel or settings.tree_changes_channel
		self.max_retries = max_retries or settings.tree_transaction_retries
		self.origin = uuid.uuid4().hex
		self._publish_enabled = publish
		self._listeners: Dict[int, Tuple[Segments, Listener]] = {}
		self._handles = itertools.count(1)
		self.push_key = PushKeyGenerator()

	@property
	def client(self):
		return self._redis

	# --- reads ---------------------------------------------------------

	def _key(self, partition: Segments) -> str:
		return ":".join((self.key_prefix, *partition))

	@staticmethod
	def _partition(segments: Segments) -> Tuple[Segments, Segments]:
		if len(segments) < PARTITION_DEPTH:
			raise InvalidPathError(f"path_too_short:{'/'.join(segments)}")
		return segments[:PARTITION_DEPTH], segments[PARTITION_DEPTH:]

	async def get(self, path: str) -> Any:
		partition, rest = self._partition(split_path(path))
		fields = await self._redis.hgetall(self._key(partition))
		return _read_in(_assemble(fields), rest)

	async def exists(self, path: str) -> bool:
		return await self.get(path) is not None

	# --- writes --------------------------------------------------------

	async def set(self, path: str, value: Any) -> None:
		segments = split_path(path)
		partition, rest = self._partition(segments)
		cleaned = _clean(value)

		def mutate(docs: Dict[Segments, Any]) -> List[Segments]:
			docs[partition] = _write_in(docs[partition], rest, copy.deepcopy(cleaned))
			return [segments]

		await self._commit("set", [partition], mutate)

	async def remove(self, path: str) -> None:
		await self.set(path, None)

	async def update(self, path: str, values: Mapping[str, Any]) -> None:
		"""Write several relative locations at once; all or nothing."""
		base = split_path(path, allow_root=True)
		writes: List[Tuple[Segments, Segments, Any]] = []
		for relative, value in values.items():
			segments = base + split_path(relative)
			partition, rest = self._partition(segments)
			writes.append((partition, rest, _clean(value)))
		if not writes:
			return
		partitions = list(dict.fromkeys(partition for partition, _, _ in writes))

		def mutate(docs: Dict[Segments, Any]) -> List[Segments]:
			for partition, rest, value in writes:
				docs[partition] = _write_in(docs[partition], rest, copy.deepcopy(value))
			return [partition + rest for partition, rest, _ in writes]

		await self._commit("update", partitions, mutate)

	async def push(self, path: str, value: Any) -> str:
		"""Store ``value`` under a new push key and return the key.

		Nothing exists below a fresh key, so the write only adds leaf fields
		and drops scalar ancestors; it needs no WATCH.
		"""
		key = self.push_key()
		segments = split_path(join_path(path, key))
		partition, rest = self._partition(segments)
		fields = _flatten(_clean(value), rest)
		if not fields:
			return key
		redis_key = self._key(partition)
		try:
			async with self._redis.pipeline(transaction=True) as pipe:
				ancestors = _ancestor_fields(rest)
				if ancestors:
					pipe.hdel(redis_key, *ancestors)
				pipe.hset(redis_key, mapping=fields)
				await pipe.execute()
		except RedisError as exc:
			obs_metrics.tree_write_failed("push")
			_LOG.warning("tree.write_failed", extra={"op": "push", "keys": [redis_key], "error": str(exc)})
			raise TreeWriteError("write_failed") from exc
		obs_metrics.tree_write("push")
		await self._announce([segments])
		return key

	async def transaction(self, path: str, fn: Callable[[Any], Any]) -> TransactionResult:
		"""Optimistic read-modify-write of one location.

		``fn`` receives the current value (``None`` when absent) and returns the
		new value, or ``ABORT`` to leave the store untouched. It may run more
		than once when concurrent writers touch the same partition.
		"""
		segments = split_path(path)
		partition, rest = self._partition(segments)
		outcome = TransactionResult(committed=False, value=None)

		def mutate(docs: Dict[Segments, Any]) -> Optional[List[Segments]]:
			current = _read_in(docs[partition], rest)
			proposed = fn(current)
			if proposed is ABORT:
				outcome.committed = False
				outcome.value = current
				return None
			docs[partition] = _write_in(docs[partition], rest, _clean(proposed))
			outcome.committed = True
			outcome.value = _read_in(docs[partition], rest)
			return [segments]

		await self._commit("transaction", [partition], mutate)
		return outcome

	async def _commit(self, op: str, partitions: Sequence[Segments], mutate: _Mutation) -> None:
		keys = [self._key(partition) for partition in partitions]
		for _attempt in range(self.max_retries):
			try:
				async with self._redis.pipeline(transaction=True) as pipe:
					await pipe.watch(*keys)
					stored = [await pipe.hgetall(key) for key in keys]
					docs = {partition: _assemble(fields) for partition, fields in zip(partitions, stored)}
					written = mutate(docs)
					if written is None:
						await pipe.unwatch()
						return
					changed: List[Tuple[str, List[str], Dict[str, str]]] = []
					for partition, key, before in zip(partitions, keys, stored):
						after = _flatten(docs[partition])
						stale = [field for field in before if field not in after]
						fresh = {field: raw for field, raw in after.items() if before.get(field) != raw}
						if stale or fresh:
							changed.append((key, stale, fresh))
					if not changed:
						await pipe.unwatch()
						return
					pipe.multi()
					for key, stale, fresh in changed:
						if stale:
							pipe.hdel(key, *stale)
						if fresh:
							pipe.hset(key, mapping=fresh)
					await pipe.execute()
			except WatchError:
				obs_metrics.tree_conflict()
				continue
			except RedisError as exc:
				obs_metrics.tree_write_failed(op)
				_LOG.warning("tree.write_failed", extra={"op": op, "keys": keys, "error": str(exc)})
				raise TreeWriteError("write_failed") from exc
			obs_metrics.tree_write(op)
			await self._announce(written)
			return
		obs_metrics.tree_write_failed(op)
		raise TreeWriteError("transaction_contention")

	# --- change notification ------------------------------------------

	def listen(self, path: str, callback: Listener) -> int:
		handle = next(self._handles)
		self._listeners[handle] = (split_path(path), callback)
		return handle

	def unlisten(self, handle: int) -> None:
		self._listeners.pop(handle, None)

	def listener_count(self) -> int:
		return len(self._listeners)

	async def _announce(self, paths: Sequence[Segments]) -> None:
		if self._publish_enabled:
			message = json.dumps({"origin": self.origin, "paths": ["/".join(path) for path in paths]})
			try:
				await self._redis.publish(self.channel, message)
			except RedisError:
				_LOG.warning("tree.publish_failed", exc_info=True)
		await self.dispatch(paths)

	async def dispatch(self, paths: Iterable[Segments]) -> None:
		"""Notify every listener whose path overlaps one of ``paths``."""
		paths = list(paths)
		targets = [
			(listen_path, callback)
			for listen_path, callback in list(self._listeners.values())
			if any(overlaps(listen_path, path) for path in paths)
		]
		if targets:
			await asyncio.gather(*(self._invoke(path, callback) for path, callback in targets))

	async def _invoke(self, path: Segments, callback: Listener) -> None:
		try:
			await callback("/".join(path))
		except Exception:
			obs_metrics.tree_listener_failed()
			_LOG.exception("tree.listener_failed", extra={"path": "/".join(path)})


_store: TreeStore | None = None


def get_store() -> TreeStore:
	global _store
	if _store is None:
		_store = TreeStore()
	return _store


def set_store(store: TreeStore | None) -> None:
	global _store
	_store = store


__all__ = [
	"ABORT",
	"InvalidPathError",
	"PushKeyGenerator",
	"TransactionResult",
	"TreeError",
	"TreeStore",
	"TreeWriteError",
	"get_store",
	"is_valid_key",
	"join_path",
	"overlaps",
	"set_store",
	"split_path",
]

from __future__ import annotations

import asyncio
import json

import pytest

from centerhub.centers.domain.sync import LiveQuery, LiveSession, entries_in_order, keyed_list, newest_first
from centerhub.infra.changefeed import ChangeFeed
from centerhub.infra.tree import TreeStore


def test_keyed_list_stamps_keys_and_sorts():
	items = keyed_list({"b": {"n": 2}, "a": {"n": 1}, "c": 3})
	assert items == [{"n": 1, "id": "a"}, {"n": 2, "id": "b"}, {"id": "c", "value": 3}]
	assert keyed_list(None) == []


def test_newest_first_orders_by_field_then_key():
	project = newest_first("created_at")
	items = project(
		{
			"k1": {"created_at": "2024-01-01T00:00:00+00:00"},
			"k2": {"created_at": "2024-02-01T00:00:00+00:00"},
			"k3": {"created_at": "2024-01-01T00:00:00+00:00"},
		}
	)
	assert [item["id"] for item in items] == ["k2", "k3", "k1"]


def test_entries_in_order_keeps_stored_order():
	assert entries_in_order({"6A": 3, "5A": 1}) == [{"name": "6A", "value": 3}, {"name": "5A", "value": 1}]


@pytest.mark.asyncio
async def test_query_delivers_initial_and_subsequent_snapshots(tree_store: TreeStore):
	snapshots: list = []
	query = LiveQuery(
		tree_store,
		"centers/c1/posts",
		project=newest_first("created_at"),
		on_snapshot=snapshots.append,
	)
	await query.start()
	assert snapshots == [[]]

	await tree_store.set("centers/c1/posts/p1", {"content": "hola", "created_at": "2024-01-01T00:00:00+00:00"})
	await tree_store.set("centers/c1/posts/p2", {"content": "chau", "created_at": "2024-01-02T00:00:00+00:00"})

	assert [item["id"] for item in snapshots[-1]] == ["p2", "p1"]
	assert query.current == snapshots[-1]
	await query.close()


@pytest.mark.asyncio
async def test_removal_of_the_subtree_delivers_an_empty_snapshot(tree_store: TreeStore):
	await tree_store.set("centers/c1/posts/p1", {"content": "hola"})
	snapshots: list = []
	query = await LiveQuery(tree_store, "centers/c1/posts", on_snapshot=snapshots.append).start()

	await tree_store.remove("centers/c1")

	assert snapshots[-1] is None
	await query.close()


@pytest.mark.asyncio
async def test_closed_query_stops_listening(tree_store: TreeStore):
	snapshots: list = []
	query = await LiveQuery(tree_store, "centers/c1", on_snapshot=snapshots.append).start()
	await query.close()

	await tree_store.set("centers/c1/name", "Centro")

	assert snapshots == [None]
	assert tree_store.listener_count() == 0


@pytest.mark.asyncio
async def test_session_teardown_releases_every_query(tree_store: TreeStore):
	session = LiveSession()
	for path in ("centers/c1/posts", "centers/c1/forums", "notifications/u1"):
		session.add(path, await LiveQuery(tree_store, path, on_snapshot=lambda value: None).start())
	assert tree_store.listener_count() == 3

	assert await session.drop("centers/c1/posts")
	assert not await session.drop("centers/c1/posts")
	await session.close()

	assert tree_store.listener_count() == 0
	assert list(session.keys()) == []


@pytest.mark.asyncio
async def test_failing_projection_keeps_previous_snapshot(tree_store: TreeStore):
	snapshots: list = []

	def project(value):
		if value and value.get("broken"):
			raise ValueError("bad shape")
		return value

	query = await LiveQuery(tree_store, "centers/c1", project=project, on_snapshot=snapshots.append).start()
	await tree_store.set("centers/c1/name", "Centro")
	await tree_store.set("centers/c1/broken", True)

	assert snapshots == [None, {"name": "Centro"}]
	assert query.current == {"name": "Centro"}
	await query.close()


@pytest.mark.asyncio
async def test_failing_callback_keeps_previous_value(tree_store: TreeStore):
	def on_snapshot(value):
		if value and value.get("broken"):
			raise RuntimeError("consumer bug")

	query = await LiveQuery(tree_store, "centers/c1", on_snapshot=on_snapshot).start()
	await tree_store.set("centers/c1/name", "Centro")
	await tree_store.set("centers/c1/broken", True)

	assert query.current == {"name": "Centro"}
	await query.close()


@pytest.mark.asyncio
async def test_slow_consumer_receives_snapshots_in_write_order(tree_store: TreeStore):
	received: list = []
	release = asyncio.Event()

	async def on_snapshot(value):
		received.append(value)
		if len(received) == 2:
			await release.wait()

	async def wait_for_deliveries(count: int) -> None:
		while len(received) < count:
			await asyncio.sleep(0.01)

	await tree_store.set("centers/c1/scores/a", 1)
	query = await LiveQuery(tree_store, "centers/c1/scores", on_snapshot=on_snapshot).start()

	slow_write = asyncio.create_task(tree_store.set("centers/c1/scores/b", 2))
	await asyncio.wait_for(wait_for_deliveries(2), timeout=2)
	await asyncio.wait_for(tree_store.set("centers/c1/scores/c", 3), timeout=2)
	release.set()
	await asyncio.wait_for(slow_write, timeout=2)

	assert received == [{"a": 1}, {"a": 1, "b": 2}, {"a": 1, "b": 2, "c": 3}]
	assert query.current == await tree_store.get("centers/c1/scores")
	await query.close()

@pytest.mark.asyncio
async def test_changefeed_relays_foreign_writes(tree_store: TreeStore):
	delivered: list[str] = []

	async def on_change(path: str) -> None:
		delivered.append(path)

	tree_store.listen("centers/c1/posts", on_change)
	feed = ChangeFeed(store=tree_store)

	relayed = await feed.handle_message(json.dumps({"origin": "other-process", "paths": ["centers/c1/posts/p9"]}))
	own = await feed.handle_message(json.dumps({"origin": tree_store.origin, "paths": ["centers/c1/posts/p9"]}))
	invalid = await feed.handle_message("not json")

	assert relayed is True
	assert own is False
	assert invalid is False
	assert delivered == ["centers/c1/posts"]


@pytest.mark.asyncio
async def test_writes_are_published_for_other_processes(tree_store: TreeStore, fake_redis):
	pubsub = fake_redis.pubsub()
	await pubsub.subscribe(tree_store.channel)
	await pubsub.get_message(timeout=0.1)

	await tree_store.set("centers/c1/name", "Centro")
	message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)

	payload = json.loads(message["data"])
	assert payload["origin"] == tree_store.origin
	assert payload["paths"] == ["centers/c1/name"]
	await pubsub.unsubscribe(tree_store.channel)
	await pubsub.aclose()

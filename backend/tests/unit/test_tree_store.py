from __future__ import annotations

import asyncio

import pytest

from centerhub.infra.tree import ABORT, InvalidPathError, PushKeyGenerator, TreeStore, join_path, overlaps, split_path


def test_split_path_rejects_bad_segments():
	assert split_path("/centers/c1/") == ("centers", "c1")
	with pytest.raises(InvalidPathError):
		split_path("centers//c1")
	with pytest.raises(InvalidPathError):
		split_path("centers/c.1")
	with pytest.raises(InvalidPathError):
		split_path("")
	assert split_path("", allow_root=True) == ()


def test_join_path_and_overlaps():
	assert join_path("centers", "c1", "finances") == "centers/c1/finances"
	assert overlaps(("centers", "c1"), ("centers", "c1", "posts", "p1"))
	assert overlaps(("centers", "c1", "posts"), ("centers", "c1"))
	assert not overlaps(("centers", "c1", "posts"), ("centers", "c1", "forums"))


def test_push_keys_sort_in_creation_order():
	generate = PushKeyGenerator()
	keys = [generate() for _ in range(200)]
	assert len(set(keys)) == 200
	assert keys == sorted(keys)
	assert all(len(key) == 20 for key in keys)


@pytest.mark.asyncio
async def test_set_get_and_nested_reads(tree_store: TreeStore):
	await tree_store.set("centers/c1", {"name": "Centro", "members": {"students": {"u1": True}}})

	assert await tree_store.get("centers/c1/name") == "Centro"
	assert await tree_store.get("centers/c1/members/students") == {"u1": True}
	assert await tree_store.get("centers/c1/missing") is None
	assert await tree_store.exists("centers/c1/members")
	assert not await tree_store.exists("centers/c2")


@pytest.mark.asyncio
async def test_paths_shorter_than_a_partition_are_rejected(tree_store: TreeStore):
	with pytest.raises(InvalidPathError):
		await tree_store.get("centers")
	with pytest.raises(InvalidPathError):
		await tree_store.set("centers", {"c1": {}})


@pytest.mark.asyncio
async def test_none_values_are_dropped_and_empty_parents_pruned(tree_store: TreeStore):
	await tree_store.set("centers/c1", {"a": {"b": 1}, "gone": None})
	assert await tree_store.get("centers/c1") == {"a": {"b": 1}}

	await tree_store.remove("centers/c1/a/b")
	assert await tree_store.get("centers/c1") is None


@pytest.mark.asyncio
async def test_explicit_empty_mapping_is_kept(tree_store: TreeStore):
	await tree_store.set("centers/c1", {"members": {"admins": {}}})
	assert await tree_store.get("centers/c1/members/admins") == {}


@pytest.mark.asyncio
async def test_update_spans_partitions_atomically(tree_store: TreeStore):
	await tree_store.update(
		"",
		{
			"centers/c1/name": "Centro",
			"users/u1/centers/c1": True,
			"access_codes/ABCD": {"center_id": "c1", "kind": "student"},
		},
	)
	assert await tree_store.get("centers/c1") == {"name": "Centro"}
	assert await tree_store.get("users/u1/centers") == {"c1": True}
	assert await tree_store.get("access_codes/ABCD/kind") == "student"

	await tree_store.update("", {"users/u1/centers/c1": None, "access_codes/ABCD": None})
	assert await tree_store.get("users/u1") is None
	assert await tree_store.get("access_codes/ABCD") is None


@pytest.mark.asyncio
async def test_update_relative_to_base(tree_store: TreeStore):
	await tree_store.update("centers/c1/members", {"students/u1": True, "admins/u2": True})
	assert await tree_store.get("centers/c1/members") == {"students": {"u1": True}, "admins": {"u2": True}}


@pytest.mark.asyncio
async def test_push_returns_ordered_keys(tree_store: TreeStore):
	first = await tree_store.push("centers/c1/posts", {"content": "uno"})
	second = await tree_store.push("centers/c1/posts", {"content": "dos"})
	posts = await tree_store.get("centers/c1/posts")
	assert list(sorted(posts)) == [first, second]


@pytest.mark.asyncio
async def test_transaction_commit_and_abort(tree_store: TreeStore):
	result = await tree_store.transaction("centers/c1/counter", lambda current: (current or 0) + 1)
	assert result.committed
	assert result.value == 1

	aborted = await tree_store.transaction("centers/c1/counter", lambda current: ABORT)
	assert not aborted.committed
	assert aborted.value == 1
	assert await tree_store.get("centers/c1/counter") == 1


@pytest.mark.asyncio
async def test_transaction_exception_propagates_without_writing(tree_store: TreeStore):
	def explode(current):
		raise RuntimeError("boom")

	with pytest.raises(RuntimeError):
		await tree_store.transaction("centers/c1/counter", explode)
	assert await tree_store.get("centers/c1") is None


@pytest.mark.asyncio
async def test_concurrent_transactions_do_not_lose_updates(tree_store: TreeStore):
	other = TreeStore()

	async def bump(store: TreeStore) -> None:
		await store.transaction("centers/c1/counter", lambda current: (current or 0) + 1)

	await asyncio.gather(*(bump(tree_store if index % 2 else other) for index in range(10)))
	assert await tree_store.get("centers/c1/counter") == 10


@pytest.mark.asyncio
async def test_listeners_fire_for_overlapping_paths_only(tree_store: TreeStore):
	seen: list[str] = []

	async def on_change(path: str) -> None:
		seen.append(path)

	tree_store.listen("centers/c1/posts", on_change)
	await tree_store.set("centers/c1/posts/p1", {"content": "hola"})
	await tree_store.set("centers/c1/forums/general/name", "General")
	await tree_store.set("centers/c1", {"name": "reemplazado"})

	assert seen == ["centers/c1/posts", "centers/c1/posts"]


@pytest.mark.asyncio
async def test_unchanged_write_is_not_announced(tree_store: TreeStore):
	calls: list[str] = []

	async def on_change(path: str) -> None:
		calls.append(path)

	await tree_store.set("centers/c1/name", "Centro")
	handle = tree_store.listen("centers/c1", on_change)
	await tree_store.set("centers/c1/name", "Centro")
	assert calls == []

	tree_store.unlisten(handle)
	await tree_store.set("centers/c1/name", "Otro")
	assert calls == []


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_the_write(tree_store: TreeStore):
	delivered: list[str] = []

	async def broken(path: str) -> None:
		raise RuntimeError("listener bug")

	async def healthy(path: str) -> None:
		delivered.append(path)

	tree_store.listen("centers/c1", broken)
	tree_store.listen("centers/c1", healthy)
	await tree_store.set("centers/c1/name", "Centro")

	assert delivered == ["centers/c1"]
	assert await tree_store.get("centers/c1/name") == "Centro"


@pytest.mark.asyncio
async def test_rejects_values_with_invalid_keys(tree_store: TreeStore):
	with pytest.raises(InvalidPathError):
		await tree_store.set("centers/c1", {"bad.key": 1})
	with pytest.raises(TypeError):
		await tree_store.set("centers/c1", {"when": object()})


@pytest.mark.asyncio
async def test_concurrent_pushes_never_conflict(tree_store: TreeStore):
	other = TreeStore(max_retries=1)
	tree_store.max_retries = 1
	await tree_store.set("centers/c1/name", "Centro")

	keys = await asyncio.gather(
		*((tree_store if index % 2 else other).push("centers/c1/posts", {"n": index}) for index in range(60))
	)

	posts = await tree_store.get("centers/c1/posts")
	assert len(set(keys)) == 60
	assert sorted(posts) == sorted(keys)
	assert await tree_store.get("centers/c1/name") == "Centro"


@pytest.mark.asyncio
async def test_push_replaces_a_scalar_parent(tree_store: TreeStore):
	await tree_store.set("centers/c1/posts", "placeholder")
	await tree_store.set("centers/c1/empty", {})

	first = await tree_store.push("centers/c1/posts", {"content": "hola"})
	second = await tree_store.push("centers/c1/empty", "valor")

	assert await tree_store.get("centers/c1/posts") == {first: {"content": "hola"}}
	assert await tree_store.get("centers/c1/empty") == {second: "valor"}


@pytest.mark.asyncio
async def test_each_leaf_is_its_own_hash_field(tree_store: TreeStore, fake_redis):
	await tree_store.set("centers/c1", {"name": "Centro", "members": {"students": {"u1": True}, "admins": {}}})

	fields = await fake_redis.hgetall(f"{tree_store.key_prefix}:centers:c1")

	assert fields == {"name": '"Centro"', "members/students/u1": "true", "members/admins": "{}"}

from unittest.mock import AsyncMock

import pytest
import socketio

from centerhub.centers.domain.centers_service import CentersService
from centerhub.centers.domain.posts_service import PostsService
from centerhub.centers.schemas import dto
from centerhub.centers.sockets.namespaces.live import LiveNamespace
from centerhub.infra.auth import AuthenticatedUser


def _environ(user_id: str | None) -> dict:
	headers = [(b"x-user-id", user_id.encode())] if user_id else []
	return {"asgi.scope": {"headers": headers}}


def _events(namespace: LiveNamespace, name: str) -> list[dict]:
	return [call.args[1] for call in namespace.emit.await_args_list if call.args[0] == name]


async def _connected(tree_store, user_id: str = "st", sid: str = "sid-1") -> LiveNamespace:
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = LiveNamespace(store=tree_store)
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	await namespace.trigger_event("connect", sid, _environ(user_id))
	return namespace


@pytest.mark.asyncio
async def test_connect_requires_identity(tree_store):
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = LiveNamespace(store=tree_store)
	server.register_namespace(namespace)

	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", _environ(None))


@pytest.mark.asyncio
async def test_subscribe_streams_snapshots(tree_store, seed_center):
	center_id = await seed_center(students=["st"])
	namespace = await _connected(tree_store)
	assert _events(namespace, "live:ready") == [{"user_id": "st"}]

	ack = await namespace.trigger_event("subscribe", "sid-1", {"feature": "posts", "center_id": center_id})
	assert ack == {"ok": True, "subscription": f"posts:{center_id}"}
	assert _events(namespace, "snapshot")[-1]["items"] == []

	await PostsService(store=tree_store).create_post(
		AuthenticatedUser(id="owner", display_name="Owner"),
		center_id,
		dto.PostCreateRequest(content="Bienvenidos al centro"),
	)

	latest = _events(namespace, "snapshot")[-1]
	assert latest["feature"] == "posts"
	assert [item["content"] for item in latest["items"]] == ["Bienvenidos al centro"]


@pytest.mark.asyncio
async def test_subscribe_rejections(tree_store, seed_center):
	center_id = await seed_center(students=["st"])
	namespace = await _connected(tree_store, user_id="outsider")

	assert await namespace.trigger_event("subscribe", "sid-1", {"feature": "gossip"}) == {
		"ok": False,
		"error": "unknown_feature",
	}
	assert await namespace.trigger_event("subscribe", "sid-1", {"feature": "posts"}) == {
		"ok": False,
		"error": "center_id_required",
	}
	assert await namespace.trigger_event("subscribe", "sid-1", {"feature": "posts", "center_id": center_id}) == {
		"ok": False,
		"error": "membership_required",
	}
	assert await namespace.trigger_event("subscribe", "sid-2", {"feature": "posts", "center_id": center_id}) == {
		"ok": False,
		"error": "not_connected",
	}


@pytest.mark.asyncio
async def test_expelled_member_is_revoked(tree_store, seed_center, fanout):
	center_id = await seed_center(students=["st"])
	namespace = await _connected(tree_store)
	await namespace.trigger_event("subscribe", "sid-1", {"feature": "members", "center_id": center_id})
	assert namespace.subscription_count("sid-1") == 1

	await CentersService(store=tree_store, fanout=fanout).expel(
		AuthenticatedUser(id="owner"),
		center_id,
		"st",
	)

	assert _events(namespace, "revoked") == [
		{"subscription": f"members:{center_id}", "feature": "members", "reason": "membership_required"}
	]
	assert namespace.subscription_count("sid-1") == 0


@pytest.mark.asyncio
async def test_unsubscribe_and_disconnect_release_listeners(tree_store, seed_center):
	await seed_center(students=["st"])
	namespace = await _connected(tree_store)
	baseline = tree_store.listener_count()

	ack = await namespace.trigger_event("subscribe", "sid-1", {"feature": "notifications", "subscription": "inbox"})
	assert ack == {"ok": True, "subscription": "inbox"}
	assert tree_store.listener_count() == baseline + 1

	assert await namespace.trigger_event("unsubscribe", "sid-1", {"subscription": "inbox"}) == {"ok": True}
	assert await namespace.trigger_event("unsubscribe", "sid-1", {"subscription": "inbox"}) == {"ok": False}

	await namespace.trigger_event("subscribe", "sid-1", {"feature": "notifications"})
	await namespace.trigger_event("disconnect", "sid-1")
	assert tree_store.listener_count() == baseline

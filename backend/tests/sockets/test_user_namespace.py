from unittest.mock import AsyncMock

import pytest
import socketio

from centerhub.centers.domain.fanout import NotificationFanout, NotificationType, build_record
from centerhub.centers.sockets import server as centers_server
from centerhub.centers.sockets.namespaces.user import UserNamespace


def _environ(user_id: str) -> dict:
	return {"asgi.scope": {"headers": [(b"x-user-id", user_id.encode())]}}


@pytest.fixture()
def user_namespace(tree_store):
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = UserNamespace(store=tree_store)
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	namespace.enter_room = AsyncMock()
	namespace.leave_room = AsyncMock()
	previous = centers_server._user_ns
	centers_server.set_namespaces(user=namespace)
	try:
		yield namespace
	finally:
		centers_server.set_namespaces(user=previous)


@pytest.mark.asyncio
async def test_connect_joins_room_and_reports_unread(user_namespace, tree_store):
	fanout = NotificationFanout(store=tree_store, emitter=AsyncMock())
	record = build_record(NotificationType.NEW_MEMBER, center_id="center-1", center_name="Centro")
	await fanout.fanout(["u1"], record)
	await fanout.fanout(["u1"], record)

	await user_namespace.trigger_event("connect", "sid-1", _environ("u1"))

	user_namespace.enter_room.assert_awaited_once_with("sid-1", "user:u1")
	user_namespace.emit.assert_awaited_once_with("user:ready", {"user_id": "u1", "unread": 2}, room="sid-1")


@pytest.mark.asyncio
async def test_fanout_emits_to_personal_room(user_namespace, tree_store):
	await user_namespace.trigger_event("connect", "sid-1", _environ("u1"))
	user_namespace.emit.reset_mock()

	record = build_record(NotificationType.EXPULSION, center_id="center-1", center_name="Centro")
	result = await NotificationFanout(store=tree_store).fanout(["u1"], record)

	assert result.delivered == ["u1"]
	event, payload = user_namespace.emit.await_args.args
	assert event == "notification:new"
	assert payload["type"] == "EXPULSION"
	assert user_namespace.emit.await_args.kwargs == {"room": "user:u1"}

	await user_namespace.trigger_event("disconnect", "sid-1")
	user_namespace.leave_room.assert_awaited_once_with("sid-1", "user:u1")

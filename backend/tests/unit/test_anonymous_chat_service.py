from __future__ import annotations

import pytest
import pytest_asyncio

from centerhub.centers.domain.anonymous_chat_service import AnonymousChatService
from centerhub.centers.domain.exceptions import ConflictError, ForbiddenError
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser


def _user(user_id: str) -> AuthenticatedUser:
	return AuthenticatedUser(id=user_id, display_name=user_id.title())


@pytest_asyncio.fixture
async def chat_center(tree_store, seed_center, fanout):
	center_id = await seed_center(admins=["mod"], students=["st", "other"])
	service = AnonymousChatService(store=tree_store, fanout=fanout)
	await service.set_moderators(_user("owner"), center_id, dto.ManagersRequest(user_ids=["mod"]))
	return center_id, service


@pytest.mark.asyncio
async def test_start_chat_notifies_moderators_without_identity(chat_center, emitter):
	center_id, service = chat_center
	emitter.calls.clear()

	detail = await service.start_chat(_user("st"), center_id, dto.ChatStartRequest(text="Tengo un problema con un profesor"))

	assert detail.chat.is_mine
	assert detail.messages[0].sender == "user"
	assert sorted(emitter.recipients()) == ["mod", "owner"]
	for _, _, payload in emitter.calls:
		assert payload["type"] == "NEW_ANONYMOUS_CHAT"
		assert "st" not in payload.values()

	with pytest.raises(ConflictError):
		await service.start_chat(_user("st"), center_id, dto.ChatStartRequest(text="otra vez"))


@pytest.mark.asyncio
async def test_visibility_of_chats(chat_center):
	center_id, service = chat_center
	detail = await service.start_chat(_user("st"), center_id, dto.ChatStartRequest(text="Hola"))

	mine = await service.list_chats(_user("st"), center_id)
	moderator = await service.list_chats(_user("mod"), center_id)
	stranger = await service.list_chats(_user("other"), center_id)

	assert [chat.id for chat in mine.items] == [detail.chat.id]
	assert moderator.is_moderator
	assert [chat.id for chat in moderator.items] == [detail.chat.id]
	assert moderator.items[0].unread
	assert not moderator.items[0].is_mine
	assert stranger.items == []
	with pytest.raises(ForbiddenError):
		await service.get_chat(_user("other"), center_id, detail.chat.id)


@pytest.mark.asyncio
async def test_status_changes_gate_messages(chat_center):
	center_id, service = chat_center
	chat_id = (await service.start_chat(_user("st"), center_id, dto.ChatStartRequest(text="Hola"))).chat.id

	with pytest.raises(ForbiddenError):
		await service.set_status(_user("st"), center_id, chat_id, dto.ChatStatusRequest(status="closed"))

	blocked = await service.set_status(_user("mod"), center_id, chat_id, dto.ChatStatusRequest(status="blocked"))
	assert blocked.status == "blocked"
	with pytest.raises(ConflictError) as exc:
		await service.send_message(_user("st"), center_id, chat_id, dto.ChatMessageCreateRequest(text="¿Hola?"))
	assert exc.value.detail == "chat_blocked"
	reply = await service.send_message(_user("mod"), center_id, chat_id, dto.ChatMessageCreateRequest(text="Revisando"))
	assert reply.sender == "moderator"

	await service.set_status(_user("owner"), center_id, chat_id, dto.ChatStatusRequest(status="closed"))
	with pytest.raises(ConflictError):
		await service.send_message(_user("mod"), center_id, chat_id, dto.ChatMessageCreateRequest(text="Cerrado"))

	history = await service.get_chat(_user("st"), center_id, chat_id)
	assert [message.sender for message in history.messages] == ["user", "system", "moderator", "system"]
	assert history.chat.unread


@pytest.mark.asyncio
async def test_mark_read_clears_unread(chat_center):
	center_id, service = chat_center
	chat_id = (await service.start_chat(_user("st"), center_id, dto.ChatStartRequest(text="Hola"))).chat.id

	state = await service.mark_read(_user("mod"), center_id, chat_id)

	assert not state.unread
	assert not (await service.list_chats(_user("mod"), center_id)).items[0].unread

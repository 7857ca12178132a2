"""Anonymous chats between a member and the center's moderators.

Moderators never see who opened a chat. Each member may open one chat; the
``initiators`` index maps the member to it and is written in the same
transaction as the chat itself.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase, parse_timestamp
from centerhub.centers.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from centerhub.centers.domain.fanout import (
	NotificationType,
	PermissionType,
	build_record,
	now_iso,
	owner_and_delegates,
)
from centerhub.centers.domain.gate import OWNER, OWNER_OR_MODERATOR, GateContext
from centerhub.centers.domain.sync import keyed_list, oldest_first
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import ABORT, is_valid_key

_LOG = logging.getLogger(__name__)

USER = "user"
MODERATOR = "moderator"
SYSTEM = "system"

OPEN = "open"
CLOSED = "closed"
BLOCKED = "blocked"

PREVIEW_LENGTH = 80

STATUS_MESSAGES = {
	(OPEN, CLOSED): "La conversación fue cerrada por moderación.",
	(OPEN, BLOCKED): "La conversación fue bloqueada por moderación.",
	(BLOCKED, OPEN): "La conversación fue desbloqueada.",
	(CLOSED, OPEN): "La conversación fue reabierta.",
	(BLOCKED, CLOSED): "La conversación fue cerrada por moderación.",
	(CLOSED, BLOCKED): "La conversación fue bloqueada por moderación.",
}


def _message(sender: str, text: str, created_at: str) -> Dict[str, Any]:
	return {"sender": sender, "text": text, "created_at": created_at}


def _with_message(chat: Dict[str, Any], message_id: str, message: Dict[str, Any]) -> Dict[str, Any]:
	messages = dict(chat.get("messages") or {})
	messages[message_id] = message
	return {
		**chat,
		"messages": messages,
		"last_message_at": message["created_at"],
		"last_message_preview": message["text"][:PREVIEW_LENGTH],
		"last_sender": message["sender"],
	}


def is_unread(chat: Dict[str, Any], side: str) -> bool:
	last_sender = chat.get("last_sender")
	if last_sender == side or not chat.get("last_message_at"):
		return False
	marker = (chat.get("read") or {}).get(side)
	if not marker:
		return True
	return parse_timestamp(chat["last_message_at"]) > parse_timestamp(marker)


def chat_response(chat_id: str, chat: Dict[str, Any], user_id: str, side: str) -> dto.ChatResponse:
	return dto.ChatResponse(
		id=chat_id,
		status=str(chat.get("status", OPEN)),
		created_at=parse_timestamp(chat.get("created_at")),
		last_message_at=parse_timestamp(chat.get("last_message_at") or chat.get("created_at")),
		last_message_preview=str(chat.get("last_message_preview", "")),
		unread=is_unread(chat, side),
		is_mine=chat.get("initiator_id") == user_id,
	)


def visible_chats(chats: Any, context: GateContext, user_id: str) -> List[dto.ChatResponse]:
	"""Own chat for members; every chat for moderators, last activity first."""
	is_moderator = context.allows(OWNER_OR_MODERATOR)
	items = keyed_list(
		chats,
		sort_key=lambda item: (str(item.get("last_message_at") or item.get("created_at") or ""), item["id"]),
		reverse=True,
	)
	visible: List[dto.ChatResponse] = []
	for chat in items:
		if chat.get("initiator_id") == user_id:
			visible.append(chat_response(chat["id"], chat, user_id, USER))
		elif is_moderator:
			visible.append(chat_response(chat["id"], chat, user_id, MODERATOR))
	return visible


class AnonymousChatService(CenterServiceBase):
	@staticmethod
	def _chat_path(center_id: str, chat_id: str, *rest: str) -> str:
		if not is_valid_key(chat_id):
			raise NotFoundError("chat_not_found")
		return paths.feature(center_id, paths.ANONYMOUS_CHAT, "chats", chat_id, *rest)

	async def _chat(self, user: AuthenticatedUser, center_id: str, chat_id: str) -> Tuple[GateContext, Dict[str, Any], str]:
		"""Load a chat and the caller's side of it."""
		context = await self.gate.authorize(center_id, user.id, feature=paths.ANONYMOUS_CHAT)
		chats = context.subtree.get("chats") if isinstance(context.subtree.get("chats"), dict) else {}
		chat = chats.get(chat_id) if is_valid_key(chat_id) else None
		if not isinstance(chat, dict):
			raise NotFoundError("chat_not_found")
		if chat.get("initiator_id") == user.id:
			return context, chat, USER
		if context.allows(OWNER_OR_MODERATOR):
			return context, chat, MODERATOR
		raise ForbiddenError("chat_access_denied")

	async def start_chat(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.ChatStartRequest,
	) -> dto.ChatDetailResponse:
		context = await self.gate.authorize(center_id, user.id, feature=paths.ANONYMOUS_CHAT)
		chat_id = self.store.push_key()
		message_id = self.store.push_key()
		created_at = now_iso()
		first = _message(USER, payload.text.strip(), created_at)
		chat = _with_message(
			{"initiator_id": user.id, "status": OPEN, "created_at": created_at, "read": {USER: created_at}},
			message_id,
			first,
		)
		existing: Optional[str] = None

		def apply(current: Any) -> Any:
			nonlocal existing
			subtree = dict(current) if isinstance(current, dict) else {}
			initiators = dict(subtree.get("initiators") or {})
			existing = initiators.get(user.id)
			if existing:
				return ABORT
			chats = dict(subtree.get("chats") or {})
			chats[chat_id] = chat
			initiators[user.id] = chat_id
			return {**subtree, "chats": chats, "initiators": initiators}

		await self.store.transaction(paths.feature(center_id, paths.ANONYMOUS_CHAT), apply)
		if existing:
			raise ConflictError("chat_already_exists")
		record = build_record(
			NotificationType.NEW_ANONYMOUS_CHAT,
			center_id=center_id,
			center_name=context.center_name,
		)
		recipients = owner_and_delegates(context.membership, context.permissions.get("moderators"))
		await self.fanout.fanout(recipients, record, exclude=[user.id])
		_LOG.info("anonymous_chat.started", extra={"center_id": center_id, "chat_id": chat_id})
		return dto.ChatDetailResponse(
			chat=chat_response(chat_id, chat, user.id, USER),
			messages=[dto.ChatMessageResponse(id=message_id, **first)],
		)

	async def list_chats(self, user: AuthenticatedUser, center_id: str) -> dto.ChatListResponse:
		context = await self.gate.authorize(center_id, user.id, feature=paths.ANONYMOUS_CHAT)
		return dto.ChatListResponse(
			items=visible_chats(context.subtree.get("chats"), context, user.id),
			is_moderator=context.allows(OWNER_OR_MODERATOR),
		)

	async def get_chat(self, user: AuthenticatedUser, center_id: str, chat_id: str) -> dto.ChatDetailResponse:
		_context, chat, side = await self._chat(user, center_id, chat_id)
		messages = oldest_first("created_at")(chat.get("messages"))
		return dto.ChatDetailResponse(
			chat=chat_response(chat_id, chat, user.id, side),
			messages=[
				dto.ChatMessageResponse(
					id=item["id"],
					sender=str(item.get("sender", SYSTEM)),
					text=str(item.get("text", "")),
					created_at=parse_timestamp(item.get("created_at")),
				)
				for item in messages
			],
		)

	async def send_message(
		self,
		user: AuthenticatedUser,
		center_id: str,
		chat_id: str,
		payload: dto.ChatMessageCreateRequest,
	) -> dto.ChatMessageResponse:
		_context, _chat, side = await self._chat(user, center_id, chat_id)
		message_id = self.store.push_key()
		message = _message(side, payload.text.strip(), now_iso())
		rejection: Optional[str] = None

		def apply(current: Any) -> Any:
			nonlocal rejection
			if not isinstance(current, dict):
				rejection = "chat_not_found"
				return ABORT
			status = current.get("status", OPEN)
			if status == CLOSED or (status == BLOCKED and side == USER):
				rejection = f"chat_{status}"
				return ABORT
			rejection = None
			updated = _with_message(current, message_id, message)
			updated["read"] = {**(current.get("read") or {}), side: message["created_at"]}
			return updated

		await self.store.transaction(self._chat_path(center_id, chat_id), apply)
		if rejection == "chat_not_found":
			raise NotFoundError(rejection)
		if rejection:
			raise ConflictError(rejection)
		return dto.ChatMessageResponse(id=message_id, **message)

	async def set_status(
		self,
		user: AuthenticatedUser,
		center_id: str,
		chat_id: str,
		payload: dto.ChatStatusRequest,
	) -> dto.ChatResponse:
		_context, _chat, side = await self._chat(user, center_id, chat_id)
		if side != MODERATOR:
			raise ForbiddenError("moderator_role_required")
		message_id = self.store.push_key()
		created_at = now_iso()

		def apply(current: Any) -> Any:
			if not isinstance(current, dict):
				return ABORT
			previous = current.get("status", OPEN)
			if previous == payload.status:
				return ABORT
			text = STATUS_MESSAGES[(previous, payload.status)]
			updated = _with_message(current, message_id, _message(SYSTEM, text, created_at))
			updated["status"] = payload.status
			return updated

		result = await self.store.transaction(self._chat_path(center_id, chat_id), apply)
		if not isinstance(result.value, dict):
			raise NotFoundError("chat_not_found")
		_LOG.info("anonymous_chat.status_changed", extra={"center_id": center_id, "chat_id": chat_id, "status": payload.status})
		return chat_response(chat_id, result.value, user.id, side)

	async def mark_read(self, user: AuthenticatedUser, center_id: str, chat_id: str) -> dto.ChatResponse:
		_context, chat, side = await self._chat(user, center_id, chat_id)
		marker = now_iso()
		await self.store.set(self._chat_path(center_id, chat_id, "read", side), marker)
		read = {**(chat.get("read") or {}), side: marker}
		return chat_response(chat_id, {**chat, "read": read}, user.id, side)

	async def set_moderators(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.ManagersRequest,
	) -> dto.ManagersResponse:
		context = await self.gate.authorize(center_id, user.id, OWNER, feature=paths.ANONYMOUS_CHAT)
		moderators, added, removed = await self.replace_delegates(
			context,
			payload.user_ids,
			PermissionType.ANONYMOUS_CHAT_MODERATOR,
		)
		return dto.ManagersResponse(managers=moderators, added=added, removed=removed)

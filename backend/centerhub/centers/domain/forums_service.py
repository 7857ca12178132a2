"""Role-scoped discussion forums."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase, parse_timestamp
from centerhub.centers.domain.exceptions import ForbiddenError, NotFoundError
from centerhub.centers.domain.fanout import now_iso
from centerhub.centers.domain.gate import GateContext
from centerhub.centers.domain.roles import Role
from centerhub.centers.domain.sync import keyed_list
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import is_valid_key


def required_role(forum: Dict[str, Any]) -> Role:
	try:
		return Role(forum.get("required_role", Role.STUDENT.value))
	except ValueError:
		return Role.OWNER


def can_access(context: GateContext, forum: Dict[str, Any]) -> bool:
	return context.actor.at_least(required_role(forum))


def unread_count(forum: Dict[str, Any], user_id: str) -> int:
	"""Messages by others newer than the user's read marker."""
	last_read = forum.get("last_read") if isinstance(forum.get("last_read"), dict) else {}
	marker = last_read.get(user_id)
	since = parse_timestamp(marker) if marker else None
	count = 0
	messages = forum.get("messages") if isinstance(forum.get("messages"), dict) else {}
	for message in messages.values():
		if not isinstance(message, dict) or message.get("author_id") == user_id:
			continue
		if since is None or parse_timestamp(message.get("created_at")) > since:
			count += 1
	return count


def message_response(record: Dict[str, Any]) -> dto.ForumMessageResponse:
	return dto.ForumMessageResponse(
		id=str(record.get("id", "")),
		author_id=str(record.get("author_id", "")),
		author_name=str(record.get("author_name", "")),
		text=str(record.get("text", "")),
		created_at=record.get("created_at"),
	)


def forum_summary(forum_id: str, forum: Dict[str, Any], user_id: str) -> dto.ForumSummary:
	messages = keyed_list(forum.get("messages"), sort_key=lambda item: (str(item.get("created_at") or ""), item["id"]))
	last: Optional[dto.ForumMessageResponse] = message_response(messages[-1]) if messages else None
	return dto.ForumSummary(
		id=forum_id,
		name=str(forum.get("name", forum_id)),
		description=str(forum.get("description", "")),
		required_role=required_role(forum).value,
		unread_count=unread_count(forum, user_id),
		last_message=last,
	)


def accessible_forums(forums: Any, context: GateContext, user_id: str) -> List[dto.ForumSummary]:
	if not isinstance(forums, dict):
		return []
	return [
		forum_summary(forum_id, forum, user_id)
		for forum_id, forum in sorted(forums.items())
		if isinstance(forum, dict) and can_access(context, forum)
	]


class ForumsService(CenterServiceBase):
	async def _forum(self, user: AuthenticatedUser, center_id: str, forum_id: str) -> tuple[GateContext, Dict[str, Any]]:
		context = await self.gate.authorize(center_id, user.id, feature=paths.FORUMS)
		forum = context.subtree.get(forum_id) if is_valid_key(forum_id) else None
		if not isinstance(forum, dict):
			raise NotFoundError("forum_not_found")
		if not can_access(context, forum):
			raise ForbiddenError("forum_access_denied")
		return context, forum

	async def list_forums(self, user: AuthenticatedUser, center_id: str) -> dto.ForumListResponse:
		context = await self.gate.authorize(center_id, user.id, feature=paths.FORUMS)
		return dto.ForumListResponse(items=accessible_forums(context.subtree, context, user.id))

	async def get_messages(self, user: AuthenticatedUser, center_id: str, forum_id: str) -> dto.ForumMessagesResponse:
		_context, forum = await self._forum(user, center_id, forum_id)
		messages = keyed_list(forum.get("messages"), sort_key=lambda item: (str(item.get("created_at") or ""), item["id"]))
		return dto.ForumMessagesResponse(
			forum=forum_summary(forum_id, forum, user.id),
			items=[message_response(item) for item in messages],
		)

	async def post_message(
		self,
		user: AuthenticatedUser,
		center_id: str,
		forum_id: str,
		payload: dto.ForumMessageCreateRequest,
	) -> dto.ForumMessageResponse:
		await self._forum(user, center_id, forum_id)
		record = {
			"author_id": user.id,
			"author_name": user.name,
			"text": payload.text.strip(),
			"created_at": now_iso(),
		}
		message_id = await self.store.push(paths.feature(center_id, paths.FORUMS, forum_id, "messages"), record)
		await self.store.set(paths.feature(center_id, paths.FORUMS, forum_id, "last_read", user.id), record["created_at"])
		return message_response({**record, "id": message_id})

	async def mark_read(self, user: AuthenticatedUser, center_id: str, forum_id: str) -> dto.ForumSummary:
		_context, forum = await self._forum(user, center_id, forum_id)
		marker = now_iso()
		await self.store.set(paths.feature(center_id, paths.FORUMS, forum_id, "last_read", user.id), marker)
		last_read = dict(forum.get("last_read") or {})
		last_read[user.id] = marker
		return forum_summary(forum_id, {**forum, "last_read": last_read}, user.id)

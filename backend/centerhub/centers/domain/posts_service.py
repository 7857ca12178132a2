"""Center wall posts, reactions and comments."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from centerhub.centers.domain import paths
from centerhub.centers.domain.base import CenterServiceBase
from centerhub.centers.domain.exceptions import ForbiddenError, NotFoundError
from centerhub.centers.domain.fanout import now_iso
from centerhub.centers.domain.gate import STAFF
from centerhub.centers.domain.roles import id_set
from centerhub.centers.domain.sync import keyed_list
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser
from centerhub.infra.tree import ABORT, is_valid_key

_LOG = logging.getLogger(__name__)

REACTION_SETS = {"like": "likes", "dislike": "dislikes"}


def toggle_reaction(current: Any, user_id: str, reaction: str) -> Dict[str, Any]:
	"""Setting a reaction clears the opposite one; repeating it removes it."""
	reactions = current if isinstance(current, dict) else {}
	target = REACTION_SETS[reaction]
	had_it = user_id in id_set(reactions.get(target))
	updated: Dict[str, Any] = {}
	for kind in REACTION_SETS.values():
		ids = {uid: True for uid in id_set(reactions.get(kind)) if uid != user_id}
		if kind == target and not had_it:
			ids[user_id] = True
		updated[kind] = ids
	return updated


def post_response(record: Dict[str, Any], user_id: str) -> dto.PostResponse:
	reactions = record.get("reactions") if isinstance(record.get("reactions"), dict) else {}
	likes = id_set(reactions.get("likes"))
	dislikes = id_set(reactions.get("dislikes"))
	mine: Optional[str] = None
	if user_id in likes:
		mine = "like"
	elif user_id in dislikes:
		mine = "dislike"
	return dto.PostResponse(
		id=record["id"],
		author_id=str(record.get("author_id", "")),
		author_name=str(record.get("author_name", "")),
		author_photo_url=record.get("author_photo_url"),
		content=str(record.get("content", "")),
		created_at=record.get("created_at"),
		likes=len(likes),
		dislikes=len(dislikes),
		my_reaction=mine,
		comments_count=int(record.get("comments_count") or 0),
	)


class PostsService(CenterServiceBase):
	@staticmethod
	def _post_path(center_id: str, post_id: str) -> str:
		if not is_valid_key(post_id):
			raise NotFoundError("post_not_found")
		return paths.feature(center_id, paths.POSTS, post_id)

	async def _load_post(self, center_id: str, post_id: str) -> Dict[str, Any]:
		value = await self.store.get(self._post_path(center_id, post_id))
		if not isinstance(value, dict):
			raise NotFoundError("post_not_found")
		return {**value, "id": post_id}

	async def list_posts(self, user: AuthenticatedUser, center_id: str) -> dto.PostListResponse:
		await self.gate.authorize(center_id, user.id)
		value = await self.store.get(paths.feature(center_id, paths.POSTS))
		items = keyed_list(value, sort_key=lambda item: (str(item.get("created_at") or ""), item["id"]), reverse=True)
		return dto.PostListResponse(items=[post_response(item, user.id) for item in items])

	async def create_post(
		self,
		user: AuthenticatedUser,
		center_id: str,
		payload: dto.PostCreateRequest,
	) -> dto.PostResponse:
		await self.gate.authorize(center_id, user.id)
		record = {
			"author_id": user.id,
			"author_name": user.name,
			"author_photo_url": user.photo_url,
			"content": payload.content.strip(),
			"created_at": now_iso(),
			"comments_count": 0,
		}
		post_id = await self.store.push(paths.feature(center_id, paths.POSTS), record)
		_LOG.info("posts.created", extra={"center_id": center_id, "post_id": post_id})
		return post_response({**record, "id": post_id}, user.id)

	async def delete_post(self, user: AuthenticatedUser, center_id: str, post_id: str) -> None:
		context = await self.gate.authorize(center_id, user.id)
		post = await self._load_post(center_id, post_id)
		if post.get("author_id") != user.id and not context.allows(STAFF):
			raise ForbiddenError("not_post_author")
		await self.store.update(
			paths.center(center_id),
			{f"{paths.POSTS}/{post_id}": None, f"{paths.POST_COMMENTS}/{post_id}": None},
		)

	async def react(
		self,
		user: AuthenticatedUser,
		center_id: str,
		post_id: str,
		payload: dto.ReactionRequest,
	) -> dto.PostResponse:
		await self.gate.authorize(center_id, user.id)
		post_path = self._post_path(center_id, post_id)
		missing = False

		def apply(current: Any) -> Any:
			nonlocal missing
			if not isinstance(current, dict):
				missing = True
				return ABORT
			missing = False
			return {**current, "reactions": toggle_reaction(current.get("reactions"), user.id, payload.reaction)}

		result = await self.store.transaction(post_path, apply)
		if missing:
			raise NotFoundError("post_not_found")
		return post_response({**result.value, "id": post_id}, user.id)

	async def list_comments(self, user: AuthenticatedUser, center_id: str, post_id: str) -> dto.CommentListResponse:
		await self.gate.authorize(center_id, user.id)
		await self._load_post(center_id, post_id)
		value = await self.store.get(paths.feature(center_id, paths.POST_COMMENTS, post_id))
		items = keyed_list(value, sort_key=lambda item: (str(item.get("created_at") or ""), item["id"]))
		return dto.CommentListResponse(items=[dto.CommentResponse(**item) for item in items])

	async def add_comment(
		self,
		user: AuthenticatedUser,
		center_id: str,
		post_id: str,
		payload: dto.CommentCreateRequest,
	) -> dto.CommentResponse:
		await self.gate.authorize(center_id, user.id)
		await self._load_post(center_id, post_id)
		record = {
			"author_id": user.id,
			"author_name": user.name,
			"content": payload.content.strip(),
			"created_at": now_iso(),
		}
		comment_id = await self.store.push(paths.feature(center_id, paths.POST_COMMENTS, post_id), record)

		def bump(current: Any) -> Any:
			if current is None:
				return ABORT
			return int(current or 0) + 1

		await self.store.transaction(paths.feature(center_id, paths.POSTS, post_id, "comments_count"), bump)
		return dto.CommentResponse(id=comment_id, **record)

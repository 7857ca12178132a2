from __future__ import annotations

import asyncio

import pytest

from centerhub.centers.domain import paths
from centerhub.centers.domain.exceptions import ForbiddenError, NotFoundError
from centerhub.centers.domain.forums_service import ForumsService
from centerhub.centers.domain.posts_service import PostsService, toggle_reaction
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser


def _user(user_id: str) -> AuthenticatedUser:
	return AuthenticatedUser(id=user_id, display_name=user_id.title())


def test_toggle_reaction_switches_and_clears():
	liked = toggle_reaction(None, "u1", "like")
	assert liked == {"likes": {"u1": True}, "dislikes": {}}
	disliked = toggle_reaction(liked, "u1", "dislike")
	assert disliked == {"likes": {}, "dislikes": {"u1": True}}
	assert toggle_reaction(disliked, "u1", "dislike") == {"likes": {}, "dislikes": {}}


@pytest.mark.asyncio
async def test_forums_filtered_by_role(tree_store, seed_center):
	center_id = await seed_center(admins=["ad"], students=["st"])
	service = ForumsService(store=tree_store)

	student = await service.list_forums(_user("st"), center_id)
	admin = await service.list_forums(_user("ad"), center_id)
	owner = await service.list_forums(_user("owner"), center_id)

	assert [forum.id for forum in student.items] == ["general"]
	assert [forum.id for forum in admin.items] == ["admins", "general"]
	assert [forum.id for forum in owner.items] == ["admins", "admins_plus", "general"]
	with pytest.raises(ForbiddenError):
		await service.get_messages(_user("st"), center_id, "admins")
	with pytest.raises(NotFoundError):
		await service.get_messages(_user("st"), center_id, "missing")


@pytest.mark.asyncio
async def test_forum_unread_counts(tree_store, seed_center):
	center_id = await seed_center(students=["st", "other"])
	service = ForumsService(store=tree_store)

	await service.post_message(_user("st"), center_id, "general", dto.ForumMessageCreateRequest(text="¿Quién viene?"))
	await service.post_message(_user("st"), center_id, "general", dto.ForumMessageCreateRequest(text="Confirmen"))

	mine = (await service.list_forums(_user("st"), center_id)).items[0]
	theirs = (await service.list_forums(_user("other"), center_id)).items[0]
	assert mine.unread_count == 0
	assert theirs.unread_count == 2
	assert theirs.last_message.text == "Confirmen"

	cleared = await service.mark_read(_user("other"), center_id, "general")
	assert cleared.unread_count == 0
	history = await service.get_messages(_user("other"), center_id, "general")
	assert [item.text for item in history.items] == ["¿Quién viene?", "Confirmen"]


@pytest.mark.asyncio
async def test_posts_reactions_and_comments(tree_store, seed_center):
	center_id = await seed_center(students=["st", "other"])
	service = PostsService(store=tree_store)

	post = await service.create_post(_user("st"), center_id, dto.PostCreateRequest(content="Mañana hay asamblea"))
	await service.react(_user("other"), center_id, post.id, dto.ReactionRequest(reaction="like"))
	reacted = await service.react(_user("st"), center_id, post.id, dto.ReactionRequest(reaction="dislike"))
	assert (reacted.likes, reacted.dislikes, reacted.my_reaction) == (1, 1, "dislike")

	await service.add_comment(_user("other"), center_id, post.id, dto.CommentCreateRequest(content="Ahí estaré"))
	listing = await service.list_posts(_user("other"), center_id)
	assert listing.items[0].comments_count == 1
	assert listing.items[0].my_reaction == "like"
	comments = await service.list_comments(_user("st"), center_id, post.id)
	assert [comment.content for comment in comments.items] == ["Ahí estaré"]

	with pytest.raises(NotFoundError):
		await service.react(_user("st"), center_id, "missing", dto.ReactionRequest(reaction="like"))


@pytest.mark.asyncio
async def test_post_deletion_rules(tree_store, seed_center):
	center_id = await seed_center(admins=["ad"], students=["st", "other"])
	service = PostsService(store=tree_store)
	post = await service.create_post(_user("st"), center_id, dto.PostCreateRequest(content="Vendo libros usados"))
	await service.add_comment(_user("other"), center_id, post.id, dto.CommentCreateRequest(content="¿Cuáles?"))

	with pytest.raises(ForbiddenError):
		await service.delete_post(_user("other"), center_id, post.id)
	await service.delete_post(_user("ad"), center_id, post.id)

	assert (await service.list_posts(_user("st"), center_id)).items == []
	assert await tree_store.get(paths.feature(center_id, paths.POST_COMMENTS, post.id)) is None


@pytest.mark.asyncio
async def test_concurrent_posts_on_one_center_all_land(tree_store, seed_center):
	center_id = await seed_center(students=["st"])
	service = PostsService(store=tree_store)

	created = await asyncio.gather(
		*(
			service.create_post(_user("st"), center_id, dto.PostCreateRequest(content=f"Aviso {index}"))
			for index in range(60)
		)
	)

	listing = await service.list_posts(_user("st"), center_id)
	assert len(listing.items) == 60
	assert {item.id for item in listing.items} == {post.id for post in created}

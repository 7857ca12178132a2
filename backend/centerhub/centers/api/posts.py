"""Post, reaction and comment routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.posts_service import PostsService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:posts"])
_service = PostsService()


@router.get("/centers/{center_id}/posts", response_model=dto.PostListResponse)
async def list_posts_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostListResponse:
	try:
		return await _service.list_posts(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/posts", response_model=dto.PostResponse, status_code=201)
async def create_post_endpoint(
	center_id: str,
	payload: dto.PostCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostResponse:
	try:
		return await _service.create_post(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/centers/{center_id}/posts/{post_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_post_endpoint(
	center_id: str,
	post_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.delete_post(auth_user, center_id, post_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/posts/{post_id}/reactions", response_model=dto.PostResponse)
async def react_endpoint(
	center_id: str,
	post_id: str,
	payload: dto.ReactionRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostResponse:
	try:
		return await _service.react(auth_user, center_id, post_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}/posts/{post_id}/comments", response_model=dto.CommentListResponse)
async def list_comments_endpoint(
	center_id: str,
	post_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentListResponse:
	try:
		return await _service.list_comments(auth_user, center_id, post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post(
	"/centers/{center_id}/posts/{post_id}/comments",
	response_model=dto.CommentResponse,
	status_code=201,
)
async def add_comment_endpoint(
	center_id: str,
	post_id: str,
	payload: dto.CommentCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentResponse:
	try:
		return await _service.add_comment(auth_user, center_id, post_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

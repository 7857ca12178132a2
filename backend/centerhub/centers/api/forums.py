"""Forum routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.forums_service import ForumsService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:forums"])
_service = ForumsService()


@router.get("/centers/{center_id}/forums", response_model=dto.ForumListResponse)
async def list_forums_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumListResponse:
	try:
		return await _service.list_forums(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}/forums/{forum_id}/messages", response_model=dto.ForumMessagesResponse)
async def get_forum_messages_endpoint(
	center_id: str,
	forum_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumMessagesResponse:
	try:
		return await _service.get_messages(auth_user, center_id, forum_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post(
	"/centers/{center_id}/forums/{forum_id}/messages",
	response_model=dto.ForumMessageResponse,
	status_code=201,
)
async def post_forum_message_endpoint(
	center_id: str,
	forum_id: str,
	payload: dto.ForumMessageCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumMessageResponse:
	try:
		return await _service.post_message(auth_user, center_id, forum_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/forums/{forum_id}/read", response_model=dto.ForumSummary)
async def mark_forum_read_endpoint(
	center_id: str,
	forum_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ForumSummary:
	try:
		return await _service.mark_read(auth_user, center_id, forum_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

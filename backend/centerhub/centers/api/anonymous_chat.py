"""Anonymous chat routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.anonymous_chat_service import AnonymousChatService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:anonymous-chat"])
_service = AnonymousChatService()


@router.get("/centers/{center_id}/anonymous-chats", response_model=dto.ChatListResponse)
async def list_chats_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ChatListResponse:
	try:
		return await _service.list_chats(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/anonymous-chats", response_model=dto.ChatDetailResponse, status_code=201)
async def start_chat_endpoint(
	center_id: str,
	payload: dto.ChatStartRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ChatDetailResponse:
	try:
		return await _service.start_chat(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/centers/{center_id}/anonymous-chats/moderators", response_model=dto.ManagersResponse)
async def set_moderators_endpoint(
	center_id: str,
	payload: dto.ManagersRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ManagersResponse:
	try:
		return await _service.set_moderators(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}/anonymous-chats/{chat_id}", response_model=dto.ChatDetailResponse)
async def get_chat_endpoint(
	center_id: str,
	chat_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ChatDetailResponse:
	try:
		return await _service.get_chat(auth_user, center_id, chat_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post(
	"/centers/{center_id}/anonymous-chats/{chat_id}/messages",
	response_model=dto.ChatMessageResponse,
	status_code=201,
)
async def send_chat_message_endpoint(
	center_id: str,
	chat_id: str,
	payload: dto.ChatMessageCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ChatMessageResponse:
	try:
		return await _service.send_message(auth_user, center_id, chat_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/centers/{center_id}/anonymous-chats/{chat_id}/status", response_model=dto.ChatResponse)
async def set_chat_status_endpoint(
	center_id: str,
	chat_id: str,
	payload: dto.ChatStatusRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ChatResponse:
	try:
		return await _service.set_status(auth_user, center_id, chat_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/anonymous-chats/{chat_id}/read", response_model=dto.ChatResponse)
async def mark_chat_read_endpoint(
	center_id: str,
	chat_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ChatResponse:
	try:
		return await _service.mark_read(auth_user, center_id, chat_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

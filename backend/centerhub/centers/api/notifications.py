"""Notification inbox routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.notifications_service import NotificationsService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:notifications"])
_service = NotificationsService()


@router.get("/notifications", response_model=dto.NotificationListResponse)
async def list_notifications_endpoint(
	center_id: Optional[str] = None,
	limit: int = Query(default=50, ge=1, le=200),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationListResponse:
	try:
		return await _service.list_notifications(auth_user, center_id=center_id, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/notifications/unread", response_model=dto.NotificationUnreadResponse)
async def unread_notifications_endpoint(
	center_id: Optional[str] = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationUnreadResponse:
	try:
		return await _service.unread_count(auth_user, center_id=center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/notifications/read-all", response_model=dto.NotificationMarkReadResponse)
async def mark_all_notifications_read_endpoint(
	center_id: Optional[str] = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationMarkReadResponse:
	try:
		return await _service.mark_all_read(auth_user, center_id=center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/notifications/{notification_id}/read", response_model=dto.NotificationMarkReadResponse)
async def mark_notification_read_endpoint(
	notification_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationMarkReadResponse:
	try:
		return await _service.mark_read(auth_user, notification_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

"""Workshop routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.workshops_service import WorkshopsService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:workshops"])
_service = WorkshopsService()


@router.get("/centers/{center_id}/workshops", response_model=dto.WorkshopListResponse)
async def list_workshops_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.WorkshopListResponse:
	try:
		return await _service.list_workshops(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/workshops", response_model=dto.WorkshopResponse, status_code=201)
async def create_workshop_endpoint(
	center_id: str,
	payload: dto.WorkshopRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.WorkshopResponse:
	try:
		return await _service.create_workshop(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/centers/{center_id}/workshops/managers", response_model=dto.ManagersResponse)
async def set_workshop_managers_endpoint(
	center_id: str,
	payload: dto.ManagersRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ManagersResponse:
	try:
		return await _service.set_managers(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/centers/{center_id}/workshops/{workshop_id}", response_model=dto.WorkshopResponse)
async def update_workshop_endpoint(
	center_id: str,
	workshop_id: str,
	payload: dto.WorkshopRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.WorkshopResponse:
	try:
		return await _service.update_workshop(auth_user, center_id, workshop_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/centers/{center_id}/workshops/{workshop_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_workshop_endpoint(
	center_id: str,
	workshop_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.delete_workshop(auth_user, center_id, workshop_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


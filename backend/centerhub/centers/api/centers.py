"""Centers, access codes and membership routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.centers_service import CentersService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers"])
_service = CentersService()


@router.post("/centers", response_model=dto.CenterResponse, status_code=201)
async def create_center_endpoint(
	payload: dto.CenterCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CenterResponse:
	try:
		return await _service.create_center(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers", response_model=dto.CenterListResponse)
async def list_my_centers_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CenterListResponse:
	try:
		return await _service.list_my_centers(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}", response_model=dto.CenterResponse)
async def get_center_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CenterResponse:
	try:
		return await _service.get_center(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/centers/{center_id}", response_model=dto.DeleteCenterResponse)
async def delete_center_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.DeleteCenterResponse:
	try:
		return await _service.delete_center(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/codes/{code}", response_model=dto.AccessCodePreview)
async def preview_code_endpoint(
	code: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.AccessCodePreview:
	try:
		return await _service.preview_code(auth_user, code)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/join", response_model=dto.CenterResponse)
async def join_center_endpoint(
	payload: dto.JoinRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CenterResponse:
	try:
		return await _service.join(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}/me", response_model=dto.MyRoleResponse)
async def my_role_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MyRoleResponse:
	try:
		return await _service.my_role(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}/members", response_model=dto.RosterResponse)
async def roster_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.RosterResponse:
	try:
		return await _service.roster(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/centers/{center_id}/members/{user_id}", response_model=dto.MemberResponse)
async def change_role_endpoint(
	center_id: str,
	user_id: str,
	payload: dto.RoleChangeRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		return await _service.change_role(auth_user, center_id, user_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/centers/{center_id}/members/{user_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def expel_member_endpoint(
	center_id: str,
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.expel(auth_user, center_id, user_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

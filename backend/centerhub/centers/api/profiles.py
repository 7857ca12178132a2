"""Profile routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.profiles_service import ProfilesService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:profiles"])
_service = ProfilesService()


@router.get("/profile", response_model=dto.ProfileResponse)
async def get_my_profile_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ProfileResponse:
	try:
		return await _service.get_profile(auth_user.id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/profile", response_model=dto.ProfileResponse)
async def update_my_profile_endpoint(
	payload: dto.ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ProfileResponse:
	try:
		return await _service.update_profile(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/profiles/{user_id}", response_model=dto.ProfileResponse)
async def get_profile_endpoint(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ProfileResponse:
	try:
		return await _service.get_profile(user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}/profiles/{user_id}", response_model=dto.CenterProfileResponse)
async def get_center_profile_endpoint(
	center_id: str,
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CenterProfileResponse:
	try:
		return await _service.get_center_profile(auth_user, center_id, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

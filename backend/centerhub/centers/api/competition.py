"""Competition routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.competition_service import CompetitionService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:competition"])
_service = CompetitionService()


@router.get("/centers/{center_id}/competition", response_model=dto.CompetitionResponse)
async def get_competition_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CompetitionResponse:
	try:
		return await _service.get_competition(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/competition/scores", response_model=dto.CompetitionResponse)
async def update_scores_endpoint(
	center_id: str,
	payload: dto.ScoreUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CompetitionResponse:
	try:
		return await _service.update_scores(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/centers/{center_id}/competition/permissions", response_model=dto.CompetitionResponse)
async def set_competition_permissions_endpoint(
	center_id: str,
	payload: dto.CompetitionPermissionsRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CompetitionResponse:
	try:
		return await _service.set_permissions(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

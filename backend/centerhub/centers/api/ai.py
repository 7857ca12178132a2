"""Text-generation routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from centerhub.ai.schemas import FixtureOutput
from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.ai_service import AIService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:ai"])
_service = AIService()


@router.post("/ai/districts", response_model=dto.DistrictsResponse)
async def districts_endpoint(
	payload: dto.DistrictsRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.DistrictsResponse:
	try:
		return await _service.districts(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/ai/fixture", response_model=FixtureOutput)
async def fixture_endpoint(
	center_id: str,
	payload: dto.FixtureRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> FixtureOutput:
	try:
		return await _service.fixture(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

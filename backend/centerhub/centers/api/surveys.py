"""Survey routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.surveys_service import SurveysService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:surveys"])
_service = SurveysService()


@router.get("/centers/{center_id}/surveys", response_model=dto.SurveyListResponse)
async def list_surveys_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SurveyListResponse:
	try:
		return await _service.list_surveys(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/surveys", response_model=dto.SurveyResponse, status_code=201)
async def create_survey_endpoint(
	center_id: str,
	payload: dto.SurveyCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SurveyResponse:
	try:
		return await _service.create_survey(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/centers/{center_id}/surveys/{survey_id}", response_model=dto.SurveyResponse)
async def get_survey_endpoint(
	center_id: str,
	survey_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SurveyResponse:
	try:
		return await _service.get_survey(auth_user, center_id, survey_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/surveys/{survey_id}/votes", response_model=dto.SurveyResponse)
async def vote_endpoint(
	center_id: str,
	survey_id: str,
	payload: dto.VoteRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.SurveyResponse:
	try:
		return await _service.vote(auth_user, center_id, survey_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/centers/{center_id}/surveys/{survey_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_survey_endpoint(
	center_id: str,
	survey_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.delete_survey(auth_user, center_id, survey_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

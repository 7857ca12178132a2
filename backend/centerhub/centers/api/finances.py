"""Finance routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from centerhub.centers.api._errors import to_http_error
from centerhub.centers.domain.finances_service import FinancesService
from centerhub.centers.schemas import dto
from centerhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["centers:finances"])
_service = FinancesService()


@router.get("/centers/{center_id}/finances", response_model=dto.FinanceOverviewResponse)
async def finance_overview_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.FinanceOverviewResponse:
	try:
		return await _service.overview(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post(
	"/centers/{center_id}/finances/transactions",
	response_model=dto.TransactionResponse,
	status_code=201,
)
async def add_transaction_endpoint(
	center_id: str,
	payload: dto.TransactionCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.TransactionResponse:
	try:
		return await _service.add_transaction(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/centers/{center_id}/finances/transactions/{transaction_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_transaction_endpoint(
	center_id: str,
	transaction_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.delete_transaction(auth_user, center_id, transaction_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post(
	"/centers/{center_id}/finances/categories",
	response_model=dto.CategoryResponse,
	status_code=201,
)
async def add_category_endpoint(
	center_id: str,
	payload: dto.CategoryCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CategoryResponse:
	try:
		return await _service.add_category(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/centers/{center_id}/finances/visibility", response_model=dto.VisibilityResponse)
async def set_visibility_endpoint(
	center_id: str,
	payload: dto.VisibilityRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.VisibilityResponse:
	try:
		return await _service.set_visibility(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/centers/{center_id}/finances/managers", response_model=dto.ManagersResponse)
async def set_finance_managers_endpoint(
	center_id: str,
	payload: dto.ManagersRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ManagersResponse:
	try:
		return await _service.set_managers(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/finances/categorize", response_model=dto.CategorizeResponse)
async def categorize_endpoint(
	center_id: str,
	payload: dto.CategorizeRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CategorizeResponse:
	try:
		return await _service.categorize(auth_user, center_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/centers/{center_id}/finances/projection", response_model=dto.ProjectionResponse)
async def projection_endpoint(
	center_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ProjectionResponse:
	try:
		return await _service.projection(auth_user, center_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc

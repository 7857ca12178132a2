"""Custom exceptions for center services."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class CenterError(Exception):
	"""Base class for center related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "center_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class NotFoundError(CenterError):
	"""Thrown when a resource is not visible or missing."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ForbiddenError(CenterError):
	"""Raised when authorization fails."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class ConflictError(CenterError):
	"""Raised for conflicting operations (e.g., joining twice)."""

	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"


class ClosedError(ConflictError):
	"""Raised when a survey no longer accepts votes."""

	detail = "survey_closed"


class ValidationError(CenterError):
	"""Raised for validation errors not covered by FastAPI schema validation."""

	status_code = _HTTP_422
	detail = "validation_error"

"""Error translation helpers for centers API."""

from __future__ import annotations

from fastapi import HTTPException, status
from redis.exceptions import RedisError

from centerhub.ai.flows import GenerationError
from centerhub.centers.domain import exceptions
from centerhub.infra.tree import InvalidPathError, TreeWriteError


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, exceptions.CenterError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	if isinstance(exc, GenerationError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	if isinstance(exc, TreeWriteError):
		return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="write_failed")
	if isinstance(exc, InvalidPathError):
		return HTTPException(status_code=exceptions.ValidationError.status_code, detail="invalid_path")
	if isinstance(exc, RedisError):
		return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store_unavailable")
	return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

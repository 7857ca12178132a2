"""Request middleware: request ids, route timing and one access log per request."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from centerhub.obs import logging as obs_logging
from centerhub.obs import metrics
from centerhub.settings import settings

REQUEST_ID_HEADER = "X-Request-Id"

_LOG = obs_logging.get_logger("centerhub.http")


def route_template(request: Request) -> str:
	"""Matched route path (``/api/centers/v1/centers/{center_id}``) so metrics stay low-cardinality."""
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		if not settings.obs_enabled:
			return await call_next(request)

		request_id = getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
		request.state.request_id = request_id
		token = obs_logging.bind_context(
			request_id=request_id,
			user_id=request.headers.get("X-User-Id"),
			ip=request.client.host if request.client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
		except Exception:
			_LOG.exception("http.request_failed", extra={"method": request.method, "path": request.url.path})
			raise
		finally:
			elapsed = time.perf_counter() - started
			route = route_template(request)
			metrics.observe_request(route, request.method, status_code, elapsed)
			center_id = (request.scope.get("path_params") or {}).get("center_id")
			with obs_logging.log_context(route=route, center_id=center_id):
				_LOG.info(
					"http.request",
					extra={"method": request.method, "status": status_code, "latency_ms": round(elapsed * 1000, 3)},
				)
			obs_logging.reset_context(token)

		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response


def install(app) -> None:
	app.add_middleware(ObservabilityMiddleware)

"""Shared helpers for center Socket.IO namespaces."""

from __future__ import annotations

from typing import Dict, Optional

import socketio

from centerhub.infra.auth import AuthenticatedUser, user_from_handshake


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class BaseCenterNamespace(socketio.AsyncNamespace):
	"""Base namespace that resolves the AuthenticatedUser from the handshake."""

	def __init__(self, namespace: str) -> None:
		super().__init__(namespace)
		self._sessions: Dict[str, AuthenticatedUser] = {}

	def _resolve_user(self, environ: dict, auth: Optional[dict] = None) -> AuthenticatedUser:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
		token = auth_payload.get("token")
		authorization = _header(scope, "authorization")
		if not token and authorization and authorization.lower().startswith("bearer "):
			token = authorization.split(" ", 1)[1]
		user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
		display_name = auth_payload.get("displayName") or _header(scope, "x-user-name")
		return user_from_handshake(token, user_id, display_name)

	def get_user(self, sid: str) -> Optional[AuthenticatedUser]:
		return self._sessions.get(sid)

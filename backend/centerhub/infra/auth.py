"""Authentication helpers for FastAPI endpoints and socket handshakes.

Identity comes from an HS256 bearer JWT; in development the X-User-* headers
are accepted as well so local tools can act as any user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from centerhub.infra import jwt as jwt_helper
from centerhub.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	display_name: Optional[str] = None
	photo_url: Optional[str] = None

	@property
	def name(self) -> str:
		return self.display_name or "Anónimo"


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except InvalidTokenError as exc:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from exc

	display_name = payload.get("name") or payload.get("display_name")
	photo_url = payload.get("picture") or payload.get("photo_url")
	return AuthenticatedUser(
		id=str(payload["sub"]).strip(),
		display_name=str(display_name) if display_name else None,
		photo_url=str(photo_url) if photo_url else None,
	)


def user_from_handshake(token: Optional[str], user_id: Optional[str], display_name: Optional[str] = None) -> AuthenticatedUser:
	"""Resolve a socket client; raises ConnectionRefusedError when unauthenticated."""
	if token:
		try:
			return verify_access_jwt(token)
		except HTTPException as exc:
			raise ConnectionRefusedError(exc.detail) from exc
	if settings.is_dev() and user_id:
		return AuthenticatedUser(id=user_id, display_name=display_name)
	raise ConnectionRefusedError("invalid_token")


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id, display_name=x_user_name)

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

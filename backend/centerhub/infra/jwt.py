"""HS256 access tokens identifying a platform user.

Tokens are minted by the identity provider in front of this service; the
``sub`` claim is the user id and ``name`` / ``picture`` carry the display
profile used for authored content.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import jwt
from jwt import InvalidTokenError

from centerhub.settings import settings


ISSUER = "centerhub-identity"
AUDIENCE = "centerhub-api"
ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


def issue_access(
    user_id: str,
    *,
    name: Optional[str] = None,
    picture: Optional[str] = None,
    ttl_minutes: Optional[int] = None,
) -> str:
    now = int(time.time())
    claims: Dict[str, Any] = {
        "sub": user_id,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + (ttl_minutes or settings.access_ttl_minutes) * 60,
    }
    if name:
        claims["name"] = name
    if picture:
        claims["picture"] = picture
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access(token: str) -> Dict[str, Any]:
    """Validated claims; raises ``jwt.InvalidTokenError`` subclasses."""
    claims = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[ALGORITHM],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": REQUIRED_CLAIMS},
    )
    if not str(claims.get("sub") or "").strip():
        raise InvalidTokenError("missing_claim:sub")
    return claims

"""Bearer token helpers.

Identity verification happens upstream; the service only trusts tokens signed
with the configured secret. Tokens carry the external user id as ``sub`` and
optional ``name``/``email`` claims used to seed a profile on first sign-in.
"""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt

from aura_stage.core.settings import settings


def create_access_token(
    user_id: str,
    *,
    display_name: str | None = None,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Return a signed JWT for `user_id`."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {"sub": user_id, "exp": expire}
    if display_name:
        claims["name"] = display_name
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a bearer token.

    Raises:
        jose.JWTError: If the signature, expiry or format is invalid.
    """
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])

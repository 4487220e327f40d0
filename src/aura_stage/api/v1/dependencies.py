"""Shared API dependencies for authentication and error translation."""

import logging
from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from aura_stage.core.security import decode_access_token
from aura_stage.db.session import get_db
from aura_stage.models import Identity
from aura_stage.services.errors import LedgerError
from aura_stage.services.identity import IdentityService

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
# Same scheme, but a missing header is not an error
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _identity_from_token(token: str, db: Session) -> Identity:
    try:
        payload = decode_access_token(token)
    except JWTError as err:
        raise _credentials_error() from err
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise _credentials_error()
    return IdentityService(db).ensure_identity(
        subject,
        display_name=payload.get("name"),
        email=payload.get("email"),
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> Identity:
    """Return the caller's identity, creating the profile on first sign-in.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired.
    """
    return _identity_from_token(credentials.credentials, db)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
    db: SessionDep,
) -> Identity | None:
    """Return the caller's identity, or None for absent or invalid tokens."""
    if credentials is None:
        return None
    try:
        return _identity_from_token(credentials.credentials, db)
    except HTTPException:
        return None


# Type aliases for current user dependencies
CurrentUserDep = Annotated[Identity, Depends(get_current_user)]
OptionalUserDep = Annotated[Identity | None, Depends(get_optional_user)]


def raise_http(err: LedgerError) -> NoReturn:
    """Translate a service rejection into an HTTP error with a stable kind."""
    raise HTTPException(
        status_code=err.status_code,
        detail={"error": err.kind, "message": err.message},
    ) from err

# src/aura_stage/api/v1/endpoints/users.py
"""Profile endpoints."""

from fastapi import APIRouter

from aura_stage.schemas.user import ProfileResponse, ProfileUpdate, PublicProfileResponse
from aura_stage.services.errors import LedgerError
from aura_stage.services.identity import IdentityService

from ..dependencies import CurrentUserDep, SessionDep, raise_http

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(current_user: CurrentUserDep, db: SessionDep) -> ProfileResponse:
    """Return the caller's profile with lifetime aura and remaining budget."""
    summary = IdentityService(db).profile_summary(current_user.user_id)
    return ProfileResponse.model_validate(summary)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ProfileResponse:
    """Update the caller's name, photo or leaderboard preferences."""
    service = IdentityService(db)
    try:
        service.update_profile(current_user.user_id, **profile_data.model_dump(exclude_unset=True))
        summary = service.profile_summary(current_user.user_id)
    except LedgerError as err:
        raise_http(err)
    return ProfileResponse.model_validate(summary)


@router.get("/{user_id}/profile-public", response_model=PublicProfileResponse)
async def get_public_profile(user_id: str, db: SessionDep) -> PublicProfileResponse:
    """Return the name and photo of any member; no aura or preferences."""
    try:
        identity = IdentityService(db).public_profile(user_id)
    except LedgerError as err:
        raise_http(err)
    return PublicProfileResponse.model_validate(identity)

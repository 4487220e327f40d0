# src/aura_stage/api/v1/endpoints/leaderboard.py
"""Global leaderboard endpoint."""

from fastapi import APIRouter, Query

from aura_stage.schemas.leaderboard import (
    LeaderboardResponse,
    LeaderboardRowResponse,
    LeaderboardStatsResponse,
)
from aura_stage.services.ranking import SORT_TOTAL, cached_global_leaderboard, leaderboard_view

from ..dependencies import OptionalUserDep, SessionDep

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("/", response_model=LeaderboardResponse)
async def get_leaderboard(
    current_user: OptionalUserDep,
    db: SessionDep,
    sort_by: str = Query(SORT_TOTAL, description="total or an aura dimension"),
) -> LeaderboardResponse:
    """Return system-wide standings.

    Served from a short-lived cache. Callers without a valid token get the
    same ranking with names replaced and aura values withheld.
    """
    snapshot = cached_global_leaderboard(db)
    view = leaderboard_view(snapshot, sort_by, authenticated=current_user is not None)
    return LeaderboardResponse(
        rankings=[LeaderboardRowResponse.model_validate(row) for row in view.rankings],
        stats=LeaderboardStatsResponse(
            total_users=view.total_users,
            total_ratings=view.total_ratings,
            average_aura=view.average_aura,
            highest_aura=view.highest_aura,
        ),
        sort_by=view.sort_by,
        anonymized=view.anonymized,
    )

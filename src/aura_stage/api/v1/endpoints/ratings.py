# src/aura_stage/api/v1/endpoints/ratings.py
"""Rating ledger endpoints."""

from fastapi import APIRouter, status

from aura_stage.core.settings import settings
from aura_stage.schemas.rating import (
    BudgetResponse,
    RatingCreate,
    RatingResponse,
    ScopeRatingsResponse,
)
from aura_stage.services.errors import LedgerError, NotAMember
from aura_stage.services.groups import GroupService
from aura_stage.services.ledger import RatingLedger
from aura_stage.services.targets import parse_scope

from ..dependencies import CurrentUserDep, SessionDep, raise_http

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post("/", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def submit_rating(
    rating_data: RatingCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> RatingResponse:
    """Give points to a user or a roster slot."""
    try:
        rating = RatingLedger(db).submit(
            from_user_id=current_user.user_id,
            scope=rating_data.scope.strip(),
            to_target_id=rating_data.to_target_id.strip(),
            points=rating_data.points,
            reason=rating_data.reason,
            dimension_scores=rating_data.dimension_scores,
        )
    except LedgerError as err:
        raise_http(err)
    return RatingResponse.model_validate(rating)


@router.get("/budget", response_model=BudgetResponse)
async def get_budget(current_user: CurrentUserDep, db: SessionDep) -> BudgetResponse:
    """Return how many points the caller has left to give."""
    ledger = RatingLedger(db)
    spent = ledger.spent(current_user.user_id)
    return BudgetResponse(
        budget=settings.rating_budget,
        spent=spent,
        remaining=max(0, settings.rating_budget - spent),
    )


@router.get("/scope/{scope}", response_model=ScopeRatingsResponse)
async def list_scope_ratings(
    scope: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ScopeRatingsResponse:
    """List a scope's entries in display order.

    Group scopes are visible to participants only; the direct scope lists
    the caller's own outgoing ratings.
    """
    ledger = RatingLedger(db)
    try:
        group_id = parse_scope(scope)
        if group_id is not None:
            group = GroupService(db).get_group(group_id)
            if group.member(current_user.user_id) is None:
                raise NotAMember()
    except LedgerError as err:
        raise_http(err)

    ratings = ledger.ratings_in_scope(scope)
    if group_id is None:
        ratings = [r for r in ratings if r.from_user_id == current_user.user_id]
    return ScopeRatingsResponse(
        scope=scope,
        ratings=[RatingResponse.model_validate(r) for r in ratings],
        rated_targets=sorted(ledger.rated_targets(scope, current_user.user_id)),
    )

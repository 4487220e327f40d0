# src/aura_stage/api/v1/endpoints/feed.py
"""Feed posts and per-post aura counters."""

from fastapi import APIRouter, Query, status

from aura_stage.schemas.feed import (
    FeedAuraRequest,
    FeedAuraResponse,
    FeedPostCreate,
    FeedPostResponse,
)
from aura_stage.services.counter import CounterService
from aura_stage.services.errors import LedgerError

from ..dependencies import CurrentUserDep, SessionDep, raise_http

router = APIRouter(prefix="/feed", tags=["feed"])


@router.post("/posts", response_model=FeedPostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: FeedPostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> FeedPostResponse:
    try:
        post = CounterService(db).create_post(current_user.user_id, post_data.body)
    except LedgerError as err:
        raise_http(err)
    return FeedPostResponse.model_validate(post)


@router.get("/posts", response_model=list[FeedPostResponse])
async def list_posts(
    db: SessionDep,
    limit: int = Query(50, ge=1, le=100),
    before: int | None = Query(None, description="Return posts older than this id"),
) -> list[FeedPostResponse]:
    """List feed posts, newest first."""
    posts = CounterService(db).list_posts(limit=limit, before_id=before)
    return [FeedPostResponse.model_validate(post) for post in posts]


@router.post("/aura", response_model=FeedAuraResponse)
async def adjust_feed_aura(
    aura_data: FeedAuraRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> FeedAuraResponse:
    """Move the caller's aura on a post one step up or down."""
    try:
        result = CounterService(db).adjust(
            aura_data.post_id,
            current_user.user_id,
            aura_data.delta,
            endorser_display_name=current_user.display_name,
        )
    except LedgerError as err:
        raise_http(err)
    return FeedAuraResponse(post_id=result.post_id, points=result.value, delta=result.delta)

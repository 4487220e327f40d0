# src/aura_stage/api/v1/endpoints/groups.py
"""Group lifecycle, roster slot and results endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, status
from sqlalchemy.orm import Session

from aura_stage.db.time import utcnow
from aura_stage.models import GroupSession
from aura_stage.schemas.group import (
    ClaimResponse,
    GroupCreate,
    GroupResponse,
    GroupResultsResponse,
    JoinByCodeRequest,
    JoinRequest,
    MemberResponse,
    MigrateResponse,
    SlotResponse,
)
from aura_stage.services.closure import evaluate_closure
from aura_stage.services.errors import LedgerError
from aura_stage.services.groups import GroupService
from aura_stage.services.ledger import RatingLedger
from aura_stage.services.ranking import group_results
from aura_stage.services.targets import slot_target_id

from ..dependencies import CurrentUserDep, SessionDep, raise_http

router = APIRouter(prefix="/groups", tags=["groups"])


def _group_response(db: Session, group: GroupSession) -> GroupResponse:
    decision = evaluate_closure(
        group, RatingLedger(db).unique_voter_count(group.scope), utcnow()
    )
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        code=group.code,
        created_by=group.created_by,
        created_by_display_name=group.created_by_display_name,
        created_at=group.created_at,
        max_participants=group.max_participants,
        is_active=group.is_active,
        voting_closed=decision.closed,
        closure_reason=decision.reason.value if decision.reason else None,
        voting_closes_at=group.voting_closes_at,
        min_voters_to_close=group.min_voters_to_close,
        participants=[MemberResponse.model_validate(m) for m in group.members],
        slots=[
            SlotResponse(
                slot_index=slot.slot_index,
                label=slot.label,
                target_id=slot.user_id or slot_target_id(group.scope, slot.slot_index),
                user_id=slot.user_id,
                display_name=slot.display_name,
                claimed=slot.claimed,
            )
            for slot in group.slots
        ],
    )


@router.post("/", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> GroupResponse:
    """Create a group with the caller as founder."""
    try:
        group = GroupService(db).create_group(
            current_user,
            group_data.name,
            description=group_data.description,
            max_participants=group_data.max_participants,
            slot_labels=group_data.slot_labels,
            founder_slot_index=group_data.founder_slot_index,
            voting_window_days=group_data.voting_window_days,
            min_voters_to_close=group_data.min_voters_to_close,
        )
    except LedgerError as err:
        raise_http(err)
    return _group_response(db, group)


@router.get("/mine", response_model=list[GroupResponse])
async def list_my_groups(current_user: CurrentUserDep, db: SessionDep) -> list[GroupResponse]:
    """List the groups the caller participates in, newest first."""
    groups = GroupService(db).list_groups_for_user(current_user.user_id)
    return [_group_response(db, group) for group in groups]


@router.get("/code/{code}", response_model=GroupResponse)
async def get_group_by_code(code: str, current_user: CurrentUserDep, db: SessionDep) -> GroupResponse:
    """Look up a group by its join code."""
    try:
        group = GroupService(db).get_group_by_code(code)
    except LedgerError as err:
        raise_http(err)
    return _group_response(db, group)


@router.post("/join-by-code", response_model=GroupResponse)
async def join_by_code(
    join_data: JoinByCodeRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> GroupResponse:
    try:
        group = GroupService(db).join_by_code(
            join_data.code, current_user.user_id, join_data.display_name
        )
    except LedgerError as err:
        raise_http(err)
    return _group_response(db, group)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(group_id: int, current_user: CurrentUserDep, db: SessionDep) -> GroupResponse:
    try:
        group = GroupService(db).get_group(group_id)
    except LedgerError as err:
        raise_http(err)
    return _group_response(db, group)


@router.post("/{group_id}/join", response_model=GroupResponse)
async def join_group(
    group_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    join_data: JoinRequest | None = None,
) -> GroupResponse:
    """Join a group without a roster."""
    display_name = join_data.display_name if join_data else None
    try:
        group = GroupService(db).join(group_id, current_user.user_id, display_name)
    except LedgerError as err:
        raise_http(err)
    return _group_response(db, group)


@router.delete("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(group_id: int, current_user: CurrentUserDep, db: SessionDep) -> None:
    try:
        GroupService(db).leave(group_id, current_user.user_id)
    except LedgerError as err:
        raise_http(err)


@router.post("/{group_id}/slots/{slot_index}/claim", response_model=ClaimResponse)
async def claim_slot(
    group_id: int,
    slot_index: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    join_data: JoinRequest | None = None,
) -> ClaimResponse:
    """Claim a roster slot; ratings it already received move to the caller."""
    display_name = join_data.display_name if join_data else None
    try:
        result = GroupService(db).claim(group_id, slot_index, current_user.user_id, display_name)
    except LedgerError as err:
        raise_http(err)
    return ClaimResponse(
        group_id=result.group_id,
        slot_index=result.slot_index,
        user_id=result.user_id,
        migrated=result.migrated,
        voting_closed=result.voting_closed,
        retried=result.retried,
    )


@router.post("/{group_id}/slots/{slot_index}/migrate", response_model=MigrateResponse)
async def migrate_slot_ratings(
    group_id: int,
    slot_index: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MigrateResponse:
    """Re-run the rating migration for a slot the caller holds."""
    try:
        migrated = GroupService(db).migrate_slot_ratings(group_id, slot_index, current_user.user_id)
    except LedgerError as err:
        raise_http(err)
    return MigrateResponse(group_id=group_id, slot_index=slot_index, migrated=migrated)


@router.post("/{group_id}/close", response_model=GroupResponse)
async def close_voting(group_id: int, current_user: CurrentUserDep, db: SessionDep) -> GroupResponse:
    try:
        group = GroupService(db).close_voting(group_id, current_user.user_id)
    except LedgerError as err:
        raise_http(err)
    return _group_response(db, group)


@router.post("/{group_id}/deactivate", response_model=GroupResponse)
async def deactivate_group(
    group_id: int, current_user: CurrentUserDep, db: SessionDep
) -> GroupResponse:
    try:
        group = GroupService(db).deactivate(group_id, current_user.user_id)
    except LedgerError as err:
        raise_http(err)
    return _group_response(db, group)


@router.get("/{group_id}/results", response_model=GroupResultsResponse)
async def get_group_results(
    group_id: int, current_user: CurrentUserDep, db: SessionDep
) -> GroupResultsResponse:
    """Rank the group from the live ledger; insights appear once voting closes."""
    try:
        group = GroupService(db).get_group(group_id)
    except LedgerError as err:
        raise_http(err)
    results = group_results(db, group)
    payload = asdict(results)
    payload["closure_reason"] = results.closure_reason.value if results.closure_reason else None
    return GroupResultsResponse.model_validate(payload)

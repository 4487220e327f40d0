"""Rating ledger: append-only point transfers under a lifetime spending cap."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from aura_stage.core.settings import settings
from aura_stage.db.session import atomic
from aura_stage.db.time import utcnow
from aura_stage.models import GroupSession, Identity, Rating
from aura_stage.services.errors import (
    BudgetExceeded,
    DuplicateEdge,
    GroupNotFound,
    InvalidTarget,
    LedgerError,
    NotAMember,
    OutOfBounds,
    OutOfRange,
    SelfTarget,
    StoreUnavailable,
    TargetNotFound,
    ValidationFailure,
)
from aura_stage.services.targets import (
    PendingSlot,
    RealIdentity,
    parse_scope,
    parse_target,
    slot_target_id,
)

logger = logging.getLogger(__name__)

# Named aura dimensions a group rating may be broken down into.
AURA_DIMENSIONS: Final[tuple[str, ...]] = (
    "presence_energy",
    "authenticity_self_vibe",
    "social_pull",
    "style_aesthetic",
    "trustworthy",
)


@dataclass(frozen=True)
class ResolvedTarget:
    """Target id as it will be persisted, plus the names stored alongside it."""

    target_id: str
    display_name: str
    from_display_name: str


def sanitize_dimension_scores(scores: Mapping[str, Any] | None) -> dict[str, int] | None:
    """Keep known dimensions with in-range numeric values; drop everything else."""
    if not scores:
        return None
    bound = settings.rating_points_max
    clean: dict[str, int] = {}
    for dimension in AURA_DIMENSIONS:
        value = scores.get(dimension)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if -bound <= value <= bound:
            clean[dimension] = int(value)
    return clean or None


def clean_reason(reason: str | None) -> str | None:
    """Trim a free-text reason; empty reasons are stored as NULL."""
    trimmed = (reason or "").strip()
    if len(trimmed) > settings.reason_max_length:
        raise ValidationFailure("Reason too long")
    return trimmed or None


class RatingLedger:
    """Validates and appends ratings; answers budget queries from the live ledger."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Budget queries
    # ------------------------------------------------------------------

    def spent(self, user_id: str) -> int:
        """Return the sum of absolute points `user_id` has given, across all scopes."""
        total = (
            self.db.query(func.coalesce(func.sum(func.abs(Rating.points)), 0))
            .filter(Rating.from_user_id == user_id)
            .scalar()
        )
        return int(total or 0)

    def remaining(self, user_id: str) -> int:
        """Return how many points `user_id` can still give."""
        return max(0, settings.rating_budget - self.spent(user_id))

    def received_total(self, user_id: str) -> int:
        """Return the net points received by `user_id` across all scopes."""
        total = (
            self.db.query(func.coalesce(func.sum(Rating.points), 0))
            .filter(Rating.to_target_id == user_id)
            .scalar()
        )
        return int(total or 0)

    # ------------------------------------------------------------------
    # Scope queries
    # ------------------------------------------------------------------

    def ratings_in_scope(self, scope: str) -> list[Rating]:
        """Return a scope's entries in display order."""
        return (
            self.db.query(Rating)
            .filter(Rating.scope == scope)
            .order_by(Rating.created_at, Rating.id)
            .all()
        )

    def rated_targets(self, scope: str, from_user_id: str) -> set[str]:
        """Return the target ids `from_user_id` already rated in `scope`."""
        rows = (
            self.db.query(Rating.to_target_id)
            .filter(Rating.scope == scope, Rating.from_user_id == from_user_id)
            .all()
        )
        return {target_id for (target_id,) in rows}

    def unique_voter_count(self, scope: str) -> int:
        """Return the number of distinct raters in `scope`."""
        count = (
            self.db.query(func.count(func.distinct(Rating.from_user_id)))
            .filter(Rating.scope == scope)
            .scalar()
        )
        return int(count or 0)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self,
        from_user_id: str,
        scope: str,
        to_target_id: str,
        points: int,
        reason: str | None = None,
        dimension_scores: Mapping[str, Any] | None = None,
    ) -> Rating:
        """Validate and append one rating.

        Checks run in order: target resolvable in scope, not self, points in
        bounds, no prior edge, projected spend within budget. The duplicate and
        budget checks read the ledger inside the same transaction that writes
        the entry, after locking the rater's identity row.

        Raises:
            LedgerError: A subclass naming the first failed check.
            StoreUnavailable: If the backing store fails; safe to retry.
        """
        stored_reason = clean_reason(reason)
        stored_scores = sanitize_dimension_scores(dimension_scores)
        try:
            with atomic(self.db):
                rater = self._lock_identity(from_user_id)
                target = self._resolve_target(rater, scope, to_target_id)
                if target.target_id == from_user_id:
                    raise SelfTarget()
                if abs(points) > settings.rating_points_max:
                    raise OutOfBounds()
                if self._edge_exists(scope, from_user_id, target.target_id):
                    raise DuplicateEdge()

                spent = self.spent(from_user_id)
                if spent + abs(points) > settings.rating_budget:
                    left = max(0, settings.rating_budget - spent)
                    raise BudgetExceeded(f"Only {left} points left to give")

                rating = Rating(
                    scope=scope,
                    from_user_id=from_user_id,
                    from_display_name=target.from_display_name,
                    to_target_id=target.target_id,
                    to_display_name=target.display_name,
                    points=points,
                    reason=stored_reason,
                    dimension_scores=stored_scores,
                    created_at=utcnow(),
                )
                self.db.add(rating)
                self.db.flush()
        except LedgerError as err:
            logger.info("Rating from %s in scope %s rejected: %s", from_user_id, scope, err.kind)
            raise
        except IntegrityError as err:
            # A concurrent identical submission won the unique constraint.
            logger.info("Rating from %s in scope %s lost a duplicate race", from_user_id, scope)
            raise DuplicateEdge() from err
        except SQLAlchemyError as err:
            logger.exception("Rating ledger write failed for %s", from_user_id)
            raise StoreUnavailable() from err

        logger.info(
            "Rating %s accepted: %s -> %s (%+d) in scope %s",
            rating.id,
            from_user_id,
            rating.to_target_id,
            points,
            scope,
        )
        return rating

    def _lock_identity(self, user_id: str) -> Identity:
        rater = (
            self.db.query(Identity)
            .filter(Identity.user_id == user_id)
            .with_for_update()
            .one_or_none()
        )
        if rater is None:
            raise TargetNotFound("Rater has no profile")
        return rater

    def _edge_exists(self, scope: str, from_user_id: str, target_id: str) -> bool:
        return (
            self.db.query(Rating.id)
            .filter(
                Rating.scope == scope,
                Rating.from_user_id == from_user_id,
                Rating.to_target_id == target_id,
            )
            .first()
            is not None
        )

    def _resolve_target(self, rater: Identity, scope: str, raw_target_id: str) -> ResolvedTarget:
        group_id = parse_scope(scope)
        target = parse_target(raw_target_id)
        if target is None:
            raise InvalidTarget()

        if group_id is None:
            if isinstance(target, PendingSlot):
                raise InvalidTarget("Slot targets only exist inside a group")
            identity = self.db.get(Identity, target.user_id)
            if identity is None:
                raise TargetNotFound("Target user not found")
            return ResolvedTarget(
                target_id=identity.user_id,
                display_name=identity.display_name,
                from_display_name=rater.display_name,
            )

        group = self.db.get(GroupSession, group_id)
        if group is None:
            raise GroupNotFound()
        rater_member = group.member(rater.user_id)
        if rater_member is None:
            raise NotAMember()

        if isinstance(target, RealIdentity):
            member = group.member(target.user_id)
            if member is None:
                raise TargetNotFound("Target user not in group")
            return ResolvedTarget(
                target_id=member.user_id,
                display_name=member.display_name,
                from_display_name=rater_member.display_name,
            )

        if target.scope != scope:
            raise InvalidTarget()
        if not 0 <= target.slot_index < len(group.slots):
            raise OutOfRange()
        slot = group.slots[target.slot_index]
        if slot.user_id is not None:
            # Claimed slots are addressed by the claimant's real id.
            holder = group.member(slot.user_id)
            return ResolvedTarget(
                target_id=slot.user_id,
                display_name=holder.display_name if holder else (slot.display_name or slot.label),
                from_display_name=rater_member.display_name,
            )
        return ResolvedTarget(
            target_id=slot_target_id(scope, slot.slot_index),
            display_name=slot.label,
            from_display_name=rater_member.display_name,
        )

"""Group sessions, membership and the roster slot state machine.

Slots move from unclaimed to claimed exactly once. Claiming a slot binds the
claimant, adds them to the participants and re-addresses every rating that
targeted the slot's placeholder id, all in one transaction.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Final

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aura_stage.core.settings import settings
from aura_stage.db.session import atomic
from aura_stage.db.time import utcnow
from aura_stage.models import GroupMember, GroupSession, GroupSlot, Identity, Rating
from aura_stage.services.errors import (
    AlreadyMember,
    Conflict,
    GroupFull,
    GroupInactive,
    GroupNotFound,
    LedgerError,
    MembershipLocked,
    NotAMember,
    NotFounder,
    OutOfRange,
    SlotClaimRequired,
    SlotNotHeld,
    SlotTaken,
    StoreUnavailable,
    TargetNotFound,
    ValidationFailure,
)
from aura_stage.services.targets import slot_target_id

logger = logging.getLogger(__name__)

CODE_ALPHABET: Final[str] = string.ascii_uppercase + string.digits
CODE_LENGTH: Final[int] = 6
MAX_CODE_ATTEMPTS: Final[int] = 20


def generate_group_code() -> str:
    """Return a random six-character join code."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of a slot claim."""

    group_id: int
    slot_index: int
    user_id: str
    migrated: int
    voting_closed: bool
    retried: bool = False


class GroupService:
    """Creates groups and applies membership and slot transitions."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_group(self, group_id: int) -> GroupSession:
        group = self.db.get(GroupSession, group_id)
        if group is None:
            raise GroupNotFound()
        return group

    def get_group_by_code(self, code: str) -> GroupSession:
        group = (
            self.db.query(GroupSession)
            .filter(GroupSession.code == code.strip().upper())
            .first()
        )
        if group is None:
            raise GroupNotFound("Group not found. Please check the code.")
        return group

    def list_groups_for_user(self, user_id: str) -> list[GroupSession]:
        """Return groups `user_id` participates in, newest first."""
        return (
            self.db.query(GroupSession)
            .join(GroupMember, GroupMember.group_id == GroupSession.id)
            .filter(GroupMember.user_id == user_id)
            .order_by(GroupSession.created_at.desc(), GroupSession.id.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_group(
        self,
        founder: Identity,
        name: str,
        *,
        description: str | None = None,
        max_participants: int | None = None,
        slot_labels: list[str] | None = None,
        founder_slot_index: int | None = None,
        voting_window_days: int | None = None,
        min_voters_to_close: int | None = None,
        now: datetime | None = None,
    ) -> GroupSession:
        """Create a group with the founder as its first participant.

        Args:
            founder: Identity creating the group.
            name: Group name shown to members.
            description: Optional free text.
            max_participants: Capacity; defaults to the configured capacity.
            slot_labels: Optional roster; one unclaimed slot per label.
            founder_slot_index: Slot bound to the founder at creation.
            voting_window_days: Days until the voting deadline.
            min_voters_to_close: Distinct raters that close voting early.
            now: Creation time, for deterministic callers.

        Raises:
            ValidationFailure: If the name, capacity or threshold is invalid.
            OutOfRange: If `founder_slot_index` does not name a slot.
        """
        now = now or utcnow()
        name = name.strip()
        if not name:
            raise ValidationFailure("Group name is required")
        labels = [label.strip() for label in (slot_labels or [])]
        if any(not label for label in labels):
            raise ValidationFailure("Slot labels cannot be empty")
        capacity = max_participants or settings.group_default_capacity
        if capacity < 1:
            raise ValidationFailure("Capacity must be at least 1")
        if founder_slot_index is not None and not 0 <= founder_slot_index < len(labels):
            raise OutOfRange()
        # The founder occupies a seat whether or not they hold a slot.
        seats_needed = len(labels) + (1 if labels and founder_slot_index is None else 0)
        if seats_needed > capacity:
            raise ValidationFailure("Roster is larger than the group capacity")
        if min_voters_to_close is not None and min_voters_to_close < 1:
            raise ValidationFailure("Voter threshold must be at least 1")
        window = voting_window_days if voting_window_days is not None else settings.voting_window_days

        try:
            with atomic(self.db):
                group = GroupSession(
                    name=name,
                    description=(description or "").strip() or None,
                    code=self._allocate_code(),
                    created_by=founder.user_id,
                    created_by_display_name=founder.display_name,
                    created_at=now,
                    max_participants=capacity,
                    is_active=True,
                    voting_closed=False,
                    voting_closes_at=now + timedelta(days=window),
                    min_voters_to_close=min_voters_to_close,
                )
                group.members.append(
                    GroupMember(
                        user_id=founder.user_id,
                        display_name=founder.display_name,
                        joined_at=now,
                        seq=0,
                    )
                )
                for index, label in enumerate(labels):
                    slot = GroupSlot(slot_index=index, label=label)
                    if index == founder_slot_index:
                        slot.user_id = founder.user_id
                        slot.display_name = founder.display_name
                        slot.claimed_at = now
                    group.slots.append(slot)
                if labels and all(slot.claimed for slot in group.slots):
                    group.voting_closed = True
                self.db.add(group)
                self.db.flush()
        except SQLAlchemyError as err:
            logger.exception("Creating group for %s failed", founder.user_id)
            raise StoreUnavailable() from err

        logger.info(
            "Group %s created by %s with code %s and %d slots",
            group.id,
            founder.user_id,
            group.code,
            len(labels),
        )
        return group

    def _allocate_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_group_code()
            taken = self.db.query(GroupSession.id).filter(GroupSession.code == code).first()
            if taken is None:
                return code
        raise Conflict("Could not allocate a unique group code")

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def join(self, group_id: int, user_id: str, display_name: str | None = None) -> GroupSession:
        """Add `user_id` to a group without a roster.

        Raises:
            SlotClaimRequired: The group has slots; members join by claiming one.
            GroupInactive, AlreadyMember, GroupFull: As named.
        """
        identity = self._identity(user_id)
        try:
            with atomic(self.db):
                group = self._lock_group(group_id)
                if group.slots:
                    raise SlotClaimRequired()
                if not group.is_active:
                    raise GroupInactive()
                if group.member(user_id) is not None:
                    raise AlreadyMember()
                if len(group.members) >= group.max_participants:
                    raise GroupFull()
                group.members.append(
                    GroupMember(
                        user_id=user_id,
                        display_name=self._clip_name(display_name, identity),
                        joined_at=utcnow(),
                        seq=self._next_seq(group),
                    )
                )
                self.db.flush()
        except LedgerError as err:
            logger.info("Join of group %s by %s rejected: %s", group_id, user_id, err.kind)
            raise
        except SQLAlchemyError as err:
            logger.exception("Join of group %s by %s failed", group_id, user_id)
            raise StoreUnavailable() from err

        logger.info("User %s joined group %s", user_id, group_id)
        return group

    def join_by_code(self, code: str, user_id: str, display_name: str | None = None) -> GroupSession:
        group = self.get_group_by_code(code)
        return self.join(group.id, user_id, display_name)

    def leave(self, group_id: int, user_id: str) -> None:
        """Remove a plain membership; ratings already given or received stay."""
        try:
            with atomic(self.db):
                group = self._lock_group(group_id)
                member = group.member(user_id)
                if member is None:
                    raise NotAMember()
                if group.slot_held_by(user_id) is not None:
                    raise MembershipLocked()
                group.members.remove(member)
                self.db.flush()
        except LedgerError:
            raise
        except SQLAlchemyError as err:
            logger.exception("Leaving group %s by %s failed", group_id, user_id)
            raise StoreUnavailable() from err

        logger.info("User %s left group %s", user_id, group_id)

    # ------------------------------------------------------------------
    # Slot state machine
    # ------------------------------------------------------------------

    def claim(
        self,
        group_id: int,
        slot_index: int,
        user_id: str,
        display_name: str | None = None,
    ) -> ClaimResult:
        """Bind a slot to `user_id` and re-address its pending ratings.

        Claiming a slot the caller already holds is treated as a retry: the
        migration is re-run (a no-op for entries already moved) and nothing
        else changes.

        Raises:
            OutOfRange: No slot at `slot_index`.
            SlotTaken: The slot belongs to someone else.
            AlreadyMember: The caller is already a participant of the group.
            GroupInactive, GroupFull: As named.
        """
        identity = self._identity(user_id)
        retried = False
        try:
            with atomic(self.db):
                group = self._lock_group(group_id)
                if not 0 <= slot_index < len(group.slots):
                    raise OutOfRange()
                slot = group.slots[slot_index]

                if slot.user_id == user_id:
                    retried = True
                else:
                    if slot.user_id is not None:
                        raise SlotTaken()
                    if group.member(user_id) is not None:
                        raise AlreadyMember()
                    if not group.is_active:
                        raise GroupInactive()
                    if len(group.members) >= group.max_participants:
                        raise GroupFull()

                    name = self._clip_name(display_name, identity)
                    now = utcnow()
                    slot.user_id = user_id
                    slot.display_name = name
                    slot.claimed_at = now
                    group.members.append(
                        GroupMember(
                            user_id=user_id,
                            display_name=name,
                            joined_at=now,
                            seq=self._next_seq(group),
                        )
                    )
                    if all(s.claimed for s in group.slots):
                        group.voting_closed = True
                    self.db.flush()

                migrated = self._migrate_slot_ratings(group, slot)
                voting_closed = group.voting_closed
        except LedgerError as err:
            logger.info(
                "Claim of slot %s in group %s by %s rejected: %s",
                slot_index,
                group_id,
                user_id,
                err.kind,
            )
            raise
        except SQLAlchemyError as err:
            logger.exception("Claim of slot %s in group %s failed", slot_index, group_id)
            raise StoreUnavailable() from err

        logger.info(
            "Slot %s in group %s claimed by %s; %d ratings re-addressed%s",
            slot_index,
            group_id,
            user_id,
            migrated,
            " (retry)" if retried else "",
        )
        return ClaimResult(
            group_id=group_id,
            slot_index=slot_index,
            user_id=user_id,
            migrated=migrated,
            voting_closed=voting_closed,
            retried=retried,
        )

    def migrate_slot_ratings(self, group_id: int, slot_index: int, user_id: str) -> int:
        """Re-run the placeholder migration for a slot the caller holds.

        Returns the number of entries moved; zero once everything is migrated.
        """
        try:
            with atomic(self.db):
                group = self._lock_group(group_id)
                if not 0 <= slot_index < len(group.slots):
                    raise OutOfRange()
                slot = group.slots[slot_index]
                if slot.user_id != user_id:
                    raise SlotNotHeld()
                migrated = self._migrate_slot_ratings(group, slot)
        except LedgerError:
            raise
        except SQLAlchemyError as err:
            logger.exception("Migrating slot %s in group %s failed", slot_index, group_id)
            raise StoreUnavailable() from err

        if migrated:
            logger.info("Re-addressed %d ratings for slot %s in group %s", migrated, slot_index, group_id)
        return migrated

    def _migrate_slot_ratings(self, group: GroupSession, slot: GroupSlot) -> int:
        placeholder = slot_target_id(group.scope, slot.slot_index)
        member = group.member(slot.user_id) if slot.user_id else None
        name = member.display_name if member else (slot.display_name or slot.label)
        entries = (
            self.db.query(Rating)
            .filter(Rating.scope == group.scope, Rating.to_target_id == placeholder)
            .all()
        )
        for entry in entries:
            entry.to_target_id = slot.user_id
            entry.to_display_name = name
        self.db.flush()
        return len(entries)

    # ------------------------------------------------------------------
    # Founder actions
    # ------------------------------------------------------------------

    def close_voting(self, group_id: int, user_id: str) -> GroupSession:
        """Manually end voting; closing twice is harmless."""
        return self._founder_update(group_id, user_id, voting_closed=True)

    def deactivate(self, group_id: int, user_id: str) -> GroupSession:
        """Stop accepting new members; the group and its ledger remain."""
        return self._founder_update(group_id, user_id, is_active=False)

    def _founder_update(self, group_id: int, user_id: str, **changes: bool) -> GroupSession:
        try:
            with atomic(self.db):
                group = self._lock_group(group_id)
                if group.created_by != user_id:
                    raise NotFounder()
                for field, value in changes.items():
                    setattr(group, field, value)
        except LedgerError:
            raise
        except SQLAlchemyError as err:
            logger.exception("Updating group %s failed", group_id)
            raise StoreUnavailable() from err

        logger.info("Group %s updated by founder: %s", group_id, changes)
        return group

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_group(self, group_id: int) -> GroupSession:
        group = (
            self.db.query(GroupSession)
            .filter(GroupSession.id == group_id)
            .with_for_update()
            .one_or_none()
        )
        if group is None:
            raise GroupNotFound()
        return group

    def _identity(self, user_id: str) -> Identity:
        identity = self.db.get(Identity, user_id)
        if identity is None:
            raise TargetNotFound("User has no profile")
        return identity

    @staticmethod
    def _clip_name(display_name: str | None, identity: Identity) -> str:
        name = (display_name or "").strip() or identity.display_name
        return name[: settings.display_name_max_length]

    @staticmethod
    def _next_seq(group: GroupSession) -> int:
        return max((member.seq for member in group.members), default=-1) + 1

"""Voting closure policy.

A voting round is closed as soon as any one of four conditions holds. None of
the inputs ever revert on their own, so once closed a round stays closed. The
decision is recomputed on every read; the stored ``voting_closed`` flag is
only one of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from aura_stage.db.time import as_utc
from aura_stage.models import GroupSession


class ClosureReason(str, Enum):
    """Which condition closed the round."""

    MANUAL = "manual"
    ROSTER_COMPLETE = "roster_complete"
    DEADLINE = "deadline"
    VOTER_THRESHOLD = "voter_threshold"


@dataclass(frozen=True)
class ClosureDecision:
    """Outcome of evaluating the closure policy."""

    closed: bool
    reason: ClosureReason | None = None


OPEN = ClosureDecision(closed=False)


def evaluate_closure(
    group: GroupSession,
    unique_voter_count: int,
    now: datetime,
) -> ClosureDecision:
    """Return whether voting in `group` has ended and which condition fired.

    Args:
        group: The group record (flag, slots, deadline and threshold are read).
        unique_voter_count: Distinct raters in the group's scope.
        now: Current time; naive values are taken as UTC.
    """
    # A full roster also sets the stored flag; report it as the roster condition.
    slots = group.slots
    if slots and all(slot.claimed for slot in slots):
        return ClosureDecision(True, ClosureReason.ROSTER_COMPLETE)

    if group.voting_closed:
        return ClosureDecision(True, ClosureReason.MANUAL)

    if group.voting_closes_at is not None and as_utc(now) >= as_utc(group.voting_closes_at):
        return ClosureDecision(True, ClosureReason.DEADLINE)

    threshold = group.min_voters_to_close
    if threshold is not None and unique_voter_count >= threshold:
        return ClosureDecision(True, ClosureReason.VOTER_THRESHOLD)

    return OPEN


def is_voting_closed(group: GroupSession, unique_voter_count: int, now: datetime) -> bool:
    """Return True if any closure condition holds."""
    return evaluate_closure(group, unique_voter_count, now).closed

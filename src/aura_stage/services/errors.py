"""Domain errors raised by the ledger, group and counter services.

Every rejection carries a stable ``kind`` string that the API layer reports
verbatim, so clients can tell "already did this" apart from "not allowed".
"""

from __future__ import annotations

from fastapi import status


class LedgerError(Exception):
    """Base class for all per-request rejections.

    Nothing raised from this hierarchy is fatal to the process; callers may
    correct their input or retry.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request rejected"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def kind(self) -> str:
        """Return the stable error identifier reported to clients."""
        return type(self).__name__

    @property
    def message(self) -> str:
        """Return the human-readable description."""
        return str(self)


class ValidationFailure(LedgerError):
    """Malformed input rejected before any read of shared state."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(LedgerError):
    """Referenced group, target or content does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(LedgerError):
    """Caller is not allowed to act on the referenced resource."""

    status_code = status.HTTP_403_FORBIDDEN


class Conflict(LedgerError):
    """Rejected against current persisted state inside the transaction."""

    status_code = status.HTTP_409_CONFLICT


class SelfTarget(ValidationFailure):
    default_message = "Cannot rate yourself"


class OutOfBounds(ValidationFailure):
    default_message = "Points out of bounds"


class InvalidScope(ValidationFailure):
    default_message = "Malformed rating scope"


class InvalidTarget(ValidationFailure):
    default_message = "Invalid slot target"


class OutOfRange(ValidationFailure):
    default_message = "Slot index out of range"


class InvalidStep(ValidationFailure):
    default_message = "Step must be one feed aura increment up or down"


class TargetNotFound(NotFound):
    default_message = "Target not found"


class GroupNotFound(NotFound):
    default_message = "Group not found"


class ContentNotFound(NotFound):
    default_message = "Post not found"


class NotAMember(Forbidden):
    default_message = "Not a member of this group"


class NotFounder(Forbidden):
    default_message = "Only the group founder can do this"


class SlotNotHeld(Forbidden):
    default_message = "You have not claimed this slot"


class DuplicateEdge(Conflict):
    default_message = "Already rated this target in this scope"


class BudgetExceeded(Conflict):
    default_message = "Not enough points left to give"


class SlotTaken(Conflict):
    default_message = "Slot already claimed"


class GroupFull(Conflict):
    default_message = "Group is full"


class AlreadyMember(Conflict):
    default_message = "Already a member of this group"


class GroupInactive(Conflict):
    default_message = "Group is no longer active"


class SlotClaimRequired(Conflict):
    default_message = "This group has a roster; claim a slot to join"


class MembershipLocked(Conflict):
    default_message = "Slot holders cannot leave the group"


class StoreUnavailable(LedgerError):
    """Transient backing-store failure; the operation is safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Store temporarily unavailable, please retry"

"""Rating target references.

A rating addresses either a real identity or a pending roster slot. Pending
slots get a synthetic id derived only from ``(scope, slot_index)`` so entries
written before a claim can be found again without a lookup table.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from aura_stage.services.errors import InvalidScope

DIRECT_SCOPE: Final[str] = "direct"
SLOT_PREFIX: Final[str] = "slot:"

_SLOT_ID_RE: Final[re.Pattern[str]] = re.compile(r"^slot:([^:]+):(\d+)$")


@dataclass(frozen=True)
class RealIdentity:
    """Target that is an existing identity."""

    user_id: str

    @property
    def target_id(self) -> str:
        return self.user_id


@dataclass(frozen=True)
class PendingSlot:
    """Target that is an unclaimed slot of a group roster."""

    scope: str
    slot_index: int

    @property
    def target_id(self) -> str:
        return slot_target_id(self.scope, self.slot_index)


TargetRef = RealIdentity | PendingSlot


def slot_target_id(scope: str, slot_index: int) -> str:
    """Return the deterministic placeholder id for a slot."""
    return f"{SLOT_PREFIX}{scope}:{slot_index}"


def is_slot_target(target_id: str) -> bool:
    return target_id.startswith(SLOT_PREFIX)


def parse_target(target_id: str) -> TargetRef | None:
    """Parse a raw target id.

    Returns None for strings that look like slot ids but are malformed.
    """
    if not is_slot_target(target_id):
        return RealIdentity(target_id)
    match = _SLOT_ID_RE.match(target_id)
    if match is None:
        return None
    return PendingSlot(scope=match.group(1), slot_index=int(match.group(2)))


def parse_scope(scope: str) -> int | None:
    """Return the group id encoded in `scope`, or None for the direct scope.

    Raises:
        InvalidScope: If `scope` is neither "direct" nor a positive integer.
    """
    if scope == DIRECT_SCOPE:
        return None
    if not (scope.isascii() and scope.isdigit()) or int(scope) <= 0:
        raise InvalidScope(f"Unknown rating scope {scope!r}")
    return int(scope)

"""Aggregation and ranking over the rating ledger.

Group standings always read the live ledger. The global leaderboard is a full
scan, so its reduction is cached process-wide for a short time; both the
authenticated and the anonymized projections are cut from the same cached
reduction so they agree on ordering.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from sqlalchemy import func
from sqlalchemy.orm import Session

from aura_stage.core.settings import settings
from aura_stage.db.time import utcnow
from aura_stage.models import GroupMember, GroupSession, Identity, Rating
from aura_stage.services.closure import ClosureReason, evaluate_closure
from aura_stage.services.insights import RankCard, generate_rank_card, generate_shareable_insights
from aura_stage.services.ledger import AURA_DIMENSIONS
from aura_stage.services.targets import is_slot_target, slot_target_id

logger = logging.getLogger(__name__)

ANONYMOUS_NAME: Final[str] = "Anonymous"
UNKNOWN_NAME: Final[str] = "Anonymous User"
SORT_TOTAL: Final[str] = "total"
SORT_OPTIONS: Final[tuple[str, ...]] = (SORT_TOTAL, *AURA_DIMENSIONS)


def assign_ranks(scores: Sequence[int]) -> list[int]:
    """Return competition ranks for scores already sorted descending.

    Equal scores share a rank and the next distinct score skips ahead, so
    ``[900, 900, 700, 700, 500]`` ranks as ``[1, 1, 3, 3, 5]``.
    """
    ranks: list[int] = []
    for position, score in enumerate(scores):
        if position > 0 and score == scores[position - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(position + 1)
    return ranks


@dataclass
class Standing:
    """Running totals for one target of a reduction."""

    target_id: str
    display_name: str
    total: int
    ratings_received: int = 0
    groups_joined: int = 0
    dimension_totals: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(AURA_DIMENSIONS, 0)
    )
    reasons: list[str] = field(default_factory=list)

    def score(self, sort_by: str) -> int:
        if sort_by == SORT_TOTAL:
            return self.total
        return self.dimension_totals.get(sort_by, 0)


def reduce_standings(
    targets: Mapping[str, str],
    ratings: Iterable[Rating],
    base: int | None = None,
) -> dict[str, Standing]:
    """Fold ledger entries into per-target standings in a single pass.

    Every target in `targets` (id to display name) starts at the base aura
    even without entries. Entries addressed to unknown targets are skipped.
    """
    base = settings.base_aura if base is None else base
    standings = {
        target_id: Standing(target_id=target_id, display_name=name, total=base)
        for target_id, name in targets.items()
    }
    for rating in ratings:
        standing = standings.get(rating.to_target_id)
        if standing is None:
            continue
        standing.total += rating.points
        standing.ratings_received += 1
        if rating.reason:
            standing.reasons.append(rating.reason)
        for dimension, value in (rating.dimension_scores or {}).items():
            if dimension in standing.dimension_totals and isinstance(value, int | float):
                standing.dimension_totals[dimension] += int(value)
    return standings


def sort_standings(standings: Iterable[Standing], sort_by: str = SORT_TOTAL) -> list[Standing]:
    """Return standings ordered by `sort_by` descending, then by name for ties."""
    ordered = sorted(standings, key=lambda s: (s.display_name.casefold(), s.target_id))
    return sorted(ordered, key=lambda s: s.score(sort_by), reverse=True)


# ----------------------------------------------------------------------
# Group results
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class GroupResultEntry:
    rank: int
    target_id: str
    display_name: str
    total_aura: int
    ratings_received: int
    dimension_totals: dict[str, int]
    is_slot: bool
    anonymous: bool
    insights: list[str] | None = None
    share_card: RankCard | None = None


@dataclass(frozen=True)
class GroupResults:
    group_id: int
    group_name: str
    voting_closed: bool
    closure_reason: ClosureReason | None
    unique_voters: int
    total_ratings: int
    rankings: list[GroupResultEntry]


def group_results(db: Session, group: GroupSession, now: datetime | None = None) -> GroupResults:
    """Rank one group's participants and unclaimed slots from the live ledger.

    Members who hide themselves from group boards are left out entirely;
    anonymous members keep their totals under a replaced name. Insights are
    attached only once voting is closed.
    """
    now = now or utcnow()
    scope = group.scope
    entries = (
        db.query(Rating)
        .filter(Rating.scope == scope)
        .order_by(Rating.created_at, Rating.id)
        .all()
    )

    targets: dict[str, str] = {m.user_id: m.display_name for m in group.members}
    for slot in group.slots:
        if slot.user_id is None:
            targets[slot_target_id(scope, slot.slot_index)] = slot.label

    identities = {
        identity.user_id: identity
        for identity in db.query(Identity).filter(Identity.user_id.in_(list(targets))).all()
    }
    hidden = {uid for uid, identity in identities.items() if identity.hidden_in_groups}
    anonymous = {
        uid for uid, identity in identities.items() if identity.group_leaderboard_anonymous
    }

    standings = reduce_standings(
        {tid: name for tid, name in targets.items() if tid not in hidden},
        entries,
    )
    for target_id in anonymous & standings.keys():
        standings[target_id].display_name = ANONYMOUS_NAME

    unique_voters = len({entry.from_user_id for entry in entries})
    decision = evaluate_closure(group, unique_voters, now)

    ordered = sort_standings(standings.values())
    ranks = assign_ranks([s.total for s in ordered])
    rankings = [
        GroupResultEntry(
            rank=rank,
            target_id=standing.target_id,
            display_name=standing.display_name,
            total_aura=standing.total,
            ratings_received=standing.ratings_received,
            dimension_totals=dict(standing.dimension_totals),
            is_slot=is_slot_target(standing.target_id),
            anonymous=standing.target_id in anonymous,
            insights=(
                generate_shareable_insights(
                    standing.total, standing.ratings_received, standing.reasons
                )
                if decision.closed
                else None
            ),
            share_card=(
                generate_rank_card(
                    rank, len(ordered), group.name, standing.display_name, standing.total
                )
                if decision.closed
                else None
            ),
        )
        for rank, standing in zip(ranks, ordered, strict=True)
    ]
    return GroupResults(
        group_id=group.id,
        group_name=group.name,
        voting_closed=decision.closed,
        closure_reason=decision.reason,
        unique_voters=unique_voters,
        total_ratings=len(entries),
        rankings=rankings,
    )


# ----------------------------------------------------------------------
# Global leaderboard
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class LeaderboardStats:
    total_users: int
    total_ratings: int
    average_aura: int
    highest_aura: int


@dataclass(frozen=True)
class LeaderboardSnapshot:
    """Visibility-filtered global reduction, ordered by total."""

    standings: list[Standing]
    stats: LeaderboardStats
    computed_at: datetime


def compute_global_leaderboard(db: Session) -> LeaderboardSnapshot:
    """Reduce the whole ledger into global standings.

    Seeds every participant of any group and every identity that received a
    rating in any scope. Unclaimed slots are not global targets.
    """
    groups_joined: dict[str, int] = dict(
        db.query(GroupMember.user_id, func.count(GroupMember.group_id))
        .group_by(GroupMember.user_id)
        .all()
    )
    ratings = db.query(Rating).all()

    seeds = set(groups_joined)
    seeds.update(r.to_target_id for r in ratings if not is_slot_target(r.to_target_id))
    identities = {
        identity.user_id: identity
        for identity in db.query(Identity).filter(Identity.user_id.in_(list(seeds))).all()
    }
    # Recipients without a profile were never real identities.
    seeds = {uid for uid in seeds if uid in identities or uid in groups_joined}

    targets: dict[str, str] = {}
    for user_id in seeds:
        identity = identities.get(user_id)
        if identity is not None and identity.hidden_globally:
            continue
        if identity is None:
            targets[user_id] = UNKNOWN_NAME
        elif identity.leaderboard_anonymous:
            targets[user_id] = ANONYMOUS_NAME
        else:
            targets[user_id] = identity.display_name

    standings = reduce_standings(targets, ratings)
    for user_id, standing in standings.items():
        standing.groups_joined = groups_joined.get(user_id, 0)
        # Reasons are not part of the global view.
        standing.reasons = []

    ordered = sort_standings(standings.values())
    totals = [s.total for s in ordered]
    stats = LeaderboardStats(
        total_users=len(ordered),
        total_ratings=len(ratings),
        average_aura=round(sum(totals) / len(totals)) if totals else 0,
        highest_aura=max(totals, default=0),
    )
    logger.debug("Global leaderboard recomputed over %d ratings", len(ratings))
    return LeaderboardSnapshot(standings=ordered, stats=stats, computed_at=utcnow())


class LeaderboardCache:
    """Process-wide holder for the last global reduction.

    Expiry is time-based only; a fresh submission can take up to the TTL to
    show up. The held value is replaced wholesale, never patched.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value: LeaderboardSnapshot | None = None
        self._computed_at: float | None = None

    def get_or_compute(self, compute: Callable[[], LeaderboardSnapshot]) -> LeaderboardSnapshot:
        with self._lock:
            now = self._clock()
            if (
                self._value is not None
                and self._computed_at is not None
                and now - self._computed_at < self.ttl_seconds
            ):
                return self._value
            value = compute()
            self._value, self._computed_at = value, now
            return value

    def clear(self) -> None:
        with self._lock:
            self._value = None
            self._computed_at = None


leaderboard_cache = LeaderboardCache(settings.leaderboard_cache_ttl_seconds)


def cached_global_leaderboard(db: Session) -> LeaderboardSnapshot:
    return leaderboard_cache.get_or_compute(lambda: compute_global_leaderboard(db))


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    user_id: str | None
    display_name: str
    total_aura: int | None
    groups_joined: int
    ratings_received: int
    dimension_totals: dict[str, int] | None


@dataclass(frozen=True)
class LeaderboardView:
    rankings: list[LeaderboardRow]
    total_users: int
    total_ratings: int
    average_aura: int | None
    highest_aura: int | None
    sort_by: str
    anonymized: bool


def leaderboard_view(
    snapshot: LeaderboardSnapshot,
    sort_by: str = SORT_TOTAL,
    *,
    authenticated: bool,
) -> LeaderboardView:
    """Project a cached reduction for one caller.

    Unknown sort keys fall back to the total. Anonymous callers get the same
    order and ranks with every name replaced and every aura value nulled;
    counts of groups and ratings stay visible.
    """
    if sort_by not in SORT_OPTIONS:
        sort_by = SORT_TOTAL
    ordered = sorted(snapshot.standings, key=lambda s: s.score(sort_by), reverse=True)
    ranks = assign_ranks([s.score(sort_by) for s in ordered])
    concealed = not authenticated

    rows = [
        LeaderboardRow(
            rank=rank,
            user_id=None if concealed else standing.target_id,
            display_name=ANONYMOUS_NAME if concealed else standing.display_name,
            total_aura=None if concealed else standing.total,
            groups_joined=standing.groups_joined,
            ratings_received=standing.ratings_received,
            dimension_totals=None if concealed else dict(standing.dimension_totals),
        )
        for rank, standing in zip(ranks, ordered, strict=True)
    ]
    stats = snapshot.stats
    return LeaderboardView(
        rankings=rows,
        total_users=stats.total_users,
        total_ratings=stats.total_ratings,
        average_aura=None if concealed else stats.average_aura,
        highest_aura=None if concealed else stats.highest_aura,
        sort_by=sort_by,
        anonymized=concealed,
    )

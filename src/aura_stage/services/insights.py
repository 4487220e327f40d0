"""Short, positively framed lines members can share once voting closes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

QUOTE_MAX_LENGTH: Final[int] = 80
HIGH_AURA: Final[int] = 2000
MANY_RATINGS: Final[int] = 3

PRESENCE_INSIGHTS: Final[tuple[str, ...]] = (
    "Your presence is your strongest trait.",
    "You light up the room without trying.",
    "People feel your energy the moment you walk in.",
)
AUTHENTICITY_INSIGHTS: Final[tuple[str, ...]] = (
    "You show up as yourself, and that's rare.",
    "Your authenticity shines through.",
    "People appreciate how real you are.",
)
APPRECIATION_INSIGHTS: Final[tuple[str, ...]] = (
    "Your friends really see you.",
    "People appreciate what you bring to their lives.",
    "You leave a lasting impression on those around you.",
)
IMPACT_INSIGHTS: Final[tuple[str, ...]] = (
    "You make people feel good just by being around.",
    "Your vibe resonates with everyone you meet.",
    "You're the kind of person people remember.",
)
STRENGTH_INSIGHTS: Final[tuple[str, ...]] = (
    "Your character speaks louder than words.",
    "You carry yourself with quiet confidence.",
    "People notice your steadiness.",
)


def _quoted(reason: str) -> str:
    return f'"{reason}"' if len(reason) <= QUOTE_MAX_LENGTH else reason


def generate_insight(total_aura: int, ratings_received: int, reasons: Sequence[str]) -> str:
    """Return one deterministic insight for a member's results.

    The first reason wins when present. Otherwise a phrase is picked from
    pools unlocked by high aura and by many ratings, indexed by the total so
    the same results always give the same line.
    """
    if reasons and reasons[0].strip():
        return _quoted(reasons[0].strip())

    high_aura = total_aura >= HIGH_AURA
    pool = [
        *(PRESENCE_INSIGHTS if high_aura else ()),
        *(AUTHENTICITY_INSIGHTS if ratings_received >= MANY_RATINGS else ()),
        *APPRECIATION_INSIGHTS,
        *(IMPACT_INSIGHTS if high_aura else ()),
        *STRENGTH_INSIGHTS,
    ]
    return pool[total_aura % len(pool)]


def generate_shareable_insights(
    total_aura: int, ratings_received: int, reasons: Sequence[str]
) -> list[str]:
    """Return the primary insight plus a second short quote when available."""
    insights = [generate_insight(total_aura, ratings_received, reasons)]
    if len(reasons) > 1:
        second = reasons[1].strip()
        if second and len(second) <= QUOTE_MAX_LENGTH:
            insights.append(f'"{second}"')
    return insights


RANK_HEADLINES: Final[dict[int, tuple[str, ...]]] = {
    1: ("#1 in {group}", "First place", "Top of the group"),
    2: ("#2 in {group}", "Second place", "Runner-up"),
    3: ("#3 in {group}", "Third place", "Top 3"),
}
OTHER_HEADLINES: Final[tuple[str, ...]] = ("Ranked in {group}", "Part of {group}", "Joined the group")


@dataclass(frozen=True)
class RankCard:
    headline: str
    subline: str
    share_text: str


def generate_rank_card(
    rank: int,
    group_size: int,
    group_name: str,
    display_name: str,
    total_aura: int,
) -> RankCard:
    """Build the share card text for a member's final rank in a group."""
    group = group_name or "the group"
    name = display_name or "You"
    headlines = RANK_HEADLINES.get(rank, OTHER_HEADLINES)
    headline = headlines[total_aura % len(headlines)].format(group=group)
    if rank <= 3:
        subline = f"#{rank} of {group_size} in {group}"
    else:
        subline = f"Ranked in {group}: {total_aura:,} aura"
    return RankCard(
        headline=headline,
        subline=subline,
        share_text=f'{name}: "{headline}" ({subline}) (Aura)',
    )

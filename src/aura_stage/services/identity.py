"""Member profiles: first sign-in, preferences and lifetime summaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from aura_stage.core.settings import settings
from aura_stage.db.session import atomic
from aura_stage.db.time import utcnow
from aura_stage.models import GroupMember, Identity
from aura_stage.services.errors import LedgerError, StoreUnavailable, TargetNotFound, ValidationFailure
from aura_stage.services.ledger import RatingLedger

logger = logging.getLogger(__name__)

# Names given to profiles before the member picked one.
PLACEHOLDER_NAMES: Final[frozenset[str]] = frozenset({"Anonymous", "Anonymous User"})
DEFAULT_NAME: Final[str] = "Anonymous User"

PREFERENCE_FIELDS: Final[tuple[str, ...]] = (
    "show_on_leaderboard",
    "leaderboard_anonymous",
    "show_on_group_leaderboard",
    "group_leaderboard_anonymous",
)


@dataclass(frozen=True)
class ProfileSummary:
    user_id: str
    display_name: str
    email: str | None
    photo_url: str | None
    total_aura: int
    points_spent: int
    points_remaining: int
    groups_joined: int
    feed_aura_total: int
    show_on_leaderboard: bool | None
    leaderboard_anonymous: bool
    show_on_group_leaderboard: bool | None
    group_leaderboard_anonymous: bool


def _clean_name(name: str | None) -> str | None:
    trimmed = (name or "").strip()
    return trimmed[: settings.display_name_max_length] or None


class IdentityService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, user_id: str) -> Identity:
        identity = self.db.get(Identity, user_id)
        if identity is None:
            raise TargetNotFound("User not found")
        return identity

    def ensure_identity(
        self,
        user_id: str,
        display_name: str | None = None,
        email: str | None = None,
    ) -> Identity:
        """Return the profile for `user_id`, creating it on first sign-in.

        A placeholder name is replaced when a real one arrives with the token.
        """
        name = _clean_name(display_name)
        identity = self.db.get(Identity, user_id)
        if identity is not None:
            if name and name not in PLACEHOLDER_NAMES and identity.display_name in PLACEHOLDER_NAMES:
                try:
                    with atomic(self.db):
                        identity.display_name = name
                except SQLAlchemyError as err:
                    logger.exception("Renaming placeholder profile %s failed", user_id)
                    raise StoreUnavailable() from err
            return identity

        if name is None and email:
            name = _clean_name(email.split("@", 1)[0])
        try:
            with atomic(self.db):
                identity = Identity(
                    user_id=user_id,
                    display_name=name or DEFAULT_NAME,
                    email=email,
                    created_at=utcnow(),
                )
                self.db.add(identity)
                self.db.flush()
        except IntegrityError:
            # A concurrent first request created the profile.
            existing = self.db.get(Identity, user_id)
            if existing is None:
                raise
            return existing
        logger.info("Created profile for %s", user_id)
        return identity

    def update_profile(
        self,
        user_id: str,
        *,
        display_name: str | None = None,
        photo_url: str | None = None,
        **preferences: bool | None,
    ) -> Identity:
        """Apply the provided profile edits; omitted fields stay unchanged."""
        unknown = set(preferences) - set(PREFERENCE_FIELDS)
        if unknown:
            raise ValidationFailure(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        try:
            with atomic(self.db):
                identity = self.get(user_id)
                if display_name is not None:
                    name = _clean_name(display_name)
                    if name is None:
                        raise ValidationFailure("Display name cannot be empty")
                    identity.display_name = name
                if photo_url is not None:
                    identity.photo_url = photo_url.strip() or None
                for field_name, value in preferences.items():
                    if value is None and field_name.endswith("_anonymous"):
                        continue
                    setattr(identity, field_name, value)
        except LedgerError:
            raise
        except SQLAlchemyError as err:
            logger.exception("Profile update for %s failed", user_id)
            raise StoreUnavailable() from err
        return identity

    def profile_summary(self, user_id: str) -> ProfileSummary:
        identity = self.get(user_id)
        ledger = RatingLedger(self.db)
        spent = ledger.spent(user_id)
        groups_joined = (
            self.db.query(func.count(GroupMember.group_id))
            .filter(GroupMember.user_id == user_id)
            .scalar()
        )
        return ProfileSummary(
            user_id=identity.user_id,
            display_name=identity.display_name,
            email=identity.email,
            photo_url=identity.photo_url,
            total_aura=settings.base_aura + ledger.received_total(user_id),
            points_spent=spent,
            points_remaining=max(0, settings.rating_budget - spent),
            groups_joined=int(groups_joined or 0),
            feed_aura_total=identity.feed_aura_total,
            show_on_leaderboard=identity.show_on_leaderboard,
            leaderboard_anonymous=identity.leaderboard_anonymous,
            show_on_group_leaderboard=identity.show_on_group_leaderboard,
            group_leaderboard_anonymous=identity.group_leaderboard_anonymous,
        )

    def public_profile(self, user_id: str) -> Identity:
        """Return the profile for public display; callers expose only id, name and photo."""
        return self.get(user_id)

"""Bounded per-(post, endorser) feed aura counters.

Each endorser holds one counter per post, moved in fixed steps and clamped to
a configured range. The post's and the author's running totals move by the
counter's actual change, never by the raw step, so they always equal the sum
of the counters behind them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aura_stage.core.settings import settings
from aura_stage.db.session import atomic
from aura_stage.db.time import utcnow
from aura_stage.models import FeedAura, FeedPost, Identity
from aura_stage.services.errors import (
    ContentNotFound,
    InvalidStep,
    LedgerError,
    SelfTarget,
    StoreUnavailable,
    TargetNotFound,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

POST_BODY_MAX_LENGTH = 2000


def canonical_key(post_id: int, endorser_id: str) -> str:
    """Return the deterministic key of the endorser's counter on a post."""
    return f"{post_id}_{endorser_id}"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


@dataclass(frozen=True)
class CounterResult:
    """Counter value after an adjustment and how far it actually moved."""

    post_id: int
    value: int
    delta: int


class CounterService:
    """Applies feed aura steps and manages the posts they apply to."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_post(self, author_id: str, body: str) -> FeedPost:
        body = (body or "").strip()
        if not body:
            raise ValidationFailure("Post body is required")
        if len(body) > POST_BODY_MAX_LENGTH:
            raise ValidationFailure("Post body too long")
        try:
            with atomic(self.db):
                if self.db.get(Identity, author_id) is None:
                    raise TargetNotFound("Author has no profile")
                post = FeedPost(author_id=author_id, body=body, created_at=utcnow())
                self.db.add(post)
                self.db.flush()
        except LedgerError:
            raise
        except SQLAlchemyError as err:
            logger.exception("Creating feed post for %s failed", author_id)
            raise StoreUnavailable() from err
        logger.info("Feed post %s created by %s", post.id, author_id)
        return post

    def list_posts(self, limit: int = 50, before_id: int | None = None) -> list[FeedPost]:
        """Return posts newest first, optionally paging below `before_id`."""
        query = self.db.query(FeedPost)
        if before_id is not None:
            query = query.filter(FeedPost.id < before_id)
        return query.order_by(FeedPost.id.desc()).limit(limit).all()

    def value_for(self, post_id: int, endorser_id: str) -> int:
        """Return the endorser's current counter on a post, legacy records included."""
        record = self._canonical(post_id, endorser_id, lock=False)
        if record is not None:
            return record.points
        return sum(legacy.points for legacy in self._legacy(post_id, endorser_id))

    def adjust(
        self,
        post_id: int,
        endorser_id: str,
        step: int,
        endorser_display_name: str | None = None,
    ) -> CounterResult:
        """Move the endorser's counter on `post_id` by one step.

        When no canonical record exists yet, legacy records for the pair are
        summed into the starting value and deleted in the same transaction
        that writes the canonical record.

        Raises:
            InvalidStep: `step` is not exactly one increment up or down.
            ContentNotFound: The post does not exist.
            SelfTarget: The endorser authored the post.
        """
        if abs(step) != settings.feed_aura_step:
            raise InvalidStep()
        low, high = settings.feed_aura_bounds

        try:
            with atomic(self.db):
                post = (
                    self.db.query(FeedPost)
                    .filter(FeedPost.id == post_id)
                    .with_for_update()
                    .one_or_none()
                )
                if post is None:
                    raise ContentNotFound()
                if post.author_id == endorser_id:
                    raise SelfTarget("Cannot give aura to your own post")

                record = self._canonical(post_id, endorser_id, lock=True)
                legacy: list[FeedAura] = []
                if record is not None:
                    current = record.points
                else:
                    legacy = self._legacy(post_id, endorser_id)
                    current = sum(item.points for item in legacy)

                value = clamp(current + step, low, high)
                delta = value - current
                if delta == 0:
                    return CounterResult(post_id=post_id, value=value, delta=0)

                for item in legacy:
                    self.db.delete(item)
                name = (endorser_display_name or "").strip() or "Someone"
                if record is None:
                    record = FeedAura(
                        post_id=post_id,
                        from_user_id=endorser_id,
                        to_user_id=post.author_id,
                        canonical_key=canonical_key(post_id, endorser_id),
                    )
                    self.db.add(record)
                record.from_display_name = name[: settings.display_name_max_length]
                record.points = value

                post.total_aura_count += delta
                author = self.db.get(Identity, post.author_id)
                if author is not None:
                    author.feed_aura_total += delta
                self.db.flush()
        except LedgerError as err:
            logger.info("Feed aura on post %s by %s rejected: %s", post_id, endorser_id, err.kind)
            raise
        except SQLAlchemyError as err:
            logger.exception("Feed aura write failed for post %s", post_id)
            raise StoreUnavailable() from err

        logger.info(
            "Feed aura on post %s by %s now %d (%+d, %d legacy records folded)",
            post_id,
            endorser_id,
            value,
            delta,
            len(legacy),
        )
        return CounterResult(post_id=post_id, value=value, delta=delta)

    def _canonical(self, post_id: int, endorser_id: str, *, lock: bool) -> FeedAura | None:
        query = self.db.query(FeedAura).filter(
            FeedAura.canonical_key == canonical_key(post_id, endorser_id)
        )
        if lock:
            query = query.with_for_update()
        return query.one_or_none()

    def _legacy(self, post_id: int, endorser_id: str) -> list[FeedAura]:
        return (
            self.db.query(FeedAura)
            .filter(
                FeedAura.post_id == post_id,
                FeedAura.from_user_id == endorser_id,
                FeedAura.canonical_key.is_(None),
            )
            .all()
        )

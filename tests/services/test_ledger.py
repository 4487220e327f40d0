"""Tests for the rating ledger."""

import threading
import time
from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from aura_stage.db.session import Base, enable_sqlite_write_locks
from aura_stage.models import Identity, Rating
from aura_stage.services.errors import (
    BudgetExceeded,
    DuplicateEdge,
    GroupNotFound,
    InvalidScope,
    InvalidTarget,
    NotAMember,
    OutOfBounds,
    OutOfRange,
    SelfTarget,
    TargetNotFound,
    ValidationFailure,
)
from aura_stage.services.ledger import RatingLedger, clean_reason, sanitize_dimension_scores


@pytest.fixture()
def ledger(db_session) -> RatingLedger:
    return RatingLedger(db_session)


def test_positive_and_negative_points_both_spend_budget(ledger, alice, bob, carol) -> None:
    ledger.submit(alice.user_id, "direct", bob.user_id, 600)
    ledger.submit(alice.user_id, "direct", carol.user_id, -600)

    assert ledger.spent(alice.user_id) == 1200
    assert ledger.remaining(alice.user_id) == 8800


def test_budget_exceeded_rejected_without_writing(ledger, db_session, alice, bob, carol) -> None:
    ledger.submit(alice.user_id, "direct", bob.user_id, 5000)

    with pytest.raises(BudgetExceeded) as exc_info:
        ledger.submit(alice.user_id, "direct", carol.user_id, 5001)

    assert "5000" in exc_info.value.message
    assert db_session.query(Rating).count() == 1
    assert ledger.remaining(alice.user_id) == 5000


def test_budget_can_be_spent_exactly(ledger, alice, bob, carol) -> None:
    ledger.submit(alice.user_id, "direct", bob.user_id, 4000)
    ledger.submit(alice.user_id, "direct", carol.user_id, -6000)

    assert ledger.remaining(alice.user_id) == 0


def test_budget_is_shared_across_scopes(ledger, groups, alice, bob, carol) -> None:
    group = groups.create_group(alice, "Shared")
    groups.join(group.id, bob.user_id)
    ledger.submit(alice.user_id, "direct", carol.user_id, 6000)

    with pytest.raises(BudgetExceeded):
        ledger.submit(alice.user_id, group.scope, bob.user_id, 4001)


def test_duplicate_edge_rejected(ledger, alice, bob) -> None:
    ledger.submit(alice.user_id, "direct", bob.user_id, 100)

    with pytest.raises(DuplicateEdge):
        ledger.submit(alice.user_id, "direct", bob.user_id, -100)


def test_same_pair_allowed_in_different_scopes(ledger, open_group, alice, bob) -> None:
    ledger.submit(alice.user_id, "direct", bob.user_id, 100)
    ledger.submit(alice.user_id, open_group.scope, bob.user_id, 100)

    assert ledger.spent(alice.user_id) == 200


def test_self_rating_rejected(ledger, alice) -> None:
    with pytest.raises(SelfTarget):
        ledger.submit(alice.user_id, "direct", alice.user_id, 100)


@pytest.mark.parametrize("points", [10_001, -10_001])
def test_points_out_of_bounds(ledger, alice, bob, points) -> None:
    with pytest.raises(OutOfBounds):
        ledger.submit(alice.user_id, "direct", bob.user_id, points)


def test_zero_points_accepted(ledger, alice, bob) -> None:
    rating = ledger.submit(alice.user_id, "direct", bob.user_id, 0)

    assert rating.points == 0
    assert ledger.remaining(alice.user_id) == 10_000


def test_unknown_direct_target(ledger, alice) -> None:
    with pytest.raises(TargetNotFound):
        ledger.submit(alice.user_id, "direct", "nobody", 100)


@pytest.mark.parametrize("scope", ["", "group", "-3", "0", "1.5"])
def test_malformed_scope(ledger, alice, bob, scope) -> None:
    with pytest.raises(InvalidScope):
        ledger.submit(alice.user_id, scope, bob.user_id, 100)


def test_missing_group_scope(ledger, alice, bob) -> None:
    with pytest.raises(GroupNotFound):
        ledger.submit(alice.user_id, "9999", bob.user_id, 100)


def test_rater_must_participate_in_group(ledger, open_group, bob, carol) -> None:
    with pytest.raises(NotAMember):
        ledger.submit(carol.user_id, open_group.scope, bob.user_id, 100)


def test_group_target_must_participate(ledger, open_group, alice, carol) -> None:
    with pytest.raises(TargetNotFound):
        ledger.submit(alice.user_id, open_group.scope, carol.user_id, 100)


def test_slot_targets_need_a_group_scope(ledger, roster_group, alice) -> None:
    with pytest.raises(InvalidTarget):
        ledger.submit(alice.user_id, "direct", f"slot:{roster_group.scope}:1", 100)


def test_slot_of_another_group_rejected(ledger, groups, roster_group, alice) -> None:
    other = groups.create_group(alice, "Other", slot_labels=["X", "Y"])

    with pytest.raises(InvalidTarget):
        ledger.submit(alice.user_id, roster_group.scope, f"slot:{other.scope}:1", 100)


def test_slot_index_out_of_range(ledger, roster_group, alice) -> None:
    with pytest.raises(OutOfRange):
        ledger.submit(alice.user_id, roster_group.scope, f"slot:{roster_group.scope}:3", 100)


def test_malformed_slot_id_rejected(ledger, roster_group, alice) -> None:
    with pytest.raises(InvalidTarget):
        ledger.submit(alice.user_id, roster_group.scope, "slot:oops", 100)


def test_unclaimed_slot_rated_by_placeholder(ledger, roster_group, alice) -> None:
    target = f"slot:{roster_group.scope}:1"
    rating = ledger.submit(alice.user_id, roster_group.scope, target, 300)

    assert rating.to_target_id == target
    assert rating.to_display_name == "Sam"
    assert rating.from_display_name == "Alice"


def test_claimed_slot_placeholder_resolves_to_holder(ledger, groups, roster_group, alice, bob) -> None:
    groups.claim(roster_group.id, 1, bob.user_id, "Bobby")

    rating = ledger.submit(alice.user_id, roster_group.scope, f"slot:{roster_group.scope}:1", 300)

    assert rating.to_target_id == bob.user_id
    assert rating.to_display_name == "Bobby"


def test_rating_own_slot_is_self_target(ledger, roster_group, alice) -> None:
    with pytest.raises(SelfTarget):
        ledger.submit(alice.user_id, roster_group.scope, f"slot:{roster_group.scope}:0", 100)


def test_reason_is_trimmed_and_capped(ledger, alice, bob, carol) -> None:
    rating = ledger.submit(alice.user_id, "direct", bob.user_id, 100, reason="  kind soul  ")
    assert rating.reason == "kind soul"

    with pytest.raises(ValidationFailure):
        ledger.submit(alice.user_id, "direct", carol.user_id, 100, reason="x" * 501)


def test_scope_queries(ledger, open_group, alice, bob) -> None:
    ledger.submit(alice.user_id, open_group.scope, bob.user_id, 100)
    ledger.submit(bob.user_id, open_group.scope, alice.user_id, 200)

    entries = ledger.ratings_in_scope(open_group.scope)
    assert [entry.points for entry in entries] == [100, 200]
    assert ledger.rated_targets(open_group.scope, alice.user_id) == {bob.user_id}
    assert ledger.unique_voter_count(open_group.scope) == 2
    assert ledger.received_total(bob.user_id) == 100


def test_sanitize_dimension_scores_drops_unknown_and_out_of_range() -> None:
    scores = {
        "presence_energy": 300,
        "social_pull": 20_000,
        "trustworthy": True,
        "style_aesthetic": "high",
        "made_up": 5,
        "authenticity_self_vibe": -40.0,
    }

    assert sanitize_dimension_scores(scores) == {
        "presence_energy": 300,
        "authenticity_self_vibe": -40,
    }
    assert sanitize_dimension_scores({"made_up": 1}) is None
    assert sanitize_dimension_scores(None) is None


def test_clean_reason_empty_becomes_none() -> None:
    assert clean_reason("   ") is None
    assert clean_reason(None) is None


@pytest.fixture()
def file_sessions(tmp_path) -> Iterator[sessionmaker[Session]]:
    """Sessions on a file-backed SQLite database, one connection per session."""
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}", connect_args={"timeout": 30})
    enable_sqlite_write_locks(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    finally:
        engine.dispose()


def test_concurrent_submissions_cannot_jointly_overspend(file_sessions, monkeypatch) -> None:
    with file_sessions() as setup:
        setup.add_all(Identity(user_id=uid, display_name=uid) for uid in ("rater", "a", "b"))
        setup.commit()

    read_spent = RatingLedger.spent

    def slow_spent(self, user_id: str) -> int:
        value = read_spent(self, user_id)
        # Hold the window between the budget read and the insert open.
        time.sleep(0.2)
        return value

    monkeypatch.setattr(RatingLedger, "spent", slow_spent)
    start = threading.Barrier(2)
    outcomes: dict[str, str] = {}

    def submit(target: str) -> None:
        with file_sessions() as session:
            start.wait()
            try:
                RatingLedger(session).submit("rater", "direct", target, 6000)
            except BudgetExceeded as err:
                outcomes[target] = err.kind
            else:
                outcomes[target] = "accepted"

    threads = [threading.Thread(target=submit, args=(target,)) for target in ("a", "b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes.values()) == ["BudgetExceeded", "accepted"]
    with file_sessions() as check:
        assert RatingLedger(check).spent("rater") == 6000

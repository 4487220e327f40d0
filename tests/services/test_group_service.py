"""Tests for group lifecycle and the roster slot state machine."""

import pytest

from aura_stage.models import GroupMember, Rating
from aura_stage.services.errors import (
    AlreadyMember,
    GroupFull,
    GroupInactive,
    GroupNotFound,
    MembershipLocked,
    NotAMember,
    NotFounder,
    OutOfRange,
    SlotClaimRequired,
    SlotNotHeld,
    SlotTaken,
    ValidationFailure,
)
from aura_stage.services.groups import CODE_ALPHABET, CODE_LENGTH, generate_group_code
from aura_stage.services.ledger import RatingLedger


def _roster_snapshot(db_session, group):
    db_session.refresh(group)
    slots = [(s.slot_index, s.user_id, s.display_name) for s in group.slots]
    members = [(m.user_id, m.display_name, m.seq) for m in group.members]
    entries = sorted(
        (r.from_user_id, r.to_target_id, r.to_display_name, r.points)
        for r in db_session.query(Rating).filter(Rating.scope == group.scope)
    )
    return slots, members, entries, group.voting_closed


def test_generated_codes_are_upper_alphanumeric() -> None:
    code = generate_group_code()

    assert len(code) == CODE_LENGTH
    assert set(code) <= set(CODE_ALPHABET)


def test_create_group_makes_founder_first_participant(groups, alice) -> None:
    group = groups.create_group(alice, "  Book Club ", description="Monthly")

    assert group.name == "Book Club"
    assert group.participants == [alice.user_id]
    assert group.max_participants == 50
    assert group.is_active and not group.voting_closed
    assert group.voting_closes_at is not None
    assert groups.get_group_by_code(group.code.lower()).id == group.id


def test_create_group_binds_founder_slot(roster_group, alice) -> None:
    assert [s.claimed for s in roster_group.slots] == [True, False, False]
    assert roster_group.slots[0].user_id == alice.user_id
    assert roster_group.slot_held_by(alice.user_id).slot_index == 0


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"name": "   "}, ValidationFailure),
        ({"name": "G", "slot_labels": ["A", ""]}, ValidationFailure),
        ({"name": "G", "slot_labels": ["A", "B"], "founder_slot_index": 2}, OutOfRange),
        ({"name": "G", "slot_labels": ["A", "B", "C"], "max_participants": 2}, ValidationFailure),
        ({"name": "G", "slot_labels": ["A", "B"], "max_participants": 2}, ValidationFailure),
        ({"name": "G", "min_voters_to_close": 0}, ValidationFailure),
    ],
)
def test_create_group_validation(groups, alice, kwargs, error) -> None:
    with pytest.raises(error):
        groups.create_group(alice, **kwargs)


def test_roster_may_fill_capacity_when_founder_takes_a_slot(groups, alice) -> None:
    group = groups.create_group(
        alice, "Pair", slot_labels=["A", "B"], founder_slot_index=0, max_participants=2
    )

    assert len(group.slots) == 2


def test_single_slot_roster_bound_to_founder_closes_voting(groups, alice) -> None:
    group = groups.create_group(alice, "Solo", slot_labels=["Me"], founder_slot_index=0)

    assert group.voting_closed is True


def test_unknown_group(groups) -> None:
    with pytest.raises(GroupNotFound):
        groups.get_group(12345)
    with pytest.raises(GroupNotFound):
        groups.get_group_by_code("NOPE00")


def test_join_and_list_groups(groups, open_group, alice, bob) -> None:
    assert open_group.participants == [alice.user_id, bob.user_id]
    assert [g.id for g in groups.list_groups_for_user(bob.user_id)] == [open_group.id]


def test_join_by_code_uses_per_group_name(groups, open_group, carol) -> None:
    group = groups.join_by_code(open_group.code, carol.user_id, "  Caz ")

    assert group.member(carol.user_id).display_name == "Caz"


def test_join_rejections(groups, open_group, alice, carol, dave, make_identity) -> None:
    with pytest.raises(AlreadyMember):
        groups.join(open_group.id, alice.user_id)

    tiny = groups.create_group(alice, "Tiny", max_participants=2)
    groups.join(tiny.id, carol.user_id)
    with pytest.raises(GroupFull):
        groups.join(tiny.id, dave.user_id)

    groups.deactivate(open_group.id, alice.user_id)
    with pytest.raises(GroupInactive):
        groups.join(open_group.id, make_identity().user_id)


def test_join_requires_claim_on_roster_groups(groups, roster_group, bob) -> None:
    with pytest.raises(SlotClaimRequired):
        groups.join(roster_group.id, bob.user_id)


def test_leave(groups, open_group, alice, bob, carol) -> None:
    RatingLedger(groups.db).submit(bob.user_id, open_group.scope, alice.user_id, 100)

    groups.leave(open_group.id, bob.user_id)

    assert open_group.participants == [alice.user_id]
    assert RatingLedger(groups.db).spent(bob.user_id) == 100
    with pytest.raises(NotAMember):
        groups.leave(open_group.id, carol.user_id)


def test_slot_holder_cannot_leave(groups, roster_group, bob) -> None:
    groups.claim(roster_group.id, 1, bob.user_id)

    with pytest.raises(MembershipLocked):
        groups.leave(roster_group.id, bob.user_id)


def test_claim_migrates_placeholder_ratings(db_session, groups, roster_group, alice, bob, carol) -> None:
    """Ratings given to an unclaimed slot follow the member who claims it."""
    ledger = RatingLedger(db_session)
    placeholder = f"slot:{roster_group.scope}:1"
    ledger.submit(alice.user_id, roster_group.scope, placeholder, 400, reason="great cook")

    result = groups.claim(roster_group.id, 1, bob.user_id, "Bobby")

    assert result.migrated == 1
    assert result.voting_closed is False
    entries = ledger.ratings_in_scope(roster_group.scope)
    assert [(e.to_target_id, e.to_display_name) for e in entries] == [(bob.user_id, "Bobby")]
    assert roster_group.participants == [alice.user_id, bob.user_id]

    # Claiming the last open slot completes the roster and closes voting.
    last = groups.claim(roster_group.id, 2, carol.user_id)
    assert last.voting_closed is True
    assert roster_group.voting_closed is True


def test_claim_is_idempotent_on_retry(db_session, groups, roster_group, alice, bob) -> None:
    RatingLedger(db_session).submit(
        alice.user_id, roster_group.scope, f"slot:{roster_group.scope}:1", 250
    )
    groups.claim(roster_group.id, 1, bob.user_id, "Bobby")
    before = _roster_snapshot(db_session, roster_group)

    retry = groups.claim(roster_group.id, 1, bob.user_id, "Someone Else")

    assert retry.retried is True
    assert retry.migrated == 0
    assert _roster_snapshot(db_session, roster_group) == before


def test_claim_rejections(groups, roster_group, alice, bob, carol) -> None:
    with pytest.raises(OutOfRange):
        groups.claim(roster_group.id, 3, bob.user_id)

    with pytest.raises(SlotTaken):
        groups.claim(roster_group.id, 0, bob.user_id)

    groups.claim(roster_group.id, 1, bob.user_id)
    with pytest.raises(AlreadyMember):
        groups.claim(roster_group.id, 2, bob.user_id)

    groups.deactivate(roster_group.id, alice.user_id)
    with pytest.raises(GroupInactive):
        groups.claim(roster_group.id, 2, carol.user_id)


def test_slotless_founder_cannot_claim(groups, alice) -> None:
    group = groups.create_group(alice, "Crew", slot_labels=["A", "B"])

    with pytest.raises(AlreadyMember):
        groups.claim(group.id, 0, alice.user_id)


def test_roster_fills_exactly_to_capacity(groups, alice, bob, carol) -> None:
    group = groups.create_group(alice, "Cap", slot_labels=["A", "B"], max_participants=3)
    groups.claim(group.id, 0, bob.user_id)
    groups.claim(group.id, 1, carol.user_id)

    assert len(group.members) == 3

    cramped = groups.create_group(alice, "Cramped", slot_labels=["A"], max_participants=2)
    groups.claim(cramped.id, 0, bob.user_id)
    assert cramped.voting_closed is True


def test_failed_claim_changes_nothing(db_session, groups, roster_group, bob) -> None:
    before = _roster_snapshot(db_session, roster_group)

    with pytest.raises(SlotTaken):
        groups.claim(roster_group.id, 0, bob.user_id)

    assert _roster_snapshot(db_session, roster_group) == before
    assert db_session.query(GroupMember).filter_by(user_id=bob.user_id).count() == 0


def test_migrate_slot_ratings_rerun(db_session, groups, roster_group, alice, bob, carol) -> None:
    groups.claim(roster_group.id, 1, bob.user_id)
    # An entry still addressed to the placeholder, as left by an interrupted migration.
    db_session.add(
        Rating(
            scope=roster_group.scope,
            from_user_id=alice.user_id,
            from_display_name="Alice",
            to_target_id=f"slot:{roster_group.scope}:1",
            to_display_name="Sam",
            points=100,
        )
    )
    db_session.commit()

    assert groups.migrate_slot_ratings(roster_group.id, 1, bob.user_id) == 1
    assert groups.migrate_slot_ratings(roster_group.id, 1, bob.user_id) == 0

    with pytest.raises(SlotNotHeld):
        groups.migrate_slot_ratings(roster_group.id, 1, carol.user_id)
    with pytest.raises(OutOfRange):
        groups.migrate_slot_ratings(roster_group.id, 7, bob.user_id)


def test_founder_only_actions(groups, open_group, alice, bob) -> None:
    with pytest.raises(NotFounder):
        groups.close_voting(open_group.id, bob.user_id)
    with pytest.raises(NotFounder):
        groups.deactivate(open_group.id, bob.user_id)

    groups.close_voting(open_group.id, alice.user_id)
    groups.close_voting(open_group.id, alice.user_id)

    assert open_group.voting_closed is True
    assert open_group.is_active is True

"""Tests for profile endpoints."""

from fastapi import status

from aura_stage.services.ledger import RatingLedger


def test_get_my_profile(client, db_session, alice_auth, alice, bob) -> None:
    RatingLedger(db_session).submit(bob.user_id, "direct", alice.user_id, 250)
    RatingLedger(db_session).submit(alice.user_id, "direct", bob.user_id, -400)

    response = client.get("/api/v1/users/me", headers=alice_auth)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["user_id"] == alice.user_id
    assert data["total_aura"] == 750
    assert data["points_spent"] == 400
    assert data["points_remaining"] == 9600
    assert data["show_on_leaderboard"] is None


def test_update_preferences(client, alice_auth) -> None:
    response = client.patch(
        "/api/v1/users/me",
        json={"display_name": "Al", "leaderboard_anonymous": True, "show_on_group_leaderboard": False},
        headers=alice_auth,
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["display_name"] == "Al"
    assert data["leaderboard_anonymous"] is True
    assert data["show_on_group_leaderboard"] is False
    assert data["show_on_leaderboard"] is None


def test_update_rejects_blank_name(client, alice_auth) -> None:
    response = client.patch("/api/v1/users/me", json={"display_name": "  "}, headers=alice_auth)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["error"] == "ValidationFailure"


def test_public_profile(client, alice) -> None:
    response = client.get(f"/api/v1/users/{alice.user_id}/profile-public")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"user_id": alice.user_id, "display_name": "Alice", "photo_url": None}

    missing = client.get("/api/v1/users/nobody/profile-public")
    assert missing.status_code == status.HTTP_404_NOT_FOUND

"""Tests for rating ledger endpoints."""

from fastapi import status

from aura_stage.core.security import create_access_token
from aura_stage.models import Identity


def _rate(client, headers, target_id, points, scope="direct", **extra):
    return client.post(
        "/api/v1/ratings/",
        json={"scope": scope, "to_target_id": target_id, "points": points, **extra},
        headers=headers,
    )


def test_submit_rating(client, alice_auth, alice, bob) -> None:
    response = _rate(
        client,
        alice_auth,
        bob.user_id,
        600,
        reason="Always on time",
        dimension_scores={"trustworthy": 80, "nonsense": 1},
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["from_user_id"] == alice.user_id
    assert data["to_target_id"] == bob.user_id
    assert data["to_display_name"] == "Bob"
    assert data["reason"] == "Always on time"
    assert data["dimension_scores"] == {"trustworthy": 80}


def test_budget_after_positive_and_negative(client, alice_auth, bob, carol) -> None:
    assert _rate(client, alice_auth, bob.user_id, 600).status_code == status.HTTP_201_CREATED
    assert _rate(client, alice_auth, carol.user_id, -600).status_code == status.HTTP_201_CREATED

    response = client.get("/api/v1/ratings/budget", headers=alice_auth)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"budget": 10_000, "spent": 1200, "remaining": 8800}


def test_budget_exceeded(client, alice_auth, bob, carol) -> None:
    assert _rate(client, alice_auth, bob.user_id, 5000).status_code == status.HTTP_201_CREATED

    response = _rate(client, alice_auth, carol.user_id, 5001)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["error"] == "BudgetExceeded"
    assert client.get("/api/v1/ratings/budget", headers=alice_auth).json()["remaining"] == 5000


def test_duplicate_rating(client, alice_auth, bob) -> None:
    _rate(client, alice_auth, bob.user_id, 100)

    response = _rate(client, alice_auth, bob.user_id, 100)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"] == {
        "error": "DuplicateEdge",
        "message": "Already rated this target in this scope",
    }


def test_validation_errors(client, alice_auth, alice) -> None:
    self_rating = _rate(client, alice_auth, alice.user_id, 100)
    bad_scope = _rate(client, alice_auth, "anyone", 10, scope="nope")

    assert self_rating.status_code == status.HTTP_400_BAD_REQUEST
    assert self_rating.json()["detail"]["error"] == "SelfTarget"
    assert bad_scope.json()["detail"]["error"] == "InvalidScope"


def test_points_out_of_bounds(client, alice_auth, bob) -> None:
    response = _rate(client, alice_auth, bob.user_id, -10_001)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["error"] == "OutOfBounds"


def test_group_rating_requires_membership(client, open_group, bob, make_identity, auth_headers) -> None:
    outsider = make_identity("Outsider")

    response = _rate(client, auth_headers(outsider), bob.user_id, 100, scope=open_group.scope)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"]["error"] == "NotAMember"


def test_scope_listing(client, open_group, alice_auth, bob_auth, alice, bob) -> None:
    _rate(client, alice_auth, bob.user_id, 300, scope=open_group.scope)
    _rate(client, bob_auth, alice.user_id, 200, scope=open_group.scope)

    response = client.get(f"/api/v1/ratings/scope/{open_group.scope}", headers=alice_auth)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [r["points"] for r in data["ratings"]] == [300, 200]
    assert data["rated_targets"] == [bob.user_id]


def test_scope_listing_forbidden_for_outsiders(client, open_group, make_identity, auth_headers) -> None:
    outsider = make_identity("Outsider")

    response = client.get(
        f"/api/v1/ratings/scope/{open_group.scope}", headers=auth_headers(outsider)
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_requires_authentication(client, bob) -> None:
    response = client.post(
        "/api/v1/ratings/",
        json={"to_target_id": bob.user_id, "points": 100},
    )

    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_invalid_token_rejected(client, bob) -> None:
    response = client.get(
        "/api/v1/ratings/budget", headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_first_request_creates_profile(client, db_session) -> None:
    token = create_access_token("new-user", display_name="Newbie")

    response = client.get(
        "/api/v1/ratings/budget", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == status.HTTP_200_OK
    assert db_session.get(Identity, "new-user").display_name == "Newbie"

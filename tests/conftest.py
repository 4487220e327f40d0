# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from aura_stage.core.security import create_access_token
from aura_stage.db.session import Base
from aura_stage.db.session import get_db as app_get_session
from aura_stage.main import app as fastapi_app
from aura_stage.models import Identity
from aura_stage.services.groups import GroupService
from aura_stage.services.ranking import leaderboard_cache

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

        # Services commit their own transactions; wipe every table between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_leaderboard_cache() -> Iterator[None]:
    """The global leaderboard cache is process-wide; start every test cold."""
    leaderboard_cache.clear()
    yield
    leaderboard_cache.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_identity(db_session: Session) -> Callable[..., Identity]:
    """Return a factory persisting identities with unique ids."""

    def _make(display_name: str | None = None, **fields: object) -> Identity:
        number = next(_USER_COUNTER)
        identity = Identity(
            user_id=f"user-{number}",
            display_name=display_name or f"User {number}",
            **fields,
        )
        db_session.add(identity)
        db_session.commit()
        return identity

    return _make


@pytest.fixture()
def alice(make_identity: Callable[..., Identity]) -> Identity:
    return make_identity("Alice")


@pytest.fixture()
def bob(make_identity: Callable[..., Identity]) -> Identity:
    return make_identity("Bob")


@pytest.fixture()
def carol(make_identity: Callable[..., Identity]) -> Identity:
    return make_identity("Carol")


@pytest.fixture()
def dave(make_identity: Callable[..., Identity]) -> Identity:
    return make_identity("Dave")


def _auth_headers_for(identity: Identity) -> dict[str, str]:
    token = create_access_token(identity.user_id, display_name=identity.display_name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers() -> Callable[[Identity], dict[str, str]]:
    """Return a builder of authorization headers for any identity."""
    return _auth_headers_for


@pytest.fixture()
def alice_auth(alice: Identity) -> dict[str, str]:
    """Return authorization headers for Alice."""
    return _auth_headers_for(alice)


@pytest.fixture()
def bob_auth(bob: Identity) -> dict[str, str]:
    """Return authorization headers for Bob."""
    return _auth_headers_for(bob)


@pytest.fixture()
def groups(db_session: Session) -> GroupService:
    return GroupService(db_session)


@pytest.fixture()
def open_group(groups: GroupService, alice: Identity, bob: Identity):
    """A roster-less group founded by Alice that Bob has joined."""
    group = groups.create_group(alice, "Friday Crew")
    groups.join(group.id, bob.user_id)
    return group


@pytest.fixture()
def roster_group(groups: GroupService, alice: Identity):
    """A three-slot group whose slot 0 is bound to its founder Alice."""
    return groups.create_group(
        alice,
        "Roommates",
        slot_labels=["Alice", "Sam", "Jo"],
        founder_slot_index=0,
    )

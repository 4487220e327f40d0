"""Tests for the database preparation script."""

import sys

import pytest

from aura_stage.scripts import ensure_db


@pytest.fixture()
def recorded_calls(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []
    monkeypatch.setattr(ensure_db, "create_tables", lambda: calls.append("create"))
    monkeypatch.setattr(ensure_db, "drop_tables", lambda: calls.append("drop"))
    return calls


def test_creates_tables(monkeypatch: pytest.MonkeyPatch, recorded_calls: list[str]) -> None:
    monkeypatch.setattr(sys, "argv", ["ensure_db"])

    ensure_db.main()

    assert recorded_calls == ["create"]


def test_drop_tables_flag_resets_first(
    monkeypatch: pytest.MonkeyPatch, recorded_calls: list[str]
) -> None:
    monkeypatch.setattr(sys, "argv", ["ensure_db", "--drop-tables"])

    ensure_db.main()

    assert recorded_calls == ["drop", "create"]

"""Shared fixtures for the Multilands RP test suite."""
from __future__ import annotations

import random

import pytest

from multilands_rp.models.battle import Scope


class ScriptedRng:
    """Deterministic stand-in for ``random``: hands out queued die faces in order."""

    def __init__(self, *faces: int) -> None:
        self.faces = list(faces)
        self.requests: list[tuple[int, int]] = []

    def push(self, *faces: int) -> None:
        self.faces.extend(faces)

    def randint(self, a: int, b: int) -> int:
        self.requests.append((a, b))
        if not self.faces:
            raise AssertionError("ScriptedRng ran out of faces")
        face = self.faces.pop(0)
        assert a <= face <= b, f"scripted face {face} outside [{a}, {b}]"
        return face


@pytest.fixture
def rng() -> ScriptedRng:
    return ScriptedRng()


@pytest.fixture
def seeded_rng():
    state = random.getstate()
    random.seed(42)
    yield
    random.setstate(state)


@pytest.fixture
def in_memory_db(tmp_path):
    from multilands_rp.storage.database import Database

    db = Database(str(tmp_path / "test.db"))
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def seeded_db(in_memory_db):
    from multilands_rp.storage.seed import seed_catalog

    seed_catalog(in_memory_db)
    return in_memory_db


@pytest.fixture
def ledger(seeded_db):
    from multilands_rp.engine.ledger import CharacterLedger

    return CharacterLedger(seeded_db)


@pytest.fixture
def combat(seeded_db, ledger, rng):
    from multilands_rp.engine.combat import CombatEngine

    return CombatEngine(seeded_db, ledger=ledger, rng=rng)


@pytest.fixture
def scope() -> Scope:
    return Scope(guild_id="guild1", channel_id="chan1")


@pytest.fixture
def ada(ledger):
    """Level-1 character with one free 1d4 Slash attack (rolls as 1d5)."""
    character = ledger.create("user-1", "Ada", "https://img.example/ada.png")
    ledger.create_attack("user-1", "Quick Slash", "Slash", "1d4")
    return character

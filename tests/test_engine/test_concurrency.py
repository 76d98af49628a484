"""Concurrent battle starts from separate workers sharing one database file."""
from __future__ import annotations

import threading

from multilands_rp.engine.combat import CombatEngine
from multilands_rp.errors import BattleAlreadyActive
from multilands_rp.storage.database import Database


def test_only_one_battle_per_scope_under_race(seeded_db, ledger, scope):
    owners = [f"user-{i}" for i in range(4)]
    for owner in owners:
        ledger.create(owner, f"Hero {owner}")

    barrier = threading.Barrier(len(owners))
    outcomes: dict[str, str] = {}

    def worker(owner: str) -> None:
        # Each worker owns its connection, opened on first use in this thread.
        db = Database(seeded_db.db_path, busy_timeout=10.0)
        engine = CombatEngine(db)
        barrier.wait()
        try:
            engine.start_battle(scope, owner, "Water Bottle")
            outcomes[owner] = "started"
        except BattleAlreadyActive:
            outcomes[owner] = "rejected"
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(o,)) for o in owners]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes.values()) == ["rejected", "rejected", "rejected", "started"]
    assert CombatEngine(seeded_db).battles.count_active(scope.key) == 1


def test_ended_battle_frees_scope_for_next_start(seeded_db, ledger, scope):
    ledger.create("user-1", "Ada")
    first = CombatEngine(seeded_db)
    first.start_battle(scope, "user-1", "Water Bottle")
    first.end_battle(scope)

    other = Database(seeded_db.db_path)
    try:
        result = CombatEngine(other).start_battle(scope, "user-1", "Wingslompson")
        assert result.data["round_number"] == 1
    finally:
        other.close()
    assert first.battles.count_active(scope.key) == 1

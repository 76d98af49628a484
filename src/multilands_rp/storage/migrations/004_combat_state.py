"""Migration 004: Transient per-participant combat state."""
from __future__ import annotations

import sqlite3

_COLUMNS = [
    "defending BOOLEAN NOT NULL DEFAULT 0",
    "focus_bonus INTEGER NOT NULL DEFAULT 0",
    "skip_next_turn BOOLEAN NOT NULL DEFAULT 0",
    # JSON array of {"name": ..., "remaining": ...}
    "status_effects TEXT NOT NULL DEFAULT '[]'",
    # JSON object of attack_id -> turns left
    "cooldowns TEXT NOT NULL DEFAULT '{}'",
]


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    for column in _COLUMNS:
        try:
            cur.execute(f"ALTER TABLE battle_participants ADD COLUMN {column}")
        except sqlite3.OperationalError:
            pass  # column already exists

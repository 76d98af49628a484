"""Migration 002: Battles and their participants."""
from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS battles (
            id                           INTEGER PRIMARY KEY AUTOINCREMENT,
            scope_key                    TEXT NOT NULL,
            guild_id                     TEXT NOT NULL,
            channel_id                   TEXT NOT NULL,
            status                       TEXT NOT NULL DEFAULT 'active'
                                         CHECK (status IN ('active', 'ended', 'paused')),
            current_turn_participant_id  INTEGER,
            turn_order                   TEXT NOT NULL DEFAULT '[]',
            round_number                 INTEGER NOT NULL DEFAULT 1,
            created_at                   TEXT NOT NULL,
            last_activity                TEXT NOT NULL,
            ended_at                     TEXT
        )
    """)

    # At most one active battle per scope; a racing second insert fails here.
    conn.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_battles_active_scope
        ON battles (scope_key) WHERE status = 'active'
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS battle_participants (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            battle_id       INTEGER NOT NULL REFERENCES battles(id) ON DELETE CASCADE,
            character_id    INTEGER REFERENCES characters(id) ON DELETE CASCADE,
            npc_id          INTEGER REFERENCES npcs(id) ON DELETE CASCADE,
            current_health  INTEGER NOT NULL CHECK (current_health >= 0),
            current_sanity  INTEGER NOT NULL CHECK (current_sanity >= 0),
            is_player       BOOLEAN NOT NULL,
            CHECK ((character_id IS NULL) <> (npc_id IS NULL))
        )
    """)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS ix_participants_battle ON battle_participants (battle_id)"
    )

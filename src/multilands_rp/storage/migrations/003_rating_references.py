"""Migration 003: Per-user cosmetic references for roll tiers."""
from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS user_rating_references (
            owner_id   TEXT NOT NULL,
            tier       TEXT NOT NULL,
            image_url  TEXT NOT NULL,
            PRIMARY KEY (owner_id, tier)
        )
    """)

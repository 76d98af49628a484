from __future__ import annotations

import sqlite3

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS characters (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id              TEXT NOT NULL,
    name                  TEXT NOT NULL,
    avatar_url            TEXT NOT NULL DEFAULT '',
    gender                TEXT,
    age                   INTEGER,
    species               TEXT,
    occupation            TEXT,
    appearance_url        TEXT,
    health_current        INTEGER NOT NULL DEFAULT 100,
    health_max            INTEGER NOT NULL DEFAULT 100,
    sanity_current        INTEGER NOT NULL DEFAULT 100,
    sanity_max            INTEGER NOT NULL DEFAULT 100,
    level                 INTEGER NOT NULL DEFAULT 1,
    experience            INTEGER NOT NULL DEFAULT 0,
    attack_chain_max      INTEGER NOT NULL DEFAULT 1,
    sanity_increase_desc  TEXT,
    sanity_decrease_desc  TEXT,
    UNIQUE (owner_id, name),
    CHECK (health_current BETWEEN 0 AND health_max),
    CHECK (sanity_current BETWEEN 0 AND sanity_max)
);

CREATE TABLE IF NOT EXISTS user_settings (
    owner_id               TEXT PRIMARY KEY,
    selected_character_id  INTEGER REFERENCES characters(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS affinities (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    name              TEXT NOT NULL UNIQUE,
    description       TEXT NOT NULL DEFAULT '',
    effect_type       TEXT NOT NULL DEFAULT 'none',
    effect_value      TEXT NOT NULL DEFAULT '{}',
    inflicted_status  TEXT,
    status_duration   INTEGER NOT NULL DEFAULT 2
);

CREATE TABLE IF NOT EXISTS attack_types (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL UNIQUE,
    description  TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS attacks (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    name                TEXT NOT NULL UNIQUE,
    type_id             INTEGER REFERENCES attack_types(id),
    affinity_id         INTEGER REFERENCES affinities(id),
    description         TEXT NOT NULL DEFAULT '',
    base_damage_dice    TEXT NOT NULL,
    effect_description  TEXT NOT NULL DEFAULT '',
    health_cost         INTEGER NOT NULL DEFAULT 0,
    sanity_cost         INTEGER NOT NULL DEFAULT 0,
    cooldown            INTEGER NOT NULL DEFAULT 0,
    is_locked_default   BOOLEAN NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS character_attacks (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    character_id  INTEGER NOT NULL REFERENCES characters(id) ON DELETE CASCADE,
    attack_id     INTEGER NOT NULL REFERENCES attacks(id) ON DELETE CASCADE,
    is_unlocked   BOOLEAN NOT NULL DEFAULT 0,
    level         INTEGER NOT NULL DEFAULT 0,
    perfect_hits  INTEGER NOT NULL DEFAULT 0,
    UNIQUE (character_id, attack_id)
);

CREATE TABLE IF NOT EXISTS items (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT NOT NULL UNIQUE,
    description   TEXT NOT NULL DEFAULT '',
    item_type     TEXT NOT NULL DEFAULT 'misc',
    rarity        TEXT NOT NULL DEFAULT 'common',
    effect_type   TEXT NOT NULL DEFAULT 'none',
    effect_value  TEXT NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS character_items (
    character_id  INTEGER NOT NULL REFERENCES characters(id) ON DELETE CASCADE,
    item_id       INTEGER NOT NULL REFERENCES items(id) ON DELETE CASCADE,
    quantity      INTEGER NOT NULL CHECK (quantity > 0),
    PRIMARY KEY (character_id, item_id)
);

CREATE TABLE IF NOT EXISTS npcs (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    name                  TEXT NOT NULL UNIQUE,
    description           TEXT NOT NULL DEFAULT '',
    avatar_url            TEXT,
    health_current        INTEGER NOT NULL DEFAULT 100,
    health_max            INTEGER NOT NULL DEFAULT 100,
    sanity_current        INTEGER NOT NULL DEFAULT 100,
    sanity_max            INTEGER NOT NULL DEFAULT 100,
    level                 INTEGER NOT NULL DEFAULT 1,
    base_damage_dice      TEXT NOT NULL DEFAULT '1d4',
    attack_chain_max      INTEGER NOT NULL DEFAULT 1,
    sanity_increase_desc  TEXT,
    sanity_decrease_desc  TEXT,
    is_boss               BOOLEAN NOT NULL DEFAULT 0,
    rarity                TEXT
);
"""


def upgrade(conn: sqlite3.Connection) -> None:
    """Execute the initial schema migration."""
    conn.executescript(_SCHEMA_SQL)

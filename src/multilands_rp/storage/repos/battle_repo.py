from __future__ import annotations

import json
from typing import Any

from multilands_rp.storage.database import Database

_BATTLE_JSON = frozenset({"turn_order"})
_PARTICIPANT_JSON = frozenset({"status_effects", "cooldowns"})

_PARTICIPANT_SQL = """
    SELECT bp.*,
           COALESCE(c.name, n.name) AS name,
           COALESCE(c.avatar_url, n.avatar_url) AS avatar_url,
           COALESCE(c.health_max, n.health_max) AS max_health,
           COALESCE(c.sanity_max, n.sanity_max) AS max_sanity,
           COALESCE(c.level, n.level) AS level,
           c.owner_id AS owner_id,
           n.base_damage_dice AS base_damage_dice
    FROM battle_participants bp
    LEFT JOIN characters c ON bp.character_id = c.id
    LEFT JOIN npcs n ON bp.npc_id = n.id
"""


def _serialize_fields(data: dict, json_fields: frozenset[str]) -> dict:
    out = dict(data)
    for field in json_fields:
        if field in out and out[field] is not None and not isinstance(out[field], str):
            out[field] = json.dumps(out[field])
    return out


def _deserialize_row(row: Any, json_fields: frozenset[str]) -> dict | None:
    if row is None:
        return None
    result = dict(row)
    for field in json_fields:
        raw = result.get(field)
        if raw is not None and isinstance(raw, str):
            result[field] = json.loads(raw)
    return result


class BattleRepo:
    """Repository for battles and battle participants."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # -- Battles --

    def create_battle(self, scope_key: str, guild_id: str, channel_id: str, now: str) -> int:
        """Insert an active battle.

        Raises sqlite3.IntegrityError if the scope already has an active battle.
        """
        with self.db.get_connection() as conn:
            cur = conn.execute(
                """INSERT INTO battles (scope_key, guild_id, channel_id, status, created_at, last_activity)
                   VALUES (?, ?, ?, 'active', ?, ?)""",
                (scope_key, guild_id, channel_id, now, now),
            )
        return cur.lastrowid

    def get(self, battle_id: int) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute("SELECT * FROM battles WHERE id = ?", (battle_id,)).fetchone()
        return _deserialize_row(row, _BATTLE_JSON)

    def get_active(self, scope_key: str) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM battles WHERE scope_key = ? AND status = 'active'",
                (scope_key,),
            ).fetchone()
        return _deserialize_row(row, _BATTLE_JSON)

    def count_active(self, scope_key: str) -> int:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT count(*) FROM battles WHERE scope_key = ? AND status = 'active'",
                (scope_key,),
            ).fetchone()
        return row[0]

    def update_battle(self, battle_id: int, fields: dict) -> None:
        data = _serialize_fields(fields, _BATTLE_JSON)
        assignments = ", ".join(f"{k} = ?" for k in data)
        with self.db.get_connection() as conn:
            conn.execute(
                f"UPDATE battles SET {assignments} WHERE id = ?",
                [*data.values(), battle_id],
            )

    def end_active(self, scope_key: str, now: str) -> int | None:
        """Mark the scope's active battle ended. Returns its id, or None."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT id FROM battles WHERE scope_key = ? AND status = 'active'",
                (scope_key,),
            ).fetchone()
            if row is None:
                return None
            conn.execute(
                "UPDATE battles SET status = 'ended', ended_at = ?, last_activity = ? WHERE id = ?",
                (now, now, row["id"]),
            )
        return row["id"]

    def list_stale(self, before: str) -> list[dict]:
        """Active battles with no activity since ``before`` (ISO timestamp)."""
        with self.db.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM battles WHERE status = 'active' AND last_activity < ? ORDER BY last_activity",
                (before,),
            ).fetchall()
        return [_deserialize_row(r, _BATTLE_JSON) for r in rows]

    def active_scope_for_character(self, character_id: int) -> str | None:
        """Scope key of the active battle the character fights in, if any."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                """SELECT b.scope_key FROM battle_participants bp
                   JOIN battles b ON b.id = bp.battle_id
                   WHERE bp.character_id = ? AND b.status = 'active'
                   LIMIT 1""",
                (character_id,),
            ).fetchone()
        return row["scope_key"] if row else None

    # -- Participants --

    def add_participant(
        self,
        battle_id: int,
        *,
        character_id: int | None = None,
        npc_id: int | None = None,
        current_health: int,
        current_sanity: int,
        is_player: bool,
    ) -> int:
        with self.db.get_connection() as conn:
            cur = conn.execute(
                """INSERT INTO battle_participants
                   (battle_id, character_id, npc_id, current_health, current_sanity, is_player)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (battle_id, character_id, npc_id, current_health, current_sanity, int(is_player)),
            )
        return cur.lastrowid

    def get_participants(self, battle_id: int) -> list[dict]:
        """Participants with their source entity's name and maxima, players first."""
        with self.db.get_connection() as conn:
            rows = conn.execute(
                _PARTICIPANT_SQL + " WHERE bp.battle_id = ? ORDER BY bp.is_player DESC, bp.id",
                (battle_id,),
            ).fetchall()
        return [_deserialize_row(r, _PARTICIPANT_JSON) for r in rows]

    def get_participant(self, participant_id: int) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute(_PARTICIPANT_SQL + " WHERE bp.id = ?", (participant_id,)).fetchone()
        return _deserialize_row(row, _PARTICIPANT_JSON)

    def update_participant(self, participant_id: int, fields: dict) -> None:
        data = _serialize_fields(fields, _PARTICIPANT_JSON)
        assignments = ", ".join(f"{k} = ?" for k in data)
        with self.db.get_connection() as conn:
            conn.execute(
                f"UPDATE battle_participants SET {assignments} WHERE id = ?",
                [*data.values(), participant_id],
            )

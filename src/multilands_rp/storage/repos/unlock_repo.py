"""Repository for character attack unlocks."""
from __future__ import annotations

from multilands_rp.storage.database import Database

_UNLOCKED_SQL = """
    SELECT a.id AS attack_id, a.name, a.base_damage_dice, a.health_cost, a.sanity_cost,
           a.cooldown, at.name AS type_name, af.name AS affinity_name,
           ca.level AS attack_level, ca.perfect_hits
    FROM character_attacks ca
    JOIN attacks a ON ca.attack_id = a.id
    LEFT JOIN attack_types at ON a.type_id = at.id
    LEFT JOIN affinities af ON a.affinity_id = af.id
    WHERE ca.character_id = ? AND ca.is_unlocked = 1
"""


class UnlockRepo:
    """Join rows between characters and the attack catalog."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def unlock(self, character_id: int, attack_id: int) -> None:
        """Record that a character has learned an attack (idempotent)."""
        with self.db.get_connection() as conn:
            conn.execute(
                """INSERT INTO character_attacks (character_id, attack_id, is_unlocked, level, perfect_hits)
                   VALUES (?, ?, 1, 0, 0)
                   ON CONFLICT(character_id, attack_id) DO UPDATE SET is_unlocked = 1""",
                (character_id, attack_id),
            )

    def get_unlocked(self, character_id: int) -> list[dict]:
        """Unlocked attacks in catalog order (ascending attack id)."""
        with self.db.get_connection() as conn:
            rows = conn.execute(_UNLOCKED_SQL + " ORDER BY a.id ASC", (character_id,)).fetchall()
        return [dict(r) for r in rows]

    def get_progress(self, character_id: int, attack_id: int) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM character_attacks WHERE character_id = ? AND attack_id = ?",
                (character_id, attack_id),
            ).fetchone()
        return dict(row) if row is not None else None

    def update_progress(self, character_id: int, attack_id: int, level: int, perfect_hits: int) -> None:
        with self.db.get_connection() as conn:
            conn.execute(
                """UPDATE character_attacks SET level = ?, perfect_hits = ?
                   WHERE character_id = ? AND attack_id = ?""",
                (level, perfect_hits, character_id, attack_id),
            )

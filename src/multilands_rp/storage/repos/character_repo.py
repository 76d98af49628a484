from __future__ import annotations

from typing import Any

from multilands_rp.storage.database import Database

_INSERTABLE = (
    "owner_id", "name", "avatar_url", "gender", "age", "species", "occupation",
    "appearance_url", "sanity_increase_desc", "sanity_decrease_desc",
    "health_current", "health_max", "sanity_current", "sanity_max",
    "level", "experience", "attack_chain_max",
)


def _row(row: Any) -> dict | None:
    return dict(row) if row is not None else None


class CharacterRepo:
    """Repository for player character records and per-owner selection."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create(self, character_dict: dict) -> int:
        """Insert a character and return its id.

        Raises sqlite3.IntegrityError when (owner_id, name) is taken.
        """
        data = {k: v for k, v in character_dict.items() if k in _INSERTABLE and v is not None}
        columns = ", ".join(data.keys())
        placeholders = ", ".join("?" for _ in data)
        with self.db.get_connection() as conn:
            cur = conn.execute(
                f"INSERT INTO characters ({columns}) VALUES ({placeholders})",
                list(data.values()),
            )
        return cur.lastrowid

    def get(self, character_id: int) -> dict | None:
        """Fetch a character by id."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM characters WHERE id = ?", (character_id,)
            ).fetchone()
        return _row(row)

    def get_by_name(self, owner_id: str, name: str) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM characters WHERE owner_id = ? AND name = ?",
                (owner_id, name),
            ).fetchone()
        return _row(row)

    def get_latest(self, owner_id: str) -> dict | None:
        """Fetch the owner's most recently created character."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM characters WHERE owner_id = ? ORDER BY id DESC LIMIT 1",
                (owner_id,),
            ).fetchone()
        return _row(row)

    def list_by_owner(self, owner_id: str) -> list[dict]:
        with self.db.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM characters WHERE owner_id = ? ORDER BY id",
                (owner_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def update_fields(self, character_id: int, fields: dict) -> None:
        """Update several columns on a character."""
        if not fields:
            return
        assignments = ", ".join(f"{k} = ?" for k in fields)
        with self.db.get_connection() as conn:
            conn.execute(
                f"UPDATE characters SET {assignments} WHERE id = ?",
                [*fields.values(), character_id],
            )

    def delete(self, owner_id: str, name: str) -> bool:
        """Delete a character; owned unlocks and inventory cascade."""
        with self.db.get_connection() as conn:
            cur = conn.execute(
                "DELETE FROM characters WHERE owner_id = ? AND name = ?",
                (owner_id, name),
            )
        return cur.rowcount > 0

    def adjust_pools(self, character_id: int, health_delta: int, sanity_delta: int) -> tuple[int, int] | None:
        """Apply clamped deltas in one statement. Returns post-clamp (health, sanity)."""
        with self.db.get_connection() as conn:
            cur = conn.execute(
                """UPDATE characters SET
                       health_current = MAX(0, MIN(health_max, health_current + ?)),
                       sanity_current = MAX(0, MIN(sanity_max, sanity_current + ?))
                   WHERE id = ?""",
                (health_delta, sanity_delta, character_id),
            )
            if cur.rowcount == 0:
                return None
            row = conn.execute(
                "SELECT health_current, sanity_current FROM characters WHERE id = ?",
                (character_id,),
            ).fetchone()
        return row["health_current"], row["sanity_current"]

    # -- Selection --

    def set_selected(self, owner_id: str, character_id: int) -> None:
        with self.db.get_connection() as conn:
            conn.execute(
                """INSERT INTO user_settings (owner_id, selected_character_id) VALUES (?, ?)
                   ON CONFLICT(owner_id) DO UPDATE SET selected_character_id = excluded.selected_character_id""",
                (owner_id, character_id),
            )

    def get_selected(self, owner_id: str) -> dict | None:
        """Fetch the owner's selected character, if any is still set."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                """SELECT c.* FROM user_settings s
                   JOIN characters c ON c.id = s.selected_character_id
                   WHERE s.owner_id = ?""",
                (owner_id,),
            ).fetchone()
        return _row(row)

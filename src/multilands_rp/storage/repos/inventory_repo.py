"""Repository for character inventories."""
from __future__ import annotations

from multilands_rp.storage.database import Database


class InventoryRepo:
    """Quantities of catalog items held by characters."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def get_quantity(self, character_id: int, item_id: int) -> int:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT quantity FROM character_items WHERE character_id = ? AND item_id = ?",
                (character_id, item_id),
            ).fetchone()
        return row["quantity"] if row else 0

    def add(self, character_id: int, item_id: int, quantity: int) -> int:
        """Add to a stack, creating it if needed. Returns the new quantity."""
        with self.db.get_connection() as conn:
            conn.execute(
                """INSERT INTO character_items (character_id, item_id, quantity) VALUES (?, ?, ?)
                   ON CONFLICT(character_id, item_id) DO UPDATE SET quantity = quantity + excluded.quantity""",
                (character_id, item_id, quantity),
            )
            return self.get_quantity(character_id, item_id)

    def remove(self, character_id: int, item_id: int, quantity: int) -> int | None:
        """Take from a stack, deleting the row at zero.

        Returns the remaining quantity, or None when the stack is too small.
        """
        with self.db.get_connection() as conn:
            held = self.get_quantity(character_id, item_id)
            if held < quantity:
                return None
            remaining = held - quantity
            if remaining == 0:
                conn.execute(
                    "DELETE FROM character_items WHERE character_id = ? AND item_id = ?",
                    (character_id, item_id),
                )
            else:
                conn.execute(
                    "UPDATE character_items SET quantity = ? WHERE character_id = ? AND item_id = ?",
                    (remaining, character_id, item_id),
                )
        return remaining

    def list_for(self, character_id: int) -> list[dict]:
        with self.db.get_connection() as conn:
            rows = conn.execute(
                """SELECT i.id AS item_id, i.name, i.description, ci.quantity
                   FROM character_items ci JOIN items i ON ci.item_id = i.id
                   WHERE ci.character_id = ? ORDER BY i.name""",
                (character_id,),
            ).fetchall()
        return [dict(r) for r in rows]

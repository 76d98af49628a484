"""Repository for per-user rating images."""
from __future__ import annotations

from multilands_rp.storage.database import Database


class RatingRepo:
    def __init__(self, db: Database) -> None:
        self.db = db

    def get(self, owner_id: str, tier: str) -> str | None:
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT image_url FROM user_rating_references WHERE owner_id = ? AND tier = ?",
                (owner_id, tier),
            ).fetchone()
        return row["image_url"] if row else None

    def set(self, owner_id: str, tier: str, image_url: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute(
                """INSERT INTO user_rating_references (owner_id, tier, image_url) VALUES (?, ?, ?)
                   ON CONFLICT(owner_id, tier) DO UPDATE SET image_url = excluded.image_url""",
                (owner_id, tier, image_url),
            )

    def clear(self, owner_id: str, tier: str) -> bool:
        with self.db.get_connection() as conn:
            cur = conn.execute(
                "DELETE FROM user_rating_references WHERE owner_id = ? AND tier = ?",
                (owner_id, tier),
            )
        return cur.rowcount > 0

from __future__ import annotations

import json
from typing import Any

from multilands_rp.storage.database import Database

_JSON_FIELDS = frozenset({"effect_value"})


def _serialize(data: dict) -> dict:
    """Return a copy with JSON fields serialized to strings."""
    out = dict(data)
    for field in _JSON_FIELDS:
        if field in out and out[field] is not None and not isinstance(out[field], str):
            out[field] = json.dumps(out[field])
    return out


def _deserialize(row: Any) -> dict | None:
    """Convert a sqlite3.Row to a dict with JSON fields parsed."""
    if row is None:
        return None
    result = dict(row)
    for field in _JSON_FIELDS:
        raw = result.get(field)
        if raw is not None and isinstance(raw, str):
            result[field] = json.loads(raw)
    return result


def _insert_ignore(conn: Any, table: str, data: dict) -> None:
    columns = ", ".join(data.keys())
    placeholders = ", ".join("?" for _ in data)
    conn.execute(
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
        f"ON CONFLICT(name) DO NOTHING",
        list(data.values()),
    )


class CatalogRepo:
    """Repository for global reference data: affinities, attack types, attacks, items, NPCs."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _by_name(self, table: str, name: str, nocase: bool = False) -> dict | None:
        collate = " COLLATE NOCASE" if nocase else ""
        with self.db.get_connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {table} WHERE name = ?{collate}", (name,)
            ).fetchone()
        return _deserialize(row)

    def _by_id(self, table: str, row_id: int) -> dict | None:
        with self.db.get_connection() as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,)).fetchone()
        return _deserialize(row)

    def _all(self, table: str) -> list[dict]:
        with self.db.get_connection() as conn:
            rows = conn.execute(f"SELECT * FROM {table} ORDER BY id").fetchall()
        return [_deserialize(r) for r in rows]

    # -- Seeding (insert if absent) --

    def ensure_affinity(self, affinity_dict: dict) -> None:
        with self.db.get_connection() as conn:
            _insert_ignore(conn, "affinities", _serialize(affinity_dict))

    def ensure_attack_type(self, type_dict: dict) -> None:
        with self.db.get_connection() as conn:
            _insert_ignore(conn, "attack_types", type_dict)

    def ensure_item(self, item_dict: dict) -> None:
        with self.db.get_connection() as conn:
            _insert_ignore(conn, "items", _serialize(item_dict))

    def ensure_npc(self, npc_dict: dict) -> None:
        with self.db.get_connection() as conn:
            _insert_ignore(conn, "npcs", npc_dict)

    # -- Attacks --

    def create_attack(self, attack_dict: dict) -> int:
        """Insert a new attack. Raises sqlite3.IntegrityError on a taken name."""
        columns = ", ".join(attack_dict.keys())
        placeholders = ", ".join("?" for _ in attack_dict)
        with self.db.get_connection() as conn:
            cur = conn.execute(
                f"INSERT INTO attacks ({columns}) VALUES ({placeholders})",
                list(attack_dict.values()),
            )
        return cur.lastrowid

    def get_attack(self, attack_id: int) -> dict | None:
        return self._by_id("attacks", attack_id)

    def get_attack_by_name(self, name: str) -> dict | None:
        return self._by_name("attacks", name, nocase=True)

    # -- Lookups --

    def get_affinity_by_name(self, name: str) -> dict | None:
        return self._by_name("affinities", name, nocase=True)

    def list_affinities(self) -> list[dict]:
        return self._all("affinities")

    def get_attack_type_by_name(self, name: str) -> dict | None:
        return self._by_name("attack_types", name, nocase=True)

    def list_attack_types(self) -> list[dict]:
        return self._all("attack_types")

    def get_item_by_name(self, name: str) -> dict | None:
        return self._by_name("items", name, nocase=True)

    def list_items(self) -> list[dict]:
        return self._all("items")

    def get_npc_by_name(self, name: str) -> dict | None:
        """NPCs are matched on their exact name."""
        return self._by_name("npcs", name)

    def list_npcs(self) -> list[dict]:
        return self._all("npcs")

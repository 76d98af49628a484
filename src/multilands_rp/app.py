"""Application bootstrap. Loads config and wires storage, ledger, combat and dispatch."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_ENV = "MULTILANDS_CONFIG"


def _load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load config.toml from the project root, or from $MULTILANDS_CONFIG."""
    import tomllib

    if path is None:
        path = os.environ.get(CONFIG_ENV) or Path(__file__).parent.parent.parent / "config.toml"
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    return {}


class RPApp:
    """Holds one set of wired components. Use one instance per worker thread."""

    def __init__(self, config: dict[str, Any] | None = None, config_path: str | Path | None = None, rng: Any = None):
        self.config = config if config is not None else _load_config(config_path)
        self.rng = rng

        # Lazy-initialized components
        self._db = None
        self._ledger = None
        self._rating = None
        self._combat = None
        self._dispatcher = None

    @property
    def db(self):
        if self._db is None:
            from multilands_rp.storage.database import Database

            storage = self.config.get("storage", {})
            self._db = Database(
                storage.get("db_path", "data/multilands.db"),
                busy_timeout=float(storage.get("busy_timeout", 5.0)),
                connect_retries=int(storage.get("connect_retries", 3)),
                retry_delay=float(storage.get("retry_delay", 0.5)),
            )
            self._db.initialize()
        return self._db

    @property
    def ledger(self):
        if self._ledger is None:
            from multilands_rp.engine.ledger import CharacterLedger

            self._ledger = CharacterLedger(self.db)
        return self._ledger

    @property
    def rating(self):
        if self._rating is None:
            from multilands_rp.engine.rating import RatingResolver
            from multilands_rp.storage.repos import RatingRepo

            self._rating = RatingResolver(RatingRepo(self.db))
        return self._rating

    @property
    def combat(self):
        if self._combat is None:
            from multilands_rp.engine.combat import CombatEngine, CombatRules

            self._combat = CombatEngine(
                self.db,
                ledger=self.ledger,
                rating=self.rating,
                rng=self.rng,
                rules=CombatRules.from_config(self.config),
            )
        return self._combat

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            from multilands_rp.engine.dispatcher import CommandDispatcher

            self._dispatcher = CommandDispatcher(self.db, self.ledger, self.combat, self.rating)
        return self._dispatcher

    def seed(self) -> dict[str, int]:
        """Insert the bundled catalog content. Safe to run repeatedly."""
        from multilands_rp.storage.seed import seed_catalog

        return seed_catalog(self.db)

    def close(self) -> None:
        if self._db is not None:
            self._db.close()

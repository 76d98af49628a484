from __future__ import annotations

import contextlib
import importlib
import logging
import pathlib
import sqlite3
import time
from typing import Generator

from multilands_rp.errors import StorageUnavailable

logger = logging.getLogger(__name__)


_MIGRATIONS = [
    "001_initial",
    "002_battles",
    "003_rating_references",
    "004_combat_state",
]


class Database:
    """Main database manager for the RP storage layer.

    One instance owns one sqlite connection and is meant to be used from a
    single worker thread; run one instance per worker.
    """

    def __init__(
        self,
        db_path: str,
        busy_timeout: float = 5.0,
        connect_retries: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self.connect_retries = max(connect_retries, 1)
        self.retry_delay = retry_delay
        self._connection: sqlite3.Connection | None = None
        self._depth = 0
        if db_path != ":memory:":
            pathlib.Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> None:
        """Run migrations to create all tables, skipping already-applied ones."""
        conn = self._get_raw_connection()
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER PRIMARY KEY)"
        )
        applied = {
            r[0] for r in conn.execute("SELECT version FROM schema_version").fetchall()
        }
        for i, name in enumerate(_MIGRATIONS, 1):
            if i not in applied:
                mod = importlib.import_module(f"multilands_rp.storage.migrations.{name}")
                mod.upgrade(conn)
                conn.execute("INSERT INTO schema_version VALUES (?)", (i,))
                logger.info("Applied migration %s", name)

    def _connect(self) -> sqlite3.Connection:
        """Open a connection, backing off exponentially between failed attempts."""
        delay = self.retry_delay
        last_error: Exception | None = None
        for attempt in range(1, self.connect_retries + 1):
            try:
                # Transactions are managed explicitly in get_connection().
                conn = sqlite3.connect(
                    self.db_path, timeout=self.busy_timeout, isolation_level=None
                )
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA foreign_keys=ON")
                return conn
            except sqlite3.Error as e:
                last_error = e
                logger.warning(
                    f"Database connect attempt {attempt}/{self.connect_retries} failed: {e}"
                )
                if attempt < self.connect_retries:
                    time.sleep(delay)
                    delay *= 2
        raise StorageUnavailable(f"Could not open database at {self.db_path}: {last_error}")

    def _get_raw_connection(self) -> sqlite3.Connection:
        """Return the shared connection, creating it if needed."""
        if self._connection is None:
            self._connection = self._connect()
        return self._connection

    @contextlib.contextmanager
    def get_connection(self, immediate: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """Context manager that yields a database connection.

        Re-entrant: only the outermost context opens the transaction, and it
        commits on success or rolls back on exception, so nested repository
        calls join the caller's transaction. ``immediate`` takes the write
        lock up front (only honored by the outermost context).
        """
        conn = self._get_raw_connection()
        outermost = self._depth == 0
        if outermost:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        self._depth += 1
        try:
            yield conn
        except BaseException:
            self._depth -= 1
            if outermost and conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        else:
            self._depth -= 1
            if outermost and conn.in_transaction:
                conn.execute("COMMIT")

    def reconnect(self) -> None:
        """Drop the current connection; the next access opens a fresh one."""
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        self._depth = 0

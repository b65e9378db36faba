"""SQLite database management for the TillHere settings store.

One ``settings`` table of typed key/value rows plus a ``schema_version``
ledger.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from tillhere.core.errors import StorageError

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 1

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per setting; value is text (optionally an encrypted token)
CREATE TABLE IF NOT EXISTS settings (
    key        TEXT PRIMARY KEY,
    value      TEXT,
    type       TEXT NOT NULL DEFAULT 'string',
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class DatabaseError(StorageError):
    """Raised when the settings database is used before it is opened."""


class SettingsDatabase:
    """Owns the SQLite connection behind :class:`SettingsStore`.

    ``":memory:"`` gives a throwaway database, which is what the tests use;
    any other path is a file that is created on first open.

    Usage::

        with SettingsDatabase("~/.tillhere/settings.db") as db:
            SettingsStore(db).get_string("country_code")
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: If :meth:`initialize` has not run yet.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and create the schema. Calling it again is a no-op."""
        if self._conn is not None:
            return

        target = self._db_path
        if target != ":memory:":
            db_file = Path(target).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_file)

        conn = sqlite3.connect(target)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        self._conn = conn

        self._ensure_schema()
        logger.info("Settings database opened: %s", self._db_path)

    def _ensure_schema(self) -> None:
        conn = self.connection
        conn.executescript(_SCHEMA_V1)

        found = self.get_schema_version()
        if found < SCHEMA_VERSION:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            conn.commit()
            logger.info("Settings schema at version %d (was %d)", SCHEMA_VERSION, found)

    def get_schema_version(self) -> int:
        """Highest applied schema version, 0 for a fresh file."""
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.info("Settings database closed: %s", self._db_path)

    def __enter__(self) -> SettingsDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()

"""Typed key/value settings store on top of SQLite.

Values are serialized to text with a type tag (``string``, ``boolean``,
``integer``, ``double``, ``datetime``). When a FieldEncryptor is supplied
the text is stored as a Fernet token.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from tillhere.core.errors import StorageError
from tillhere.core.storage.database import DatabaseError, SettingsDatabase
from tillhere.core.storage.encryption import FieldEncryptor
from tillhere.core.storage.models import (
    TYPE_BOOLEAN,
    TYPE_DATETIME,
    TYPE_DOUBLE,
    TYPE_INTEGER,
    TYPE_STRING,
    VALUE_TYPES,
    SettingRecord,
)

logger = logging.getLogger(__name__)


class SettingsStoreError(StorageError):
    """Raised when a stored value cannot be read back as the requested type."""


@contextmanager
def _sqlite_errors(action: str, key: str | None = None) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise DatabaseError(
            f"Could not {action} settings: {exc}",
            details={"key": key} if key else None,
        ) from exc


class SettingsStore:
    """Generic typed key/value store.

    Each write commits on its own unless it runs inside :meth:`transaction`,
    which commits the whole group once or rolls all of it back.

    Usage::

        db = SettingsDatabase(":memory:")
        db.initialize()
        store = SettingsStore(db)

        store.set_datetime("date_of_birth", datetime(1990, 5, 15))
        store.get_datetime("date_of_birth")  # datetime(1990, 5, 15, 0, 0)

        with store.transaction():
            store.set_string("country_code", "JP")
            store.set_float("life_expectancy_years", 84.0)
    """

    def __init__(
        self, database: SettingsDatabase, encryptor: FieldEncryptor | None = None
    ) -> None:
        self._db = database
        self._enc = encryptor
        self._in_transaction = False

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[SettingsStore]:
        """Group several writes into one commit. Nested calls join the outer one."""
        if self._in_transaction:
            yield self
            return

        conn = self._db.connection
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            conn.rollback()
            logger.warning("Settings transaction rolled back")
            raise
        else:
            with _sqlite_errors("commit"):
                conn.commit()
        finally:
            self._in_transaction = False

    def _commit(self) -> None:
        if not self._in_transaction:
            self._db.connection.commit()

    # ------------------------------------------------------------------
    # Raw records
    # ------------------------------------------------------------------

    def _write(self, key: str, value: str | None, value_type: str) -> None:
        if value_type not in VALUE_TYPES:
            raise SettingsStoreError(
                f"Unknown value type {value_type!r} for setting {key!r}",
                details={"key": key},
            )
        stored = self._enc.encrypt(value) if self._enc is not None else value
        with _sqlite_errors("write", key):
            self._db.connection.execute(
                """INSERT INTO settings (key, value, type, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       type = excluded.type,
                       updated_at = excluded.updated_at""",
                (key, stored, value_type, self._now_iso()),
            )
            self._commit()
        logger.debug("Stored setting %s (%s)", key, value_type)

    def get_record(self, key: str) -> SettingRecord | None:
        """Return the decrypted record for ``key``, or None if absent.

        Raises:
            SettingsStoreError: If the row carries an unknown type tag.
        """
        with _sqlite_errors("read", key):
            row = self._db.connection.execute(
                "SELECT key, value, type, updated_at FROM settings WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        if row["type"] not in VALUE_TYPES:
            raise SettingsStoreError(
                f"Setting {key!r} has unknown type {row['type']!r}",
                details={"key": key},
            )
        value = row["value"]
        if self._enc is not None:
            value = self._enc.decrypt(value)
        return SettingRecord(
            key=row["key"],
            value=value,
            type=row["type"],
            updated_at=row["updated_at"],
        )

    def _read(self, key: str, expected_type: str) -> str | None:
        record = self.get_record(key)
        if record is None or record.value is None:
            return None
        if record.type != expected_type:
            raise SettingsStoreError(
                f"Setting {key!r} is stored as {record.type!r}, not {expected_type!r}",
                details={"key": key},
            )
        return record.value

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def set_string(self, key: str, value: str | None) -> None:
        self._write(key, value, TYPE_STRING)

    def get_string(self, key: str) -> str | None:
        return self._read(key, TYPE_STRING)

    def set_bool(self, key: str, value: bool | None) -> None:
        self._write(key, None if value is None else ("true" if value else "false"), TYPE_BOOLEAN)

    def get_bool(self, key: str) -> bool | None:
        raw = self._read(key, TYPE_BOOLEAN)
        return None if raw is None else raw.lower() == "true"

    def set_int(self, key: str, value: int | None) -> None:
        self._write(key, None if value is None else str(int(value)), TYPE_INTEGER)

    def get_int(self, key: str) -> int | None:
        raw = self._read(key, TYPE_INTEGER)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as exc:
            raise SettingsStoreError(f"Setting {key!r} is not an integer: {raw!r}") from exc

    def set_float(self, key: str, value: float | None) -> None:
        self._write(key, None if value is None else repr(float(value)), TYPE_DOUBLE)

    def get_float(self, key: str) -> float | None:
        raw = self._read(key, TYPE_DOUBLE)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError as exc:
            raise SettingsStoreError(f"Setting {key!r} is not a number: {raw!r}") from exc

    def set_datetime(self, key: str, value: datetime | None) -> None:
        self._write(key, None if value is None else value.isoformat(), TYPE_DATETIME)

    def get_datetime(self, key: str) -> datetime | None:
        raw = self._read(key, TYPE_DATETIME)
        if raw is None:
            return None
        try:
            return datetime.fromisoformat(raw)
        except ValueError as exc:
            raise SettingsStoreError(f"Setting {key!r} is not a timestamp: {raw!r}") from exc

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def delete(self, key: str) -> bool:
        """Remove a setting. Returns True if a row was deleted."""
        with _sqlite_errors("delete", key):
            cursor = self._db.connection.execute("DELETE FROM settings WHERE key = ?", (key,))
            self._commit()
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        with _sqlite_errors("list"):
            rows = self._db.connection.execute("SELECT key FROM settings ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def clear(self) -> int:
        """Delete every setting and return how many were removed."""
        with _sqlite_errors("clear"):
            conn = self._db.connection
            count = conn.execute("SELECT COUNT(*) FROM settings").fetchone()[0]
            conn.execute("DELETE FROM settings")
            self._commit()
        logger.warning("Cleared all settings: %d removed", count)
        return count

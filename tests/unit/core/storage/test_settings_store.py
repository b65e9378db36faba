"""Tests for the typed key/value SettingsStore."""

from __future__ import annotations

from datetime import datetime

import pytest

from tillhere.core.storage.database import DatabaseError
from tillhere.core.storage.encryption import EncryptionError, FieldEncryptor
from tillhere.core.storage.settings_store import SettingsStore, SettingsStoreError


class TestTypedValues:
    def test_string(self, settings_store: SettingsStore):
        settings_store.set_string("country_code", "US")
        assert settings_store.get_string("country_code") == "US"

    def test_bool(self, settings_store: SettingsStore):
        settings_store.set_bool("show_weeks", True)
        assert settings_store.get_bool("show_weeks") is True
        settings_store.set_bool("show_weeks", False)
        assert settings_store.get_bool("show_weeks") is False

    def test_int(self, settings_store: SettingsStore):
        settings_store.set_int("max_weeks", 52)
        assert settings_store.get_int("max_weeks") == 52

    def test_float_keeps_precision(self, settings_store: SettingsStore):
        settings_store.set_float("life_expectancy_years", 77.43)
        assert settings_store.get_float("life_expectancy_years") == 77.43

    def test_datetime(self, settings_store: SettingsStore):
        moment = datetime(1990, 5, 15, 0, 0)
        settings_store.set_datetime("date_of_birth", moment)
        assert settings_store.get_datetime("date_of_birth") == moment

    def test_missing_key_is_none(self, settings_store: SettingsStore):
        assert settings_store.get_string("nope") is None
        assert settings_store.get_datetime("nope") is None

    def test_none_value_reads_back_as_none(self, settings_store: SettingsStore):
        settings_store.set_string("country_code", None)
        assert settings_store.get_string("country_code") is None

    def test_overwrite_replaces_value_and_type(self, settings_store: SettingsStore):
        settings_store.set_string("k", "text")
        settings_store.set_int("k", 3)
        assert settings_store.get_int("k") == 3
        assert settings_store.keys() == ["k"]

    def test_type_mismatch_raises(self, settings_store: SettingsStore):
        settings_store.set_string("country_code", "US")
        with pytest.raises(SettingsStoreError, match="stored as 'string'"):
            settings_store.get_int("country_code")


class TestEncryptionAtRest:
    def test_values_not_stored_in_plaintext(self, settings_store: SettingsStore, settings_db):
        settings_store.set_datetime("date_of_birth", datetime(1990, 5, 15))
        raw = settings_db.connection.execute(
            "SELECT value, type FROM settings WHERE key = 'date_of_birth'"
        ).fetchone()
        assert "1990" not in raw["value"]
        assert raw["type"] == "datetime"

    def test_plaintext_store_without_encryptor(self, settings_db):
        store = SettingsStore(settings_db)
        store.set_string("country_code", "JP")
        raw = settings_db.connection.execute(
            "SELECT value FROM settings WHERE key = 'country_code'"
        ).fetchone()
        assert raw["value"] == "JP"
        assert store.get_string("country_code") == "JP"


class TestHousekeeping:
    def test_delete(self, settings_store: SettingsStore):
        settings_store.set_string("a", "1")
        assert settings_store.delete("a") is True
        assert settings_store.delete("a") is False
        assert settings_store.get_string("a") is None

    def test_keys_sorted(self, settings_store: SettingsStore):
        settings_store.set_string("b", "2")
        settings_store.set_string("a", "1")
        assert settings_store.keys() == ["a", "b"]

    def test_clear(self, settings_store: SettingsStore):
        settings_store.set_string("a", "1")
        settings_store.set_int("b", 2)
        assert settings_store.clear() == 2
        assert settings_store.keys() == []

    def test_record_has_updated_at(self, settings_store: SettingsStore):
        settings_store.set_string("a", "1")
        record = settings_store.get_record("a")
        assert record is not None
        assert record.updated_at
        assert record.type == "string"


class TestTransactions:
    def test_group_commits_together(self, settings_store: SettingsStore):
        with settings_store.transaction():
            settings_store.set_string("country_code", "JP")
            settings_store.set_float("life_expectancy_years", 84.0)
        assert settings_store.get_string("country_code") == "JP"
        assert settings_store.get_float("life_expectancy_years") == 84.0

    def test_error_rolls_back_every_write(self, settings_store: SettingsStore):
        settings_store.set_string("country_code", "US")
        with pytest.raises(RuntimeError, match="boom"):
            with settings_store.transaction():
                settings_store.set_string("country_code", "JP")
                settings_store.set_int("max_weeks", 10)
                raise RuntimeError("boom")
        assert settings_store.get_string("country_code") == "US"
        assert settings_store.get_int("max_weeks") is None

    def test_nested_transaction_joins_outer(self, settings_store: SettingsStore):
        with pytest.raises(RuntimeError):
            with settings_store.transaction():
                with settings_store.transaction():
                    settings_store.set_string("a", "1")
                raise RuntimeError("outer failed")
        assert settings_store.keys() == []

    def test_writes_commit_again_after_transaction(self, settings_store: SettingsStore, settings_db):
        with settings_store.transaction():
            settings_store.set_string("a", "1")
        settings_store.set_string("b", "2")
        assert not settings_db.connection.in_transaction


class TestStorageFailures:
    def test_unknown_type_tag_rejected(self, settings_db):
        settings_db.connection.execute(
            "INSERT INTO settings (key, value, type, updated_at) VALUES ('k', 'v', 'blob', 'now')"
        )
        settings_db.connection.commit()
        store = SettingsStore(settings_db)
        with pytest.raises(SettingsStoreError, match="unknown type 'blob'"):
            store.get_string("k")

    def test_sqlite_failure_becomes_database_error(self, settings_store: SettingsStore, settings_db):
        settings_db.connection.execute("DROP TABLE settings")
        with pytest.raises(DatabaseError, match="Could not write settings") as exc_info:
            settings_store.set_string("country_code", "US")
        assert exc_info.value.kind == "storage"

    def test_wrong_key_read_is_storage_error(self, settings_db, field_encryptor):
        SettingsStore(settings_db, field_encryptor).set_string("country_code", "US")
        other = SettingsStore(settings_db, FieldEncryptor(FieldEncryptor.generate_key()))
        with pytest.raises(EncryptionError) as exc_info:
            other.get_string("country_code")
        assert exc_info.value.kind == "storage"

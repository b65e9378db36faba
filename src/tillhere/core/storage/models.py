"""Data models for the settings persistence layer."""

from __future__ import annotations

from dataclasses import dataclass

# Value type tags stored in the ``settings.type`` column
TYPE_STRING = "string"
TYPE_BOOLEAN = "boolean"
TYPE_INTEGER = "integer"
TYPE_DOUBLE = "double"
TYPE_DATETIME = "datetime"

VALUE_TYPES = frozenset({TYPE_STRING, TYPE_BOOLEAN, TYPE_INTEGER, TYPE_DOUBLE, TYPE_DATETIME})


@dataclass
class SettingRecord:
    """One persisted setting, value already serialized to text."""

    key: str
    value: str | None
    type: str = TYPE_STRING
    updated_at: str = ""  # ISO 8601

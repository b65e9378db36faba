"""Error taxonomy for the life-projection core.

Every error carries a human-readable ``message`` and a machine-readable
``kind`` so callers (the MCP tool layer, a UI) can branch on it without
parsing English text.
"""

from __future__ import annotations

from typing import Any


class TillHereError(Exception):
    """Base class for all application-level errors."""

    kind: str = "internal"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(TillHereError):
    """Bad input shape or range (future birth date, missing field, ...)."""

    kind = "validation"


class NotFoundError(TillHereError):
    """A country code is absent from the life expectancy table."""

    kind = "not_found"

    def __init__(self, country_code: str) -> None:
        super().__init__(
            message=f"No life expectancy data available for country {country_code!r}",
            details={"country_code": country_code},
        )
        self.country_code = country_code


class DataSourceError(TillHereError):
    """The bundled life expectancy dataset is missing or malformed."""

    kind = "data_source"


class LocaleResolutionError(TillHereError):
    """The device locale could not be mapped to a country code."""

    kind = "locale"


class StorageError(TillHereError):
    """The settings store could not be opened, read or written."""

    kind = "storage"

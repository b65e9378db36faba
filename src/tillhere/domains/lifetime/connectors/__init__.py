"""Lifetime connectors: country resolution from the running device."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LocaleResolver(Protocol):
    """Maps the device locale to an ISO 3166-1 alpha-2 country code.

    The projection service calls this only when the user has not chosen a
    country. Failures propagate to the caller unchanged.
    """

    async def detect_country_code(self) -> str:
        """Two-letter uppercase country code for the current device."""
        ...

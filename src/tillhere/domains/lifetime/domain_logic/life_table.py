"""Country life expectancy table: read-only lookups over the bundled dataset.

The dataset is a JSON document produced offline from the World Bank
``SP.DYN.LE00.IN`` indicator::

    {
      "metadata": {"source": ..., "indicator": ..., "generatedAt": ..., "totalCountries": ...},
      "countries": {
        "US": {"name": "United States", "iso3": "USA", "lifeExpectancy": 77.43,
               "year": 2022, "lastUpdated": "2025-08-01T10:00:00"}
      }
    }

It is parsed once and never mutated, so the table can be shared freely.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from tillhere.core.errors import DataSourceError, NotFoundError
from tillhere.domains.lifetime.domain_logic.models import CountryLifeExpectancyEntry

logger = logging.getLogger(__name__)

# Bundled copy lives under src/tillhere/domains/lifetime/data/
BUNDLED_DATASET = Path(__file__).resolve().parent.parent / "data" / "life_expectancy.json"


def _parse_entry(code: str, raw: Any, source: str) -> CountryLifeExpectancyEntry:
    if not isinstance(raw, dict):
        raise DataSourceError(
            f"Country entry {code!r} is not an object",
            details={"country_code": code},
        )
    try:
        return CountryLifeExpectancyEntry(
            country_code=code,
            years_at_birth=float(raw["lifeExpectancy"]),
            measurement_year=int(raw["year"]),
            fetched_at=datetime.fromisoformat(raw["lastUpdated"]),
            name=str(raw.get("name", "")),
            iso3=str(raw.get("iso3", "")),
            source=source,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise DataSourceError(
            f"Malformed country entry {code!r}: {exc}",
            details={"country_code": code},
        ) from exc


class CountryLifeExpectancyTable:
    """Immutable lookup from ISO alpha-2 code to life expectancy at birth.

    Usage::

        table = CountryLifeExpectancyTable()      # bundled dataset
        entry = table.lookup("US")
        entry.years_at_birth                       # 77.43

    Lookups load the dataset on first use; :meth:`load` can be called
    up front to surface a :class:`DataSourceError` early.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path).expanduser() if path else BUNDLED_DATASET
        self._entries: dict[str, CountryLifeExpectancyEntry] | None = None
        self._metadata: dict[str, Any] = {}

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, CountryLifeExpectancyEntry]:
        """Parse the dataset once and return the cached ``{code: entry}`` map.

        Raises:
            DataSourceError: If the file is missing, is not valid JSON, or
                lacks a ``countries`` object. Bytes that are not UTF-8
                count as malformed.
        """
        if self._entries is not None:
            return self._entries

        try:
            raw_bytes = self._path.read_bytes()
        except OSError as exc:
            raise DataSourceError(
                f"Life expectancy dataset not readable: {self._path}",
                details={"path": str(self._path)},
            ) from exc

        try:
            document = json.loads(raw_bytes.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise DataSourceError(
                f"Life expectancy dataset is not UTF-8 text: {exc}",
                details={"path": str(self._path)},
            ) from exc
        except json.JSONDecodeError as exc:
            raise DataSourceError(
                f"Life expectancy dataset is not valid JSON: {exc}",
                details={"path": str(self._path)},
            ) from exc

        if not isinstance(document, dict) or not isinstance(document.get("countries"), dict):
            raise DataSourceError(
                "Life expectancy dataset has no 'countries' object",
                details={"path": str(self._path)},
            )

        metadata = document.get("metadata")
        self._metadata = dict(metadata) if isinstance(metadata, dict) else {}
        source = str(self._metadata.get("source", "World Bank API"))

        entries = {
            code: _parse_entry(code, raw, source)
            for code, raw in document["countries"].items()
        }
        self._entries = entries
        logger.info("Loaded life expectancy data for %d countries from %s", len(entries), self._path)
        return entries

    @property
    def metadata(self) -> dict[str, Any]:
        """The dataset's ``metadata`` block (source, indicator, generatedAt, ...)."""
        self.load()
        return dict(self._metadata)

    def lookup(self, country_code: str) -> CountryLifeExpectancyEntry:
        """Return the entry for an exact, case-sensitive country code.

        Raises:
            NotFoundError: If the code is not in the table. Lowercase or
                alpha-3 codes are not corrected.
        """
        entry = self.load().get(country_code)
        if entry is None:
            logger.debug("No life expectancy entry for %r", country_code)
            raise NotFoundError(country_code)
        return entry

    def lookup_many(self, country_codes: Iterable[str]) -> dict[str, CountryLifeExpectancyEntry]:
        """Return entries for the codes that exist; unknown codes are omitted."""
        entries = self.load()
        return {code: entries[code] for code in set(country_codes) if code in entries}

    def has_country(self, country_code: str) -> bool:
        return country_code in self.load()

    def all_countries(self) -> list[CountryLifeExpectancyEntry]:
        """Every entry, sorted by country name."""
        return sorted(self.load().values(), key=lambda e: (e.name, e.country_code))

    def search(self, query: str) -> list[CountryLifeExpectancyEntry]:
        """Case-insensitive substring match against country name or code."""
        needle = query.casefold()
        return [
            entry
            for entry in self.all_countries()
            if needle in entry.name.casefold() or needle in entry.country_code.casefold()
        ]

    def __len__(self) -> int:
        return len(self.load())

"""Shared test fixtures for TillHere lifetime tests."""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DEFAULT_COUNTRY_CODE", "")
    monkeypatch.setenv("LIFE_EXPECTANCY_DATA_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from tillhere.core.errors import LocaleResolutionError  # noqa: E402

# Wednesday, midday; the current calendar week is Mon 2026-10-12 .. Sun 2026-10-18
NOW = datetime(2026, 10, 14, 12, 0, 0)


# ---------------------------------------------------------------------------
# Inline dataset
# ---------------------------------------------------------------------------

def _country(name: str, iso3: str, years: float, year: int = 2022) -> dict[str, Any]:
    return {
        "name": name,
        "iso3": iso3,
        "lifeExpectancy": years,
        "year": year,
        "lastUpdated": "2026-10-01T08:00:00.000",
    }


TEST_DATASET: dict[str, Any] = {
    "metadata": {
        "source": "World Bank API",
        "indicator": "SP.DYN.LE00.IN",
        "generatedAt": "2026-10-01T08:00:00.000",
        "totalCountries": 5,
    },
    "countries": {
        "US": _country("United States", "USA", 78.5),
        "GB": _country("United Kingdom", "GBR", 80.7),
        "JP": _country("Japan", "JPN", 84.0),
        "DE": _country("Germany", "DEU", 80.7),
        # Out-of-range measurement year: present but not valid
        "ZZ": _country("Testland", "ZZZ", 70.0, year=1900),
    },
}


def write_dataset(path: Path, document: Any) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture
def dataset_path(tmp_path: Path) -> Path:
    """The inline dataset written to a temporary JSON file."""
    return write_dataset(tmp_path / "life_expectancy.json", TEST_DATASET)


@pytest.fixture
def life_table(dataset_path: Path):
    from tillhere.domains.lifetime.domain_logic.life_table import CountryLifeExpectancyTable

    return CountryLifeExpectancyTable(dataset_path)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class FakeLocaleResolver:
    """LocaleResolver returning a canned code, or raising a canned error."""

    def __init__(self, code: str = "GB", error: Exception | None = None) -> None:
        self._code = code
        self._error = error
        self.calls = 0

    async def detect_country_code(self) -> str:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._code


@pytest.fixture
def locale_resolver() -> FakeLocaleResolver:
    return FakeLocaleResolver("GB")


@pytest.fixture
def failing_locale_resolver() -> FakeLocaleResolver:
    return FakeLocaleResolver(error=LocaleResolutionError("no locale available"))


class FixedClock:
    """Callable clock that can be moved forward between calls."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def projection_service(life_table, locale_resolver, clock):
    from tillhere.domains.lifetime.domain_logic.projection_service import ProjectionService

    return ProjectionService(life_table, locale_resolver, clock=clock)


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings_db():
    """Create an in-memory SettingsDatabase for testing."""
    from tillhere.core.storage.database import SettingsDatabase

    db = SettingsDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from tillhere.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def settings_store(settings_db, field_encryptor):
    """Create an encrypted SettingsStore backed by in-memory SQLite."""
    from tillhere.core.storage.settings_store import SettingsStore

    return SettingsStore(settings_db, field_encryptor)


@pytest.fixture
def projection_repository(settings_store):
    from tillhere.core.storage.repository import ProjectionStateRepository

    return ProjectionStateRepository(settings_store)

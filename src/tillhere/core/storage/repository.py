"""Projection state repository: maps UserProjectionState onto the settings store.

Each field is one key in the key/value store; absent keys load as ``None``
and ``None`` fields are removed on save.
"""

from __future__ import annotations

import logging

from tillhere.core.storage.settings_store import SettingsStore
from tillhere.domains.lifetime.domain_logic.models import UserProjectionState

logger = logging.getLogger(__name__)

KEY_DATE_OF_BIRTH = "date_of_birth"
KEY_DEATH_DATE = "death_date"
KEY_COUNTRY_CODE = "country_code"
KEY_LIFE_EXPECTANCY_YEARS = "life_expectancy_years"
KEY_LAST_CALCULATED_AT = "last_calculated_at"

PROJECTION_KEYS = (
    KEY_DATE_OF_BIRTH,
    KEY_DEATH_DATE,
    KEY_COUNTRY_CODE,
    KEY_LIFE_EXPECTANCY_YEARS,
    KEY_LAST_CALCULATED_AT,
)


class ProjectionStateRepository:
    """Loads and saves the single user's projection state.

    Usage::

        repo = ProjectionStateRepository(SettingsStore(db, encryptor))
        state = repo.load()
        repo.save(new_state)
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    def load(self) -> UserProjectionState:
        """Read the stored state; an untouched store yields an empty state."""
        return UserProjectionState(
            date_of_birth=self._store.get_datetime(KEY_DATE_OF_BIRTH),
            country_code=self._store.get_string(KEY_COUNTRY_CODE),
            life_expectancy_years=self._store.get_float(KEY_LIFE_EXPECTANCY_YEARS),
            death_date=self._store.get_datetime(KEY_DEATH_DATE),
            last_calculated_at=self._store.get_datetime(KEY_LAST_CALCULATED_AT),
        )

    def save(self, state: UserProjectionState) -> UserProjectionState:
        """Write every field of ``state`` in one transaction; the last save wins.

        A failure part-way leaves the previously saved state untouched.
        """
        with self._store.transaction():
            self._put_datetime(KEY_DATE_OF_BIRTH, state.date_of_birth)
            self._put_datetime(KEY_DEATH_DATE, state.death_date)
            self._put_datetime(KEY_LAST_CALCULATED_AT, state.last_calculated_at)

            if state.country_code is None:
                self._store.delete(KEY_COUNTRY_CODE)
            else:
                self._store.set_string(KEY_COUNTRY_CODE, state.country_code)

            if state.life_expectancy_years is None:
                self._store.delete(KEY_LIFE_EXPECTANCY_YEARS)
            else:
                self._store.set_float(KEY_LIFE_EXPECTANCY_YEARS, state.life_expectancy_years)

        logger.info("Saved projection state (country=%s)", state.country_code)
        return state

    def _put_datetime(self, key: str, value) -> None:
        if value is None:
            self._store.delete(key)
        else:
            self._store.set_datetime(key, value)

    def clear(self) -> int:
        """Remove every projection key; returns how many were present."""
        with self._store.transaction():
            removed = sum(1 for key in PROJECTION_KEYS if self._store.delete(key))
        logger.warning("Cleared projection state: %d keys removed", removed)
        return removed

"""Projection service: country resolution, life expectancy lookup, end-date projection.

Orchestrates the lifetime engine:

- resolves a country (explicit code, else the LocaleResolver),
- looks it up in the CountryLifeExpectancyTable,
- projects the end date and returns a fresh UserProjectionState,
- serves week timelines and summary statistics for a state.

The service never persists anything; callers save the returned state via
``ProjectionStateRepository``. Failures from the locale resolver propagate
unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from itertools import islice

from tillhere.core.errors import ValidationError
from tillhere.domains.lifetime.connectors import LocaleResolver
from tillhere.domains.lifetime.domain_logic.life_table import CountryLifeExpectancyTable
from tillhere.domains.lifetime.domain_logic.models import (
    FRESHNESS_DAYS,
    ProjectionStats,
    UserProjectionState,
    WeekSpan,
    as_datetime,
    whole_days,
)
from tillhere.domains.lifetime.domain_logic.projector import project_death_date
from tillhere.domains.lifetime.domain_logic.week_timeline import generate_weeks

logger = logging.getLogger(__name__)


class ProjectionService:
    """Computes and refreshes lifetime projections.

    Usage::

        service = ProjectionService(CountryLifeExpectancyTable(), SystemLocaleResolver())
        state = await service.compute_projection(date(1990, 5, 15), "US")
        weeks = service.weekly_timeline(state, max_weeks=52)
        stats = service.statistics(state)
    """

    def __init__(
        self,
        table: CountryLifeExpectancyTable,
        locale_resolver: LocaleResolver,
        *,
        clock: Callable[[], datetime] = datetime.now,
        freshness_days: int = FRESHNESS_DAYS,
    ) -> None:
        self._table = table
        self._locale = locale_resolver
        self._clock = clock
        self._freshness_days = freshness_days

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    async def compute_projection(
        self,
        date_of_birth: date | datetime,
        country_code: str | None = None,
    ) -> UserProjectionState:
        """Project the end date for a birth date and (optionally detected) country.

        Raises:
            ValidationError: If the birth date is in the future, or the table
                entry for the country is out of range.
            NotFoundError: If the country is not in the table.
        """
        now = self.now()
        birth = as_datetime(date_of_birth)
        if birth > now:
            raise ValidationError(
                "Date of birth cannot be in the future",
                details={"field": "date_of_birth"},
            )

        code = country_code
        if not code:
            code = await self._locale.detect_country_code()
            logger.info("No country supplied; detected %s from locale", code)

        entry = self._table.lookup(code)
        if not entry.is_valid(now):
            raise ValidationError(
                f"Invalid life expectancy data for country {code!r}",
                details={"country_code": code},
            )

        death_date = project_death_date(birth, entry.years_at_birth)
        logger.info(
            "Computed projection for %s: %.2f years at birth (%d)",
            code,
            entry.years_at_birth,
            entry.measurement_year,
        )
        return UserProjectionState(
            date_of_birth=birth,
            country_code=code,
            life_expectancy_years=entry.years_at_birth,
            death_date=death_date,
            last_calculated_at=now,
        )

    async def refresh_if_needed(
        self,
        state: UserProjectionState,
        force_refresh: bool = False,
    ) -> UserProjectionState:
        """Recompute ``state`` unless it is still fresh.

        Raises:
            ValidationError: If the state lacks a birth date or country.
        """
        if state.date_of_birth is None or state.country_code is None:
            raise ValidationError(
                "Date of birth and country code are required",
                details={"fields": ["date_of_birth", "country_code"]},
            )
        if not force_refresh and state.is_calculation_fresh(self.now(), self._freshness_days):
            return state
        return await self.compute_projection(state.date_of_birth, state.country_code)

    def has_required_data(self, state: UserProjectionState) -> bool:
        return state.has_basic_setup and state.is_valid(self.now())

    def needs_refresh(self, state: UserProjectionState) -> bool:
        return (
            not state.is_calculation_fresh(self.now(), self._freshness_days)
            or state.death_date is None
            or state.life_expectancy_years is None
        )

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @staticmethod
    def _require_dates(state: UserProjectionState) -> tuple[datetime, datetime]:
        if state.date_of_birth is None or state.death_date is None:
            raise ValidationError(
                "Date of birth and death date are required",
                details={"fields": ["date_of_birth", "death_date"]},
            )
        return state.date_of_birth, state.death_date

    def weekly_timeline(
        self,
        state: UserProjectionState,
        start_from: datetime | None = None,
        max_weeks: int | None = None,
    ) -> list[WeekSpan]:
        """Weeks from the current one to the projected end, at most ``max_weeks``.

        Raises:
            ValidationError: If the state lacks a birth date or end date, or
                ``max_weeks`` is negative.
        """
        birth, death = self._require_dates(state)
        if max_weeks is not None and max_weeks < 0:
            raise ValidationError(
                "max_weeks must not be negative",
                details={"max_weeks": max_weeks},
            )
        timeline = generate_weeks(birth, death, start_from=start_from or self.now())
        if max_weeks is None:
            return list(timeline)
        return list(islice(timeline, max_weeks))

    def statistics(self, state: UserProjectionState) -> ProjectionStats:
        """Totals, lived and remaining days/weeks, and percentage of life elapsed.

        Raises:
            ValidationError: If the state lacks a birth date or end date.
        """
        birth, death = self._require_dates(state)
        now = self.now()

        total_days = whole_days(death - birth)
        days_lived = whole_days(now - birth)
        days_remaining = max(0, whole_days(death - now))

        if total_days > 0:
            percentage = days_lived / total_days * 100
        else:
            percentage = 100.0
        percentage = min(100.0, max(0.0, percentage))

        return ProjectionStats(
            total_life_expectancy_years=state.life_expectancy_years or 0.0,
            total_days=total_days,
            total_weeks=total_days // 7,
            days_lived=days_lived,
            weeks_lived=days_lived // 7,
            days_remaining=days_remaining,
            weeks_remaining=days_remaining // 7,
            percentage_lived=percentage,
            current_age=state.current_age_in_years(now) or 0,
            country_code=state.country_code or "",
            last_updated=state.last_calculated_at or now,
        )

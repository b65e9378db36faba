"""Projected end-of-life date from a birth date and a life expectancy."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from tillhere.domains.lifetime.domain_logic.models import (
    DAYS_PER_YEAR,
    as_datetime,
    round_half_up,
)


def projected_lifetime_days(years_at_birth: float) -> int:
    """Whole days in ``years_at_birth``, using 365.25-day years."""
    return round_half_up(years_at_birth * DAYS_PER_YEAR)


def project_death_date(date_of_birth: date | datetime, years_at_birth: float) -> datetime:
    """Return ``date_of_birth + round(years × 365.25)`` days.

    Callers validate the inputs first: ``years_at_birth`` in (0, 150] and a
    birth date that is not in the future.
    """
    return as_datetime(date_of_birth) + timedelta(days=projected_lifetime_days(years_at_birth))

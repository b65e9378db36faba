"""Lifetime projection models and domain constants."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Any

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

DAYS_PER_YEAR = 365.25          # leap-year-averaged year used for projections
WEEKS_PER_YEAR = 52.18
MAX_LIFE_EXPECTANCY_YEARS = 150.0
EARLIEST_MEASUREMENT_YEAR = 1960  # first year of the World Bank series
FRESHNESS_DAYS = 30

# Sunday 23:59:59.999 relative to the Monday that starts the week
WEEK_END_OFFSET = timedelta(days=6, hours=23, minutes=59, seconds=59, milliseconds=999)


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

def as_datetime(value: date | datetime) -> datetime:
    """Normalize a ``date`` to local midnight; datetimes pass through."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def round_half_up(value: float) -> int:
    """Round halves away from zero (730.5 -> 731), unlike built-in round()."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def whole_days(delta: timedelta) -> int:
    """Whole days in ``delta``, truncated toward zero."""
    return int(delta / timedelta(days=1))


def start_of_week(moment: datetime) -> datetime:
    """Midnight of the Monday of the calendar week containing ``moment``."""
    monday = moment.date() - timedelta(days=moment.weekday())
    return datetime.combine(monday, time.min)


def _age_in_years(date_of_birth: datetime, now: datetime) -> int:
    age = now.year - date_of_birth.year
    if (now.month, now.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Country:
    """A country identified by its ISO 3166-1 alpha-2 code."""

    code: str
    name: str
    alpha3: str | None = None

    @property
    def is_valid_code(self) -> bool:
        return len(self.code) == 2 and self.code == self.code.upper()


@dataclass(frozen=True)
class CountryLifeExpectancyEntry:
    """Life expectancy at birth for one country, as bundled with the app."""

    country_code: str
    years_at_birth: float
    measurement_year: int
    fetched_at: datetime
    name: str = ""
    iso3: str = ""
    source: str = "World Bank API"

    def is_valid(self, today: date | None = None) -> bool:
        current_year = (today or date.today()).year
        return (
            0 < self.years_at_birth <= MAX_LIFE_EXPECTANCY_YEARS
            and EARLIEST_MEASUREMENT_YEAR <= self.measurement_year <= current_year
            and len(self.country_code) == 2
        )

    def is_fresh(self, now: datetime | None = None) -> bool:
        """Whether ``fetched_at`` is less than 30 days old.

        Informational only: the dataset is static and never refreshed at runtime.
        """
        reference = now or datetime.now(self.fetched_at.tzinfo)
        return whole_days(reference - self.fetched_at) < FRESHNESS_DAYS

    @property
    def total_days_at_birth(self) -> int:
        return round_half_up(self.years_at_birth * DAYS_PER_YEAR)

    @property
    def total_weeks_at_birth(self) -> int:
        return round_half_up(self.years_at_birth * WEEKS_PER_YEAR)

    def to_country(self) -> Country:
        return Country(code=self.country_code, name=self.name or self.country_code, alpha3=self.iso3 or None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "country_code": self.country_code,
            "name": self.name,
            "iso3": self.iso3,
            "life_expectancy_years": self.years_at_birth,
            "measurement_year": self.measurement_year,
            "fetched_at": self.fetched_at.isoformat(),
            "source": self.source,
        }


@dataclass(frozen=True)
class UserProjectionState:
    """Persisted projection record: birth date, country and derived end date.

    Every field is optional; an empty state is what a first-time user has.
    """

    date_of_birth: datetime | None = None
    country_code: str | None = None
    life_expectancy_years: float | None = None
    death_date: datetime | None = None
    last_calculated_at: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or datetime.now()
        if self.date_of_birth is not None and self.date_of_birth > now:
            return False
        if (
            self.date_of_birth is not None
            and self.death_date is not None
            and self.death_date < self.date_of_birth
        ):
            return False
        if self.life_expectancy_years is not None and not (
            0 < self.life_expectancy_years <= MAX_LIFE_EXPECTANCY_YEARS
        ):
            return False
        return True

    @property
    def has_basic_setup(self) -> bool:
        return self.date_of_birth is not None and self.country_code is not None

    def is_calculation_fresh(
        self, now: datetime | None = None, freshness_days: int = FRESHNESS_DAYS
    ) -> bool:
        if self.last_calculated_at is None:
            return False
        now = now or datetime.now()
        return whole_days(now - self.last_calculated_at) < freshness_days

    def current_age_in_years(self, now: datetime | None = None) -> int | None:
        if self.date_of_birth is None:
            return None
        return _age_in_years(self.date_of_birth, now or datetime.now())

    def weeks_lived(self, now: datetime | None = None) -> int | None:
        if self.date_of_birth is None:
            return None
        return whole_days((now or datetime.now()) - self.date_of_birth) // 7

    def weeks_remaining(self, now: datetime | None = None) -> int | None:
        if self.death_date is None:
            return None
        now = now or datetime.now()
        if now > self.death_date:
            return 0
        return whole_days(self.death_date - now) // 7

    def with_updates(self, **changes: Any) -> UserProjectionState:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("date_of_birth", "death_date", "last_calculated_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass(frozen=True)
class WeekSpan:
    """One Monday-to-Sunday calendar week of a lifetime timeline."""

    start_date: datetime    # Monday 00:00
    end_date: datetime      # Sunday 23:59:59.999
    week_index: int         # weeks since the week containing the date of birth
    is_past: bool
    is_current: bool

    @property
    def duration(self) -> timedelta:
        return self.end_date - self.start_date

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date

    @property
    def formatted_range(self) -> str:
        start, end = self.start_date, self.end_date
        return f"{start.day}/{start.month}/{start.year} - {end.day}/{end.month}/{end.year}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_index": self.week_index,
            "start_date": self.start_date.date().isoformat(),
            "end_date": self.end_date.date().isoformat(),
            "is_past": self.is_past,
            "is_current": self.is_current,
        }


@dataclass
class ProjectionStats:
    """Summary statistics of a projected lifetime."""

    total_life_expectancy_years: float
    total_days: int
    total_weeks: int
    days_lived: int
    weeks_lived: int
    days_remaining: int
    weeks_remaining: int
    percentage_lived: float     # clamped to [0, 100]
    current_age: int
    country_code: str = ""
    last_updated: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["percentage_lived"] = round(self.percentage_lived, 2)
        if self.last_updated is not None:
            data["last_updated"] = self.last_updated.isoformat()
        return data

"""Tests for lifetime value types and date helpers."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from tillhere.domains.lifetime.domain_logic.models import (
    Country,
    CountryLifeExpectancyEntry,
    ProjectionStats,
    UserProjectionState,
    WeekSpan,
    as_datetime,
    start_of_week,
    whole_days,
)

NOW = datetime(2026, 10, 14, 12, 0, 0)


def _entry(**overrides) -> CountryLifeExpectancyEntry:
    values = dict(
        country_code="US",
        years_at_birth=78.5,
        measurement_year=2022,
        fetched_at=datetime(2026, 10, 1, 8, 0),
        name="United States",
        iso3="USA",
    )
    values.update(overrides)
    return CountryLifeExpectancyEntry(**values)


def _state(**overrides) -> UserProjectionState:
    values = dict(
        date_of_birth=datetime(1990, 5, 15),
        country_code="US",
        life_expectancy_years=78.5,
        death_date=datetime(2068, 11, 13),
        last_calculated_at=NOW,
    )
    values.update(overrides)
    return UserProjectionState(**values)


class TestDateHelpers:
    def test_as_datetime_from_date(self):
        assert as_datetime(date(2024, 1, 3)) == datetime(2024, 1, 3, 0, 0)

    def test_as_datetime_passes_datetimes(self):
        moment = datetime(2024, 1, 3, 15, 45)
        assert as_datetime(moment) is moment

    def test_start_of_week_midweek(self):
        assert start_of_week(datetime(2024, 1, 3, 18, 0)) == datetime(2024, 1, 1)

    def test_start_of_week_on_monday(self):
        assert start_of_week(datetime(2024, 1, 1, 0, 0)) == datetime(2024, 1, 1)

    def test_start_of_week_on_sunday(self):
        assert start_of_week(datetime(2024, 1, 7, 23, 59)) == datetime(2024, 1, 1)

    def test_whole_days_truncates(self):
        assert whole_days(timedelta(days=3, hours=23)) == 3
        assert whole_days(timedelta(days=-3, hours=-23)) == -3


class TestCountry:
    def test_valid_code(self):
        assert Country("US", "United States").is_valid_code
        assert not Country("us", "United States").is_valid_code
        assert not Country("USA", "United States").is_valid_code


class TestCountryLifeExpectancyEntry:
    def test_valid_entry(self):
        assert _entry().is_valid(today=date(2026, 10, 14))

    def test_years_out_of_range(self):
        assert not _entry(years_at_birth=0).is_valid()
        assert not _entry(years_at_birth=150.5).is_valid()
        assert _entry(years_at_birth=150.0).is_valid(today=date(2026, 1, 1))

    def test_measurement_year_out_of_range(self):
        assert not _entry(measurement_year=1959).is_valid()
        assert not _entry(measurement_year=2027).is_valid(today=date(2026, 10, 14))

    def test_code_length(self):
        assert not _entry(country_code="USA").is_valid()

    def test_freshness_boundary(self):
        fetched = datetime(2026, 9, 1, 12, 0)
        entry = _entry(fetched_at=fetched)
        assert entry.is_fresh(fetched + timedelta(days=29, hours=23))
        assert not entry.is_fresh(fetched + timedelta(days=30))

    def test_totals_at_birth(self):
        entry = _entry()
        assert entry.total_days_at_birth == 28672
        assert entry.total_weeks_at_birth == 4096     # 78.5 × 52.18 = 4096.13

    def test_to_country(self):
        country = _entry().to_country()
        assert country == Country(code="US", name="United States", alpha3="USA")

    def test_to_dict(self):
        data = _entry().to_dict()
        assert data["life_expectancy_years"] == 78.5
        assert data["fetched_at"] == "2026-10-01T08:00:00"


class TestUserProjectionState:
    def test_empty_state(self):
        state = UserProjectionState()
        assert state.is_valid(NOW)
        assert not state.has_basic_setup
        assert not state.is_calculation_fresh(NOW)
        assert state.current_age_in_years(NOW) is None

    def test_future_birth_is_invalid(self):
        assert not _state(date_of_birth=NOW + timedelta(days=1)).is_valid(NOW)

    def test_death_before_birth_is_invalid(self):
        assert not _state(death_date=datetime(1980, 1, 1)).is_valid(NOW)

    def test_years_out_of_range_is_invalid(self):
        assert not _state(life_expectancy_years=0.0).is_valid(NOW)
        assert not _state(life_expectancy_years=151.0).is_valid(NOW)

    def test_basic_setup(self):
        assert _state().has_basic_setup
        assert not _state(country_code=None).has_basic_setup

    def test_calculation_freshness(self):
        assert _state(last_calculated_at=NOW - timedelta(days=29)).is_calculation_fresh(NOW)
        assert not _state(last_calculated_at=NOW - timedelta(days=30)).is_calculation_fresh(NOW)

    def test_custom_freshness_window(self):
        state = _state(last_calculated_at=NOW - timedelta(days=5))
        assert not state.is_calculation_fresh(NOW, freshness_days=5)

    def test_age_before_and_after_birthday(self):
        state = _state()
        assert state.current_age_in_years(datetime(2026, 5, 14)) == 35
        assert state.current_age_in_years(datetime(2026, 5, 15)) == 36

    def test_weeks_lived_and_remaining(self):
        state = _state()
        assert state.weeks_lived(NOW) == 1900
        assert state.weeks_remaining(NOW) == 2195
        assert state.weeks_remaining(datetime(2070, 1, 1)) == 0

    def test_with_updates_returns_copy(self):
        state = _state()
        updated = state.with_updates(country_code="JP")
        assert updated.country_code == "JP"
        assert state.country_code == "US"

    def test_to_dict(self):
        data = _state().to_dict()
        assert data["date_of_birth"] == "1990-05-15T00:00:00"
        assert data["country_code"] == "US"
        assert UserProjectionState().to_dict()["death_date"] is None


class TestWeekSpan:
    def _week(self) -> WeekSpan:
        start = datetime(2026, 10, 12)
        return WeekSpan(
            start_date=start,
            end_date=start + timedelta(days=6, hours=23, minutes=59, seconds=59, milliseconds=999),
            week_index=1900,
            is_past=False,
            is_current=True,
        )

    def test_contains_is_inclusive(self):
        week = self._week()
        assert week.contains(week.start_date)
        assert week.contains(week.end_date)
        assert not week.contains(week.start_date - timedelta(microseconds=1))
        assert not week.contains(datetime(2026, 10, 19))

    def test_duration(self):
        assert self._week().duration == timedelta(days=7) - timedelta(milliseconds=1)

    def test_formatted_range(self):
        assert self._week().formatted_range == "12/10/2026 - 18/10/2026"

    def test_to_dict(self):
        data = self._week().to_dict()
        assert data == {
            "week_index": 1900,
            "start_date": "2026-10-12",
            "end_date": "2026-10-18",
            "is_past": False,
            "is_current": True,
        }


class TestProjectionStats:
    def test_to_dict_rounds_percentage(self):
        stats = ProjectionStats(
            total_life_expectancy_years=78.5,
            total_days=28672,
            total_weeks=4096,
            days_lived=13301,
            weeks_lived=1900,
            days_remaining=15370,
            weeks_remaining=2195,
            percentage_lived=46.390234375,
            current_age=36,
            country_code="US",
            last_updated=NOW,
        )
        data = stats.to_dict()
        assert data["percentage_lived"] == 46.39
        assert data["last_updated"] == "2026-10-14T12:00:00"

"""Calendar-week timeline from the current week to the projected end date.

Week 0 is the Monday-to-Sunday week containing the date of birth; week ``i``
is the calendar week containing ``date_of_birth + 7·i`` days. A single
``now`` value is threaded through every span so that past/current flags are
consistent even when a timeline is built across midnight.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, timedelta

from tillhere.domains.lifetime.domain_logic.models import (
    WEEK_END_OFFSET,
    WeekSpan,
    as_datetime,
    start_of_week,
    whole_days,
)


def week_index_at(date_of_birth: date | datetime, moment: date | datetime) -> int:
    """Index of the birth-anchored week that ``moment`` falls in."""
    return whole_days(as_datetime(moment) - as_datetime(date_of_birth)) // 7


def week_for_index(
    week_index: int,
    date_of_birth: date | datetime,
    now: datetime,
) -> WeekSpan:
    """Build the :class:`WeekSpan` for ``week_index`` relative to ``now``.

    ``is_current`` is true when the span starts on the Monday of ``now``'s
    week, including at exactly Monday 00:00 and after Sunday 23:59:59.999.
    ``is_past`` is true when the span ended before that Monday.
    """
    nominal = as_datetime(date_of_birth) + timedelta(days=7 * week_index)
    start = start_of_week(nominal)
    end = start + WEEK_END_OFFSET
    current_week_start = start_of_week(now)

    return WeekSpan(
        start_date=start,
        end_date=end,
        week_index=week_index,
        is_past=end < current_week_start,
        is_current=start == current_week_start,
    )


class WeekTimeline:
    """Lazy, finite, restartable sequence of non-past weeks up to the end date.

    Each iteration recomputes spans from the stored inputs, so the same
    timeline can be iterated any number of times with identical results.

    Usage::

        timeline = WeekTimeline(date_of_birth, death_date, start_from=now)
        for week in timeline:
            ...
    """

    def __init__(
        self,
        date_of_birth: date | datetime,
        death_date: date | datetime,
        start_from: datetime | None = None,
    ) -> None:
        self.date_of_birth = as_datetime(date_of_birth)
        self.death_date = as_datetime(death_date)
        self.start_from = start_from or datetime.now()

    @property
    def current_week_index(self) -> int:
        return week_index_at(self.date_of_birth, self.start_from)

    @property
    def final_week_index(self) -> int:
        return week_index_at(self.date_of_birth, self.death_date)

    def __iter__(self) -> Iterator[WeekSpan]:
        for index in range(self.current_week_index, self.final_week_index + 1):
            week = week_for_index(index, self.date_of_birth, self.start_from)
            if not week.is_past:
                yield week

    def __repr__(self) -> str:
        return (
            f"WeekTimeline(weeks {self.current_week_index}..{self.final_week_index}, "
            f"start_from={self.start_from.isoformat()})"
        )


def generate_weeks(
    date_of_birth: date | datetime,
    death_date: date | datetime,
    start_from: datetime | None = None,
) -> WeekTimeline:
    """Weeks from the one containing ``start_from`` through the one containing ``death_date``.

    Spans that have already ended are skipped. When the end date lies before
    the current week the timeline is empty.
    """
    return WeekTimeline(date_of_birth, death_date, start_from=start_from)

"""Month value type and Gregorian month arithmetic.

Weeks start on Sunday (day-of-week index 0), matching the rendered grid.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

DAYS_PER_WEEK = 7

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")

DateLike = Union[date, datetime, "Month"]


def day_of_week(value: date) -> int:
    """Return the Sunday-based day-of-week index (0=Sunday .. 6=Saturday)."""
    return (value.weekday() + 1) % DAYS_PER_WEEK


@dataclass(frozen=True, order=True)
class Month:
    """A calendar month identified by (year, month).

    Ordering follows chronological order, so sorting a list of months and
    comparing two months with ``<`` behave as expected.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"year must be in 1..9999, got {self.year}")

    @classmethod
    def from_date(cls, value: DateLike) -> Month:
        if isinstance(value, Month):
            return value
        return cls(value.year, value.month)

    @classmethod
    def from_key(cls, key: str) -> Month:
        """Parse a canonical ``YYYY-MM`` key."""
        match = _MONTH_KEY_RE.match(key)
        if not match:
            raise ValueError(f"Invalid month key: {key!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def today(cls, today: Optional[date] = None) -> Month:
        return cls.from_date(today or date.today())

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def ordinal(self) -> int:
        """Months elapsed since year 0, used for distance arithmetic."""
        return self.year * 12 + (self.month - 1)

    def add_months(self, count: int) -> Month:
        total = self.ordinal + count
        return Month(total // 12, total % 12 + 1)

    def next(self) -> Month:
        return self.add_months(1)

    def prev(self) -> Month:
        return self.add_months(-1)

    def distance_to(self, other: Month) -> int:
        """Signed month distance from this month to ``other``."""
        return other.ordinal - self.ordinal

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    @property
    def first_weekday(self) -> int:
        return day_of_week(self.start)

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    def is_same_month(self, other: DateLike) -> bool:
        return self.year == other.year and self.month == other.month

    @property
    def week_count(self) -> int:
        """Number of Sunday-first rows needed to lay out this month."""
        cells = self.first_weekday + self.days_in_month
        return -(-cells // DAYS_PER_WEEK)

    def weeks(self) -> list[list[Optional[date]]]:
        """Build the week grid; cells belonging to other months are ``None``."""
        grid: list[list[Optional[date]]] = []
        leading = self.first_weekday
        day = 1
        for _ in range(self.week_count):
            row: list[Optional[date]] = []
            for column in range(DAYS_PER_WEEK):
                if (not grid and column < leading) or day > self.days_in_month:
                    row.append(None)
                else:
                    row.append(date(self.year, self.month, day))
                    day += 1
            grid.append(row)
        return grid

    def __str__(self) -> str:
        return self.key


def month_keys(months: list[Month]) -> list[str]:
    return [month.key for month in months]


def month_span(center: Month, radius: int) -> list[Month]:
    """Return ``center - radius .. center + radius`` in ascending order."""
    return [center.add_months(offset) for offset in range(-radius, radius + 1)]

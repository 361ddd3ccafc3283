"""Tests for Month arithmetic and week grids."""

from datetime import date, datetime

import pytest

from infinitecal.calendar.month import Month, day_of_week, month_keys, month_span

pytestmark = pytest.mark.unit


def test_day_of_week_is_sunday_based():
    """Sunday maps to 0 and Saturday to 6."""
    assert day_of_week(date(2024, 3, 3)) == 0
    assert day_of_week(date(2024, 3, 9)) == 6


def test_month_key_round_trip():
    """Keys are zero-padded YYYY-MM strings."""
    month = Month(2024, 5)
    assert month.key == "2024-05"
    assert str(month) == "2024-05"
    assert Month.from_key("2024-05") == month


@pytest.mark.parametrize("bad_key", ["2024-5", "24-05", "2024/05", "2024-13"])
def test_from_key_rejects_malformed_keys(bad_key):
    """Malformed or out-of-range keys raise ValueError."""
    with pytest.raises(ValueError):
        Month.from_key(bad_key)


def test_from_date_accepts_dates_datetimes_and_months():
    assert Month.from_date(date(2024, 2, 29)) == Month(2024, 2)
    assert Month.from_date(datetime(2024, 2, 29, 23, 59)) == Month(2024, 2)
    assert Month.from_date(Month(2024, 2)) == Month(2024, 2)


def test_add_months_crosses_year_boundaries():
    assert Month(2024, 1).prev() == Month(2023, 12)
    assert Month(2023, 12).next() == Month(2024, 1)
    assert Month(2024, 3).add_months(-15) == Month(2022, 12)
    assert Month(2024, 3).add_months(22) == Month(2026, 1)


def test_distance_is_signed():
    assert Month(2024, 1).distance_to(Month(2024, 7)) == 6
    assert Month(2024, 7).distance_to(Month(2024, 1)) == -6
    assert Month(2023, 11).distance_to(Month(2024, 2)) == 3


def test_months_sort_chronologically():
    months = [Month(2024, 2), Month(2023, 12), Month(2024, 1)]
    assert sorted(months) == [Month(2023, 12), Month(2024, 1), Month(2024, 2)]


def test_month_bounds_and_leap_years():
    feb = Month(2024, 2)
    assert feb.start == date(2024, 2, 1)
    assert feb.end == date(2024, 2, 29)
    assert Month(2023, 2).days_in_month == 28


def test_week_count():
    """Week rows depend on the leading weekday and month length."""
    # 2024-02-01 is a Thursday: 4 leading blanks + 29 days = 33 cells
    assert Month(2024, 2).week_count == 5
    # 2015-02-01 is a Sunday with 28 days: exactly four rows
    assert Month(2015, 2).week_count == 4
    # 2024-06-01 is a Saturday: 6 + 30 = 36 cells
    assert Month(2024, 6).week_count == 6


def test_weeks_grid_pads_with_none():
    grid = Month(2024, 2).weeks()
    assert len(grid) == 5
    assert all(len(row) == 7 for row in grid)
    assert grid[0][:4] == [None, None, None, None]
    assert grid[0][4] == date(2024, 2, 1)
    assert grid[-1][4] == date(2024, 2, 29)
    assert grid[-1][5:] == [None, None]
    days = [cell for row in grid for cell in row if cell is not None]
    assert len(days) == 29


def test_contains_and_is_same_month():
    month = Month(2024, 5)
    assert month.contains(date(2024, 5, 31))
    assert not month.contains(date(2024, 6, 1))
    assert month.is_same_month(datetime(2024, 5, 2, 8, 0))


def test_month_span_and_keys():
    span = month_span(Month(2024, 1), 2)
    assert month_keys(span) == ["2023-11", "2023-12", "2024-01", "2024-02", "2024-03"]
    assert month_span(Month(2024, 1), 0) == [Month(2024, 1)]


def test_invalid_month_rejected():
    with pytest.raises(ValueError):
        Month(2024, 0)


def test_today_uses_supplied_date():
    assert Month.today(date(2030, 8, 9)) == Month(2030, 8)

"""Derived per-month views computed from the window and the event cache.

Everything here is a pure function of its inputs; callers recompute on
demand instead of holding memoized copies.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from ..events.event_cache import EventCache
from ..models import EventRecord, Holiday
from .month import Month

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthData:
    """Render-ready view of one month in the window."""

    month: Month
    weeks: list[list[Optional[dt.date]]]
    events_by_date: dict[str, list[EventRecord]] = field(default_factory=dict)
    holidays_by_date: dict[str, list[Holiday]] = field(default_factory=dict)

    @property
    def week_count(self) -> int:
        return len(self.weeks)

    def events_on(self, day: dt.date) -> list[EventRecord]:
        return self.events_by_date.get(day.isoformat(), [])

    def holidays_on(self, day: dt.date) -> list[Holiday]:
        return self.holidays_by_date.get(day.isoformat(), [])


def merge_events(
    static_events: Iterable[EventRecord], cache: Optional[EventCache] = None
) -> list[EventRecord]:
    """Static events followed by every cached month's events, all with ids."""
    merged = list(static_events)
    if cache is not None:
        for _, events in cache.items():
            merged.extend(events)
    return [event.ensure_id(index) for index, event in enumerate(merged)]


def bucket_by_date(events: Iterable[EventRecord], month: Month) -> dict[str, list[EventRecord]]:
    buckets: dict[str, list[EventRecord]] = {}
    for event in events:
        day = event.event_date
        if month.contains(day):
            buckets.setdefault(day.isoformat(), []).append(event)
    return buckets


def bucket_holidays(holidays: Iterable[Holiday], month: Month) -> dict[str, list[Holiday]]:
    buckets: dict[str, list[Holiday]] = {}
    for holiday in holidays:
        if month.contains(holiday.date):
            buckets.setdefault(holiday.date.isoformat(), []).append(holiday.ensure_id())
    return buckets


def compose_months(
    months: Iterable[Month],
    cache: Optional[EventCache] = None,
    static_events: Iterable[EventRecord] = (),
    holidays: Iterable[Holiday] = (),
) -> list[MonthData]:
    """Build the week grid and per-date buckets for every window month.

    Args:
        months: Window months in display order
        cache: Event cache holding loaded months
        static_events: Events supplied by the host up front
        holidays: Holiday markers supplied by the host

    Returns:
        One MonthData per month, in the given order
    """
    events = merge_events(static_events, cache)
    holiday_list = list(holidays)
    result = [
        MonthData(
            month=month,
            weeks=month.weeks(),
            events_by_date=bucket_by_date(events, month),
            holidays_by_date=bucket_holidays(holiday_list, month),
        )
        for month in months
    ]
    logger.debug("Composed %d months from %d events", len(result), len(events))
    return result

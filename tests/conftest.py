from collections.abc import Callable
from datetime import date
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

from infinitecal.events.event_cache import EventCache


class ManualHandle:
    def __init__(self, due: float, callback: Callable[[], Any]):
        self.due = due
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Scheduler whose time only moves when a test calls advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: dict[str, ManualHandle] = {}

    def schedule(
        self, delay: float, callback: Callable[[], Any], purpose: str = "default"
    ) -> ManualHandle:
        self.cancel(purpose)
        handle = ManualHandle(self.now + delay, callback)
        self._handles[purpose] = handle
        return handle

    def cancel(self, purpose: str = "default") -> bool:
        handle = self._handles.pop(purpose, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for purpose in list(self._handles):
            self.cancel(purpose)

    def pending(self, purpose: str = "default") -> bool:
        return purpose in self._handles

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for purpose, handle in sorted(self._handles.items(), key=lambda item: item[1].due):
            if handle.due <= self.now and not handle.cancelled():
                del self._handles[purpose]
                handle.callback()


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Async fetcher returning canned items per month and recording calls.

    ``failures`` maps a month key to the number of leading attempts that
    raise before the fetch succeeds.
    """

    def __init__(
        self,
        items_by_month: Optional[dict[str, list[Any]]] = None,
        failures: Optional[dict[str, int]] = None,
    ):
        self.items_by_month = items_by_month or {}
        self.failures = dict(failures or {})
        self.calls: list[tuple[date, date]] = []

    def calls_for(self, month_key: str) -> int:
        return sum(1 for start, _ in self.calls if start.strftime("%Y-%m") == month_key)

    async def __call__(self, range_start: date, range_end: date) -> list[Any]:
        self.calls.append((range_start, range_end))
        key = range_start.strftime("%Y-%m")
        if self.failures.get(key, 0) > 0:
            self.failures[key] -= 1
            raise ConnectionError(f"backend unavailable for {key}")
        return list(self.items_by_month.get(key, []))


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    """Deterministic debounce scheduler driven by advance()."""
    return ManualScheduler()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Monotonic clock stand-in for cool-down checks."""
    return FakeClock()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """Fetcher with one event in 2024-05 and nothing elsewhere."""
    return FakeFetcher(
        {"2024-05": [{"id": "may-1", "title": "Planning", "date": "2024-05-14"}]}
    )


@pytest.fixture
def fake_sleep() -> AsyncMock:
    """Retry sleep that records requested delays without waiting."""
    return AsyncMock(return_value=None)


@pytest.fixture
def event_cache() -> EventCache:
    return EventCache(capacity=50)


@pytest.fixture
def fixed_today() -> date:
    """Deterministic 'today' shared by window and transformer tests."""
    return date(2024, 2, 15)


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    """Factory for fetchers with custom items and failure counts."""
    return FakeFetcher

"""Tests for the FIFO event cache."""

from datetime import date

import pytest

from infinitecal.events.event_cache import DEFAULT_CACHE_CAPACITY, EventCache
from infinitecal.models import EventRecord

pytestmark = pytest.mark.unit


def make_events(key: str, count: int = 1) -> list[EventRecord]:
    year, month = (int(part) for part in key.split("-"))
    return [
        EventRecord(id=f"{key}-{i}", title=f"Event {i}", date=date(year, month, 1))
        for i in range(count)
    ]


def test_default_capacity_is_fifty():
    assert EventCache().capacity == DEFAULT_CACHE_CAPACITY == 50


def test_get_and_stats():
    cache = EventCache()
    assert cache.get("2024-01") is None
    assert cache.stats["misses"] == 1

    cache.set("2024-01", make_events("2024-01", 2))
    events = cache.get("2024-01")
    assert events is not None and len(events) == 2
    assert cache.stats["hits"] == 1
    assert "2024-01" in cache


def test_evicts_oldest_inserted_key():
    """Exceeding capacity drops the first-inserted key, even if recently read."""
    cache = EventCache(capacity=2)
    cache.set("2024-01", make_events("2024-01"))
    cache.set("2024-02", make_events("2024-02"))
    cache.get("2024-01")

    evicted = cache.set("2024-03", make_events("2024-03"))

    assert evicted == "2024-01"
    assert cache.keys() == ["2024-02", "2024-03"]
    assert cache.stats["evictions"] == 1


def test_size_never_exceeds_capacity():
    cache = EventCache(capacity=50)
    for offset in range(60):
        year, month = 2020 + offset // 12, offset % 12 + 1
        cache.set(f"{year:04d}-{month:02d}", [])
        assert len(cache) <= 50
    assert len(cache) == 50
    assert cache.keys()[0] == "2020-11"


def test_reset_existing_key_keeps_position():
    cache = EventCache(capacity=2)
    cache.set("2024-01", [])
    cache.set("2024-02", [])
    cache.set("2024-01", make_events("2024-01", 3))

    assert cache.keys() == ["2024-01", "2024-02"]
    assert len(cache.get("2024-01")) == 3


def test_get_info():
    cache = EventCache(capacity=3)
    cache.set("2024-01", [])
    cache.set("2024-02", [])

    info = cache.get_info()
    assert info.cache_size == 2
    assert info.capacity == 3
    assert info.cached_months == ["2024-01", "2024-02"]
    assert info.evictions == 0


def test_invalid_capacity():
    with pytest.raises(ValueError):
        EventCache(capacity=0)


def test_clear():
    cache = EventCache()
    cache.set("2024-01", [])
    cache.clear()
    assert len(cache) == 0

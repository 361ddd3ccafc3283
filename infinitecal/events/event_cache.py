"""Bounded per-month event cache with insertion-order eviction.

Entries map a ``YYYY-MM`` month key to the resolved event records of that
month. Once the cache holds more keys than its capacity the oldest-inserted
key is evicted. Eviction is strict FIFO, not LRU: reading an entry does not
refresh its position, so a month fetched long ago can be evicted while it is
still on screen.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models import CacheInfo, EventRecord

logger = logging.getLogger(__name__)

DEFAULT_CACHE_CAPACITY = 50


class EventCache:
    """FIFO cache of month key -> list of EventRecord.

    Example:
        cache = EventCache(capacity=2)
        cache.set("2024-01", [...])
        cache.set("2024-02", [...])
        cache.set("2024-03", [...])  # evicts "2024-01"
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY):
        """Initialize event cache.

        Args:
            capacity: Maximum number of distinct month keys held at once
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._entries: dict[str, list[EventRecord]] = {}
        self.stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
        }

    def get(self, key: str) -> Optional[list[EventRecord]]:
        """Get cached events for a month key, or None when absent."""
        events = self._entries.get(key)
        if events is None:
            self.stats["misses"] += 1
            logger.debug("Cache miss for month %s", key)
            return None
        self.stats["hits"] += 1
        logger.debug("Cache hit for month %s (%d events)", key, len(events))
        return events

    def set(self, key: str, events: list[EventRecord]) -> Optional[str]:
        """Store events for a month key.

        Re-setting an existing key replaces its events but keeps its original
        insertion position.

        Args:
            key: Month key
            events: Resolved events for that month

        Returns:
            The evicted key, if storing this entry pushed one out
        """
        self._entries[key] = list(events)
        logger.debug("Cached %d events for month %s", len(events), key)

        if len(self._entries) <= self.capacity:
            return None

        # Dicts preserve insertion order, so the first key is the oldest
        oldest_key = next(iter(self._entries))
        del self._entries[oldest_key]
        self.stats["evictions"] += 1
        logger.debug(
            "Evicted oldest cached month %s (cache size: %d/%d)",
            oldest_key,
            len(self._entries),
            self.capacity,
        )
        return oldest_key

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def items(self) -> list[tuple[str, list[EventRecord]]]:
        return list(self._entries.items())

    def clear(self) -> None:
        self._entries.clear()

    def get_info(self) -> CacheInfo:
        return CacheInfo(
            cache_size=len(self._entries),
            capacity=self.capacity,
            cached_months=list(self._entries),
            evictions=self.stats["evictions"],
        )

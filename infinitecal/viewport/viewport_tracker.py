"""Active-month election from per-month visibility samples.

The render surface reports an intersection ratio for every rendered month
block. Samples are recorded immediately, but the election itself is
debounced so fast scrolling does not make the active month flicker.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

from ..calendar.month import Month
from ..core.async_utils import Scheduler, TaskScheduler

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.15
DEFAULT_ELECTION_THRESHOLD = 0.3
DEFAULT_WEEK_BONUS = 0.1
MIN_VISIBLE_WEEKS = 1

ELECTION_PURPOSE = "active-month-election"


@dataclass(frozen=True)
class ViewportSample:
    """Visibility of one rendered month block."""

    month: Month
    ratio: float
    visible_weeks: int
    total_weeks: int

    @classmethod
    def from_ratio(
        cls, month: Month, ratio: float, total_weeks: Optional[int] = None
    ) -> ViewportSample:
        ratio = min(max(ratio, 0.0), 1.0)
        weeks = total_weeks if total_weeks is not None else month.week_count
        return cls(month, ratio, math.floor(ratio * weeks), weeks)

    def score(self, week_bonus: float = DEFAULT_WEEK_BONUS) -> float:
        if self.total_weeks <= 0:
            return 0.0
        return self.visible_weeks / self.total_weeks + week_bonus * self.visible_weeks

    @property
    def is_eligible(self) -> bool:
        return self.visible_weeks >= MIN_VISIBLE_WEEKS


def elect_candidate(
    samples: list[ViewportSample], week_bonus: float = DEFAULT_WEEK_BONUS
) -> Optional[tuple[Month, float]]:
    """Return the eligible month with the highest score, if any.

    Ties keep the earliest sample in iteration order.
    """
    best: Optional[tuple[Month, float]] = None
    for sample in samples:
        if not sample.is_eligible:
            continue
        score = sample.score(week_bonus)
        if best is None or score > best[1]:
            best = (sample.month, score)
    return best


class ViewportTracker:
    """Debounced active-month election with hysteresis.

    Example:
        tracker = ViewportTracker(get_active=lambda: window.active,
                                  on_active_change=window.set_active)
        tracker.observe(0, Month(2024, 1), 0.2)
        tracker.observe(1, Month(2024, 2), 0.9)
        # 150 ms later, 2024-02 becomes active
    """

    def __init__(
        self,
        get_active: Callable[[], Month],
        on_active_change: Optional[Callable[[Month], Any]] = None,
        on_visibility_change: Optional[Callable[[bool], Any]] = None,
        scheduler: Optional[Scheduler] = None,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        election_threshold: float = DEFAULT_ELECTION_THRESHOLD,
        week_bonus: float = DEFAULT_WEEK_BONUS,
    ):
        """Initialize tracker.

        Args:
            get_active: Returns the currently active month
            on_active_change: Called with the newly elected month
            on_visibility_change: Called with whether the active month is still visible
            scheduler: Debounce scheduler; asyncio-backed when None
            debounce_seconds: Delay between the last sample and the election
            election_threshold: Minimum score required to switch months
            week_bonus: Per-visible-week bonus added to the visibility ratio
        """
        self._get_active = get_active
        self._on_active_change = on_active_change
        self._on_visibility_change = on_visibility_change
        self._scheduler: Scheduler = scheduler or TaskScheduler()
        self.debounce_seconds = debounce_seconds
        self.election_threshold = election_threshold
        self.week_bonus = week_bonus

        self._samples: dict[int, ViewportSample] = {}
        self.is_active_month_visible = True
        self.election_count = 0

    @property
    def samples(self) -> dict[int, ViewportSample]:
        return dict(self._samples)

    def observe(
        self, index: int, month: Month, ratio: float, total_weeks: Optional[int] = None
    ) -> ViewportSample:
        """Record a visibility sample and (re)schedule the debounced election.

        Args:
            index: Position of the month block in the rendered window
            month: Month rendered at that position
            ratio: Intersection ratio in 0..1
            total_weeks: Week rows of that month; derived from the month when None

        Returns:
            The recorded sample
        """
        sample = ViewportSample.from_ratio(month, ratio, total_weeks)
        self._samples[index] = sample
        self._scheduler.schedule(self.debounce_seconds, self.elect, purpose=ELECTION_PURPOSE)
        return sample

    def elect(self) -> Optional[Month]:
        """Run the election over the current samples.

        Returns:
            The newly elected month, or None when the active month is kept
        """
        self.election_count += 1
        active = self._get_active()
        samples = list(self._samples.values())
        elected: Optional[Month] = None

        candidate = elect_candidate(samples, self.week_bonus)
        if candidate is not None:
            month, score = candidate
            if month != active and score > self.election_threshold:
                logger.debug("Active month %s -> %s (score %.2f)", active, month, score)
                elected = month
                if self._on_active_change is not None:
                    self._on_active_change(month)

        active_sample = next((s for s in samples if s.month == active), None)
        visible = active_sample.is_eligible if active_sample is not None else False
        if visible != self.is_active_month_visible:
            logger.debug("Active month %s visible: %s", active, visible)
        self.is_active_month_visible = visible
        if self._on_visibility_change is not None:
            self._on_visibility_change(visible)

        return elected

    def reset(self) -> None:
        """Drop samples and any pending election (the rendered blocks changed)."""
        self._scheduler.cancel(ELECTION_PURPOSE)
        self._samples.clear()

    def close(self) -> None:
        self.reset()

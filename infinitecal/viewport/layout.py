"""Window-size bookkeeping and initial scroll positioning."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..core.async_utils import Scheduler, TaskScheduler

logger = logging.getLogger(__name__)

DAY_CELL_HEIGHT = 60
HEADER_HEIGHT = 100
MIN_CALENDAR_HEIGHT = 400
RESIZE_DEBOUNCE_SECONDS = 0.3
# Height changes smaller than this are not reported
MIN_HEIGHT_CHANGE = 5

RESIZE_PURPOSE = "resize"

HeightSetting = Union[int, float, str, None]


@dataclass(frozen=True)
class AutoHeightOptions:
    """Bounds for automatic height calculation; max defaults to the viewport."""

    top_offset: float = 0
    bottom_offset: float = 20
    min_height: float = MIN_CALENDAR_HEIGHT
    max_height: Optional[float] = None


def compute_auto_height(
    viewport_height: float, container_top: float, options: AutoHeightOptions
) -> float:
    """Space left below the container's top edge, clamped to the option bounds."""
    available = viewport_height - (container_top + options.top_offset) - options.bottom_offset
    max_height = options.max_height if options.max_height is not None else viewport_height
    return min(max(options.min_height, available), max_height)


def initial_scroll_position(
    week_counts: Sequence[int],
    available_height: float,
    day_cell_height: float = DAY_CELL_HEIGHT,
    header_height: float = HEADER_HEIGHT,
) -> Optional[float]:
    """Scroll offset that puts the middle month's midpoint mid-screen.

    Args:
        week_counts: Week rows of each rendered month, in window order
        available_height: Height of the calendar surface including its header
        day_cell_height: Height of one week row
        header_height: Height of the header above the scrolling area

    Returns:
        The scroll offset (never negative), or None with fewer than 3 months
    """
    if len(week_counts) < 3 or available_height <= 0:
        return None
    center_index = len(week_counts) // 2
    height_before = sum(week_counts[:center_index]) * day_cell_height
    center_height = week_counts[center_index] * day_cell_height
    center_middle = height_before + center_height / 2
    area_middle = (available_height - header_height) / 2
    position = max(0.0, center_middle - area_middle)
    logger.debug(
        "Initial scroll position %.0f (center index %d, month middle %.0f, area middle %.0f)",
        position,
        center_index,
        center_middle,
        area_middle,
    )
    return position


class HeightTracker:
    """Tracks the available height of the calendar surface.

    A numeric height setting is used as-is. ``"auto"`` (or explicit auto
    options) derives the height from the viewport, reporting only changes of
    at least ``MIN_HEIGHT_CHANGE`` pixels; resize events are debounced.
    """

    def __init__(
        self,
        height: HeightSetting = None,
        auto_options: Optional[AutoHeightOptions] = None,
        on_change: Optional[Callable[[float], Any]] = None,
        scheduler: Optional[Scheduler] = None,
        resize_debounce_seconds: float = RESIZE_DEBOUNCE_SECONDS,
    ):
        self.height_setting = height
        self.auto_options = auto_options
        if self.is_auto and auto_options is None:
            self.auto_options = AutoHeightOptions()
        self._on_change = on_change
        self._scheduler: Scheduler = scheduler or TaskScheduler()
        self.resize_debounce_seconds = resize_debounce_seconds
        self.available_height: Optional[float] = (
            float(height) if isinstance(height, (int, float)) else None
        )

    @property
    def is_auto(self) -> bool:
        if isinstance(self.height_setting, (int, float)):
            return False
        return self.height_setting == "auto" or self.auto_options is not None

    def measure(self, viewport_height: float, container_top: float) -> Optional[float]:
        """Recompute the height now.

        Returns:
            The new height when it changed meaningfully, else None
        """
        options = self.auto_options
        if not self.is_auto or options is None:
            return None
        height = compute_auto_height(viewport_height, container_top, options)
        previous = self.available_height or 0.0
        if abs(previous - height) < MIN_HEIGHT_CHANGE:
            return None
        logger.debug("Available height %.0f -> %.0f", previous, height)
        self.available_height = height
        if self._on_change is not None:
            self._on_change(height)
        return height

    def on_resize(self, viewport_height: float, container_top: float) -> None:
        """Debounced variant of measure() for bursts of resize events."""
        if not self.is_auto:
            return
        self._scheduler.schedule(
            self.resize_debounce_seconds,
            lambda: self.measure(viewport_height, container_top),
            purpose=RESIZE_PURPOSE,
        )

    def set_fixed(self, height: float) -> None:
        self.height_setting = height
        self.available_height = float(height)
        if self._on_change is not None:
            self._on_change(self.available_height)

    def close(self) -> None:
        self._scheduler.cancel(RESIZE_PURPOSE)

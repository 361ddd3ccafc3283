"""Contiguous month window state machine.

The window is the ordered set of months currently materialized for display.
It starts as ``[prev, center, next]``, grows one month at a time at either
edge, and is replaced wholesale on jump-to-date or go-to-today.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Optional

from ..exceptions import WindowInvariantError
from .month import DateLike, Month

logger = logging.getLogger(__name__)

MIN_WINDOW_LENGTH = 3


class MonthWindow:
    """Ordered, contiguous, ascending window of months with one active month.

    Example:
        window = MonthWindow(date(2024, 2, 10))
        window.extend_tail()   # 2024-01 .. 2024-04
        window.extend_head()   # 2023-12 .. 2024-04
        window.jump_to(date(2025, 7, 1))  # 2025-06 .. 2025-08
    """

    def __init__(
        self,
        initial: Optional[DateLike] = None,
        today_provider: Callable[[], date] = date.today,
    ):
        """Initialize the window centered on ``initial`` (or today).

        Args:
            initial: Date or Month to center on; today when None
            today_provider: Callable returning today's date, used by go_to_today
        """
        self._today_provider = today_provider
        self._months: list[Month] = []
        self._active: Month
        self.is_initial_scroll_set = False
        self.initialize(initial if initial is not None else today_provider())

    @property
    def months(self) -> tuple[Month, ...]:
        return tuple(self._months)

    @property
    def active(self) -> Month:
        return self._active

    @property
    def first(self) -> Month:
        return self._months[0]

    @property
    def last(self) -> Month:
        return self._months[-1]

    @property
    def center(self) -> Month:
        return self._months[len(self._months) // 2]

    def __len__(self) -> int:
        return len(self._months)

    def __iter__(self):
        return iter(self._months)

    def __contains__(self, month: object) -> bool:
        return month in self._months

    def index_of(self, month: Month) -> int:
        return self._months.index(month)

    def initialize(self, value: DateLike) -> None:
        center = Month.from_date(value)
        self._months = [center.prev(), center, center.next()]
        self._active = center
        self._check_invariants()
        logger.debug("Window initialized around %s", center)

    def extend_head(self) -> Month:
        """Prepend the month before the first one and return it."""
        added = self.first.prev()
        self._months.insert(0, added)
        self._check_invariants()
        logger.debug("Window extended at head with %s (length=%d)", added, len(self._months))
        return added

    def extend_tail(self) -> Month:
        """Append the month after the last one and return it."""
        added = self.last.next()
        self._months.append(added)
        self._check_invariants()
        logger.debug("Window extended at tail with %s (length=%d)", added, len(self._months))
        return added

    def jump_to(self, value: DateLike) -> None:
        """Replace the window with a triple centered on ``value``."""
        self.initialize(value)
        self.is_initial_scroll_set = False
        logger.info("Window reset to %s", self._active)

    def go_to_today(self) -> None:
        self.jump_to(self._today_provider())

    def set_active(self, month: Month) -> None:
        if month not in self._months:
            raise WindowInvariantError(f"Active month {month} is not in the window")
        self._active = month

    def mark_initial_scroll_set(self) -> None:
        self.is_initial_scroll_set = True

    def _check_invariants(self) -> None:
        months = self._months
        if len(months) < MIN_WINDOW_LENGTH:
            raise WindowInvariantError(
                f"Window must hold at least {MIN_WINDOW_LENGTH} months, got {len(months)}"
            )
        for earlier, later in zip(months, months[1:]):
            if earlier.distance_to(later) != 1:
                raise WindowInvariantError(
                    f"Window is not contiguous and ascending at {earlier} -> {later}"
                )
        if self._active not in months:
            raise WindowInvariantError(f"Active month {self._active} fell out of the window")

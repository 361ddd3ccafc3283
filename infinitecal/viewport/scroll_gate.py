"""Scroll-edge detection that grows the month window."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_SCROLL_THRESHOLD = 100.0
DEFAULT_COOLDOWN_SECONDS = 0.1
# Elastic overscroll may report offsets slightly past either edge
DEFAULT_BOUNCE_TOLERANCE = 10.0


class ScrollEdge(str, Enum):
    HEAD = "head"
    TAIL = "tail"


class ScrollGate:
    """Fires head/tail extension near the container edges, with a cool-down.

    Example:
        gate = ScrollGate(window.extend_head, window.extend_tail)
        gate.on_scroll(scroll_top=40, scroll_height=2000, client_height=600)  # head
        gate.on_scroll(scroll_top=45, scroll_height=2000, client_height=600)  # suppressed
    """

    def __init__(
        self,
        on_head: Callable[[], Any],
        on_tail: Callable[[], Any],
        *,
        threshold: float = DEFAULT_SCROLL_THRESHOLD,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        bounce_tolerance: float = DEFAULT_BOUNCE_TOLERANCE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._on_head = on_head
        self._on_tail = on_tail
        self.threshold = threshold
        self.cooldown_seconds = cooldown_seconds
        self.bounce_tolerance = bounce_tolerance
        self._clock = clock
        self._cooldown_until: Optional[float] = None
        self.stats = {"head": 0, "tail": 0, "suppressed": 0, "ignored": 0}

    @property
    def cooling_down(self) -> bool:
        return self._cooldown_until is not None and self._clock() < self._cooldown_until

    def on_scroll(
        self, scroll_top: float, scroll_height: float, client_height: float
    ) -> Optional[ScrollEdge]:
        """Handle one scroll event.

        Args:
            scroll_top: Current scroll offset of the container
            scroll_height: Total content height
            client_height: Visible height of the container

        Returns:
            The edge that fired, or None
        """
        if self.cooling_down:
            self.stats["suppressed"] += 1
            return None

        bottom = scroll_top + client_height
        if scroll_top < -self.bounce_tolerance or bottom > scroll_height + self.bounce_tolerance:
            self.stats["ignored"] += 1
            return None

        edge: Optional[ScrollEdge] = None
        if 0 <= scroll_top < self.threshold:
            edge = ScrollEdge.HEAD
            self._on_head()
        elif scroll_height - self.threshold < bottom <= scroll_height:
            edge = ScrollEdge.TAIL
            self._on_tail()

        if edge is not None:
            self.stats[edge.value] += 1
            self._cooldown_until = self._clock() + self.cooldown_seconds
            logger.debug("Scroll reached %s edge at offset %.0f", edge.value, scroll_top)
        return edge

    def reset(self) -> None:
        self._cooldown_until = None

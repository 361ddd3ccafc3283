"""CalendarEngine: the data/state engine behind an infinitely scrolling calendar.

The engine wires the month window, loader, cache, viewport tracker, scroll
gate and layout helpers together:

    ScrollGate -> MonthWindow.extend -> EventLoader.begin_range(new months)
               -> EventCache update -> months_data() re-render
               -> ViewportTracker re-elects the active month

Host integration is callback-driven: the render surface reports scroll
geometry (on_scroll), per-block visibility (observe_visibility) and size
(measure_height), and reads back months_data() and snapshot().
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional

from .calendar.composer import MonthData, compose_months
from .calendar.date_selector import DateSelector
from .calendar.month import DateLike, Month
from .calendar.month_window import MonthWindow
from .core.async_utils import Scheduler, SleepFunc, TaskScheduler
from .core.config_manager import EngineConfig
from .events.event_cache import EventCache
from .events.event_loader import EventLoader, Fetcher, MonthLike, RangeLoadedCallback
from .events.event_transform import EventTransformer, TransformFunc
from .models import CacheInfo, EngineSnapshot, EventRecord, Holiday
from .viewport.layout import (
    AutoHeightOptions,
    HeightSetting,
    HeightTracker,
    initial_scroll_position,
)
from .viewport.scroll_gate import ScrollEdge, ScrollGate
from .viewport.viewport_tracker import ViewportTracker

logger = logging.getLogger(__name__)


class CalendarEngine:
    """Owns all state of one hosted calendar view for its lifetime.

    Example:
        async def fetch(start, end):
            return await api.events(start, end)

        engine = CalendarEngine(fetch, initial_date=date(2024, 2, 1))
        await engine.start()
        engine.on_scroll(scroll_top=40, scroll_height=2400, client_height=600)
        await engine.wait_idle()
        months = engine.months_data()
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        *,
        config: Optional[EngineConfig] = None,
        initial_date: Optional[DateLike] = None,
        transform: Optional[TransformFunc] = None,
        mapping: Optional[Mapping[str, str]] = None,
        static_events: Iterable[EventRecord] = (),
        holidays: Iterable[Holiday] = (),
        on_range_loaded: Optional[RangeLoadedCallback] = None,
        on_active_month_change: Optional[Callable[[Month], Any]] = None,
        height: HeightSetting = None,
        auto_height: Optional[AutoHeightOptions] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.monotonic,
        today_provider: Callable[[], dt.date] = dt.date.today,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the engine.

        Args:
            fetcher: Async (range_start, range_end) -> raw items; no dynamic loading when None
            config: Engine tunables; defaults when None
            initial_date: Month to center on at mount; today when None
            transform: Optional raw item -> EventRecord function
            mapping: Optional EventRecord field -> raw key table
            static_events: Host-supplied events merged with loaded ones
            holidays: Host-supplied holiday markers
            on_range_loaded: Called once per successfully loaded month
            on_active_month_change: Called when the election switches months
            height: Fixed pixel height, "auto", or None
            auto_height: Bounds for automatic height
            scheduler: Debounce scheduler shared by tracker and layout
            clock: Monotonic clock for the scroll cool-down
            today_provider: Supplies today's date
            sleep: Awaitable sleep used between fetch retries
        """
        self.config = config or EngineConfig()
        cfg = self.config
        self._on_active_month_change = on_active_month_change
        self._scheduler: Scheduler = scheduler or TaskScheduler()

        self.window = MonthWindow(initial_date, today_provider=today_provider)
        self.cache = EventCache(cfg.cache_capacity)
        self.static_events = list(static_events)
        self.holidays = list(holidays)
        self.date_selector = DateSelector()

        self.loader: Optional[EventLoader] = None
        if fetcher is not None:
            self.loader = EventLoader(
                fetcher,
                self.cache,
                EventTransformer(transform, mapping, today_provider=today_provider),
                max_retries=cfg.max_retries,
                retry_base_delay=cfg.retry_base_delay,
                preload_buffer=cfg.preload_buffer,
                jump_threshold=cfg.jump_threshold,
                jump_range=cfg.jump_range,
                on_range_loaded=on_range_loaded,
                sleep=sleep,
            )

        self.tracker = ViewportTracker(
            get_active=lambda: self.window.active,
            on_active_change=self._apply_active_month,
            scheduler=self._scheduler,
            debounce_seconds=cfg.debounce_seconds,
            election_threshold=cfg.election_threshold,
            week_bonus=cfg.week_bonus,
        )
        self.scroll_gate = ScrollGate(
            self.extend_head,
            self.extend_tail,
            threshold=cfg.scroll_threshold,
            cooldown_seconds=cfg.scroll_cooldown_seconds,
            bounce_tolerance=cfg.bounce_tolerance,
            clock=clock,
        )
        if auto_height is None and height == "auto":
            auto_height = AutoHeightOptions(min_height=cfg.min_calendar_height)
        self.height_tracker = HeightTracker(height, auto_height, scheduler=self._scheduler)

        self._tasks: set[asyncio.Future[Any]] = set()
        self._deferred: list[list[Month]] = []
        self._closed = False

        self._window_changed()

    # ------------------------------------------------------------------
    # Window operations
    # ------------------------------------------------------------------

    def extend_head(self) -> Month:
        added = self.window.extend_head()
        self._window_changed()
        return added

    def extend_tail(self) -> Month:
        added = self.window.extend_tail()
        self._window_changed()
        return added

    def jump_to(self, value: DateLike) -> None:
        self.window.jump_to(value)
        self._window_changed()

    def go_to_today(self) -> None:
        self.window.go_to_today()
        self._window_changed()

    def _apply_active_month(self, month: Month) -> None:
        self.window.set_active(month)
        if self._on_active_month_change is not None:
            self._on_active_month_change(month)

    def _window_changed(self) -> None:
        # Block indices shift with the window
        self.tracker.reset()
        if self.loader is None or self._closed:
            return
        months = self.loader.plan_window_change(list(self.window))
        if not months:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; deferring load of %d months", len(months))
            self._deferred.append(months)
            return
        self._track(self.loader.begin_range(months).pending.values())

    def _track(self, futures: Iterable[asyncio.Future[Any]]) -> None:
        for future in futures:
            self._tasks.add(future)
            future.add_done_callback(self._tasks.discard)

    async def start(self) -> None:
        """Issue loads deferred while no event loop was running, then wait."""
        deferred, self._deferred = self._deferred, []
        if self.loader is not None:
            for months in deferred:
                self._track(self.loader.begin_range(months).pending.values())
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no loads started by the engine are in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def request_range(self, months: Iterable[MonthLike]) -> dict[str, list[EventRecord]]:
        if self.loader is None:
            return {}
        return await self.loader.request_range(months)

    # ------------------------------------------------------------------
    # Render surface input
    # ------------------------------------------------------------------

    def on_scroll(
        self, scroll_top: float, scroll_height: float, client_height: float
    ) -> Optional[ScrollEdge]:
        return self.scroll_gate.on_scroll(scroll_top, scroll_height, client_height)

    def observe_visibility(self, index: int, ratio: float) -> None:
        """Record the intersection ratio of the month block at ``index``."""
        months = self.window.months
        if not 0 <= index < len(months):
            logger.debug("Ignoring visibility sample for stale block index %d", index)
            return
        month = months[index]
        self.tracker.observe(index, month, ratio, month.week_count)

    def measure_height(self, viewport_height: float, container_top: float) -> Optional[float]:
        return self.height_tracker.measure(viewport_height, container_top)

    def on_resize(self, viewport_height: float, container_top: float) -> None:
        self.height_tracker.on_resize(viewport_height, container_top)

    def initial_scroll_offset(self) -> Optional[float]:
        """Scroll offset centering the middle month, once per window reset.

        Returns:
            The offset to apply, or None when already positioned or unmeasured
        """
        available = self.height_tracker.available_height
        if self.window.is_initial_scroll_set or not available:
            return None
        position = initial_scroll_position(
            [month.week_count for month in self.window],
            available,
            day_cell_height=self.config.day_cell_height,
            header_height=self.config.header_height,
        )
        if position is not None:
            self.window.mark_initial_scroll_set()
        return position

    # ------------------------------------------------------------------
    # Date selector
    # ------------------------------------------------------------------

    def open_date_selector(self) -> None:
        self.date_selector.open(self.window.active)

    def close_date_selector(self) -> None:
        self.date_selector.close()

    def confirm_date_selection(self) -> Month:
        selected = self.date_selector.confirm()
        self.jump_to(selected)
        return selected

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def window_months(self) -> list[Month]:
        return list(self.window)

    @property
    def active_month(self) -> Month:
        return self.window.active

    @property
    def loading_months(self) -> list[str]:
        return self.loader.loading_months if self.loader is not None else []

    @property
    def is_loading(self) -> bool:
        return self.loader is not None and self.loader.is_loading

    def cache_info(self) -> CacheInfo:
        return self.cache.get_info()

    def months_data(self) -> list[MonthData]:
        return compose_months(self.window, self.cache, self.static_events, self.holidays)

    def snapshot(self) -> EngineSnapshot:
        loader = self.loader
        return EngineSnapshot(
            window=[month.key for month in self.window],
            active_month=self.window.active.key,
            is_active_month_visible=self.tracker.is_active_month_visible,
            is_initial_scroll_set=self.window.is_initial_scroll_set,
            loading_months=loader.loading_months if loader is not None else [],
            loaded_months=loader.loaded_months if loader is not None else [],
            error_months=loader.error_months if loader is not None else {},
            cache=self.cache.get_info(),
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear down: pending fetches will discard their results on arrival."""
        if self._closed:
            return
        self._closed = True
        self._deferred.clear()
        if self.loader is not None:
            self.loader.close()
        self.tracker.close()
        self.height_tracker.close()
        self._scheduler.cancel_all()
        logger.info("Calendar engine closed")

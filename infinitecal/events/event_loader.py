"""On-demand per-month event loading for the infinite-scroll window.

The loader owns the per-month load states and the request-coalescing table,
and writes resolved months into an injected EventCache. It is driven by the
engine whenever the month window changes:

    window change -> plan (preload buffer or jump range) -> request_range
                  -> one coalesced fetch per month -> retry on NetworkError
                  -> transform -> cache + on_range_loaded

All state transitions are per-key merges performed between awaits, so
concurrent completions for different months never overwrite each other.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..calendar.month import Month, month_span
from ..core.async_utils import RequestCoalescer, SleepFunc, retry_with_backoff
from ..exceptions import NetworkError, RetryExhaustedError
from ..models import CacheInfo, EventRecord, LoadStatus
from .event_cache import EventCache
from .event_transform import EventTransformer

logger = logging.getLogger(__name__)

Fetcher = Callable[[dt.date, dt.date], Awaitable[Any]]
RangeLoadedCallback = Callable[[dt.date, dt.date, list[EventRecord]], Any]
MonthLike = Union[Month, str]

DEFAULT_PRELOAD_BUFFER = 2
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_JUMP_THRESHOLD = 3
DEFAULT_JUMP_RANGE = 3


@dataclass(frozen=True)
class MonthLoadState:
    """Load state of one month key.

    ``handle`` is the shared in-flight future while the month is loading.
    """

    status: LoadStatus = LoadStatus.IDLE
    error_message: Optional[str] = None
    handle: Optional[asyncio.Future[list[EventRecord]]] = field(
        default=None, compare=False, repr=False
    )

    @property
    def is_pending_or_done(self) -> bool:
        return self.status in (LoadStatus.LOADING, LoadStatus.LOADED)


IDLE = MonthLoadState()


@dataclass
class RangeRequest:
    """Months of one request: served from cache, started, or attached."""

    keys: list[str]
    ready: dict[str, list[EventRecord]] = field(default_factory=dict)
    pending: dict[str, asyncio.Future[list[EventRecord]]] = field(default_factory=dict)
    started: list[str] = field(default_factory=list)

    async def wait(self) -> dict[str, list[EventRecord]]:
        """Resolve every month; a failed load resolves to an empty list."""
        results = dict(self.ready)
        if self.pending:
            settled = await asyncio.gather(*self.pending.values(), return_exceptions=True)
            for key, outcome in zip(self.pending, settled):
                if isinstance(outcome, BaseException):
                    logger.error("Load for %s ended with %r", key, outcome)
                    results[key] = []
                else:
                    results[key] = outcome
        return {key: results[key] for key in self.keys}


def _as_month(value: MonthLike) -> Month:
    return Month.from_key(value) if isinstance(value, str) else value


class EventLoader:
    """Fetches, coalesces, retries and caches per-month event data."""

    def __init__(
        self,
        fetcher: Fetcher,
        cache: EventCache,
        transformer: Optional[EventTransformer] = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        preload_buffer: int = DEFAULT_PRELOAD_BUFFER,
        jump_threshold: int = DEFAULT_JUMP_THRESHOLD,
        jump_range: int = DEFAULT_JUMP_RANGE,
        on_range_loaded: Optional[RangeLoadedCallback] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the loader.

        Args:
            fetcher: Async function (range_start, range_end) -> list of raw items
            cache: Event cache shared with the engine's derived views
            transformer: Raw item converter; heuristic transformer when None
            max_retries: Retries after the first failed attempt
            retry_base_delay: Delay unit in seconds; retry n waits n * base
            preload_buffer: Months fetched on each side of every window month
            jump_threshold: Center distance (months) treated as a jump
            jump_range: Months fetched on each side of the center after a jump
            on_range_loaded: Called once per successfully resolved month
            sleep: Awaitable sleep used between retries
        """
        self.fetcher = fetcher
        self.cache = cache
        self.transformer = transformer or EventTransformer()
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.preload_buffer = preload_buffer
        self.jump_threshold = jump_threshold
        self.jump_range = jump_range
        self.on_range_loaded = on_range_loaded
        self._sleep = sleep

        self._states: dict[str, MonthLoadState] = {}
        self._coalescer: RequestCoalescer[list[EventRecord]] = RequestCoalescer()
        self._generation = 0
        self._closed = False
        self._previous_center: Optional[Month] = None
        self.fetch_count = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def get_state(self, month: MonthLike) -> MonthLoadState:
        key = month if isinstance(month, str) else month.key
        return self._states.get(key, IDLE)

    def _transition(self, key: str, state: MonthLoadState) -> None:
        previous = self._states.get(key, IDLE)
        self._states[key] = state
        logger.debug("Month %s: %s -> %s", key, previous.status.value, state.status.value)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_loading(self) -> bool:
        return bool(self.loading_months)

    @property
    def loading_months(self) -> list[str]:
        return self._keys_with(LoadStatus.LOADING)

    @property
    def loaded_months(self) -> list[str]:
        return self._keys_with(LoadStatus.LOADED)

    @property
    def error_months(self) -> dict[str, str]:
        return {
            key: state.error_message or "Unknown error"
            for key, state in self._states.items()
            if state.status is LoadStatus.ERRORED
        }

    def _keys_with(self, status: LoadStatus) -> list[str]:
        return sorted(key for key, state in self._states.items() if state.status is status)

    def cache_info(self) -> CacheInfo:
        return self.cache.get_info()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def begin_range(self, months: Iterable[MonthLike]) -> RangeRequest:
        """Start or attach to the fetches for ``months`` without awaiting them.

        Loaded months are served from the cache (empty once evicted), months
        already in flight attach to the existing fetch, and idle or errored
        months start a new fetch and move to ``loading`` immediately. Must be
        called from a running event loop.

        Args:
            months: Months or month keys to load

        Returns:
            The request, whose ``wait()`` resolves every month
        """
        request = RangeRequest(keys=list(dict.fromkeys(_as_month(m).key for m in months)))
        if self._closed:
            logger.debug("Loader closed; ignoring request for %s", request.keys)
            request.ready = {key: [] for key in request.keys}
            return request

        for key in request.keys:
            state = self.get_state(key)
            if state.status is LoadStatus.LOADED:
                # Evicted months stay loaded and are not fetched again
                cached = self.cache.get(key)
                request.ready[key] = cached if cached is not None else []
                continue
            attaching = self._coalescer.is_inflight(key)
            generation = self._generation
            future = self._coalescer.run(
                key, lambda key=key: self._load_month(key, generation)
            )
            if not attaching:
                request.started.append(key)
                self._transition(key, MonthLoadState(LoadStatus.LOADING, handle=future))
            request.pending[key] = future

        if request.started:
            logger.info(
                "Batch load started for %d months: %s",
                len(request.started),
                ", ".join(request.started),
            )
        return request

    async def request_range(self, months: Iterable[MonthLike]) -> dict[str, list[EventRecord]]:
        """Ensure every requested month is loaded or loading, then await them.

        Months that end up errored contribute an empty list.

        Args:
            months: Months or month keys to load

        Returns:
            Mapping of month key -> resolved events, in request order
        """
        request = self.begin_range(months)
        results = await request.wait()

        if request.started:
            errored = [
                key for key in request.started if self.get_state(key).status is LoadStatus.ERRORED
            ]
            logger.info(
                "Batch load finished: %d succeeded, %d errored, %d events",
                len(request.started) - len(errored),
                len(errored),
                sum(len(results.get(key, [])) for key in request.started),
            )
        return results

    async def _fetch_once(self, month: Month) -> list[EventRecord]:
        self.fetch_count += 1
        try:
            raw_items = await self.fetcher(month.start, month.end)
        except Exception as e:
            raise NetworkError(f"Fetch failed for {month.key}: {e}", month_key=month.key) from e
        if raw_items is None:
            raise NetworkError(f"Fetcher returned no result for {month.key}", month_key=month.key)
        return self.transformer.transform_batch(raw_items, month.key)

    async def _load_month(self, key: str, generation: int) -> list[EventRecord]:
        month = Month.from_key(key)
        logger.info("Loading events for %s (%s..%s)", key, month.start, month.end)

        try:
            events = await retry_with_backoff(
                lambda: self._fetch_once(month),
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                retry_on=(NetworkError,),
                sleep=self._sleep,
                label=f"fetch {key}",
            )
        except RetryExhaustedError as e:
            if generation != self._generation:
                return []
            cause = e.__cause__ or e
            self._transition(key, MonthLoadState(LoadStatus.ERRORED, error_message=str(cause)))
            logger.error("Giving up on %s after %d attempts: %s", key, e.attempts, cause)
            return []
        except Exception as e:
            if generation != self._generation:
                return []
            self._transition(key, MonthLoadState(LoadStatus.ERRORED, error_message=str(e)))
            logger.exception("Unexpected error while loading %s", key)
            return []

        if generation != self._generation:
            logger.debug("Discarding result for %s from a retired loader generation", key)
            return []

        self.cache.set(key, events)
        self._transition(key, MonthLoadState(LoadStatus.LOADED))
        logger.info(
            "Loaded %d events for %s (cache size: %d)", len(events), key, len(self.cache)
        )

        if self.on_range_loaded is not None:
            try:
                self.on_range_loaded(month.start, month.end, events)
            except Exception:
                logger.exception("on_range_loaded callback failed for %s", key)

        return events

    # ------------------------------------------------------------------
    # Preload policy
    # ------------------------------------------------------------------

    def months_to_load(self, window_months: Iterable[Month]) -> list[Month]:
        """Every window month plus the preload buffer on each side."""
        needed: set[Month] = set()
        for month in window_months:
            needed.update(month_span(month, self.preload_buffer))
        return sorted(needed)

    def plan_window_change(self, window_months: list[Month]) -> list[Month]:
        """Decide which months to request after the window changed.

        A center shift of at least ``jump_threshold`` months is treated as a
        direct date selection: the extended ``center +/- jump_range`` span is
        requested instead of the buffered window.

        Returns:
            Months that are neither loaded nor loading
        """
        if not window_months:
            return []
        center = window_months[len(window_months) // 2]
        previous = self._previous_center
        self._previous_center = center

        if previous is not None and abs(previous.distance_to(center)) >= self.jump_threshold:
            logger.info(
                "Jump detected: %d months (%s -> %s)",
                previous.distance_to(center),
                previous,
                center,
            )
            needed = month_span(center, self.jump_range)
        else:
            needed = self.months_to_load(window_months)

        return [month for month in needed if not self.get_state(month).is_pending_or_done]

    async def on_window_changed(self, window_months: list[Month]) -> dict[str, list[EventRecord]]:
        """Plan and request the months needed for the new window."""
        months = self.plan_window_change(window_months)
        if not months:
            return {}
        return await self.request_range(months)

    def close(self) -> None:
        """Retire the loader; pending fetches discard their results."""
        self._generation += 1
        self._closed = True
        self._coalescer.forget_all()
        for key, state in list(self._states.items()):
            if state.status is LoadStatus.LOADING:
                self._transition(key, IDLE)
        logger.debug("Loader closed (generation %d)", self._generation)

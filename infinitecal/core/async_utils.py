"""Async coordination primitives for the infinitecal engine.

This module provides the three patterns the engine builds on:
- Cancellable scheduled callbacks, one pending handle per purpose (debounce)
- A request-coalescing table mapping a key to its in-flight future
- Bounded retry with linearly increasing backoff

Usage Example:
    ```python
    scheduler = TaskScheduler()
    scheduler.schedule(0.15, elect_active_month, purpose="election")

    coalescer = RequestCoalescer()
    events = await coalescer.run("2024-05", lambda: load_month("2024-05"))

    result = await retry_with_backoff(fetch_once, max_retries=3, base_delay=1.0)
    ```

All primitives assume a single asyncio event loop and mutate state only
between awaits.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, Optional, Protocol, TypeVar

from ..exceptions import RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]


class CancellableHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Interface of a delayed-callback scheduler keyed by purpose."""

    def schedule(
        self, delay: float, callback: Callable[[], Any], purpose: str = "default"
    ) -> CancellableHandle: ...

    def cancel(self, purpose: str = "default") -> bool: ...

    def cancel_all(self) -> None: ...


class TaskScheduler:
    """Debounce-friendly scheduler backed by ``loop.call_later``.

    Scheduling a callback for a purpose that already has a pending handle
    cancels that handle first, so only the most recent callback fires.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(
        self, delay: float, callback: Callable[[], Any], purpose: str = "default"
    ) -> asyncio.TimerHandle:
        """Run ``callback`` after ``delay`` seconds, replacing any pending one.

        Args:
            delay: Delay in seconds
            callback: Zero-argument callable
            purpose: Name grouping handles that replace each other

        Returns:
            The timer handle, which can be cancelled directly
        """
        self.cancel(purpose)

        def _fire() -> None:
            self._handles.pop(purpose, None)
            callback()

        handle = self._get_loop().call_later(delay, _fire)
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


class RequestCoalescer(Generic[T]):
    """Table of in-flight work keyed by request key.

    A request for a key that is already in flight attaches to the existing
    future instead of starting new work. The entry is removed as soon as the
    work settles, successfully or not.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future[T]] = {}
        self.stats = {"started": 0, "attached": 0}

    def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Return the in-flight future for ``key``, starting it if needed.

        Args:
            key: Request key
            factory: Zero-argument callable producing the awaitable to run

        Returns:
            Future shared by every caller of this key until it settles
        """
        existing = self._inflight.get(key)
        if existing is not None:
            self.stats["attached"] += 1
            logger.debug("Attaching to in-flight request for %s", key)
            return existing

        future: asyncio.Future[T] = asyncio.ensure_future(factory())
        self._inflight[key] = future
        self.stats["started"] += 1

        def _settle(done: asyncio.Future[T]) -> None:
            if self._inflight.get(key) is done:
                del self._inflight[key]
            # Mark exceptions as retrieved when no caller awaited the future
            if not done.cancelled():
                done.exception()

        future.add_done_callback(_settle)
        return future

    def get(self, key: str) -> Optional[asyncio.Future[T]]:
        return self._inflight.get(key)

    def is_inflight(self, key: str) -> bool:
        return key in self._inflight

    def keys(self) -> list[str]:
        return list(self._inflight)

    def forget_all(self) -> None:
        """Drop every entry without cancelling the underlying work."""
        self._inflight.clear()

    def __len__(self) -> int:
        return len(self._inflight)


async def retry_with_backoff(
    coro_func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    retry_on: Optional[tuple[type[Exception], ...]] = None,
    sleep: SleepFunc = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Retry an async function with linearly increasing backoff.

    The first attempt runs immediately; the delay before retry ``n`` is
    ``base_delay * n``. With ``max_retries=3`` at most four attempts are made.

    Args:
        coro_func: Function that returns a coroutine
        max_retries: Maximum number of retry attempts after the first one
        base_delay: Base delay in seconds
        retry_on: Exception types to retry on (None = retry all)
        sleep: Awaitable sleep function, injectable for tests
        label: Name used in log messages

    Returns:
        Function result

    Raises:
        RetryExhaustedError: If all attempts fail
    """
    last_exception: Optional[Exception] = None

    for attempt in range(max_retries + 1):
        if attempt > 0:
            delay = base_delay * attempt
            logger.info(
                "Retrying %s (%d/%d) in %.2fs", label, attempt, max_retries, delay
            )
            await sleep(delay)
        try:
            result = await coro_func()
        except Exception as e:
            if retry_on is not None and not isinstance(e, retry_on):
                logger.debug("Not retrying exception type %s", type(e).__name__)
                raise
            last_exception = e
            logger.warning(
                "Attempt %d/%d for %s failed: %s", attempt + 1, max_retries + 1, label, e
            )
            continue
        if attempt > 0:
            logger.info("%s succeeded on attempt %d/%d", label, attempt + 1, max_retries + 1)
        return result

    raise RetryExhaustedError(
        f"{label} failed after {max_retries + 1} attempts: {last_exception}",
        attempts=max_retries + 1,
    ) from last_exception

"""Exception hierarchy for the infinitecal engine.

Loading failures are recovered inside the engine: a failed month degrades to
"no events for that month" and never propagates to the rendering layer.
Window invariant violations are programming errors and are raised loudly.
"""

from __future__ import annotations


class CalendarEngineError(Exception):
    """Base exception for all engine errors.

    All custom exceptions in the engine inherit from this base class so
    callers can catch engine problems with a single except clause.
    """


class NetworkError(CalendarEngineError):
    """Fetching a month's data failed.

    Raised when:
    - The injected fetcher raised an exception
    - The fetcher returned a non-success result (None, a non-list payload)

    Triggers the bounded retry policy of the loader.
    """

    def __init__(self, message: str, month_key: str | None = None):
        super().__init__(message)
        self.month_key = month_key


class ParseError(NetworkError):
    """The fetched payload does not have the expected shape.

    A subclass of NetworkError so a malformed payload goes through the same
    retry policy as a rejected fetch.
    """


class TransformError(CalendarEngineError):
    """Converting one raw item into an EventRecord failed.

    Recovered locally: the offending item is dropped and the rest of the
    batch proceeds.
    """

    def __init__(self, message: str, item: object = None, index: int | None = None):
        super().__init__(message)
        self.item = item
        self.index = index


class RetryExhaustedError(CalendarEngineError):
    """All attempts of one request cycle failed."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class WindowInvariantError(CalendarEngineError):
    """The month window is no longer contiguous, ascending or long enough."""


class ConfigError(CalendarEngineError):
    """Configuration could not be loaded or validated."""

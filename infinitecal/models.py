"""Data models for calendar events, holidays and engine diagnostics."""

from __future__ import annotations

import datetime as dt
import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_EVENT_COLOR = "#3b82f6"
DEFAULT_HOLIDAY_COLOR = "red"
UNTITLED_EVENT = "Untitled Event"

_UNSAFE_ID_CHARS = re.compile(r"[^0-9A-Za-z가-힣]")


def _sanitize(text: str) -> str:
    return _UNSAFE_ID_CHARS.sub("_", text)


def generate_event_id(date_key: str, title: str, index: int) -> str:
    """Build a stable id for an event that arrived without one."""
    return f"event-{date_key}-{_sanitize(title)}-{index}"


def generate_holiday_id(date_key: str, name: Optional[str] = None) -> str:
    return f"holiday-{date_key}-{_sanitize(name) if name else 'holiday'}"


class EventRecord(BaseModel):
    """A single calendar event as displayed by the engine.

    Either ``date`` or ``start_time`` must be present; detailed events with a
    start/end range are bucketed by the date of ``start_time``.
    """

    id: Optional[str] = None
    title: str = UNTITLED_EVENT
    date: Optional[dt.date] = None
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    color: Optional[str] = None
    description: Optional[str] = None
    loaded_from: Optional[str] = Field(
        default=None, description="Month key of the fetch that produced this record"
    )
    original_data: Any = Field(default=None, exclude=True, repr=False)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _require_date(self) -> EventRecord:
        if self.date is None and self.start_time is None:
            raise ValueError("event needs a date or a start_time")
        return self

    @property
    def is_detailed(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def event_date(self) -> dt.date:
        """Calendar date the event is displayed on."""
        if self.start_time is not None:
            return self.start_time.date()
        if self.date is None:
            raise ValueError(f"event {self.id} has neither a date nor a start_time")
        return self.date

    @property
    def date_key(self) -> str:
        return self.event_date.isoformat()

    @property
    def display_color(self) -> str:
        return self.color or DEFAULT_EVENT_COLOR

    def with_origin(self, month_key: str) -> EventRecord:
        return self.model_copy(update={"loaded_from": month_key})

    def ensure_id(self, index: int) -> EventRecord:
        if self.id:
            return self
        return self.model_copy(update={"id": generate_event_id(self.date_key, self.title, index)})


class Holiday(BaseModel):
    """A static holiday marker supplied by the host."""

    name: str
    date: dt.date
    id: Optional[str] = None
    color: str = DEFAULT_HOLIDAY_COLOR

    model_config = ConfigDict(frozen=True)

    def ensure_id(self) -> Holiday:
        if self.id:
            return self
        return self.model_copy(update={"id": generate_holiday_id(self.date.isoformat(), self.name)})


class LoadStatus(str, Enum):
    """Lifecycle of a month fetch."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class CacheInfo(BaseModel):
    """Diagnostics snapshot of the event cache."""

    cache_size: int
    capacity: int
    cached_months: list[str] = Field(default_factory=list)
    evictions: int = 0


class EngineSnapshot(BaseModel):
    """Read-only view of engine state for observability and debugging."""

    window: list[str]
    active_month: str
    is_active_month_visible: bool
    is_initial_scroll_set: bool
    loading_months: list[str] = Field(default_factory=list)
    loaded_months: list[str] = Field(default_factory=list)
    error_months: dict[str, str] = Field(default_factory=dict)
    cache: CacheInfo

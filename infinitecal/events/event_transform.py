"""Conversion of raw fetched items into EventRecord instances.

Three strategies, in order of precedence:
1. An injected transform function (raw item -> EventRecord or dict)
2. An injected field-mapping table (EventRecord field -> raw item key)
3. A default heuristic over common field name aliases

A single item that fails to convert is dropped from its batch; it never
fails the batch.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional, Union

from ..exceptions import ParseError, TransformError
from ..models import UNTITLED_EVENT, EventRecord

logger = logging.getLogger(__name__)

RawItem = Any
TransformFunc = Callable[[RawItem], Union[EventRecord, Mapping[str, Any]]]

# Field names accepted in a mapping table, normalized to EventRecord fields
_MAPPING_FIELD_ALIASES = {
    "startTime": "start_time",
    "endTime": "end_time",
}

_OPTIONAL_FIELDS = ("start_time", "end_time", "color", "description")

# Default heuristic: EventRecord field -> raw keys tried in order
DEFAULT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "title": ("title", "name"),
    "date": ("date", "startDate"),
    "start_time": ("startTime", "start_time"),
    "end_time": ("endTime", "end_time"),
    "color": ("color",),
    "description": ("description",),
}


def _coerce_date(value: Any) -> Any:
    """Reduce datetime-like values to a calendar date; leave others to pydantic."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


def _first_present(item: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


class EventTransformer:
    """Converts raw fetcher payloads into tagged EventRecord lists."""

    def __init__(
        self,
        transform: Optional[TransformFunc] = None,
        mapping: Optional[Mapping[str, str]] = None,
        today_provider: Callable[[], dt.date] = dt.date.today,
    ):
        """Initialize transformer.

        Args:
            transform: Optional function converting one raw item
            mapping: Optional table of EventRecord field -> raw item key
            today_provider: Supplies the fallback date for items without one
        """
        self.transform = transform
        self.mapping = (
            {_MAPPING_FIELD_ALIASES.get(k, k): v for k, v in mapping.items()} if mapping else None
        )
        self.today_provider = today_provider

    @property
    def strategy(self) -> str:
        if self.transform is not None:
            return "function"
        if self.mapping is not None:
            return "mapping"
        return "heuristic"

    def transform_batch(self, raw_items: Any, month_key: str) -> list[EventRecord]:
        """Convert a fetched payload into records tagged with ``month_key``.

        Args:
            raw_items: Payload returned by the fetcher; must be a list
            month_key: Month key recorded as each record's origin

        Returns:
            Converted records; items that failed to convert are omitted

        Raises:
            ParseError: If the payload is not a list
        """
        if not isinstance(raw_items, (list, tuple)):
            raise ParseError(
                f"Expected a list of items for {month_key}, got {type(raw_items).__name__}",
                month_key=month_key,
            )

        records: list[EventRecord] = []
        for index, item in enumerate(raw_items):
            try:
                record = self.transform_item(item, index, month_key)
            except TransformError as e:
                logger.error("Dropping item %d of %s: %s", index, month_key, e)
                continue
            records.append(record.with_origin(month_key))

        dropped = len(raw_items) - len(records)
        if dropped:
            logger.warning("Dropped %d of %d items for %s", dropped, len(raw_items), month_key)
        return records

    def transform_item(self, item: RawItem, index: int, month_key: str = "") -> EventRecord:
        """Convert one raw item, raising TransformError on any failure."""
        try:
            if self.transform is not None:
                result = self.transform(item)
                if isinstance(result, EventRecord):
                    return result
                return EventRecord.model_validate(result)
            if not isinstance(item, Mapping):
                raise TypeError(f"item is {type(item).__name__}, not a mapping")
            if self.mapping is not None:
                return EventRecord.model_validate(
                    self._map_fields(self.mapping, item, index, month_key)
                )
            return EventRecord.model_validate(self._guess_fields(item, index, month_key))
        except TransformError:
            raise
        except Exception as e:
            raise TransformError(str(e), item=item, index=index) from e

    def _fallback_id(self, index: int, month_key: str) -> str:
        return f"dynamic-{month_key or 'unknown'}-{index}"

    def _map_fields(
        self, mapping: Mapping[str, str], item: Mapping[str, Any], index: int, month_key: str
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "id": str(item.get(mapping.get("id", "id")) or self._fallback_id(index, month_key)),
            "title": item.get(mapping.get("title", "title")) or UNTITLED_EVENT,
            "date": _coerce_date(item.get(mapping.get("date", "date")))
            or self.today_provider(),
            "original_data": item,
        }
        for name in _OPTIONAL_FIELDS:
            source_key = mapping.get(name)
            if source_key and item.get(source_key):
                fields[name] = item[source_key]
        return fields

    def _guess_fields(self, item: Mapping[str, Any], index: int, month_key: str) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "id": str(
                _first_present(item, DEFAULT_FIELD_ALIASES["id"])
                or self._fallback_id(index, month_key)
            ),
            "title": _first_present(item, DEFAULT_FIELD_ALIASES["title"]) or UNTITLED_EVENT,
            "date": _coerce_date(_first_present(item, DEFAULT_FIELD_ALIASES["date"]))
            or self.today_provider(),
            "original_data": item,
        }
        for name in _OPTIONAL_FIELDS:
            value = _first_present(item, DEFAULT_FIELD_ALIASES[name])
            if value is not None:
                fields[name] = value
        return fields

"""Tests for raw item -> EventRecord conversion."""

from datetime import date, datetime

import pytest

from infinitecal.events.event_transform import EventTransformer
from infinitecal.exceptions import ParseError, TransformError
from infinitecal.models import EventRecord

pytestmark = pytest.mark.unit


def test_heuristic_uses_common_aliases(fixed_today):
    transformer = EventTransformer(today_provider=lambda: fixed_today)
    records = transformer.transform_batch(
        [
            {"id": 7, "name": "Dentist", "startDate": "2024-05-02"},
            {
                "title": "Review",
                "startTime": "2024-05-03T09:00:00",
                "endTime": "2024-05-03T10:00:00",
                "color": "#ff0000",
            },
        ],
        "2024-05",
    )

    assert transformer.strategy == "heuristic"
    assert [r.title for r in records] == ["Dentist", "Review"]
    assert records[0].id == "7"
    assert records[0].date == date(2024, 5, 2)
    assert records[1].id == "dynamic-2024-05-1"
    assert records[1].is_detailed
    assert records[1].event_date == date(2024, 5, 3)
    assert all(r.loaded_from == "2024-05" for r in records)


def test_heuristic_defaults_missing_fields(fixed_today):
    transformer = EventTransformer(today_provider=lambda: fixed_today)
    [record] = transformer.transform_batch([{}], "2024-05")

    assert record.title == "Untitled Event"
    assert record.date == fixed_today
    assert record.id == "dynamic-2024-05-0"


def test_datetime_date_is_reduced_to_calendar_date():
    transformer = EventTransformer()
    [record] = transformer.transform_batch(
        [{"id": "a", "date": "2024-05-02T18:30:00Z"}], "2024-05"
    )
    assert record.date == date(2024, 5, 2)


def test_mapping_table():
    transformer = EventTransformer(
        mapping={"id": "uid", "title": "summary", "date": "day", "startTime": "begins"}
    )
    [record] = transformer.transform_batch(
        [{"uid": "x1", "summary": "Launch", "day": "2024-05-20", "begins": "2024-05-20T08:00:00"}],
        "2024-05",
    )

    assert transformer.strategy == "mapping"
    assert record.id == "x1"
    assert record.title == "Launch"
    assert record.start_time == datetime(2024, 5, 20, 8, 0)
    assert record.original_data["uid"] == "x1"


def test_mapping_table_falls_back_to_generated_id(fixed_today):
    transformer = EventTransformer(mapping={"title": "summary"}, today_provider=lambda: fixed_today)
    [record] = transformer.transform_batch([{"summary": "Standup"}], "2024-02")

    assert record.id == "dynamic-2024-02-0"
    assert record.title == "Standup"
    assert record.date == fixed_today


def test_transform_function_takes_precedence():
    def transform(item):
        return EventRecord(id=item["key"], title=item["label"].upper(), date=date(2024, 5, 1))

    transformer = EventTransformer(transform=transform, mapping={"title": "label"})
    [record] = transformer.transform_batch([{"key": "k", "label": "sync"}], "2024-05")

    assert transformer.strategy == "function"
    assert record.title == "SYNC"
    assert record.loaded_from == "2024-05"


def test_transform_function_may_return_dict():
    transformer = EventTransformer(transform=lambda item: {"id": "d", "date": item["when"]})
    [record] = transformer.transform_batch([{"when": "2024-05-09"}], "2024-05")
    assert record.date == date(2024, 5, 9)


def test_failing_item_is_dropped_not_the_batch():
    """A transform error on one item leaves the rest of the batch intact."""

    def transform(item):
        if item.get("broken"):
            raise KeyError("title")
        return {"id": item["id"], "date": "2024-05-01"}

    transformer = EventTransformer(transform=transform)
    records = transformer.transform_batch(
        [{"id": "a"}, {"id": "b", "broken": True}, {"id": "c"}], "2024-05"
    )
    assert [r.id for r in records] == ["a", "c"]


def test_transform_item_wraps_errors():
    transformer = EventTransformer()
    with pytest.raises(TransformError) as exc_info:
        transformer.transform_item("not-a-mapping", index=3, month_key="2024-05")
    assert exc_info.value.index == 3
    assert exc_info.value.item == "not-a-mapping"


def test_non_list_payload_is_parse_error():
    transformer = EventTransformer()
    with pytest.raises(ParseError) as exc_info:
        transformer.transform_batch({"items": []}, "2024-05")
    assert exc_info.value.month_key == "2024-05"

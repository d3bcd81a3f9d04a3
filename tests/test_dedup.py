"""Tests for order-preserving forecast dedup."""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from forecast_stream.pipeline.dedup import dedup_by_key, forecast_day_key
from forecast_stream.weather.models import ForecastEntry


def _entry(day: int, hour: int = 12, high: float = 20.0) -> ForecastEntry:
    return ForecastEntry(
        timestamp=datetime(2026, 3, day, hour, tzinfo=UTC),
        high=high,
        low=high - 8,
        condition="Clouds",
    )


def test_repeated_day_keeps_first_occurrence() -> None:
    first = _entry(1, hour=0, high=11.0)
    second = _entry(1, hour=3, high=14.0)
    third = _entry(2)

    result = dedup_by_key([first, second, third], forecast_day_key)

    assert result == [first, third]
    assert result[0].high == 11.0


def test_plain_mapping_sequence_with_day_key() -> None:
    rows = [{"day": 1}, {"day": 1}, {"day": 2}]
    assert dedup_by_key(rows, lambda row: row["day"]) == [{"day": 1}, {"day": 2}]


def test_order_is_preserved_for_interleaved_keys() -> None:
    rows = ["b1", "a1", "b2", "c1", "a2"]
    assert dedup_by_key(rows, lambda value: value[0]) == ["b1", "a1", "c1"]


def test_empty_input_returns_empty_list() -> None:
    assert dedup_by_key([], forecast_day_key) == []


@pytest.mark.parametrize(
    "days",
    [
        [1, 1, 2],
        [3, 2, 1, 2, 3],
        [5, 5, 5, 5],
        [1, 2, 3, 4, 5, 6, 7],
    ],
)
def test_dedup_is_idempotent(days: list[int]) -> None:
    entries = [_entry(day, hour=index % 24) for index, day in enumerate(days)]
    once = dedup_by_key(entries, forecast_day_key)
    assert dedup_by_key(once, forecast_day_key) == once


def test_input_is_not_mutated() -> None:
    entries = [_entry(1), _entry(1, hour=6)]
    dedup_by_key(entries, forecast_day_key)
    assert len(entries) == 2


def test_day_key_uses_utc_calendar_day() -> None:
    from datetime import timedelta, timezone

    late_evening_est = datetime(2026, 3, 1, 22, tzinfo=timezone(timedelta(hours=-5)))
    entry = ForecastEntry(timestamp=late_evening_est, high=5, low=1, condition="Snow")
    assert forecast_day_key(entry) == date(2026, 3, 2)

"""Order-preserving dedup of forecast sequences."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from datetime import date
from typing import TypeVar

from ..weather.models import ForecastEntry

T = TypeVar("T")

KeyFn = Callable[[T], Hashable]


def dedup_by_key(items: Iterable[T], key: KeyFn[T]) -> list[T]:
    """Keep the first item per key, preserving the input order.

    Total and idempotent: ``dedup_by_key(dedup_by_key(x, k), k) == dedup_by_key(x, k)``.
    """
    seen: set[Hashable] = set()
    result: list[T] = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        result.append(item)
    return result


def forecast_day_key(entry: ForecastEntry) -> date:
    """Dedup key for weekly forecasts: the entry's UTC calendar day."""
    return entry.day

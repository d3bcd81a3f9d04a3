"""Typed models for normalized forecast results."""

from __future__ import annotations

from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict


class ForecastEntry(BaseModel):
    """One forecast slot; its calendar day is the dedup identity."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    high: float
    low: float
    condition: str
    description: str | None = None
    icon: str | None = None

    @property
    def day(self) -> date:
        """Calendar day of the slot in UTC."""
        return self.timestamp.astimezone(UTC).date()


class WeeklyForecast(BaseModel):
    """Ordered multi-day forecast for one location."""

    model_config = ConfigDict(frozen=True)

    city: str | None = None
    country: str | None = None
    entries: tuple[ForecastEntry, ...] = ()


class CurrentForecast(BaseModel):
    """Single "now" snapshot for one location."""

    model_config = ConfigDict(frozen=True)

    city: str | None = None
    timestamp: datetime
    temperature: float
    feels_like: float | None = None
    high: float | None = None
    low: float | None = None
    humidity: float | None = None
    condition: str
    description: str | None = None
    latitude: float | None = None
    longitude: float | None = None

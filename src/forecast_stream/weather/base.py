"""Provider-agnostic forecast fetch interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .models import CurrentForecast, WeeklyForecast


class ForecastFetcher(ABC):
    """Base contract for forecast sources consumed by fetch pipelines.

    Each call is an independent coroutine, so a new call never waits on an
    earlier one. Cancellation is ordinary task cancellation. Failures are
    raised as ``FetchError``.
    """

    @abstractmethod
    async def fetch_weekly(self, query: str) -> WeeklyForecast:
        """Fetch the multi-day forecast for a location name."""

    @abstractmethod
    async def fetch_current(self, query: str) -> CurrentForecast:
        """Fetch the current conditions for a location name."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release provider resources."""

    async def __aenter__(self) -> ForecastFetcher:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

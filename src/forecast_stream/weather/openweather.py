"""OpenWeatherMap (api.openweathermap.org) forecast fetcher implementation."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Literal

import httpx

from ..config import Settings
from ..exceptions import FetchError
from ..redaction import sanitize_text
from .base import ForecastFetcher
from .models import CurrentForecast, ForecastEntry, WeeklyForecast


class OpenWeatherFetcher(ForecastFetcher):
    """Fetches and normalizes forecasts from the OpenWeatherMap 2.5 API."""

    provider_name = "openweather"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.weather_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_weekly(self, query: str) -> WeeklyForecast:
        """Fetch the 5-day / 3-hour forecast and normalize its slots."""
        payload = await self._request_json("forecast", query, context="weekly forecast")
        return self._normalize_weekly(payload)

    async def fetch_current(self, query: str) -> CurrentForecast:
        """Fetch current conditions for a city name."""
        payload = await self._request_json("weather", query, context="current weather")
        return self._normalize_current(payload)

    def _build_params(self, query: str) -> dict[str, str]:
        return {
            "q": query,
            "mode": "json",
            "units": self.settings.openweather_units,
            "APPID": self.settings.openweather_api_key,
        }

    async def _request_json(
        self,
        endpoint: Literal["forecast", "weather"],
        query: str,
        context: str,
    ) -> dict[str, Any]:
        url = f"{self.settings.api_base_url}/{endpoint}"
        self.logger.debug("OpenWeather %s request for %r", context, query)
        try:
            response = await self._client.get(url, params=self._build_params(query))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise FetchError(
                f"OpenWeather {context} failed with status {status}: "
                f"{sanitize_text(exc.response.text[:300])}",
                kind="network",
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                f"OpenWeather {context} request failed ({type(exc).__name__}): "
                f"{sanitize_text(str(exc))}",
                kind="network",
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(
                f"OpenWeather {context} returned non-JSON response.",
                kind="parsing",
            ) from exc

        if not isinstance(payload, dict):
            raise FetchError(
                f"OpenWeather {context} returned unexpected payload type "
                f"{type(payload).__name__}.",
                kind="parsing",
            )
        return payload

    def _normalize_weekly(self, payload: dict[str, Any]) -> WeeklyForecast:
        raw_entries = payload.get("list")
        if not isinstance(raw_entries, list):
            raise FetchError("OpenWeather forecast payload missing 'list' array.", kind="parsing")

        entries = [self._normalize_entry(item) for item in raw_entries if isinstance(item, dict)]
        if raw_entries and not entries:
            raise FetchError(
                "OpenWeather forecast entries were present but not parseable.",
                kind="parsing",
            )

        city_name: str | None = None
        country: str | None = None
        city = payload.get("city")
        if isinstance(city, dict):
            city_name = self._as_str(city.get("name"))
            country = self._as_str(city.get("country"))
        return WeeklyForecast(city=city_name, country=country, entries=entries)

    def _normalize_entry(self, item: dict[str, Any]) -> ForecastEntry:
        timestamp = self._parse_timestamp(item.get("dt"))
        if timestamp is None:
            raise FetchError("OpenWeather forecast entry missing or invalid 'dt'.", kind="parsing")

        main = item.get("main")
        if not isinstance(main, dict):
            raise FetchError("OpenWeather forecast entry missing 'main' object.", kind="parsing")
        high = self._as_float(main.get("temp_max"))
        low = self._as_float(main.get("temp_min"))
        if high is None or low is None:
            raise FetchError(
                "OpenWeather forecast entry missing 'main.temp_max'/'main.temp_min'.",
                kind="parsing",
            )

        condition, description, icon = self._first_condition(item)
        return ForecastEntry(
            timestamp=timestamp,
            high=high,
            low=low,
            condition=condition or "Unknown",
            description=description,
            icon=icon,
        )

    def _normalize_current(self, payload: dict[str, Any]) -> CurrentForecast:
        main = payload.get("main")
        if not isinstance(main, dict):
            raise FetchError("OpenWeather weather payload missing 'main' object.", kind="parsing")
        temperature = self._as_float(main.get("temp"))
        if temperature is None:
            raise FetchError("OpenWeather weather payload missing 'main.temp'.", kind="parsing")

        latitude: float | None = None
        longitude: float | None = None
        coord = payload.get("coord")
        if isinstance(coord, dict):
            latitude = self._as_float(coord.get("lat"))
            longitude = self._as_float(coord.get("lon"))

        condition, description, _ = self._first_condition(payload)
        return CurrentForecast(
            city=self._as_str(payload.get("name")),
            timestamp=self._parse_timestamp(payload.get("dt")) or datetime.now(UTC),
            temperature=temperature,
            feels_like=self._as_float(main.get("feels_like")),
            high=self._as_float(main.get("temp_max")),
            low=self._as_float(main.get("temp_min")),
            humidity=self._as_float(main.get("humidity")),
            condition=condition or "Unknown",
            description=description,
            latitude=latitude,
            longitude=longitude,
        )

    def _first_condition(self, item: dict[str, Any]) -> tuple[str | None, str | None, str | None]:
        conditions = item.get("weather")
        if isinstance(conditions, list) and conditions and isinstance(conditions[0], dict):
            first = conditions[0]
            return (
                self._as_str(first.get("main")),
                self._as_str(first.get("description")),
                self._as_str(first.get("icon")),
            )
        return None, None, None

    @staticmethod
    def _as_str(value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @staticmethod
    def _as_float(value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        return None

    @staticmethod
    def _parse_timestamp(value: Any) -> datetime | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

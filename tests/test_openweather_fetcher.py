"""Tests for the OpenWeather transport adapter and payload normalization."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from forecast_stream.exceptions import FetchError
from forecast_stream.weather.openweather import OpenWeatherFetcher

API_KEY = "secret-key-123"


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "api_base_url": "https://api.openweathermap.org/data/2.5",
        "openweather_api_key": API_KEY,
        "openweather_units": "metric",
        "weather_timeout_seconds": 5.0,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _run_with_handler(
    handler: Callable[[httpx.Request], httpx.Response],
    call: Callable[[OpenWeatherFetcher], Any],
) -> Any:
    async def scenario() -> Any:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = OpenWeatherFetcher(
            settings=_make_settings(),
            logger=logging.getLogger("test_openweather"),
            client=client,
        )
        try:
            return await call(fetcher)
        finally:
            await fetcher.aclose()
            await client.aclose()

    return asyncio.run(scenario())


def _forecast_slot(dt: int, high: float, low: float, main: str = "Clouds") -> dict[str, Any]:
    return {
        "dt": dt,
        "main": {"temp": (high + low) / 2, "temp_min": low, "temp_max": high},
        "weather": [{"id": 803, "main": main, "description": "broken clouds", "icon": "04d"}],
    }


def test_weekly_request_uses_forecast_endpoint_and_query_params() -> None:
    seen: list[httpx.Request] = []
    payload = {
        "cod": "200",
        "list": [
            _forecast_slot(1772359200, 12.5, 6.0),
            _forecast_slot(1772370000, 14.0, 7.5, main="Rain"),
        ],
        "city": {"name": "Paris", "country": "FR"},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=payload)

    forecast = _run_with_handler(handler, lambda fetcher: fetcher.fetch_weekly("Paris"))

    request = seen[0]
    assert request.url.path == "/data/2.5/forecast"
    assert request.url.params["q"] == "Paris"
    assert request.url.params["mode"] == "json"
    assert request.url.params["units"] == "metric"
    assert request.url.params["APPID"] == API_KEY

    assert forecast.city == "Paris"
    assert forecast.country == "FR"
    assert len(forecast.entries) == 2
    first = forecast.entries[0]
    assert first.timestamp == datetime.fromtimestamp(1772359200, tz=UTC)
    assert first.high == 12.5
    assert first.low == 6.0
    assert first.condition == "Clouds"
    assert first.description == "broken clouds"
    assert first.icon == "04d"
    assert forecast.entries[1].condition == "Rain"


def test_weekly_fetch_keeps_duplicate_days_for_pipeline_dedup() -> None:
    payload = {
        "list": [_forecast_slot(1772359200 + hours * 3600, 10, 5) for hours in (0, 3, 6)],
        "city": {"name": "Oslo"},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    forecast = _run_with_handler(handler, lambda fetcher: fetcher.fetch_weekly("Oslo"))
    assert len(forecast.entries) == 3


def test_current_request_normalizes_snapshot() -> None:
    seen: list[httpx.Request] = []
    payload = {
        "coord": {"lon": 139.6917, "lat": 35.6895},
        "weather": [{"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}],
        "main": {
            "temp": 12.3,
            "feels_like": 11.1,
            "temp_min": 10.0,
            "temp_max": 14.2,
            "humidity": 81,
        },
        "dt": 1772359200,
        "name": "Tokyo",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=payload)

    current = _run_with_handler(handler, lambda fetcher: fetcher.fetch_current("Tokyo"))

    assert seen[0].url.path == "/data/2.5/weather"
    assert seen[0].url.params["q"] == "Tokyo"
    assert current.city == "Tokyo"
    assert current.temperature == 12.3
    assert current.feels_like == 11.1
    assert current.high == 14.2
    assert current.low == 10.0
    assert current.humidity == 81
    assert current.condition == "Rain"
    assert current.description == "light rain"
    assert current.latitude == pytest.approx(35.6895)
    assert current.longitude == pytest.approx(139.6917)


def test_http_status_error_maps_to_network_fetch_error_without_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404,
            json={"cod": "404", "message": f"city not found (APPID={API_KEY})"},
        )

    with pytest.raises(FetchError) as exc_info:
        _run_with_handler(handler, lambda fetcher: fetcher.fetch_weekly("Atlantis"))

    assert exc_info.value.kind == "network"
    assert "404" in exc_info.value.description
    assert API_KEY not in str(exc_info.value)


def test_transport_error_maps_to_network_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError) as exc_info:
        _run_with_handler(handler, lambda fetcher: fetcher.fetch_current("Lima"))

    assert exc_info.value.kind == "network"
    assert "ConnectError" in exc_info.value.description


def test_non_json_body_maps_to_parsing_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(FetchError) as exc_info:
        _run_with_handler(handler, lambda fetcher: fetcher.fetch_weekly("Rome"))
    assert exc_info.value.kind == "parsing"


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"cod": "200"},
        {"list": [{"dt": "yesterday", "main": {"temp_min": 1, "temp_max": 2}}]},
        {"list": [{"dt": 1772359200, "main": {"temp": 3}}]},
    ],
)
def test_malformed_weekly_payload_maps_to_parsing_error(payload: Any) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with pytest.raises(FetchError) as exc_info:
        _run_with_handler(handler, lambda fetcher: fetcher.fetch_weekly("Rome"))
    assert exc_info.value.kind == "parsing"


def test_current_payload_without_temperature_is_parsing_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"name": "Rome", "main": {"humidity": 40}})

    with pytest.raises(FetchError) as exc_info:
        _run_with_handler(handler, lambda fetcher: fetcher.fetch_current("Rome"))
    assert exc_info.value.kind == "parsing"


def test_missing_condition_defaults_to_unknown() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"list": [{"dt": 1772359200, "main": {"temp_min": 1, "temp_max": 4}}]},
        )

    forecast = _run_with_handler(handler, lambda fetcher: fetcher.fetch_weekly("Reykjavik"))
    assert forecast.entries[0].condition == "Unknown"
    assert forecast.city is None

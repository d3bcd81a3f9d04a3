"""Forecast fetch capability and its OpenWeather implementation."""

from .base import ForecastFetcher
from .models import CurrentForecast, ForecastEntry, WeeklyForecast
from .openweather import OpenWeatherFetcher

__all__ = [
    "CurrentForecast",
    "ForecastEntry",
    "ForecastFetcher",
    "OpenWeatherFetcher",
    "WeeklyForecast",
]

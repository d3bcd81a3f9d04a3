"""Weekly and current forecast pipeline configurations."""

from __future__ import annotations

import logging

from ..config import Settings
from ..weather.base import ForecastFetcher
from ..weather.models import CurrentForecast, WeeklyForecast
from .dedup import forecast_day_key
from .orchestrator import FetchPipeline, PipelineOptions

DEFAULT_DEBOUNCE_SECONDS = 0.5


def weekly_pipeline(
    fetcher: ForecastFetcher,
    settings: Settings | None = None,
    logger: logging.Logger | None = None,
) -> FetchPipeline[WeeklyForecast]:
    """Debounced, day-deduplicated multi-day forecast pipeline."""
    window = settings.debounce_seconds if settings is not None else DEFAULT_DEBOUNCE_SECONDS
    return FetchPipeline(
        fetcher.fetch_weekly,
        PipelineOptions(debounce_window=window, dedup_key=forecast_day_key),
        logger=logger,
        name="weekly",
    )


def current_pipeline(
    fetcher: ForecastFetcher,
    logger: logging.Logger | None = None,
) -> FetchPipeline[CurrentForecast]:
    """Single-shot current conditions pipeline, driven by ``refresh_now``."""
    return FetchPipeline(
        fetcher.fetch_current,
        PipelineOptions(),
        logger=logger,
        name="current",
    )

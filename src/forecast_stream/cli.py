"""CLI host for forecast pipelines: one-shot lookups and a stdin-driven watch mode."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from datetime import UTC

from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .exceptions import ConfigError
from .log_setup import setup_logger
from .pipeline import Empty, FetchPipeline, PipelineState, current_pipeline, weekly_pipeline
from .redaction import sanitize_for_logging
from .weather.models import CurrentForecast, WeeklyForecast
from .weather.openweather import OpenWeatherFetcher


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse forecast CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Fetch OpenWeather forecasts through debounced fetch pipelines."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    weekly = sub.add_parser("weekly", help="Print the multi-day forecast for a city.")
    weekly.add_argument("city", help="City name, e.g. 'Paris' or 'Paris,FR'.")
    weekly.add_argument(
        "--max-print",
        type=int,
        default=None,
        help="Number of forecast days to print.",
    )

    current = sub.add_parser("current", help="Print current conditions for a city.")
    current.add_argument("city", help="City name, e.g. 'Tokyo'.")

    sub.add_parser(
        "watch",
        help="Read city names from stdin, one per line, and print settled weekly forecasts.",
    )
    return parser.parse_args(argv)


def render_weekly(console: Console, forecast: WeeklyForecast, max_print: int) -> None:
    location = ", ".join(part for part in [forecast.city, forecast.country] if part) or "unknown"
    if not forecast.entries:
        console.print(f"No forecast entries for {location}.")
        return

    table = Table(title=f"Forecast: {location}")
    table.add_column("Day")
    table.add_column("Slot (UTC)")
    table.add_column("High")
    table.add_column("Low")
    table.add_column("Condition", overflow="fold")

    for entry in forecast.entries[:max_print]:
        table.add_row(
            entry.day.strftime("%a %d %b"),
            entry.timestamp.astimezone(UTC).strftime("%H:%M"),
            f"{entry.high:.1f}",
            f"{entry.low:.1f}",
            entry.description or entry.condition,
        )
    console.print(table)


def render_current(console: Console, forecast: CurrentForecast) -> None:
    table = Table(title=f"Now: {forecast.city or 'unknown'}")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Observed (UTC)", forecast.timestamp.astimezone(UTC).isoformat())
    table.add_row("Temperature", f"{forecast.temperature:.1f}")
    if forecast.feels_like is not None:
        table.add_row("Feels like", f"{forecast.feels_like:.1f}")
    if forecast.high is not None and forecast.low is not None:
        table.add_row("High / Low", f"{forecast.high:.1f} / {forecast.low:.1f}")
    if forecast.humidity is not None:
        table.add_row("Humidity %", f"{forecast.humidity:g}")
    table.add_row("Condition", forecast.description or forecast.condition)
    if forecast.latitude is not None and forecast.longitude is not None:
        table.add_row("Coordinates", f"({forecast.latitude:.4f}, {forecast.longitude:.4f})")
    console.print(table)


def _render_empty(console: Console, state: Empty) -> None:
    if state.failed and state.error is not None:
        console.print(f"[red]No data[/red] ({state.error.kind}: {state.error.description})")
    else:
        console.print("No data.")


async def _run_once(
    pipeline: FetchPipeline[WeeklyForecast] | FetchPipeline[CurrentForecast],
    query: str,
) -> PipelineState[WeeklyForecast] | PipelineState[CurrentForecast]:
    async with pipeline:
        pipeline.refresh_now(query)
        await pipeline.wait_idle()
        return pipeline.state


async def run_weekly(
    settings: Settings, logger: logging.Logger, console: Console, city: str, max_print: int
) -> int:
    async with OpenWeatherFetcher(settings=settings, logger=logger) as fetcher:
        state = await _run_once(weekly_pipeline(fetcher, settings, logger), city)
    if isinstance(state, Empty):
        _render_empty(console, state)
        return 4 if state.failed else 0
    render_weekly(console, state.value, max_print)
    return 0


async def run_current(
    settings: Settings, logger: logging.Logger, console: Console, city: str
) -> int:
    async with OpenWeatherFetcher(settings=settings, logger=logger) as fetcher:
        state = await _run_once(current_pipeline(fetcher, logger), city)
    if isinstance(state, Empty):
        _render_empty(console, state)
        return 4 if state.failed else 0
    render_current(console, state.value)
    return 0


async def run_watch(settings: Settings, logger: logging.Logger, console: Console) -> int:
    loop = asyncio.get_running_loop()

    def on_state(state: PipelineState[WeeklyForecast]) -> None:
        if isinstance(state, Empty):
            _render_empty(console, state)
        else:
            render_weekly(console, state.value, settings.forecast_max_print)

    async with OpenWeatherFetcher(settings=settings, logger=logger) as fetcher:
        async with weekly_pipeline(fetcher, settings, logger) as pipeline:
            with pipeline.subscribe(on_state):
                while True:
                    line = await loop.run_in_executor(None, sys.stdin.readline)
                    if not line:
                        break
                    pipeline.set_query(line)
                await pipeline.wait_idle()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the forecast CLI."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    logger = setup_logger(level=settings.log_level)
    logger.debug("Loaded settings: %s", sanitize_for_logging(settings.safe_summary()))

    if args.command == "weekly" and args.max_print is not None and args.max_print <= 0:
        logger.error("--max-print must be > 0 when provided.")
        return 2

    try:
        if args.command == "weekly":
            max_print = args.max_print or settings.forecast_max_print
            return asyncio.run(run_weekly(settings, logger, console, args.city, max_print))
        if args.command == "current":
            return asyncio.run(run_current(settings, logger, console, args.city))
        return asyncio.run(run_watch(settings, logger, console))
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # pragma: no cover - defensive catch for CLI runtime
        logger.exception("Unexpected forecast CLI failure: %s", exc)
        return 99


if __name__ == "__main__":
    sys.exit(main())

"""Reactive fetch pipelines: debounce, single live fetch, dedup, replay-one state."""

from .debounce import DebouncedQuerySource
from .dedup import dedup_by_key, forecast_day_key
from .factory import current_pipeline, weekly_pipeline
from .orchestrator import FetchPipeline, InFlightHandle, PipelineOptions
from .publisher import StatePublisher, Subscription
from .state import Empty, PipelineState, Ready

__all__ = [
    "DebouncedQuerySource",
    "Empty",
    "FetchPipeline",
    "InFlightHandle",
    "PipelineOptions",
    "PipelineState",
    "Ready",
    "StatePublisher",
    "Subscription",
    "current_pipeline",
    "dedup_by_key",
    "forecast_day_key",
    "weekly_pipeline",
]

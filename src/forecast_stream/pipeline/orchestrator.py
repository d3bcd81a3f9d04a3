"""Fetch pipeline: settled queries in, one live fetch at a time, states out."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..exceptions import FetchError, PipelineClosedError
from ..weather.models import WeeklyForecast
from .debounce import DebouncedQuerySource
from .dedup import KeyFn, dedup_by_key
from .publisher import Observer, StatePublisher, Subscription
from .state import Empty, PipelineState, Ready

T = TypeVar("T")

FetchFn = Callable[[str], Awaitable[T]]


@dataclass(frozen=True, slots=True)
class PipelineOptions:
    """Shape of one pipeline instance.

    ``debounce_window`` in seconds, ``None`` for single-shot pipelines.
    ``dedup_key`` collapses repeated entries of a sequence result.
    """

    debounce_window: float | None = None
    dedup_key: KeyFn[Any] | None = None


@dataclass(frozen=True, slots=True)
class QuerySettled:
    query: str


@dataclass(frozen=True, slots=True)
class FetchSucceeded:
    generation: int
    value: Any


@dataclass(frozen=True, slots=True)
class FetchFailed:
    generation: int
    error: FetchError


PipelineEvent = QuerySettled | FetchSucceeded | FetchFailed


class InFlightHandle:
    """Cancellation token for the single fetch a pipeline owns."""

    def __init__(self, generation: int, query: str, task: asyncio.Task[None]) -> None:
        self.generation = generation
        self.query = query
        self.task = task
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self.task.cancel()

    def __repr__(self) -> str:
        return (
            f"InFlightHandle(generation={self.generation}, query={self.query!r}, "
            f"cancelled={self.cancelled})"
        )


class FetchPipeline(Generic[T]):
    """Turn a stream of raw queries into published ``PipelineState`` values.

    Settled queries and fetch completions go through one ``asyncio.Queue`` and
    are applied by a single worker task, so state only changes in arrival
    order. A new settled query cancels the live fetch before starting the
    next one; completions from any handle other than the live one are dropped
    and never reach observers. Failures publish ``Empty`` carrying the error.
    """

    def __init__(
        self,
        fetch: FetchFn[T],
        options: PipelineOptions | None = None,
        *,
        logger: logging.Logger | None = None,
        name: str = "pipeline",
    ) -> None:
        self._fetch = fetch
        self.options = options or PipelineOptions()
        self.name = name
        self.logger = logger or logging.getLogger(f"forecast_stream.pipeline.{name}")
        self._publisher: StatePublisher[T] = StatePublisher(logger=self.logger)
        self._events: asyncio.Queue[PipelineEvent] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._handle: InFlightHandle | None = None
        self._generation = 0
        self._closed = False
        self.fetch_count = 0
        self.last_query: str | None = None

        self._source: DebouncedQuerySource | None = None
        if self.options.debounce_window:
            self._source = DebouncedQuerySource(
                self.options.debounce_window,
                self._on_settled,
            )

    @property
    def state(self) -> PipelineState[T]:
        return self._publisher.state

    @property
    def in_flight(self) -> InFlightHandle | None:
        return self._handle

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, observer: Observer[T]) -> Subscription:
        """Register ``observer``; it immediately receives the current state."""
        self._ensure_open()
        return self._publisher.subscribe(observer)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._publisher.unsubscribe(subscription)

    def set_query(self, raw: str) -> None:
        """Feed a raw query; debounced pipelines settle it after the quiet window."""
        self._ensure_open()
        query = raw.strip()
        if self._source is not None:
            self._source.emit(query)
        else:
            self._on_settled(query)

    def refresh_now(self, query: str) -> None:
        """Settle ``query`` immediately, discarding any pending debounced value."""
        self._ensure_open()
        if self._source is not None:
            self._source.cancel()
        self._on_settled(query.strip())

    async def wait_idle(self) -> None:
        """Wait until no debounced value, fetch or queued event is outstanding."""
        while not self._closed:
            timer = self._source.pending_task if self._source is not None else None
            if timer is not None:
                await asyncio.wait({timer})
                continue
            handle = self._handle
            if handle is not None:
                await asyncio.wait({handle.task})
            await self._events.join()
            pending = self._source is not None and self._source.pending
            if self._handle is None and not pending:
                return

    async def aclose(self) -> None:
        """Cancel the live fetch, stop event processing and release observers."""
        if self._closed:
            return
        self._closed = True
        if self._source is not None:
            self._source.close()

        handle = self._handle
        self._handle = None
        tasks: list[asyncio.Task[None]] = []
        if handle is not None:
            handle.cancel()
            tasks.append(handle.task)
        if self._worker is not None:
            self._worker.cancel()
            tasks.append(self._worker)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._publisher.close()
        self.logger.debug("Pipeline %s closed", self.name)

    async def __aenter__(self) -> FetchPipeline[T]:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        await self.aclose()

    def _ensure_open(self) -> None:
        if self._closed:
            raise PipelineClosedError(f"Pipeline {self.name} is closed.")

    def _on_settled(self, query: str) -> None:
        self._enqueue(QuerySettled(query))

    def _enqueue(self, event: PipelineEvent) -> None:
        if self._closed:
            return
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(
                self._process_events(), name=f"{self.name}-events"
            )
        self._events.put_nowait(event)

    async def _process_events(self) -> None:
        while True:
            event = await self._events.get()
            try:
                self._apply(event)
            except Exception as exc:
                # The worker must survive so later events still settle.
                self.logger.exception("Pipeline %s failed applying %r", self.name, event)
                self._recover(exc)
            finally:
                self._events.task_done()

    def _recover(self, exc: Exception) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        error = FetchError(str(exc) or type(exc).__name__, kind="unexpected")
        self._publisher.publish(Empty(error=error))

    def _apply(self, event: PipelineEvent) -> None:
        if isinstance(event, QuerySettled):
            self._on_query(event.query)
            return

        handle = self._handle
        if handle is None or handle.cancelled or handle.generation != event.generation:
            self.logger.debug(
                "Pipeline %s dropping stale completion for generation %d",
                self.name, event.generation,
            )
            return
        self._handle = None

        if isinstance(event, FetchFailed):
            self.logger.warning(
                "Pipeline %s fetch for %r failed (%s): %s",
                self.name, handle.query, event.error.kind, event.error.description,
            )
            self._publisher.publish(Empty(error=event.error))
            return

        self.logger.info("Pipeline %s published result for %r", self.name, handle.query)
        self._publisher.publish(Ready(event.value))

    def _on_query(self, query: str) -> None:
        if self._handle is not None:
            self.logger.debug("Pipeline %s cancelling %r", self.name, self._handle)
            self._handle.cancel()
            self._handle = None

        self.last_query = query
        if not query:
            self._publisher.publish(Empty())
            return

        self._generation += 1
        generation = self._generation
        task = asyncio.get_running_loop().create_task(
            self._run_fetch(generation, query),
            name=f"{self.name}-fetch-{generation}",
        )
        self._handle = InFlightHandle(generation, query, task)
        self.fetch_count += 1
        self.logger.debug("Pipeline %s fetching %r (generation %d)", self.name, query, generation)

    async def _run_fetch(self, generation: int, query: str) -> None:
        try:
            value = self._dedup(await self._fetch(query))
        except FetchError as exc:
            self._enqueue(FetchFailed(generation, exc))
        except Exception as exc:
            self.logger.exception("Pipeline %s fetch for %r raised unexpectedly", self.name, query)
            error = FetchError(str(exc) or type(exc).__name__, kind="unexpected")
            self._enqueue(FetchFailed(generation, error))
        else:
            self._enqueue(FetchSucceeded(generation, value))

    def _dedup(self, value: Any) -> Any:
        key = self.options.dedup_key
        if key is None:
            return value
        if isinstance(value, WeeklyForecast):
            return value.model_copy(update={"entries": tuple(dedup_by_key(value.entries, key))})
        return tuple(dedup_by_key(value, key))

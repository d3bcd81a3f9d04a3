"""Debounced query source: coalesces bursts of raw queries into settled ones."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from ..exceptions import PipelineClosedError


class DebouncedQuerySource:
    """Emit the last pushed query once no new value arrives within ``window`` seconds.

    The construction-time ``initial`` value is never replayed, so a source that
    never receives ``emit`` never settles. Intermediate values inside a window
    are discarded, not queued. ``window`` of ``None`` or ``0`` settles each
    value immediately. Must be used from a running event loop.
    """

    def __init__(
        self,
        window: float | None,
        on_settled: Callable[[str], None],
        *,
        initial: str = "",
    ) -> None:
        self.window = window or None
        self._on_settled = on_settled
        self._latest = initial
        self._timer: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def latest(self) -> str:
        """Most recently pushed value (or the initial one)."""
        return self._latest

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def pending_task(self) -> asyncio.Task[None] | None:
        return self._timer if self.pending else None

    def emit(self, query: str) -> None:
        if self._closed:
            raise PipelineClosedError("Debounced query source is closed.")
        self._latest = query
        self.cancel()
        if self.window is None:
            self._on_settled(query)
            return
        self._timer = asyncio.get_running_loop().create_task(self._settle_after_quiet(query))

    def cancel(self) -> None:
        """Drop a pending value without settling it."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def close(self) -> None:
        self.cancel()
        self._closed = True

    async def _settle_after_quiet(self, query: str) -> None:
        await asyncio.sleep(self.window or 0)
        self._timer = None
        self._on_settled(query)

"""Replay-one state publisher."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ..exceptions import PipelineClosedError
from .state import Empty, PipelineState

T = TypeVar("T")

Observer = Callable[[PipelineState[T]], None]


class Subscription:
    """Registration handle returned by ``StatePublisher.subscribe``."""

    def __init__(self, publisher: StatePublisher[Any], observer: Observer[Any]) -> None:
        self._publisher = publisher
        self.observer = observer
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._publisher.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.cancel()


class StatePublisher(Generic[T]):
    """Hold the latest state and deliver it to observers in publish order.

    New observers receive the current state immediately on ``subscribe``.
    """

    def __init__(
        self,
        initial: PipelineState[T] | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._state: PipelineState[T] = initial if initial is not None else Empty()
        self._subscriptions: list[Subscription] = []
        self._closed = False
        self.logger = logger or logging.getLogger(__name__)

    @property
    def state(self) -> PipelineState[T]:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def observer_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, observer: Observer[T]) -> Subscription:
        if self._closed:
            raise PipelineClosedError("Cannot subscribe to a closed publisher.")
        subscription = Subscription(self, observer)
        self._subscriptions.append(subscription)
        self._deliver(subscription, self._state)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, state: PipelineState[T]) -> None:
        if self._closed:
            raise PipelineClosedError("Cannot publish to a closed publisher.")
        self._state = state
        # Observers may unsubscribe while being notified.
        for subscription in list(self._subscriptions):
            if subscription.active:
                self._deliver(subscription, state)

    def close(self) -> None:
        """Release every observer registration."""
        for subscription in self._subscriptions:
            subscription.active = False
        self._subscriptions.clear()
        self._closed = True

    def _deliver(self, subscription: Subscription, state: PipelineState[T]) -> None:
        try:
            subscription.observer(state)
        except Exception:
            self.logger.exception("Observer %r raised while handling state", subscription.observer)

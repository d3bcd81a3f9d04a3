"""Tagged pipeline state published to observers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from ..exceptions import FetchError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Empty:
    """No data: idle, cleared by an empty query, or collapsed from a failure.

    ``error`` is set only when the state comes from a failed fetch; observers
    that render it like any other ``Empty`` still see "no data".
    """

    error: FetchError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True)
class Ready(Generic[T]):
    """Last successful result."""

    value: T


PipelineState = Union[Empty, Ready[T]]

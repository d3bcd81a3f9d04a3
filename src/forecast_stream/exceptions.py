"""Application exception classes."""

from __future__ import annotations

from typing import Literal

FetchErrorKind = Literal["network", "parsing", "unexpected"]


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class FetchError(Exception):
    """Raised when a forecast fetch fails in transport or decoding."""

    def __init__(
        self,
        description: str,
        *,
        kind: FetchErrorKind = "network",
    ) -> None:
        super().__init__(description)
        self.kind = kind
        self.description = description

    def __repr__(self) -> str:
        return f"FetchError(kind={self.kind!r}, description={self.description!r})"


class PipelineClosedError(Exception):
    """Raised when a torn-down pipeline receives input or a publish."""

"""Error types raised across the arbitrage detector."""
from __future__ import annotations

from typing import Sequence


class ArbitrageError(Exception):
    """Base class for all detector errors."""


class ConfigurationError(ArbitrageError):
    """Missing or malformed settings detected at startup."""


class QuoteFailure(ArbitrageError):
    """A single router quote could not be obtained."""

    def __init__(self, source: str, path: Sequence[str], cause: BaseException) -> None:
        self.source = source
        self.path = list(path)
        self.cause = cause
        super().__init__(f"{source} quote failed for path {' -> '.join(self.path)}: {cause}")


class PersistenceError(ArbitrageError):
    """A write to the sqlite store failed."""

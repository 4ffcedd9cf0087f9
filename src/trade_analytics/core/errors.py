"""Custom exception hierarchy for the trade analytics core."""

from __future__ import annotations

from typing import Any


class TradeAnalyticsError(Exception):
    """Base exception for all trade analytics errors."""


# --- Configuration ---
class ConfigError(TradeAnalyticsError):
    """Invalid or missing configuration."""


class ConfigurationError(ConfigError):
    """Invalid sampling, replay, or retry settings.  Fatal at startup."""


# --- Executions ---
class ExecutionError(TradeAnalyticsError):
    """Execution stream error."""


class InvalidExecutionError(ExecutionError):
    """Malformed or out-of-order execution.  Rejected, never retried."""

    def __init__(
        self, message: str, execution: Any = None, reason: str = "invalid"
    ):
        self.execution = execution
        self.reason = reason
        super().__init__(message)


# --- Positions ---
class PositionError(TradeAnalyticsError):
    """Position lifecycle error."""


class PositionNotClosedError(PositionError):
    """Operation requires a CLOSED position."""


# --- Price data ---
class DataError(TradeAnalyticsError):
    """Price series quality error."""


class InsufficientDataError(DataError):
    """Not enough usable bars to compute a replay."""


class MalformedBarError(DataError):
    """A single price bar could not be parsed."""


class UnsortedPriceSeriesError(DataError):
    """Price bars are not in ascending timestamp order."""


# --- Price series provider ---
class ProviderError(TradeAnalyticsError):
    """Price series provider failure."""


class TransientProviderError(ProviderError):
    """Retryable fetch failure (network, timeout, throttling)."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class PriceDataNotFoundError(ProviderError):
    """Symbol or range has no data.  Not retryable."""

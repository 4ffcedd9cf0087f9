"""Trade replay: price path reconstruction, sampling and persistence."""

from trade_analytics.replay.models import Replay, ReplayPoint
from trade_analytics.replay.provider import RetryingPriceSeriesProvider
from trade_analytics.replay.repository import InMemoryReplayRepository
from trade_analytics.replay.sampling import (
    SamplingCounterStore,
    SamplingPolicy,
    SamplingRequest,
    SamplingState,
)
from trade_analytics.replay.service import ReplayService
from trade_analytics.replay.simulator import ReplaySimulator

__all__ = [
    "InMemoryReplayRepository",
    "Replay",
    "ReplayPoint",
    "ReplayService",
    "ReplaySimulator",
    "RetryingPriceSeriesProvider",
    "SamplingCounterStore",
    "SamplingPolicy",
    "SamplingRequest",
    "SamplingState",
]

"""Shared fixtures for the trade-analytics test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from trade_analytics.analytics.aggregator import MetricsAggregator
from trade_analytics.core.clock import SimClock
from trade_analytics.core.config import SamplingConfig
from trade_analytics.reconciliation.book import PositionBook
from trade_analytics.replay.repository import InMemoryReplayRepository
from trade_analytics.replay.sampling import SamplingCounterStore, SamplingPolicy
from trade_analytics.replay.simulator import ReplaySimulator


@pytest.fixture
def sim_clock() -> SimClock:
    """Return a SimClock starting at 2024-06-01 UTC."""
    return SimClock(start=datetime(2024, 6, 1, tzinfo=timezone.utc))


@pytest.fixture
def aggregator() -> MetricsAggregator:
    return MetricsAggregator()


@pytest.fixture
def book() -> PositionBook:
    return PositionBook(max_workers=4)


@pytest.fixture
def simulator(sim_clock) -> ReplaySimulator:
    return ReplaySimulator(annualization_factor=252, clock=sim_clock)


@pytest.fixture
def counter_store() -> SamplingCounterStore:
    return SamplingCounterStore()


@pytest.fixture
def sampling_config() -> SamplingConfig:
    return SamplingConfig(
        enabled=True,
        daily_trade_threshold=10,
        sampling_rate=2,
        significant_profit_loss_threshold=5.0,
        high_volatility_threshold=2.0,
    )


@pytest.fixture
def sampling_policy(sampling_config, counter_store, sim_clock) -> SamplingPolicy:
    return SamplingPolicy(sampling_config, counter_store, sim_clock)


@pytest.fixture
def repository() -> InMemoryReplayRepository:
    return InMemoryReplayRepository()

"""Tests for ReplayService orchestration."""

import pytest

from factories import make_bars, make_closed_position, make_execution
from trade_analytics.core.config import ReplayConfig, SamplingConfig, Settings
from trade_analytics.core.errors import (
    InsufficientDataError,
    PositionNotClosedError,
    PriceDataNotFoundError,
    TransientProviderError,
)
from trade_analytics.observability.logger import get_correlation_id
from trade_analytics.reconciliation.reconciler import reconcile
from trade_analytics.replay.provider import RetryingPriceSeriesProvider
from trade_analytics.replay.sampling import SamplingPolicy
from trade_analytics.replay.service import ReplayService


class FakeProvider:
    def __init__(self, bars=None, error=None, by_symbol=None):
        self.bars = bars if bars is not None else make_bars([100, 110, 95])
        self.error = error
        self.by_symbol = by_symbol or {}
        self.calls = []

    async def fetch_bars(self, symbol, start, end, interval, continuous=False):
        self.calls.append((symbol, start, end, interval, continuous))
        if symbol in self.by_symbol:
            outcome = self.by_symbol[symbol]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        if self.error is not None:
            raise self.error
        return self.bars


@pytest.fixture
def service_factory(repository, simulator, sampling_policy):
    def _make(provider, sampling=None, config=None):
        return ReplayService(
            provider,
            repository,
            simulator=simulator,
            sampling=sampling or sampling_policy,
            config=config,
        )

    return _make


class TestReplayPosition:
    @pytest.mark.asyncio
    async def test_builds_and_stores(self, service_factory, repository):
        provider = FakeProvider()
        service = service_factory(provider, config=ReplayConfig(bar_interval="day"))
        position = make_closed_position("100", "95", "10")

        replay = await service.replay_position(position)

        assert replay.max_run_up == 100
        assert replay.max_drawdown == 150
        assert repository.find_by_id(replay.replay_id) is replay
        symbol, start, end, interval, continuous = provider.calls[0]
        assert (symbol, start, end) == ("AAPL", position.opened_at, position.closed_at)
        assert interval == "day"
        assert continuous is False

    @pytest.mark.asyncio
    async def test_fetch_runs_under_position_correlation_id(self, service_factory):
        seen = []

        class RecordingProvider(FakeProvider):
            async def fetch_bars(self, *args, **kwargs):
                seen.append(get_correlation_id())
                return await super().fetch_bars(*args, **kwargs)

        position = make_closed_position()
        await service_factory(RecordingProvider()).replay_position(position)
        assert seen == [position.position_id]
        assert get_correlation_id() != position.position_id

    @pytest.mark.asyncio
    async def test_open_position_rejected_before_fetch(self, service_factory):
        provider = FakeProvider()
        open_pos = reconcile([make_execution("buy")]).open_position
        with pytest.raises(PositionNotClosedError):
            await service_factory(provider).replay_position(open_pos)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_provider_unavailable_returns_none(self, service_factory, repository):
        provider = FakeProvider(error=TransientProviderError("down", attempts=3))
        result = await service_factory(provider).replay_position(make_closed_position())
        assert result is None
        assert len(repository) == 0

    @pytest.mark.asyncio
    async def test_not_found_propagates(self, service_factory):
        provider = FakeProvider(error=PriceDataNotFoundError("delisted"))
        with pytest.raises(PriceDataNotFoundError):
            await service_factory(provider).replay_position(make_closed_position())

    @pytest.mark.asyncio
    async def test_insufficient_data_propagates(self, service_factory):
        provider = FakeProvider(bars=make_bars([100]))
        with pytest.raises(InsufficientDataError):
            await service_factory(provider).replay_position(make_closed_position())

    @pytest.mark.asyncio
    async def test_sampled_out_replay_is_returned_not_stored(
        self, service_factory, repository, counter_store, sim_clock
    ):
        config = SamplingConfig(
            daily_trade_threshold=0,
            sampling_rate=2,
            preserve_significant_trades=False,
            preserve_high_volatility_trades=False,
        )
        sampling = SamplingPolicy(config, counter_store, sim_clock)
        service = service_factory(FakeProvider(), sampling=sampling)

        first = await service.replay_position(make_closed_position())
        second = await service.replay_position(make_closed_position())

        assert first is not None and second is not None
        assert repository.find_by_id(first.replay_id) is None
        assert repository.find_by_id(second.replay_id) is second
        state = sampling.state("trader-1")
        assert (state.trades_seen, state.trades_stored) == (2, 1)


class TestReplayMany:
    @pytest.mark.asyncio
    async def test_mixed_batch(self, service_factory):
        provider = FakeProvider(by_symbol={
            "GOOD": make_bars([100, 105]),
            "THIN": make_bars([100]),
            "GONE": PriceDataNotFoundError("no data"),
        })
        good = make_closed_position(symbol="GOOD")
        thin = make_closed_position(symbol="THIN")
        gone = make_closed_position(symbol="GONE")
        open_pos = reconcile([make_execution("buy", symbol="OPEN")]).open_position

        results = await service_factory(provider).replay_many([good, thin, gone, open_pos])

        assert set(results) == {good.position_id, thin.position_id, gone.position_id}
        assert results[good.position_id].symbol == "GOOD"
        assert results[thin.position_id] is None
        assert results[gone.position_id] is None

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self, service_factory):
        positions = [make_closed_position(symbol=f"S{i}") for i in range(10)]
        service = service_factory(FakeProvider(), config=ReplayConfig(max_concurrency=2))
        results = await service.replay_many(positions)
        assert all(r is not None for r in results.values())
        assert len(results) == 10

    @pytest.mark.asyncio
    async def test_empty(self, service_factory):
        assert await service_factory(FakeProvider()).replay_many([]) == {}


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_wraps_provider_with_retries(self, repository, sim_clock):
        settings = Settings(retry={"max_attempts": 1})
        service = ReplayService.from_settings(
            settings, FakeProvider(error=TransientProviderError("x")), repository, clock=sim_clock
        )
        assert isinstance(service._provider, RetryingPriceSeriesProvider)
        assert await service.replay_position(make_closed_position()) is None

    @pytest.mark.asyncio
    async def test_created_at_from_clock(self, repository, sim_clock):
        service = ReplayService.from_settings(
            Settings(), FakeProvider(), repository, clock=sim_clock
        )
        replay = await service.replay_position(make_closed_position())
        assert replay.created_at == sim_clock.now()

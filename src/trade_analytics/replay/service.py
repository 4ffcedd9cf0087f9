"""Replay service: fetch bars, simulate, sample, persist.

A provider that stays unavailable after retries means the position simply
goes without a replay (``None``).  Data problems (no data, too few usable
bars) are surfaced to the caller of ``replay_position``; ``replay_many``
logs them and maps the position to ``None`` so one bad series does not
sink the batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from trade_analytics.core.clock import IClock
from trade_analytics.core.config import ReplayConfig, Settings
from trade_analytics.core.errors import (
    DataError,
    PositionNotClosedError,
    PriceDataNotFoundError,
    TransientProviderError,
)
from trade_analytics.core.interfaces import IPriceSeriesProvider, IReplayRepository
from trade_analytics.journal.position import Position
from trade_analytics.observability import metrics
from trade_analytics.observability.logger import correlation_scope

from .models import Replay
from .provider import RetryingPriceSeriesProvider
from .sampling import SamplingCounterStore, SamplingPolicy, SamplingRequest
from .simulator import ReplaySimulator

logger = logging.getLogger(__name__)


class ReplayService:
    """Orchestrates replay enrichment for closed positions.

    Parameters
    ----------
    provider:
        Price series source, normally a ``RetryingPriceSeriesProvider``.
    repository:
        Destination for replays the sampling policy keeps.
    simulator:
        Path reconstruction.
    sampling:
        Store / skip decision and daily counters.
    config:
        Bar interval, continuous flag and batch concurrency.
    """

    def __init__(
        self,
        provider: IPriceSeriesProvider,
        repository: IReplayRepository,
        simulator: ReplaySimulator | None = None,
        sampling: SamplingPolicy | None = None,
        config: ReplayConfig | None = None,
    ) -> None:
        self._provider = provider
        self._repository = repository
        self._config = config or ReplayConfig()
        self._config.validate_values()
        self._simulator = simulator or ReplaySimulator(self._config.annualization_factor)
        self._sampling = sampling or SamplingPolicy()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: IPriceSeriesProvider,
        repository: IReplayRepository,
        clock: IClock | None = None,
        store: SamplingCounterStore | None = None,
    ) -> "ReplayService":
        """Wire a service from ``Settings``, wrapping *provider* in retries."""
        return cls(
            provider=RetryingPriceSeriesProvider(provider, settings.retry),
            repository=repository,
            simulator=ReplaySimulator(settings.replay.annualization_factor, clock),
            sampling=SamplingPolicy(settings.sampling, store, clock),
            config=settings.replay,
        )

    async def replay_position(self, position: Position) -> Replay | None:
        """Build, sample and (maybe) persist the replay for *position*.

        Returns None when the provider stays unavailable.

        Raises:
            PositionNotClosedError: *position* is not CLOSED.
            PriceDataNotFoundError: the provider has no data for the window.
            InsufficientDataError: fewer than two usable bars.
            UnsortedPriceSeriesError: bars out of order.
        """
        if not position.is_closed:
            raise PositionNotClosedError(
                f"Position {position.position_id} is not closed"
            )
        with correlation_scope(position.position_id):
            try:
                bars = await self._provider.fetch_bars(
                    position.symbol,
                    position.opened_at,
                    position.closed_at,
                    self._config.bar_interval,
                    self._config.continuous,
                )
            except TransientProviderError as exc:
                metrics.record_replay_skipped("provider_unavailable")
                logger.warning(
                    "Skipping replay for position %s (%s): %s",
                    position.position_id, position.symbol, exc,
                )
                return None

            replay = self._simulator.replay(position, bars)

            request = SamplingRequest.for_replay(replay)
            stored = self._sampling.should_store(
                request, replay.pnl_pct, replay.volatility
            )
            if stored:
                self._repository.save(replay)
            self._sampling.update_statistics(replay, stored)
            logger.info(
                "Replay %s for position %s %s",
                replay.replay_id,
                position.position_id,
                "stored" if stored else "not stored (sampled out)",
            )
            return replay

    async def replay_many(
        self, positions: Sequence[Position]
    ) -> dict[str, Replay | None]:
        """Replay closed positions concurrently, bounded by ``max_concurrency``.

        Open positions are ignored.  Positions whose replay fails on data
        errors map to None.
        """
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def _one(position: Position) -> Replay | None:
            async with semaphore:
                try:
                    return await self.replay_position(position)
                except (DataError, PriceDataNotFoundError) as exc:
                    metrics.record_replay_skipped(type(exc).__name__)
                    logger.warning(
                        "No replay for position %s: %s", position.position_id, exc
                    )
                    return None

        closed = [pos for pos in positions if pos.is_closed]
        results = await asyncio.gather(*(_one(pos) for pos in closed))
        return {pos.position_id: result for pos, result in zip(closed, results)}

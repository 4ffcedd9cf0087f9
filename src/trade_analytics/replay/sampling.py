"""Sampling policy: which replays are worth persisting.

Decision, first match wins:

1. sampling disabled: store
2. ``|pnl %| >= significant_profit_loss_threshold``: store
3. ``volatility >= high_volatility_threshold``: store
4. trades seen today ``<= daily_trade_threshold``: store
5. otherwise store every ``sampling_rate``-th trade

The per (user, calendar day) counter is bumped on every evaluated
request, stored or not.  Counters live in an injected
``SamplingCounterStore`` so their lifetime belongs to the caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from trade_analytics.core.clock import IClock, WallClock
from trade_analytics.core.config import SamplingConfig
from trade_analytics.core.numeric import to_decimal
from trade_analytics.observability import metrics

from .models import Replay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingRequest:
    """Identifies whose daily budget a replay counts against."""

    user_id: str
    position_id: str = ""
    symbol: str = ""

    @classmethod
    def for_replay(cls, replay: Replay) -> "SamplingRequest":
        return cls(
            user_id=user_key(replay),
            position_id=replay.position_id,
            symbol=replay.symbol,
        )


def user_key(replay: Replay) -> str:
    """Trader if known, else the portfolio."""
    return replay.trader_id or replay.portfolio_id


@dataclass(frozen=True)
class SamplingState:
    trades_seen: int = 0
    trades_stored: int = 0


class SamplingCounterStore:
    """Thread-safe per (user, day) counters.  No cross-day carryover."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[tuple[str, date], SamplingState] = {}

    def increment_seen(self, user_id: str, day: date) -> int:
        """Atomically bump trades seen; returns the new count."""
        with self._lock:
            state = self._states.get((user_id, day), SamplingState())
            state = replace(state, trades_seen=state.trades_seen + 1)
            self._states[(user_id, day)] = state
            return state.trades_seen

    def increment_stored(self, user_id: str, day: date) -> int:
        with self._lock:
            state = self._states.get((user_id, day), SamplingState())
            state = replace(state, trades_stored=state.trades_stored + 1)
            self._states[(user_id, day)] = state
            return state.trades_stored

    def get(self, user_id: str, day: date) -> SamplingState:
        with self._lock:
            return self._states.get((user_id, day), SamplingState())

    def reset(self, user_id: str | None = None, day: date | None = None) -> None:
        """Drop counters matching *user_id* and/or *day*; all when both are None."""
        with self._lock:
            if user_id is None and day is None:
                self._states.clear()
                return
            for key in list(self._states):
                if (user_id is None or key[0] == user_id) and (
                    day is None or key[1] == day
                ):
                    del self._states[key]

    def purge_before(self, day: date) -> int:
        """Drop every counter older than *day*.  Returns how many were dropped."""
        with self._lock:
            stale = [key for key in self._states if key[1] < day]
            for key in stale:
                del self._states[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


class SamplingPolicy:
    """Decides whether a replay is persisted.

    Raises:
        ConfigurationError: at construction, for out-of-range settings.
    """

    def __init__(
        self,
        config: SamplingConfig | None = None,
        store: SamplingCounterStore | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._config = config or SamplingConfig()
        self._config.validate_values()
        self._store = store if store is not None else SamplingCounterStore()
        self._clock = clock or WallClock()
        self._significant = to_decimal(self._config.significant_profit_loss_threshold)
        self._high_vol = to_decimal(self._config.high_volatility_threshold)

    @property
    def config(self) -> SamplingConfig:
        return self._config

    @property
    def store(self) -> SamplingCounterStore:
        return self._store

    def _today(self) -> date:
        return self._clock.now().date()

    def decide(
        self,
        profit_loss_pct: Decimal,
        volatility: Decimal,
        daily_count: int,
    ) -> bool:
        """Pure decision given today's count *including* this trade."""
        cfg = self._config
        if not cfg.enabled:
            return True
        if (
            cfg.preserve_significant_trades
            and abs(to_decimal(profit_loss_pct)) >= self._significant
        ):
            return True
        if (
            cfg.preserve_high_volatility_trades
            and to_decimal(volatility) >= self._high_vol
        ):
            return True
        if daily_count <= cfg.daily_trade_threshold:
            return True
        return daily_count % cfg.sampling_rate == 0

    def should_store(
        self,
        request: SamplingRequest,
        profit_loss_pct: Decimal,
        volatility: Decimal,
    ) -> bool:
        if not self._config.enabled:
            return True

        count = self._store.increment_seen(request.user_id, self._today())
        decision = self.decide(profit_loss_pct, volatility, count)
        logger.debug(
            "Sampling %s for user=%s position=%s: count=%d pnl_pct=%s vol=%s",
            "store" if decision else "skip",
            request.user_id,
            request.position_id,
            count,
            profit_loss_pct,
            volatility,
        )
        return decision

    def update_statistics(self, replay: Replay, was_stored: bool) -> None:
        """Record the outcome of a sampling decision."""
        if was_stored:
            self._store.increment_stored(user_key(replay), self._today())
            metrics.record_replay_stored()
        else:
            metrics.record_replay_skipped("sampled_out")

    def state(self, user_id: str, day: date | None = None) -> SamplingState:
        return self._store.get(user_id, day or self._today())

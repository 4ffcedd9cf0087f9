"""Single-metric lookup: ``MetricKind`` -> pure function over positions.

For callers that need one number rather than a full AggregateStatistics.
Every function preprocesses its input the same way the aggregator does.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Sequence

from trade_analytics.core.enums import MetricKind, TradeOutcome
from trade_analytics.core.numeric import ZERO
from trade_analytics.journal.position import Position

from . import primitives as p
from .aggregator import daily_pnl, holding_minutes
from .preprocessing import preprocess

MetricFunction = Callable[[Sequence[Position]], Decimal]


def _outcomes(positions: Sequence[Position]) -> list[TradeOutcome]:
    return [pos.outcome for pos in positions]


def _pnls(positions: Sequence[Position]) -> list[Decimal]:
    return [pos.net_pnl for pos in positions]


def _trades_per_day(positions: Sequence[Position]) -> Decimal:
    days = {pos.closed_at.date() for pos in positions}
    if not days:
        return ZERO
    return Decimal(len(positions)) / Decimal(len(days))


METRIC_REGISTRY: dict[MetricKind, MetricFunction] = {
    MetricKind.WIN_RATE: lambda ps: p.win_rate(_outcomes(ps)),
    MetricKind.LOSS_RATE: lambda ps: p.loss_rate(_outcomes(ps)),
    MetricKind.BREAK_EVEN_RATE: lambda ps: p.break_even_rate(_outcomes(ps)),
    MetricKind.PROFIT_FACTOR: lambda ps: p.profit_factor(_pnls(ps)),
    MetricKind.EXPECTANCY: lambda ps: p.expectancy(_pnls(ps)),
    MetricKind.RISK_REWARD_RATIO: lambda ps: p.risk_reward_ratio(_pnls(ps)),
    MetricKind.NET_PROFIT_LOSS: lambda ps: sum(_pnls(ps), ZERO),
    MetricKind.MAX_DRAWDOWN: lambda ps: p.max_drawdown(p.cumulative(_pnls(ps))).absolute,
    MetricKind.MAX_CONSECUTIVE_WINS: lambda ps: Decimal(
        p.max_consecutive(_outcomes(ps), TradeOutcome.WIN)
    ),
    MetricKind.MAX_CONSECUTIVE_LOSSES: lambda ps: Decimal(
        p.max_consecutive(_outcomes(ps), TradeOutcome.LOSS)
    ),
    MetricKind.SHARPE_RATIO: lambda ps: p.sharpe_ratio(daily_pnl(ps)),
    MetricKind.AVERAGE_HOLDING_MINUTES: lambda ps: p.mean(holding_minutes(pos) for pos in ps),
    MetricKind.TRADES_PER_DAY: _trades_per_day,
}


def compute_metric(kind: MetricKind, positions: Sequence[Position]) -> Decimal:
    """Compute one metric over the valid, chronologically sorted positions."""
    try:
        fn = METRIC_REGISTRY[kind]
    except KeyError:
        raise ValueError(f"No metric registered for {kind!r}") from None
    return fn(preprocess(positions))

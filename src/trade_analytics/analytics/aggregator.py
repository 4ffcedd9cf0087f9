"""Metrics aggregator: closed positions in, AggregateStatistics out.

Positions are always run through the preprocessing steps first, so
time-sensitive statistics (drawdown, streaks, Sharpe) see chronological
order no matter how the caller ordered the input.  Anything that cannot
be computed is reported as its zero-value.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Hashable, Sequence

from trade_analytics.core.config import Settings
from trade_analytics.core.enums import GroupKey, PositionDirection, TradeOutcome
from trade_analytics.core.numeric import ZERO, pct, safe_div, to_decimal
from trade_analytics.journal.position import Position
from trade_analytics.observability import metrics

from . import primitives as p
from .grouping import GroupSpec, behavioral_counts, count_tags, group_positions
from .preprocessing import PREPROCESSING_STEPS, PreprocessingStep, preprocess
from .statistics import (
    AggregateStatistics,
    BehavioralMetrics,
    HoldingTimeMetrics,
    PerformanceMetrics,
    PnlDistribution,
    RiskMetrics,
    StreakMetrics,
    TimeMetrics,
    TradeCounts,
    ValueMetrics,
)

logger = logging.getLogger(__name__)

SIXTY = Decimal(60)


def daily_pnl(positions: Sequence[Position]) -> list[Decimal]:
    """Net P&L summed per exit date, in date order."""
    by_day: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for position in positions:
        by_day[position.closed_at.date()] += position.net_pnl
    return [by_day[d] for d in sorted(by_day)]


def holding_minutes(position: Position) -> Decimal:
    return to_decimal(position.holding_seconds) / SIXTY


class MetricsAggregator:
    """Computes AggregateStatistics for a set of positions.

    Parameters
    ----------
    starting_equity:
        Added to the front of the cumulative P&L curve.  With the default
        of zero the drawdown percentage is relative to accumulated profit.
    annualization_factor:
        Periods per year used for Sharpe, Sortino and volatility.
    steps:
        Ordered preprocessing steps.
    """

    def __init__(
        self,
        starting_equity: Decimal = ZERO,
        annualization_factor: int = p.DEFAULT_ANNUALIZATION,
        steps: Sequence[PreprocessingStep] = PREPROCESSING_STEPS,
    ) -> None:
        self._starting_equity = to_decimal(starting_equity)
        self._annualization = annualization_factor
        self._steps = tuple(steps)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MetricsAggregator":
        settings.aggregation.validate_values()
        return cls(starting_equity=settings.aggregation.starting_equity)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def aggregate(self, positions: Sequence[Position]) -> AggregateStatistics:
        started = time.perf_counter()
        ordered = preprocess(positions, self._steps)
        if not ordered:
            return AggregateStatistics()

        stats = AggregateStatistics(
            counts=self._counts(ordered),
            performance=self._performance(ordered),
            value=self._value(ordered),
            risk=self._risk(ordered),
            streaks=self._streaks(ordered),
            time=self._time(ordered),
            holding=self._holding(ordered),
            distribution=self._distribution(ordered),
            behavior=self._behavior(ordered),
        )
        elapsed = time.perf_counter() - started
        metrics.record_aggregation_latency(elapsed)
        logger.debug(
            "Aggregated %d positions in %.4fs", len(ordered), elapsed
        )
        return stats

    def aggregate_by(
        self, positions: Sequence[Position], key: GroupSpec
    ) -> dict[Hashable, AggregateStatistics]:
        """AggregateStatistics per group of a multi-map grouping."""
        ordered = preprocess(positions, self._steps)
        return {
            group: self.aggregate(members)
            for group, members in group_positions(ordered, key).items()
        }

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    @staticmethod
    def _counts(positions: list[Position]) -> TradeCounts:
        outcomes = [pos.outcome for pos in positions]
        return TradeCounts(
            total=len(positions),
            winning=outcomes.count(TradeOutcome.WIN),
            losing=outcomes.count(TradeOutcome.LOSS),
            break_even=outcomes.count(TradeOutcome.BREAKEVEN),
            long=sum(1 for pos in positions if pos.direction is PositionDirection.LONG),
            short=sum(1 for pos in positions if pos.direction is PositionDirection.SHORT),
        )

    def _performance(self, positions: list[Position]) -> PerformanceMetrics:
        outcomes = [pos.outcome for pos in positions]
        pnls = [pos.net_pnl for pos in positions]
        daily = daily_pnl(positions)
        return PerformanceMetrics(
            win_rate=p.win_rate(outcomes),
            loss_rate=p.loss_rate(outcomes),
            break_even_rate=p.break_even_rate(outcomes),
            profit_factor=p.profit_factor(pnls),
            risk_reward_ratio=p.risk_reward_ratio(pnls),
            sharpe_ratio=p.sharpe_ratio(daily, self._annualization),
            sortino_ratio=p.sortino_ratio(daily, self._annualization),
        )

    def _value(self, positions: list[Position]) -> ValueMetrics:
        pnls = [pos.net_pnl for pos in positions]
        wins = [x for x in pnls if x > ZERO]
        losses = [x for x in pnls if x < ZERO]
        net = sum(pnls, ZERO)
        return ValueMetrics(
            net_profit_loss=net,
            gross_profit=p.gross_profit(pnls),
            gross_loss=p.gross_loss(pnls),
            total_fees=sum((pos.fees for pos in positions), ZERO),
            expectancy=p.expectancy(pnls),
            average_win=p.mean(wins),
            average_loss=-p.mean(losses),
            largest_win=max(wins, default=ZERO),
            largest_loss=-min(losses, default=ZERO),
            average_pnl_pct=p.mean(pos.pnl_pct for pos in positions),
            total_return_pct=pct(net, self._starting_equity),
        )

    def _risk(self, positions: list[Position]) -> RiskMetrics:
        curve = p.cumulative(
            (pos.net_pnl for pos in positions), self._starting_equity
        )
        drawdown = p.max_drawdown(curve)
        returns = [pos.pnl_pct / 100 for pos in positions]
        return RiskMetrics(
            max_drawdown=drawdown.absolute,
            max_drawdown_pct=drawdown.percentage,
            drawdown_peak=drawdown.peak,
            drawdown_trough=drawdown.trough,
            volatility=p.volatility(returns, self._annualization),
        )

    @staticmethod
    def _streaks(positions: list[Position]) -> StreakMetrics:
        outcomes = [pos.outcome for pos in positions]
        return StreakMetrics(
            max_consecutive_wins=p.max_consecutive(outcomes, TradeOutcome.WIN),
            max_consecutive_losses=p.max_consecutive(outcomes, TradeOutcome.LOSS),
            current_streak=p.current_streak(outcomes),
        )

    @staticmethod
    def _time(positions: list[Position]) -> TimeMetrics:
        exit_dates = [pos.closed_at.date() for pos in positions]
        days = set(exit_dates)
        weeks = {d.isocalendar()[:2] for d in exit_dates}
        months = {(d.year, d.month) for d in exit_dates}
        total = Decimal(len(positions))
        return TimeMetrics(
            first_trade_at=positions[0].opened_at,
            last_trade_at=max(pos.closed_at for pos in positions),
            trading_days=len(days),
            trades_per_day=safe_div(total, Decimal(len(days))),
            trades_per_week=safe_div(total, Decimal(len(weeks))),
            trades_per_month=safe_div(total, Decimal(len(months))),
        )

    @staticmethod
    def _holding(positions: list[Position]) -> HoldingTimeMetrics:
        minutes = [holding_minutes(pos) for pos in positions]
        winning = [
            holding_minutes(pos) for pos in positions
            if pos.outcome == TradeOutcome.WIN
        ]
        losing = [
            holding_minutes(pos) for pos in positions
            if pos.outcome == TradeOutcome.LOSS
        ]
        return HoldingTimeMetrics(
            average_minutes=p.mean(minutes),
            average_minutes_winning=p.mean(winning),
            average_minutes_losing=p.mean(losing),
            max_minutes=max(minutes, default=ZERO),
            min_minutes=min(minutes, default=ZERO),
            average_days=p.mean(minutes) / (SIXTY * 24),
        )

    @staticmethod
    def _distribution(positions: list[Position]) -> PnlDistribution:
        pnls = [pos.net_pnl for pos in positions]
        return PnlDistribution(
            p10=p.percentile(pnls, 10),
            p25=p.percentile(pnls, 25),
            median=p.percentile(pnls, 50),
            p75=p.percentile(pnls, 75),
            p90=p.percentile(pnls, 90),
        )

    @staticmethod
    def _behavior(positions: list[Position]) -> BehavioralMetrics:
        return BehavioralMetrics(
            by_entry_psychology=count_tags(positions, GroupKey.ENTRY_PSYCHOLOGY),
            by_exit_psychology=count_tags(positions, GroupKey.EXIT_PSYCHOLOGY),
            by_behavior_pattern=count_tags(positions, GroupKey.BEHAVIOR_PATTERN),
            **behavioral_counts(positions),
        )


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------

def aggregate(
    positions: Sequence[Position], starting_equity: Decimal = ZERO
) -> AggregateStatistics:
    return MetricsAggregator(starting_equity=starting_equity).aggregate(positions)


def aggregate_by(
    positions: Sequence[Position],
    key: GroupSpec,
    starting_equity: Decimal = ZERO,
) -> dict[Hashable, AggregateStatistics]:
    return MetricsAggregator(starting_equity=starting_equity).aggregate_by(
        positions, key
    )

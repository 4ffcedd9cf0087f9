"""AggregateStatistics and its sections.

Derived, recomputable views over a set of closed positions.  Values are
unrounded Decimals; ``rounded()`` produces the presentation copy
(2 dp currency, 4 dp ratios and percentages, half-up).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from trade_analytics.core.numeric import ZERO, quantize_money, quantize_ratio


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=True)

    # Field names rounded as currency; every other Decimal is a ratio.
    money_fields: ClassVar[frozenset[str]] = frozenset()

    def rounded(self):
        update = {}
        for name, value in self:
            if isinstance(value, Decimal):
                if name in self.money_fields:
                    update[name] = quantize_money(value)
                else:
                    update[name] = quantize_ratio(value)
        return self.model_copy(update=update)


class TradeCounts(_Section):
    total: int = 0
    winning: int = 0
    losing: int = 0
    break_even: int = 0
    long: int = 0
    short: int = 0


class PerformanceMetrics(_Section):
    """Outcome rates (0-100) and return ratios."""

    win_rate: Decimal = ZERO
    loss_rate: Decimal = ZERO
    break_even_rate: Decimal = ZERO
    profit_factor: Decimal = Field(default=ZERO, allow_inf_nan=True)
    risk_reward_ratio: Decimal = ZERO
    sharpe_ratio: Decimal = ZERO
    sortino_ratio: Decimal = ZERO


class ValueMetrics(_Section):
    money_fields: ClassVar[frozenset[str]] = frozenset({
        "net_profit_loss",
        "gross_profit",
        "gross_loss",
        "total_fees",
        "expectancy",
        "average_win",
        "average_loss",
        "largest_win",
        "largest_loss",
    })

    net_profit_loss: Decimal = ZERO
    gross_profit: Decimal = ZERO
    gross_loss: Decimal = ZERO
    total_fees: Decimal = ZERO
    expectancy: Decimal = ZERO
    average_win: Decimal = ZERO
    average_loss: Decimal = ZERO
    largest_win: Decimal = ZERO
    largest_loss: Decimal = ZERO
    average_pnl_pct: Decimal = ZERO
    total_return_pct: Decimal = ZERO


class RiskMetrics(_Section):
    money_fields: ClassVar[frozenset[str]] = frozenset({
        "max_drawdown",
        "drawdown_peak",
        "drawdown_trough",
    })

    max_drawdown: Decimal = ZERO
    max_drawdown_pct: Decimal = ZERO
    drawdown_peak: Decimal = ZERO
    drawdown_trough: Decimal = ZERO
    volatility: Decimal = ZERO


class StreakMetrics(_Section):
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    current_streak: int = 0  # +N wins, -N losses


class TimeMetrics(_Section):
    first_trade_at: datetime | None = None
    last_trade_at: datetime | None = None
    trading_days: int = 0
    trades_per_day: Decimal = ZERO
    trades_per_week: Decimal = ZERO
    trades_per_month: Decimal = ZERO


class HoldingTimeMetrics(_Section):
    average_minutes: Decimal = ZERO
    average_minutes_winning: Decimal = ZERO
    average_minutes_losing: Decimal = ZERO
    max_minutes: Decimal = ZERO
    min_minutes: Decimal = ZERO
    average_days: Decimal = ZERO


class PnlDistribution(_Section):
    money_fields: ClassVar[frozenset[str]] = frozenset({
        "p10", "p25", "median", "p75", "p90",
    })

    p10: Decimal = ZERO
    p25: Decimal = ZERO
    median: Decimal = ZERO
    p75: Decimal = ZERO
    p90: Decimal = ZERO


class BehavioralMetrics(_Section):
    by_entry_psychology: dict[str, int] = Field(default_factory=dict)
    by_exit_psychology: dict[str, int] = Field(default_factory=dict)
    by_behavior_pattern: dict[str, int] = Field(default_factory=dict)
    fear_based_exits: int = 0
    greed_based_entries: int = 0
    impulsive_trades: int = 0
    disciplined_trades: int = 0


class AggregateStatistics(BaseModel):
    """Everything the aggregator reports for one set of positions."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=True)

    counts: TradeCounts = Field(default_factory=TradeCounts)
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    value: ValueMetrics = Field(default_factory=ValueMetrics)
    risk: RiskMetrics = Field(default_factory=RiskMetrics)
    streaks: StreakMetrics = Field(default_factory=StreakMetrics)
    time: TimeMetrics = Field(default_factory=TimeMetrics)
    holding: HoldingTimeMetrics = Field(default_factory=HoldingTimeMetrics)
    distribution: PnlDistribution = Field(default_factory=PnlDistribution)
    behavior: BehavioralMetrics = Field(default_factory=BehavioralMetrics)

    @property
    def is_empty(self) -> bool:
        return self.counts.total == 0

    def rounded(self) -> "AggregateStatistics":
        """Presentation copy with every Decimal quantized half-up."""
        return self.model_copy(update={
            name: section.rounded() for name, section in self
        })

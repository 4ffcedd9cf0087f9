"""Enumerations used across the trade analytics core."""

from enum import Enum


class ExecutionSide(str, Enum):
    BUY = "buy"
    SELL = "sell"
    SHORT = "short"  # Sell to open
    COVER = "cover"  # Buy to close a short

    @property
    def sign(self) -> int:
        """+1 for buy-side fills, -1 for sell-side fills."""
        if self in (ExecutionSide.BUY, ExecutionSide.COVER):
            return 1
        return -1


class PositionDirection(str, Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        return 1 if self is PositionDirection.LONG else -1

    @classmethod
    def from_sign(cls, sign: int) -> "PositionDirection":
        return cls.LONG if sign > 0 else cls.SHORT


class PositionStatus(str, Enum):
    """Reconciliation state of a position."""

    OPEN = "open"
    PARTIALLY_CLOSED = "partially_closed"
    CLOSED = "closed"


class TradeOutcome(str, Enum):
    """Win / loss / break-even classification."""

    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class EntryPsychology(str, Enum):
    FEAR_OF_MISSING_OUT = "fear_of_missing_out"
    OVERCONFIDENCE = "overconfidence"
    REVENGE_TRADING = "revenge_trading"
    ANALYSIS_PARALYSIS = "analysis_paralysis"
    FOLLOWING_THE_PLAN = "following_the_plan"
    INTUITION = "intuition"
    PEER_PRESSURE = "peer_pressure"


class ExitPsychology(str, Enum):
    FEAR = "fear"
    GREED = "greed"
    DISCIPLINE = "discipline"
    PANIC = "panic"
    REGRET_AVOIDANCE = "regret_avoidance"
    SUNK_COST_FALLACY = "sunk_cost_fallacy"
    TAKING_PROFITS = "taking_profits"
    CUTTING_LOSSES = "cutting_losses"


class BehaviorPattern(str, Enum):
    OVERTRADING = "overtrading"
    HESITATION = "hesitation"
    AVERAGING_DOWN = "averaging_down"
    CUTTING_WINNERS_SHORT = "cutting_winners_short"
    HOLDING_LOSERS = "holding_losers"
    CHASING_MOMENTUM = "chasing_momentum"
    POSITION_SIZING_ISSUES = "position_sizing_issues"
    REVENGE_TRADING = "revenge_trading"
    DISCIPLINED_EXECUTION = "disciplined_execution"


class GroupKey(str, Enum):
    """Built-in position grouping keys for the aggregator."""

    SYMBOL = "symbol"
    PORTFOLIO = "portfolio"
    STRATEGY = "strategy"
    ENTRY_PSYCHOLOGY = "entry_psychology"
    EXIT_PSYCHOLOGY = "exit_psychology"
    BEHAVIOR_PATTERN = "behavior_pattern"


class MetricKind(str, Enum):
    """Single-value metrics computable from a set of closed positions."""

    WIN_RATE = "win_rate"
    LOSS_RATE = "loss_rate"
    BREAK_EVEN_RATE = "break_even_rate"
    PROFIT_FACTOR = "profit_factor"
    EXPECTANCY = "expectancy"
    RISK_REWARD_RATIO = "risk_reward_ratio"
    NET_PROFIT_LOSS = "net_profit_loss"
    MAX_DRAWDOWN = "max_drawdown"
    MAX_CONSECUTIVE_WINS = "max_consecutive_wins"
    MAX_CONSECUTIVE_LOSSES = "max_consecutive_losses"
    SHARPE_RATIO = "sharpe_ratio"
    AVERAGE_HOLDING_MINUTES = "average_holding_minutes"
    TRADES_PER_DAY = "trades_per_day"

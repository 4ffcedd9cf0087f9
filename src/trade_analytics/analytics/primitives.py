"""Pure statistics primitives over outcomes, P&L values and return series.

Every function is deterministic, never mutates its input, and returns a
documented zero-value for empty or singleton input instead of raising.
Inputs are coerced to ``Decimal``; results are unrounded.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from trade_analytics.core.enums import TradeOutcome
from trade_analytics.core.numeric import (
    HUNDRED,
    INFINITY,
    ZERO,
    pct,
    to_decimal,
)

DEFAULT_ANNUALIZATION = 252


def _decimals(values: Iterable) -> list[Decimal]:
    return [to_decimal(v) for v in values]


# ---------------------------------------------------------------------------
# Outcome rates
# ---------------------------------------------------------------------------

def _rate(outcomes: Sequence[TradeOutcome], target: TradeOutcome) -> Decimal:
    if not outcomes:
        return ZERO
    hits = sum(1 for o in outcomes if o == target)
    return pct(Decimal(hits), Decimal(len(outcomes)))


def win_rate(outcomes: Sequence[TradeOutcome]) -> Decimal:
    """Percentage (0-100) of outcomes that are wins.  0 when empty."""
    return _rate(outcomes, TradeOutcome.WIN)


def loss_rate(outcomes: Sequence[TradeOutcome]) -> Decimal:
    return _rate(outcomes, TradeOutcome.LOSS)


def break_even_rate(outcomes: Sequence[TradeOutcome]) -> Decimal:
    return _rate(outcomes, TradeOutcome.BREAKEVEN)


# ---------------------------------------------------------------------------
# P&L ratios
# ---------------------------------------------------------------------------

def gross_profit(pnls: Iterable) -> Decimal:
    return sum((p for p in _decimals(pnls) if p > ZERO), ZERO)


def gross_loss(pnls: Iterable) -> Decimal:
    """Sum of losses as a positive number."""
    return sum((-p for p in _decimals(pnls) if p < ZERO), ZERO)


def profit_factor(pnls: Iterable) -> Decimal:
    """Gross profit / gross loss.

    ``Decimal('Infinity')`` when there are no losses but some profit,
    0 when there is neither.
    """
    values = _decimals(pnls)
    profit = gross_profit(values)
    loss = gross_loss(values)
    if loss == ZERO:
        return INFINITY if profit > ZERO else ZERO
    return profit / loss


def expectancy(pnls: Iterable) -> Decimal:
    """Average P&L per trade."""
    return mean(pnls)


def risk_reward_ratio(pnls: Iterable) -> Decimal:
    """Average win / average loss.  0 unless there is at least one of each."""
    values = _decimals(pnls)
    wins = [p for p in values if p > ZERO]
    losses = [-p for p in values if p < ZERO]
    if not wins or not losses:
        return ZERO
    return mean(wins) / mean(losses)


# ---------------------------------------------------------------------------
# Drawdown
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DrawdownResult:
    """Largest peak-to-trough decline of a curve.

    ``percentage`` is relative to the peak at the point of the largest
    absolute decline, and 0 when that peak is not positive.
    """

    absolute: Decimal = ZERO
    percentage: Decimal = ZERO
    peak: Decimal = ZERO
    trough: Decimal = ZERO


def max_drawdown(curve: Iterable) -> DrawdownResult:
    """Walk *curve* in order tracking the running peak.

    A monotonically non-decreasing curve (or an empty one) has zero
    drawdown.

    >>> max_drawdown([100, 80, 120, 60, 150]).absolute
    Decimal('60')
    """
    values = _decimals(curve)
    if not values:
        return DrawdownResult()

    peak = values[0]
    best = DrawdownResult(peak=peak, trough=peak)
    for value in values:
        if value > peak:
            peak = value
        drawdown = peak - value
        if drawdown > best.absolute:
            percentage = drawdown / peak * HUNDRED if peak > ZERO else ZERO
            best = DrawdownResult(drawdown, percentage, peak, value)
    return best


def cumulative(pnls: Iterable, start: Decimal = ZERO) -> list[Decimal]:
    """Equity curve ``[start, start+p0, start+p0+p1, ...]``."""
    total = to_decimal(start)
    curve = [total]
    for p in _decimals(pnls):
        total += p
        curve.append(total)
    return curve


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

def max_consecutive(
    outcomes: Sequence[TradeOutcome], target: TradeOutcome
) -> int:
    """Longest run of *target* in order.  Any other outcome resets the run."""
    best = run = 0
    for outcome in outcomes:
        if outcome == target:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best


def current_streak(outcomes: Sequence[TradeOutcome]) -> int:
    """Signed length of the trailing run: +N wins, -N losses, 0 otherwise."""
    if not outcomes:
        return 0
    last = outcomes[-1]
    if last == TradeOutcome.BREAKEVEN:
        return 0
    streak = 0
    for outcome in reversed(outcomes):
        if outcome != last:
            break
        streak += 1
    return streak if last == TradeOutcome.WIN else -streak


# ---------------------------------------------------------------------------
# Dispersion and risk-adjusted returns
# ---------------------------------------------------------------------------

def mean(values: Iterable) -> Decimal:
    data = _decimals(values)
    if not data:
        return ZERO
    return statistics.mean(data)


def sample_stdev(values: Iterable) -> Decimal:
    """Sample standard deviation.  0 for fewer than two values."""
    data = _decimals(values)
    if len(data) < 2:
        return ZERO
    return statistics.stdev(data)


def volatility(
    returns: Iterable, annualization_factor: int = DEFAULT_ANNUALIZATION
) -> Decimal:
    """Annualized sample stdev of *returns*, as a percentage.

    ``stdev * sqrt(annualization_factor) * 100``; 0 for fewer than two
    returns.
    """
    std = sample_stdev(returns)
    if std == ZERO:
        return ZERO
    return std * Decimal(annualization_factor).sqrt() * HUNDRED


def sharpe_ratio(
    returns: Iterable,
    annualization_factor: int = DEFAULT_ANNUALIZATION,
    risk_free: Decimal = ZERO,
) -> Decimal:
    """Annualized mean excess return over its sample stdev."""
    data = [r - to_decimal(risk_free) for r in _decimals(returns)]
    std = sample_stdev(data)
    if std == ZERO:
        return ZERO
    return mean(data) / std * Decimal(annualization_factor).sqrt()


def sortino_ratio(
    returns: Iterable,
    annualization_factor: int = DEFAULT_ANNUALIZATION,
) -> Decimal:
    """Like Sharpe but penalising only downside deviation."""
    data = _decimals(returns)
    if len(data) < 2:
        return ZERO
    downside = [min(ZERO, r) for r in data]
    downside_std = (sum(d * d for d in downside) / len(downside)).sqrt()
    if downside_std == ZERO:
        return ZERO
    return mean(data) / downside_std * Decimal(annualization_factor).sqrt()


def percentile(values: Iterable, p: float) -> Decimal:
    """*p*-th percentile (0-100) with linear interpolation between ranks."""
    data = sorted(_decimals(values))
    if not data:
        return ZERO
    if len(data) == 1:
        return data[0]
    rank = to_decimal(p) / HUNDRED * (len(data) - 1)
    lower = int(rank)
    if lower >= len(data) - 1:
        return data[-1]
    fraction = rank - lower
    return data[lower] + (data[lower + 1] - data[lower]) * fraction

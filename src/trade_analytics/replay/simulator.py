"""Trade replay simulator.

Walks a closed position's price bars and reconstructs its P&L path:

    pnl_i     = (close_i - entry) * quantity * sign
    pnl_pct_i = (close_i - entry) / entry * 100 * sign

Run-up is the best point on that path (never below zero); drawdown is the
largest peak-to-trough fall along it.  Both are also reported as a
percentage of entry notional.  Pure and thread-safe.
"""

from __future__ import annotations

import logging
from datetime import timezone, tzinfo
from decimal import Decimal
from typing import Any, Mapping, Sequence

from trade_analytics.analytics import primitives as p
from trade_analytics.core.clock import IClock, WallClock
from trade_analytics.core.errors import PositionNotClosedError
from trade_analytics.core.ids import new_id
from trade_analytics.core.models import PriceBar
from trade_analytics.core.numeric import HUNDRED, ZERO, pct
from trade_analytics.journal.position import Position
from trade_analytics.observability import metrics

from .bars import parse_bars
from .models import Replay, ReplayPoint

logger = logging.getLogger(__name__)


def bar_returns(closes: Sequence[Decimal]) -> list[Decimal]:
    """Simple returns between consecutive closes."""
    return [
        (current - previous) / previous
        for previous, current in zip(closes, closes[1:])
    ]


def average_movement(closes: Sequence[Decimal]) -> Decimal:
    """Mean absolute bar-to-bar move, as a percentage of the prior close."""
    return p.mean(abs(r) * HUNDRED for r in bar_returns(closes))


class ReplaySimulator:
    """Builds ``Replay`` records from closed positions and price bars.

    Parameters
    ----------
    annualization_factor:
        Bars per year used to annualize volatility.
    clock:
        Source of ``created_at``.  Defaults to wall-clock time.
    tz:
        Zone applied to naive bar timestamps.
    """

    def __init__(
        self,
        annualization_factor: int = p.DEFAULT_ANNUALIZATION,
        clock: IClock | None = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self._annualization = annualization_factor
        self._clock = clock or WallClock()
        self._tz = tz

    def replay(
        self,
        position: Position,
        bars: Sequence[PriceBar | Mapping[str, Any]],
    ) -> Replay:
        """Reconstruct *position*'s path over *bars*.

        Raises:
            PositionNotClosedError: *position* is not CLOSED.
            InsufficientDataError: fewer than two usable bars.
            UnsortedPriceSeriesError: usable bars are out of order.
        """
        if not position.is_closed:
            raise PositionNotClosedError(
                f"Position {position.position_id} is {position.status.value}; "
                f"replay needs a closed position"
            )

        valid_bars, skipped = parse_bars(bars, self._tz)

        entry = position.average_entry_price
        quantity = position.entry_quantity
        sign = position.direction.sign
        notional = entry * quantity

        points = [
            ReplayPoint(
                timestamp=bar.timestamp,
                open=bar.open,
                high=bar.high,
                low=bar.low,
                close=bar.close,
                volume=bar.volume,
                pnl=(bar.close - entry) * quantity * sign,
                pnl_pct=pct(bar.close - entry, entry) * sign,
            )
            for bar in valid_bars
        ]
        path = [point.pnl for point in points]
        closes = [bar.close for bar in valid_bars]

        run_up = max(max(path), ZERO)
        drawdown = p.max_drawdown(path).absolute

        result = Replay(
            replay_id=new_id(),
            position_id=position.position_id,
            symbol=position.symbol,
            direction=position.direction,
            quantity=quantity,
            entry_price=entry,
            exit_price=position.average_exit_price,
            entry_date=position.opened_at,
            exit_date=position.closed_at,
            holding_period_days=position.holding_days,
            realized_pnl=position.net_pnl,
            pnl_pct=position.pnl_pct,
            max_drawdown=drawdown,
            max_drawdown_pct=pct(drawdown, notional),
            max_run_up=run_up,
            max_run_up_pct=pct(run_up, notional),
            volatility=p.volatility(bar_returns(closes), self._annualization),
            average_movement_pct=average_movement(closes),
            points=tuple(points),
            skipped_bars=skipped,
            strategy_id=position.strategy_id,
            portfolio_id=position.portfolio_id,
            trader_id=position.trader_id,
            created_at=self._clock.now(),
        )
        metrics.record_replay_built(position.symbol)
        logger.info(
            "Replay %s for position %s: %d bars (%d skipped), run_up=%s "
            "drawdown=%s volatility=%s%%",
            result.replay_id,
            position.position_id,
            len(points),
            skipped,
            run_up,
            drawdown,
            result.volatility,
        )
        return result

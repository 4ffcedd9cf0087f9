"""Replay artefacts produced by the simulator."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from trade_analytics.core.enums import PositionDirection
from trade_analytics.core.ids import utc_now
from trade_analytics.core.numeric import quantize_money, quantize_ratio


class ReplayPoint(BaseModel):
    """One bar of the reconstructed path with the position's P&L at its close."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int = 0
    pnl: Decimal
    pnl_pct: Decimal


class Replay(BaseModel):
    """Reconstructed price / P&L path for one closed position.

    Immutable after creation apart from ``notes``, which only grows via
    ``add_note``.
    """

    model_config = ConfigDict(frozen=True)

    replay_id: str
    position_id: str
    symbol: str
    direction: PositionDirection
    quantity: Decimal

    entry_price: Decimal
    exit_price: Decimal
    entry_date: datetime
    exit_date: datetime
    holding_period_days: int

    realized_pnl: Decimal  # Net of fees, as reconciled
    pnl_pct: Decimal

    # Path-derived analytics
    max_drawdown: Decimal
    max_drawdown_pct: Decimal  # Of entry notional
    max_run_up: Decimal
    max_run_up_pct: Decimal  # Of entry notional
    volatility: Decimal  # Annualized stdev of bar returns, percent
    average_movement_pct: Decimal

    points: tuple[ReplayPoint, ...] = ()
    skipped_bars: int = 0

    strategy_id: str | None = None
    portfolio_id: str = ""
    trader_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    notes: list[str] = Field(default_factory=list)

    def add_note(self, note: str) -> None:
        self.notes.append(note)

    def to_dict(self) -> dict:
        """Export to a flat dictionary for logging / storage."""
        return {
            "replay_id": self.replay_id,
            "position_id": self.position_id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "quantity": str(self.quantity),
            "entry_price": str(quantize_ratio(self.entry_price)),
            "exit_price": str(quantize_ratio(self.exit_price)),
            "entry_date": self.entry_date.isoformat(),
            "exit_date": self.exit_date.isoformat(),
            "holding_period_days": self.holding_period_days,
            "realized_pnl": str(quantize_money(self.realized_pnl)),
            "pnl_pct": str(quantize_ratio(self.pnl_pct)),
            "max_drawdown": str(quantize_money(self.max_drawdown)),
            "max_drawdown_pct": str(quantize_ratio(self.max_drawdown_pct)),
            "max_run_up": str(quantize_money(self.max_run_up)),
            "max_run_up_pct": str(quantize_ratio(self.max_run_up_pct)),
            "volatility": str(quantize_ratio(self.volatility)),
            "average_movement_pct": str(quantize_ratio(self.average_movement_pct)),
            "points": len(self.points),
            "skipped_bars": self.skipped_bars,
            "strategy_id": self.strategy_id,
            "portfolio_id": self.portfolio_id,
            "trader_id": self.trader_id,
            "created_at": self.created_at.isoformat(),
            "notes": list(self.notes),
        }

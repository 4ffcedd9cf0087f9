"""Core domain models used across the trade analytics core.

These are the canonical input models: raw executions from the upstream
feed, OHLCV bars from the price series provider, and the optional
psychology annotations a trader attaches to a position.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import BehaviorPattern, EntryPsychology, ExecutionSide, ExitPsychology


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class Execution(BaseModel):
    """One broker fill.  Immutable once recorded.

    Quantity and price are not range-checked here: the reconciler rejects
    bad values with ``InvalidExecutionError`` so the caller gets the
    offending record back.
    """

    model_config = ConfigDict(frozen=True)

    trade_id: str  # Broker-assigned
    symbol: str
    side: ExecutionSide
    quantity: Decimal
    price: Decimal
    timestamp: datetime
    fees: Decimal = Decimal("0")
    portfolio_id: str = ""
    strategy_id: str | None = None
    trader_id: str | None = None

    @property
    def signed_quantity(self) -> Decimal:
        """Positive for buy / cover, negative for sell / short."""
        return self.quantity * self.side.sign

    @property
    def key(self) -> tuple[str, str]:
        """Reconciliation key: (symbol, portfolio_id)."""
        return (self.symbol, self.portfolio_id)

    @property
    def notional(self) -> Decimal:
        return self.price * self.quantity


# ---------------------------------------------------------------------------
# Price bars
# ---------------------------------------------------------------------------

class PriceBar(BaseModel):
    """A single OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int = 0


# ---------------------------------------------------------------------------
# Psychology annotations
# ---------------------------------------------------------------------------

class PsychologyData(BaseModel):
    """Trader-supplied behavioral tags for one position."""

    entry_psychology: list[EntryPsychology] = Field(default_factory=list)
    exit_psychology: list[ExitPsychology] = Field(default_factory=list)
    behavior_patterns: list[BehaviorPattern] = Field(default_factory=list)
    notes: str = ""

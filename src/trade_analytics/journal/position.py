"""Position: the reconciled round-trip trade.

A Position groups the executions that open a directional exposure in one
symbol for one portfolio and, once flat again, close it.  The reconciler
owns all mutation; everything downstream (aggregator, replay simulator)
treats a CLOSED position as read-only.

Money stays at full Decimal precision here.  ``to_dict`` is the storage
boundary and rounds half-up to 2 dp (currency) and 4 dp (ratios).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from trade_analytics.core.enums import (
    PositionDirection,
    PositionStatus,
    TradeOutcome,
)
from trade_analytics.core.models import Execution, PsychologyData
from trade_analytics.core.numeric import (
    ZERO,
    pct,
    quantize_money,
    quantize_ratio,
    safe_div,
)

SECONDS_PER_DAY = 86_400


@dataclass
class ExecutionLeg:
    """The share of one execution allocated to a position.

    A flip execution is split across two positions, so ``quantity`` and
    ``fee`` may be a fraction of the execution's own values.
    """

    execution: Execution
    quantity: Decimal
    fee: Decimal

    @property
    def price(self) -> Decimal:
        return self.execution.price

    @property
    def timestamp(self) -> datetime:
        return self.execution.timestamp

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity * self.execution.side.sign


@dataclass
class Position:
    """One directional exposure from open to flat.

    Parameters
    ----------
    position_id : str
        Deterministic ID derived from the seed execution.
    direction : PositionDirection
        Fixed for the life of the position.  A flip closes this position
        and opens a new one.
    open_quantity : Decimal
        Unsigned quantity still open.  Zero exactly when CLOSED.
    average_entry_price : Decimal
        Volume-weighted over entry legs.  Unchanged by exits.
    realized_pnl : Decimal
        Gross realized P&L before fees, summed over all exits.
    """

    position_id: str
    symbol: str
    portfolio_id: str
    direction: PositionDirection
    strategy_id: str | None = None
    trader_id: str | None = None
    status: PositionStatus = PositionStatus.OPEN

    entry_legs: list[ExecutionLeg] = field(default_factory=list)
    exit_legs: list[ExecutionLeg] = field(default_factory=list)

    open_quantity: Decimal = ZERO
    average_entry_price: Decimal = ZERO
    realized_pnl: Decimal = ZERO

    opened_at: datetime | None = None
    closed_at: datetime | None = None
    last_execution_at: datetime | None = None

    psychology: PsychologyData | None = None
    tags: list[str] = field(default_factory=list)
    notes: str = ""

    # ------------------------------------------------------------------ #
    # Computed properties                                                  #
    # ------------------------------------------------------------------ #

    @property
    def is_closed(self) -> bool:
        return self.status is PositionStatus.CLOSED

    @property
    def key(self) -> tuple[str, str]:
        return (self.symbol, self.portfolio_id)

    @property
    def signed_open_quantity(self) -> Decimal:
        return self.open_quantity * self.direction.sign

    @property
    def entry_quantity(self) -> Decimal:
        """Total quantity entered."""
        return sum((leg.quantity for leg in self.entry_legs), ZERO)

    @property
    def exit_quantity(self) -> Decimal:
        """Total quantity exited."""
        return sum((leg.quantity for leg in self.exit_legs), ZERO)

    @property
    def entry_notional(self) -> Decimal:
        return sum((leg.price * leg.quantity for leg in self.entry_legs), ZERO)

    @property
    def average_exit_price(self) -> Decimal:
        """Volume-weighted average exit price."""
        exit_notional = sum(
            (leg.price * leg.quantity for leg in self.exit_legs), ZERO
        )
        return safe_div(exit_notional, self.exit_quantity)

    @property
    def fees(self) -> Decimal:
        """Total fees allocated to this position across all legs."""
        return sum((leg.fee for leg in self.entry_legs), ZERO) + sum(
            (leg.fee for leg in self.exit_legs), ZERO
        )

    @property
    def net_pnl(self) -> Decimal:
        """Realized P&L after all fees."""
        return self.realized_pnl - self.fees

    @property
    def pnl_pct(self) -> Decimal:
        """Net P&L as a percentage of entry notional."""
        return pct(self.net_pnl, self.entry_notional)

    @property
    def outcome(self) -> TradeOutcome | None:
        """Win / loss / break-even on net P&L.  None until CLOSED."""
        if not self.is_closed:
            return None
        pnl = self.net_pnl
        if pnl > ZERO:
            return TradeOutcome.WIN
        if pnl < ZERO:
            return TradeOutcome.LOSS
        return TradeOutcome.BREAKEVEN

    @property
    def holding_seconds(self) -> float:
        """Seconds between opening and closing.  0.0 while open."""
        if self.opened_at is None or self.closed_at is None:
            return 0.0
        return (self.closed_at - self.opened_at).total_seconds()

    @property
    def holding_days(self) -> int:
        """Whole days held, truncated."""
        return int(self.holding_seconds // SECONDS_PER_DAY)

    @property
    def executions(self) -> list[Execution]:
        """Distinct executions touching this position, in application order."""
        seen: set[int] = set()
        result: list[Execution] = []
        for leg in sorted(
            self.entry_legs + self.exit_legs, key=lambda l: l.timestamp
        ):
            # A flip shares one Execution between its closing and opening legs
            if id(leg.execution) not in seen:
                seen.add(id(leg.execution))
                result.append(leg.execution)
        return result

    # ------------------------------------------------------------------ #
    # Serialisation                                                        #
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict:
        """Export to a flat dictionary for logging / storage."""
        outcome = self.outcome
        return {
            "position_id": self.position_id,
            "symbol": self.symbol,
            "portfolio_id": self.portfolio_id,
            "strategy_id": self.strategy_id,
            "trader_id": self.trader_id,
            "direction": self.direction.value,
            "status": self.status.value,
            "outcome": outcome.value if outcome is not None else None,
            "open_quantity": str(self.open_quantity),
            "entry_quantity": str(self.entry_quantity),
            "exit_quantity": str(self.exit_quantity),
            "average_entry_price": str(quantize_ratio(self.average_entry_price)),
            "average_exit_price": str(quantize_ratio(self.average_exit_price)),
            "realized_pnl": str(quantize_money(self.realized_pnl)),
            "fees": str(quantize_money(self.fees)),
            "net_pnl": str(quantize_money(self.net_pnl)),
            "pnl_pct": str(quantize_ratio(self.pnl_pct)),
            "holding_days": self.holding_days,
            "holding_seconds": self.holding_seconds,
            "entry_legs": len(self.entry_legs),
            "exit_legs": len(self.exit_legs),
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "tags": list(self.tags),
            "notes": self.notes,
        }

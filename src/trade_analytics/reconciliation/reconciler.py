"""Execution -> position reconciliation state machine.

One (symbol, portfolio) key at a time, executions are folded into the
currently open Position:

* flat: the execution opens a new Position in its own direction
* same direction: quantity grows, average entry price is re-weighted
* opposite, ``qty <= open``: P&L is realized, quantity shrinks, and the
  position closes when it reaches exactly zero
* opposite, ``qty > open``: the position closes at the execution price and
  a new one opens in the opposite direction with the remainder (a flip)

``reconcile`` works on a deep copy of the caller's open position, so an
``InvalidExecutionError`` anywhere in the batch leaves caller state as it
was.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from trade_analytics.core.enums import PositionDirection, PositionStatus
from trade_analytics.core.errors import InvalidExecutionError
from trade_analytics.core.ids import content_hash
from trade_analytics.core.models import Execution
from trade_analytics.core.numeric import ZERO
from trade_analytics.journal.position import ExecutionLeg, Position
from trade_analytics.observability import metrics

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of reconciling one batch for one key.

    ``positions`` holds the positions that reached CLOSED during the
    batch, in closing order.  ``open_position`` is whatever is still open
    afterwards (a partially-closed or freshly flipped position), or None
    when the key ends flat.
    """

    positions: list[Position] = field(default_factory=list)
    open_position: Position | None = None

    @property
    def all_positions(self) -> list[Position]:
        if self.open_position is None:
            return list(self.positions)
        return [*self.positions, self.open_position]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_execution(
    execution: Execution,
    key: tuple[str, str] | None = None,
    last_timestamp: datetime | None = None,
) -> None:
    """Reject an execution that cannot be applied.

    Raises:
        InvalidExecutionError: non-positive quantity or price, a key that
            differs from *key*, or a timestamp earlier than *last_timestamp*.
    """
    if execution.quantity <= ZERO:
        raise InvalidExecutionError(
            f"Execution {execution.trade_id}: quantity must be positive, "
            f"got {execution.quantity}",
            execution,
            reason="quantity",
        )
    if execution.price <= ZERO:
        raise InvalidExecutionError(
            f"Execution {execution.trade_id}: price must be positive, "
            f"got {execution.price}",
            execution,
            reason="price",
        )
    if key is not None and execution.key != key:
        raise InvalidExecutionError(
            f"Execution {execution.trade_id}: key {execution.key} does not "
            f"match open position key {key}",
            execution,
            reason="key_mismatch",
        )
    if last_timestamp is not None and execution.timestamp < last_timestamp:
        raise InvalidExecutionError(
            f"Execution {execution.trade_id}: timestamp "
            f"{execution.timestamp.isoformat()} is earlier than last processed "
            f"{last_timestamp.isoformat()}",
            execution,
            reason="out_of_order",
        )


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------

def _open_position(
    execution: Execution, quantity: Decimal, fee: Decimal
) -> Position:
    direction = PositionDirection.from_sign(execution.side.sign)
    position = Position(
        position_id=content_hash(
            execution.portfolio_id,
            execution.symbol,
            execution.trade_id,
            execution.timestamp.isoformat(),
            direction.value,
        ),
        symbol=execution.symbol,
        portfolio_id=execution.portfolio_id,
        direction=direction,
        strategy_id=execution.strategy_id,
        trader_id=execution.trader_id,
        status=PositionStatus.OPEN,
        open_quantity=quantity,
        average_entry_price=execution.price,
        opened_at=execution.timestamp,
        last_execution_at=execution.timestamp,
    )
    position.entry_legs.append(ExecutionLeg(execution, quantity, fee))
    logger.debug(
        "Opened %s position %s %s qty=%s @ %s",
        direction.value,
        position.position_id,
        execution.symbol,
        quantity,
        execution.price,
    )
    return position


def _add_to_position(position: Position, execution: Execution) -> None:
    old_qty = position.open_quantity
    new_qty = old_qty + execution.quantity
    position.average_entry_price = (
        position.average_entry_price * old_qty
        + execution.price * execution.quantity
    ) / new_qty
    position.open_quantity = new_qty
    position.entry_legs.append(
        ExecutionLeg(execution, execution.quantity, execution.fees)
    )


def _reduce_position(
    position: Position, execution: Execution, quantity: Decimal, fee: Decimal
) -> None:
    position.realized_pnl += (
        (execution.price - position.average_entry_price)
        * quantity
        * position.direction.sign
    )
    position.open_quantity -= quantity
    position.exit_legs.append(ExecutionLeg(execution, quantity, fee))

    if position.open_quantity == ZERO:
        position.status = PositionStatus.CLOSED
        position.closed_at = execution.timestamp
        outcome = position.outcome
        metrics.record_position_closed(
            position.symbol, outcome.value if outcome else ""
        )
        logger.info(
            "Closed position %s %s: net_pnl=%s pnl_pct=%s holding_days=%d",
            position.position_id,
            position.symbol,
            position.net_pnl,
            position.pnl_pct,
            position.holding_days,
        )
    else:
        position.status = PositionStatus.PARTIALLY_CLOSED


def apply_execution(
    position: Position | None, execution: Execution
) -> tuple[Position | None, Position | None]:
    """Apply one validated execution.

    Mutates *position* in place.  Returns ``(closed, open)``: the position
    that reached CLOSED on this execution (if any) and the position left
    open afterwards (if any).  A flip returns both.
    """
    if position is None or position.is_closed:
        return None, _open_position(execution, execution.quantity, execution.fees)

    position.last_execution_at = execution.timestamp

    if execution.side.sign == position.direction.sign:
        _add_to_position(position, execution)
        return None, position

    if execution.quantity <= position.open_quantity:
        _reduce_position(position, execution, execution.quantity, execution.fees)
        if position.is_closed:
            return position, None
        return None, position

    # Overshoot: split quantity and fees pro rata between close and re-open.
    offset = position.open_quantity
    remainder = execution.quantity - offset
    closing_fee = execution.fees * offset / execution.quantity
    _reduce_position(position, execution, offset, closing_fee)
    flipped = _open_position(execution, remainder, execution.fees - closing_fee)
    logger.info(
        "Direction flip on %s: closed %s, opened %s %s qty=%s",
        execution.symbol,
        position.position_id,
        flipped.direction.value,
        flipped.position_id,
        remainder,
    )
    return position, flipped


# ---------------------------------------------------------------------------
# Batch entry point
# ---------------------------------------------------------------------------

def reconcile(
    executions: Iterable[Execution],
    open_position: Position | None = None,
    last_timestamp: datetime | None = None,
) -> ReconcileResult:
    """Fold *executions* for a single key into positions.

    Executions must already be in non-decreasing timestamp order; an
    earlier timestamp is rejected, never reordered.  All executions must
    share the (symbol, portfolio) key of *open_position*, or of the first
    execution when starting flat.  *last_timestamp* carries the ordering
    watermark of a key that is currently flat.

    Raises:
        InvalidExecutionError: on the first execution that cannot be
            applied.  Nothing from the batch is applied.
    """
    current = copy.deepcopy(open_position)
    if current is not None and current.is_closed:
        current = None

    key = current.key if current is not None else None
    last_ts = current.last_execution_at if current is not None else None
    if last_timestamp is not None and (last_ts is None or last_timestamp > last_ts):
        last_ts = last_timestamp
    result = ReconcileResult()

    for execution in executions:
        try:
            validate_execution(execution, key, last_ts)
        except InvalidExecutionError as exc:
            metrics.record_rejection(exc.reason)
            logger.warning("Rejected execution %s: %s", execution.trade_id, exc)
            raise

        key = execution.key
        last_ts = execution.timestamp
        closed, current = apply_execution(current, execution)
        metrics.record_execution(execution.symbol, execution.side.value)
        if closed is not None:
            result.positions.append(closed)

    result.open_position = current
    return result

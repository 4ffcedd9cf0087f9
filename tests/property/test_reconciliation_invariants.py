"""Property test: reconciliation conserves quantity, fees and P&L.

Random execution streams for one key are folded through the reconciler
and checked against cash-flow accounting done independently of it.
"""

from decimal import Decimal

from hypothesis import given, settings, strategies as st

from factories import make_execution
from trade_analytics.core.enums import PositionStatus
from trade_analytics.reconciliation.reconciler import reconcile

TOLERANCE = Decimal("1e-12")

fills = st.lists(
    st.tuples(
        st.sampled_from(["buy", "sell"]),
        st.integers(min_value=1, max_value=50),
        st.decimals(min_value=Decimal("1"), max_value=Decimal("500"), places=2),
        st.decimals(min_value=Decimal("0"), max_value=Decimal("5"), places=2),
    ),
    min_size=1,
    max_size=30,
)


def _executions(spec):
    return [
        make_execution(side, qty, price, fees=fee, minutes=i)
        for i, (side, qty, price, fee) in enumerate(spec)
    ]


@given(spec=fills)
@settings(max_examples=200)
def test_open_quantity_equals_net_signed_quantity(spec):
    executions = _executions(spec)
    result = reconcile(executions)
    net = sum((e.signed_quantity for e in executions), Decimal("0"))
    open_qty = (
        result.open_position.signed_open_quantity
        if result.open_position is not None
        else Decimal("0")
    )
    assert open_qty == net


@given(spec=fills)
@settings(max_examples=200)
def test_fees_are_fully_allocated(spec):
    executions = _executions(spec)
    result = reconcile(executions)
    allocated = sum((p.fees for p in result.all_positions), Decimal("0"))
    charged = sum((e.fees for e in executions), Decimal("0"))
    assert abs(allocated - charged) < TOLERANCE


@given(spec=fills)
@settings(max_examples=200)
def test_realized_plus_unrealized_equals_cash_flow(spec):
    executions = _executions(spec)
    result = reconcile(executions)
    mark = executions[-1].price

    cash = sum((-e.signed_quantity * e.price for e in executions), Decimal("0"))
    net = sum((e.signed_quantity for e in executions), Decimal("0"))
    expected = cash + net * mark

    realized = sum((p.realized_pnl for p in result.all_positions), Decimal("0"))
    unrealized = Decimal("0")
    if result.open_position is not None:
        pos = result.open_position
        unrealized = (mark - pos.average_entry_price) * pos.signed_open_quantity
    assert abs(realized + unrealized - expected) < Decimal("1e-8")


@given(spec=fills)
@settings(max_examples=200)
def test_closed_positions_are_flat_and_open_one_is_not(spec):
    result = reconcile(_executions(spec))
    for pos in result.positions:
        assert pos.status == PositionStatus.CLOSED
        assert pos.open_quantity == 0
        assert pos.entry_quantity == pos.exit_quantity
    if result.open_position is not None:
        assert result.open_position.open_quantity > 0


@given(
    qty=st.integers(min_value=1, max_value=1000),
    entry=st.decimals(min_value=Decimal("1"), max_value=Decimal("1000"), places=2),
    exit_=st.decimals(min_value=Decimal("1"), max_value=Decimal("1000"), places=2),
    short=st.booleans(),
)
@settings(max_examples=100)
def test_round_trip_pnl(qty, entry, exit_, short):
    open_side, close_side = ("short", "cover") if short else ("buy", "sell")
    result = reconcile([
        make_execution(open_side, qty, entry),
        make_execution(close_side, qty, exit_, minutes=1),
    ])
    sign = -1 if short else 1
    [pos] = result.positions
    assert pos.realized_pnl == (exit_ - entry) * qty * sign

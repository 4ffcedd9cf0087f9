"""Tests for the single-metric registry."""

from decimal import Decimal

import pytest

from factories import make_winning_trade
from trade_analytics.analytics.aggregator import aggregate
from trade_analytics.analytics.registry import METRIC_REGISTRY, compute_metric
from trade_analytics.core.enums import MetricKind


def _series(*pnls):
    return [make_winning_trade(day=i, pnl=pnl) for i, pnl in enumerate(pnls)]


class TestMetricRegistry:
    def test_every_kind_registered(self):
        assert set(METRIC_REGISTRY) == set(MetricKind)

    @pytest.mark.parametrize("kind", list(MetricKind))
    def test_empty_input_is_zero(self, kind):
        assert compute_metric(kind, []) == 0

    def test_matches_aggregator(self):
        positions = _series(100, -40, 20, -80, 90)
        stats = aggregate(positions)
        assert compute_metric(MetricKind.WIN_RATE, positions) == stats.performance.win_rate
        assert compute_metric(MetricKind.NET_PROFIT_LOSS, positions) == stats.value.net_profit_loss
        assert compute_metric(MetricKind.MAX_DRAWDOWN, positions) == stats.risk.max_drawdown
        assert compute_metric(MetricKind.SHARPE_RATIO, positions) == stats.performance.sharpe_ratio
        assert (
            compute_metric(MetricKind.AVERAGE_HOLDING_MINUTES, positions)
            == stats.holding.average_minutes
        )

    def test_consecutive_counts(self):
        positions = _series(10, -5, -5, 10)
        assert compute_metric(MetricKind.MAX_CONSECUTIVE_LOSSES, positions) == Decimal(2)
        assert compute_metric(MetricKind.MAX_CONSECUTIVE_WINS, positions) == Decimal(1)

    def test_sorts_before_computing(self):
        positions = _series(10, -5, -5, 10)
        assert compute_metric(
            MetricKind.MAX_CONSECUTIVE_LOSSES, list(reversed(positions))
        ) == Decimal(2)

    def test_trades_per_day(self):
        positions = [make_winning_trade(0), make_winning_trade(0), make_winning_trade(3)]
        assert compute_metric(MetricKind.TRADES_PER_DAY, positions) == Decimal("1.5")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            compute_metric("not_a_metric", [])

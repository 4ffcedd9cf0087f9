"""Statistics primitives and the metrics aggregator.

MetricsAggregator    Positions -> AggregateStatistics, overall or per group
compute_metric       One MetricKind over a set of positions
primitives           Pure functions: rates, profit factor, drawdown, streaks
"""

from trade_analytics.analytics.aggregator import (
    MetricsAggregator,
    aggregate,
    aggregate_by,
)
from trade_analytics.analytics.primitives import DrawdownResult, max_drawdown
from trade_analytics.analytics.registry import METRIC_REGISTRY, compute_metric
from trade_analytics.analytics.statistics import AggregateStatistics

__all__ = [
    "AggregateStatistics",
    "DrawdownResult",
    "METRIC_REGISTRY",
    "MetricsAggregator",
    "aggregate",
    "aggregate_by",
    "compute_metric",
    "max_drawdown",
]

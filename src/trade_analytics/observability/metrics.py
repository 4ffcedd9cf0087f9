"""Prometheus metrics for the reconciliation, aggregation and replay paths."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    start_http_server,
)

from trade_analytics import __version__

SYSTEM_INFO = Info("trade_analytics", "Trade analytics core information")

# ---------------------------------------------------------------------------
# Reconciliation metrics
# ---------------------------------------------------------------------------

EXECUTIONS_PROCESSED = Counter(
    "trade_analytics_executions_processed_total",
    "Executions applied to a position",
    ["symbol", "side"],
)

EXECUTIONS_REJECTED = Counter(
    "trade_analytics_executions_rejected_total",
    "Executions rejected by the reconciler",
    ["reason"],
)

POSITIONS_CLOSED = Counter(
    "trade_analytics_positions_closed_total",
    "Positions reconciled to CLOSED",
    ["symbol", "outcome"],
)

# ---------------------------------------------------------------------------
# Aggregation metrics
# ---------------------------------------------------------------------------

AGGREGATION_LATENCY = Histogram(
    "trade_analytics_aggregation_seconds",
    "Time to aggregate one set of positions",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

# ---------------------------------------------------------------------------
# Replay metrics
# ---------------------------------------------------------------------------

REPLAYS_BUILT = Counter(
    "trade_analytics_replays_built_total",
    "Replays computed from price bars",
    ["symbol"],
)

REPLAYS_STORED = Counter(
    "trade_analytics_replays_stored_total",
    "Replays persisted by the sampling policy",
)

REPLAYS_SKIPPED = Counter(
    "trade_analytics_replays_skipped_total",
    "Replays not persisted",
    ["reason"],
)

MALFORMED_BARS = Counter(
    "trade_analytics_malformed_bars_total",
    "Price bars skipped as malformed",
)

PROVIDER_RETRIES = Counter(
    "trade_analytics_provider_retries_total",
    "Price series fetch retries",
    ["symbol"],
)


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus metrics HTTP server in a background thread."""
    SYSTEM_INFO.info({"version": __version__})
    start_http_server(port)


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def record_execution(symbol: str, side: str) -> None:
    EXECUTIONS_PROCESSED.labels(symbol=symbol, side=side).inc()


def record_rejection(reason: str) -> None:
    EXECUTIONS_REJECTED.labels(reason=reason).inc()


def record_position_closed(symbol: str, outcome: str) -> None:
    POSITIONS_CLOSED.labels(symbol=symbol, outcome=outcome).inc()


def record_aggregation_latency(seconds: float) -> None:
    AGGREGATION_LATENCY.observe(seconds)


def record_replay_built(symbol: str) -> None:
    REPLAYS_BUILT.labels(symbol=symbol).inc()


def record_replay_stored() -> None:
    REPLAYS_STORED.inc()


def record_replay_skipped(reason: str) -> None:
    """Record a replay that was not persisted (sampled out, no data, ...)."""
    REPLAYS_SKIPPED.labels(reason=reason).inc()


def record_malformed_bars(count: int) -> None:
    if count:
        MALFORMED_BARS.inc(count)


def record_provider_retry(symbol: str) -> None:
    PROVIDER_RETRIES.labels(symbol=symbol).inc()

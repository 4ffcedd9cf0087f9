"""Execution -> position reconciliation.

reconcile        Fold one key's presorted executions into positions
apply_execution  Single-step transition function
PositionBook     Per-key locked book with parallel multi-key batches
"""

from trade_analytics.reconciliation.book import PositionBook
from trade_analytics.reconciliation.reconciler import (
    ReconcileResult,
    apply_execution,
    reconcile,
    validate_execution,
)

__all__ = [
    "PositionBook",
    "ReconcileResult",
    "apply_execution",
    "reconcile",
    "validate_execution",
]

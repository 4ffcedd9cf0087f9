"""Position book: open positions by (symbol, portfolio) with per-key ownership.

Reconciliation of one key is a sequential state machine, so every call
that touches a key holds that key's lock.  Different keys share nothing
and ``reconcile_batch`` runs them on a thread pool.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Iterable

from trade_analytics.core.models import Execution
from trade_analytics.journal.position import Position
from trade_analytics.observability.logger import (
    correlation_scope,
    get_correlation_id,
)

from .reconciler import ReconcileResult, reconcile

logger = logging.getLogger(__name__)

Key = tuple[str, str]


class PositionBook:
    """Thread-safe registry of open and closed positions.

    Parameters
    ----------
    max_workers:
        Thread pool size used by ``reconcile_batch`` for independent keys.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._max_workers = max_workers
        self._registry_lock = threading.Lock()
        self._key_locks: dict[Key, threading.Lock] = {}
        self._open: dict[Key, Position] = {}
        self._closed: dict[Key, list[Position]] = defaultdict(list)
        self._watermarks: dict[Key, datetime] = {}

    def _lock_for(self, key: Key) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def open_position(self, symbol: str, portfolio_id: str) -> Position | None:
        with self._lock_for((symbol, portfolio_id)):
            return self._open.get((symbol, portfolio_id))

    def open_positions(self) -> list[Position]:
        with self._registry_lock:
            return list(self._open.values())

    def closed_positions(
        self, symbol: str | None = None, portfolio_id: str | None = None
    ) -> list[Position]:
        """Closed positions, optionally filtered by symbol and/or portfolio."""
        with self._registry_lock:
            result: list[Position] = []
            for (sym, pid), positions in self._closed.items():
                if symbol is not None and sym != symbol:
                    continue
                if portfolio_id is not None and pid != portfolio_id:
                    continue
                result.extend(positions)
            return result

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply(
        self,
        executions: Iterable[Execution],
        correlation_id: str | None = None,
    ) -> ReconcileResult:
        """Reconcile presorted executions for a single key.

        Log lines are tagged with *correlation_id* (a fresh one if None).

        Raises:
            InvalidExecutionError: the book is left unchanged for this key.
        """
        batch = list(executions)
        if not batch:
            return ReconcileResult()
        key = batch[0].key

        with correlation_scope(correlation_id), self._lock_for(key):
            result = reconcile(
                batch,
                self._open.get(key),
                last_timestamp=self._watermarks.get(key),
            )
            with self._registry_lock:
                self._closed[key].extend(result.positions)
                if result.open_position is None:
                    self._open.pop(key, None)
                else:
                    self._open[key] = result.open_position
                self._watermarks[key] = batch[-1].timestamp
        return result

    def reconcile_batch(
        self, executions: Iterable[Execution]
    ) -> dict[Key, ReconcileResult]:
        """Reconcile a batch that interleaves several keys.

        Executions are grouped by key, keeping their input order within
        each key, then independent keys run in parallel.  A key whose
        executions arrive out of timestamp order is rejected, not
        reordered.  Each key is all-or-nothing; if any key fails, the first
        failure (in key order) is raised after every other key has finished.
        """
        grouped: dict[Key, list[Execution]] = defaultdict(list)
        for execution in executions:
            grouped[execution.key].append(execution)

        if not grouped:
            return {}

        keys = list(grouped)
        logger.info(
            "Reconciling %d executions across %d keys",
            sum(len(b) for b in grouped.values()),
            len(keys),
        )

        results: dict[Key, ReconcileResult] = {}
        errors: list[Exception] = []
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            batch_id = get_correlation_id()
            futures = {
                key: pool.submit(self.apply, grouped[key], batch_id)
                for key in keys
            }
            for key in keys:
                try:
                    results[key] = futures[key].result()
                except Exception as exc:
                    logger.error("Reconciliation failed for %s/%s: %s", key[0], key[1], exc)
                    errors.append(exc)

        if errors:
            raise errors[0]
        return results

"""In-memory replay repository for backtests and tests.

Implements ``IReplayRepository``.  Durable stores live outside this
package and satisfy the same protocol.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from .models import Replay

logger = logging.getLogger(__name__)


class InMemoryReplayRepository:
    """Dict-backed replay store keyed by replay ID.  Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._replays: dict[str, Replay] = {}

    def save(self, replay: Replay) -> str:
        with self._lock:
            self._replays[replay.replay_id] = replay
        logger.debug("Saved replay %s for %s", replay.replay_id, replay.symbol)
        return replay.replay_id

    def find_by_id(self, replay_id: str) -> Replay | None:
        with self._lock:
            return self._replays.get(replay_id)

    def _where(self, predicate) -> list[Replay]:
        with self._lock:
            return [r for r in self._replays.values() if predicate(r)]

    def find_by_symbol(self, symbol: str) -> list[Replay]:
        return self._where(lambda r: r.symbol == symbol)

    def find_by_date_range(self, start: datetime, end: datetime) -> list[Replay]:
        """Replays whose entry or exit date falls within [start, end]."""
        return self._where(
            lambda r: start <= r.entry_date <= end or start <= r.exit_date <= end
        )

    def find_by_portfolio_id(self, portfolio_id: str) -> list[Replay]:
        return self._where(lambda r: r.portfolio_id == portfolio_id)

    def find_by_strategy_id(self, strategy_id: str) -> list[Replay]:
        return self._where(lambda r: r.strategy_id == strategy_id)

    def find_by_position_id(self, position_id: str) -> list[Replay]:
        return self._where(lambda r: r.position_id == position_id)

    def delete_by_id(self, replay_id: str) -> bool:
        with self._lock:
            return self._replays.pop(replay_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._replays)

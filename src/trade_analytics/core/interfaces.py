"""Protocol interfaces for the external collaborators of the core.

The core only depends on these narrow boundaries.  Implementations
(REST market-data clients, document stores) live outside this package
and can be swapped without changing callers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from .models import PriceBar


# ---------------------------------------------------------------------------
# Price series
# ---------------------------------------------------------------------------

@runtime_checkable
class IPriceSeriesProvider(Protocol):
    """Historical OHLCV source.

    Returns bars ordered ascending by timestamp.  Raw mappings are
    accepted so that provider payloads with component-list timestamps
    can be validated bar-by-bar by the replay simulator.

    Raises ``TransientProviderError`` for retryable failures and
    ``PriceDataNotFoundError`` when the symbol / range has no data.
    """

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        interval: str,
        continuous: bool = False,
    ) -> Sequence[PriceBar | Mapping[str, Any]]: ...


# ---------------------------------------------------------------------------
# Replay persistence
# ---------------------------------------------------------------------------

@runtime_checkable
class IReplayRepository(Protocol):
    """Storage for replays chosen by the sampling policy."""

    def save(self, replay: Any) -> str: ...

    def find_by_id(self, replay_id: str) -> Any | None: ...

    def find_by_symbol(self, symbol: str) -> list[Any]: ...

    def find_by_date_range(
        self, start: datetime, end: datetime
    ) -> list[Any]: ...

    def find_by_portfolio_id(self, portfolio_id: str) -> list[Any]: ...

    def find_by_strategy_id(self, strategy_id: str) -> list[Any]: ...

    def find_by_position_id(self, position_id: str) -> list[Any]: ...

    def delete_by_id(self, replay_id: str) -> bool: ...

"""Ordered preprocessing steps applied before any metric is computed.

Each step takes and returns a list of positions.  Steps may drop
positions but never add or alter them.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from trade_analytics.core.numeric import ZERO
from trade_analytics.journal.position import Position

logger = logging.getLogger(__name__)

PreprocessingStep = Callable[[Sequence[Position]], list[Position]]


def _is_complete(position: Position) -> bool:
    return (
        position.is_closed
        and position.opened_at is not None
        and position.closed_at is not None
        and bool(position.entry_legs)
        and position.entry_notional > ZERO
    )


def filter_valid(positions: Sequence[Position]) -> list[Position]:
    """Keep only CLOSED positions with timestamps and a positive entry notional."""
    kept = [p for p in positions if _is_complete(p)]
    dropped = len(positions) - len(kept)
    if dropped:
        logger.debug("filter_valid dropped %d of %d positions", dropped, len(positions))
    return kept


def chronological_key(position: Position) -> tuple:
    return (position.opened_at, position.closed_at, position.position_id)


def sort_chronologically(positions: Sequence[Position]) -> list[Position]:
    """Order by entry time, then exit time, then position ID."""
    return sorted(positions, key=chronological_key)


PREPROCESSING_STEPS: tuple[PreprocessingStep, ...] = (
    filter_valid,
    sort_chronologically,
)


def preprocess(
    positions: Sequence[Position],
    steps: Sequence[PreprocessingStep] = PREPROCESSING_STEPS,
) -> list[Position]:
    result = list(positions)
    for step in steps:
        result = step(result)
    return result

"""Position grouping: a stable multi-map from group value to positions.

A position whose grouping field is missing (no strategy, no psychology
data) is left out of that grouping only.  Multi-valued fields such as
psychology tags put a position in every matching group.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Iterable, Sequence, Union

from trade_analytics.core.enums import (
    EntryPsychology,
    ExitPsychology,
    GroupKey,
)
from trade_analytics.journal.position import Position

KeyFunction = Callable[[Position], Any]
GroupSpec = Union[GroupKey, KeyFunction]

# Entry tags counted as greed-driven, exit tags counted as fear-driven
GREED_ENTRY_TAGS = frozenset({
    EntryPsychology.OVERCONFIDENCE,
    EntryPsychology.FEAR_OF_MISSING_OUT,
})
FEAR_EXIT_TAGS = frozenset({ExitPsychology.FEAR, ExitPsychology.PANIC})
DISCIPLINED_EXIT_TAGS = frozenset({
    ExitPsychology.DISCIPLINE,
    ExitPsychology.TAKING_PROFITS,
    ExitPsychology.CUTTING_LOSSES,
})


def _psychology_values(position: Position, attr: str) -> list[str]:
    if position.psychology is None:
        return []
    return [tag.value for tag in getattr(position.psychology, attr)]


_KEY_FUNCTIONS: dict[GroupKey, KeyFunction] = {
    GroupKey.SYMBOL: lambda p: p.symbol or None,
    GroupKey.PORTFOLIO: lambda p: p.portfolio_id or None,
    GroupKey.STRATEGY: lambda p: p.strategy_id or None,
    GroupKey.ENTRY_PSYCHOLOGY: lambda p: _psychology_values(p, "entry_psychology"),
    GroupKey.EXIT_PSYCHOLOGY: lambda p: _psychology_values(p, "exit_psychology"),
    GroupKey.BEHAVIOR_PATTERN: lambda p: _psychology_values(p, "behavior_patterns"),
}


def key_function(spec: GroupSpec) -> KeyFunction:
    if isinstance(spec, GroupKey):
        return _KEY_FUNCTIONS[spec]
    if callable(spec):
        return spec
    raise TypeError(f"Unsupported grouping key: {spec!r}")


def _as_values(raw: Any) -> list[Hashable]:
    """Normalise a key function result to a de-duplicated list of values."""
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        return [raw]
    seen: list[Hashable] = []
    for value in raw:
        if value is not None and value not in seen:
            seen.append(value)
    return seen


def group_positions(
    positions: Sequence[Position], key: GroupSpec
) -> dict[Hashable, list[Position]]:
    """Build the multi-map.  Input order is preserved within each group."""
    fn = key_function(key)
    groups: dict[Hashable, list[Position]] = {}
    for position in positions:
        for value in _as_values(fn(position)):
            groups.setdefault(value, []).append(position)
    return groups


# ---------------------------------------------------------------------------
# Behavioral counters
# ---------------------------------------------------------------------------

def count_tags(positions: Sequence[Position], key: GroupKey) -> dict[str, int]:
    """Number of positions carrying each tag for a psychology grouping."""
    return {
        tag: len(members)
        for tag, members in group_positions(positions, key).items()
    }


def behavioral_counts(positions: Sequence[Position]) -> dict[str, int]:
    """Per-position emotional-control counters.

    A position counts at most once per counter no matter how many
    matching tags it carries.
    """
    fear_exits = greed_entries = impulsive = disciplined = 0
    for position in positions:
        psych = position.psychology
        if psych is None:
            continue
        entry = set(psych.entry_psychology)
        exit_ = set(psych.exit_psychology)
        if entry & GREED_ENTRY_TAGS:
            greed_entries += 1
        if entry - {EntryPsychology.FOLLOWING_THE_PLAN}:
            impulsive += 1
        if exit_ & FEAR_EXIT_TAGS:
            fear_exits += 1
        if exit_ & DISCIPLINED_EXIT_TAGS:
            disciplined += 1
    return {
        "fear_based_exits": fear_exits,
        "greed_based_entries": greed_entries,
        "impulsive_trades": impulsive,
        "disciplined_trades": disciplined,
    }

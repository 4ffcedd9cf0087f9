"""Price bar parsing and validation for the replay simulator.

Provider payloads arrive either as ``PriceBar`` objects or as raw
mappings.  A mapping carries its time as a ``timestamp`` (datetime or
ISO-8601 string) or as a ``time`` component list
``[year, month, day, hour, minute(, second)]``.  A bar whose time or
prices cannot be read is malformed: it is skipped with a warning, and
the series only fails when too few usable bars remain.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from trade_analytics.core.errors import (
    InsufficientDataError,
    MalformedBarError,
    UnsortedPriceSeriesError,
)
from trade_analytics.core.models import PriceBar
from trade_analytics.core.numeric import ZERO, to_decimal
from trade_analytics.observability import metrics

logger = logging.getLogger(__name__)

MIN_BARS = 2
_REQUIRED_TIME_COMPONENTS = 5  # year, month, day, hour, minute
_PRICE_FIELDS = ("open", "high", "low", "close")


def _timestamp_from_components(components: Any, tz: tzinfo) -> datetime:
    if not isinstance(components, (list, tuple)):
        raise MalformedBarError(f"time must be a list, got {type(components).__name__}")
    if len(components) < _REQUIRED_TIME_COMPONENTS:
        raise MalformedBarError(
            f"time needs year/month/day/hour/minute, got {list(components)}"
        )
    parts = list(components[:6])
    if any(isinstance(c, bool) or not isinstance(c, int) for c in parts):
        raise MalformedBarError(f"time components must be integers: {parts}")
    try:
        return datetime(*parts, tzinfo=tz)
    except ValueError as exc:
        raise MalformedBarError(f"invalid time components {parts}: {exc}") from exc


def _timestamp_from_value(value: Any, tz: tzinfo) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value)
        except ValueError as exc:
            raise MalformedBarError(f"unparseable timestamp {value!r}") from exc
    else:
        raise MalformedBarError(f"unsupported timestamp type {type(value).__name__}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=tz)
    return ts


def parse_bar(raw: PriceBar | Mapping[str, Any], tz: tzinfo = timezone.utc) -> PriceBar:
    """Convert one raw bar to a ``PriceBar``.

    Naive timestamps and component lists are interpreted in *tz*.

    Raises:
        MalformedBarError: missing or invalid time components, missing or
            non-numeric prices, or a non-positive close.
    """
    if isinstance(raw, PriceBar):
        bar = raw
    elif isinstance(raw, Mapping):
        if raw.get("timestamp") is not None:
            timestamp = _timestamp_from_value(raw["timestamp"], tz)
        elif raw.get("time") is not None:
            timestamp = _timestamp_from_components(raw["time"], tz)
        else:
            raise MalformedBarError("bar has neither 'timestamp' nor 'time'")

        prices: dict[str, Decimal] = {}
        for name in _PRICE_FIELDS:
            value = raw.get(name)
            if value is None:
                raise MalformedBarError(f"bar is missing {name!r}")
            try:
                prices[name] = to_decimal(value)
            except (InvalidOperation, TypeError, ValueError) as exc:
                raise MalformedBarError(f"non-numeric {name!r}: {value!r}") from exc
            if not prices[name].is_finite():
                raise MalformedBarError(f"non-finite {name!r}: {value!r}")

        try:
            bar = PriceBar(timestamp=timestamp, volume=raw.get("volume") or 0, **prices)
        except ValidationError as exc:
            raise MalformedBarError(str(exc)) from exc
    else:
        raise MalformedBarError(f"unsupported bar type {type(raw).__name__}")

    if bar.close <= ZERO:
        raise MalformedBarError(f"non-positive close {bar.close} at {bar.timestamp}")
    return bar


def parse_bars(
    raw_bars: Sequence[PriceBar | Mapping[str, Any]],
    tz: tzinfo = timezone.utc,
) -> tuple[list[PriceBar], int]:
    """Parse and validate a bar series.

    Returns ``(bars, skipped)`` where *skipped* is the number of malformed
    bars dropped.

    Raises:
        InsufficientDataError: every bar is malformed, or fewer than two
            usable bars remain.
        UnsortedPriceSeriesError: usable bars are not strictly ascending.
    """
    bars: list[PriceBar] = []
    skipped = 0
    for index, raw in enumerate(raw_bars):
        try:
            bars.append(parse_bar(raw, tz))
        except MalformedBarError as exc:
            skipped += 1
            logger.warning("Skipping malformed bar #%d: %s", index, exc)

    metrics.record_malformed_bars(skipped)

    if skipped and not bars:
        raise InsufficientDataError(f"All {skipped} price bars are malformed")
    if len(bars) < MIN_BARS:
        raise InsufficientDataError(
            f"Need at least {MIN_BARS} valid price bars, got {len(bars)}"
        )

    for previous, current in zip(bars, bars[1:]):
        if current.timestamp <= previous.timestamp:
            raise UnsortedPriceSeriesError(
                f"Bar at {current.timestamp.isoformat()} does not follow "
                f"{previous.timestamp.isoformat()}"
            )
    return bars, skipped

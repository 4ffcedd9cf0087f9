"""Decimal helpers shared by the reconciler, aggregator and replay code.

Intermediate arithmetic stays at full ``Decimal`` precision.  Quantizing
to a fixed scale with ROUND_HALF_UP happens only when a value leaves the
core (``to_dict``, ``rounded()``), never between calculation steps.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

MONEY_SCALE = 2
RATIO_SCALE = 4

INFINITY = Decimal("Infinity")


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, strings and floats to Decimal without binary artefacts.

    Floats go through ``str()`` so ``0.1`` becomes ``Decimal("0.1")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize(value: Decimal, scale: int) -> Decimal:
    """Round half-up to *scale* decimal places.  Infinities pass through."""
    if not value.is_finite():
        return value
    return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)


def quantize_money(value: Decimal) -> Decimal:
    return quantize(value, MONEY_SCALE)


def quantize_ratio(value: Decimal) -> Decimal:
    return quantize(value, RATIO_SCALE)


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero when the denominator is zero."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


def pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    """``numerator / denominator * 100``, zero when the denominator is zero."""
    return safe_div(numerator, denominator) * HUNDRED

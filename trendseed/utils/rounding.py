"""
Fixed-precision rounding.

Scores and rates are persisted with a fixed number of fraction digits using
half-up rounding on the decimal representation of the value, so ``0.125``
becomes ``0.13`` rather than banker's-rounding to ``0.12``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def quantize(value: float | int | Decimal, places: int) -> Decimal:
    """Round ``value`` half-up to ``places`` fraction digits."""
    exponent = Decimal(1).scaleb(-places)
    if not isinstance(value, Decimal):
        value = Decimal(repr(float(value)))
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def round4(value: float | int | Decimal) -> float:
    return float(quantize(value, 4))


def round2(value: float | int | Decimal) -> float:
    return float(quantize(value, 2))

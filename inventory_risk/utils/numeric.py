"""
Numeric safety helpers.

The engine never raises on bad numbers: non-finite or negative intermediate
values collapse to zero so the dashboard always has something to render.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any


def clamp_non_negative(value: Any) -> float:
    """Return value if it is a finite number >= 0, else 0."""
    if not is_finite_number(value):
        return 0.0
    return max(0.0, float(value))


def safe_number(value: Any, fallback: float = 0.0) -> float:
    """Return value as float if finite, else fallback."""
    if is_finite_number(value):
        return float(value)
    return fallback


def is_finite_number(value: Any) -> bool:
    # bool is an int subclass but never a quantity
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_value(qty: float, unit_value: float) -> float:
    """Monetary value of a quantity (non-finite qty -> 0, non-finite unit -> 1)."""
    safe_qty = qty if is_finite_number(qty) else 0.0
    safe_unit = unit_value if is_finite_number(unit_value) else 1.0
    return safe_qty * safe_unit


def round_half_up(value: float) -> int:
    """
    Round to nearest integer, ties towards +infinity.

    Matches the rounding used by the dashboard front-end (-2.5 -> -2, 2.5 -> 3),
    which differs from Python's banker's rounding.
    """
    return int(math.floor(value + 0.5))


def round_decimals_half_up(value: float, places: int) -> float:
    """Round to a fixed number of decimals, ties away from zero on the exact binary value."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))

"""Numeric coercion, historical averaging and growth clipping.

These functions are the leaf of the engine: they never raise on bad input
and return None where a value cannot be trusted.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

import numpy as np

MAX_HISTORY_YEARS = 7

ANNUAL_GROWTH_SOFT_BOUND = 1.0
ANNUAL_GROWTH_HARD_BOUND = 2.0

CAGR_SOFT_BOUND = 0.5
CAGR_HARD_BOUND = 1.0


def to_number(value) -> Optional[float]:
    """Coerce a numeric-like value to float.

    Accepts native numbers, numpy scalars, numeric strings, ``Decimal`` and
    wrapper objects exposing ``to_number()`` or ``__float__``. Anything that
    cannot be parsed, NaN and infinities yield None.

    Args:
        value: Value to coerce

    Returns:
        The float value or None
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        try:
            result = float(value)
        except (InvalidOperation, ValueError, OverflowError):
            return None
    elif isinstance(value, (int, float, np.integer, np.floating)):
        result = float(value)
    elif isinstance(value, str):
        text = value.strip().replace("_", "")
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    elif hasattr(value, "to_number"):
        try:
            return to_number(value.to_number())
        except (TypeError, ValueError, ArithmeticError):
            return None
    else:
        try:
            result = float(value)
        except (TypeError, ValueError, OverflowError):
            return None

    if not math.isfinite(result):
        return None
    return result


def historical_average(current, history: Iterable) -> Optional[float]:
    """Average the current value with up to six prior years.

    Args:
        current: Latest value of the indicator
        history: Prior-year values, most recent first

    Returns:
        None when there is no current value, the current value when no
        history is usable, otherwise the mean of at most seven values.
    """
    current_value = to_number(current)
    if current_value is None:
        return None

    valid_history = [v for v in (to_number(h) for h in history) if v is not None]
    if not valid_history:
        return current_value

    values = [current_value, *valid_history][:MAX_HISTORY_YEARS]
    return float(np.mean(values))


def clip_growth(value, soft_bound: float, hard_bound: float) -> Optional[float]:
    """Reject or clamp an implausible growth figure.

    Values beyond ``hard_bound`` are discarded; values between the two bounds
    are clamped to ``soft_bound``.

    Args:
        value: Growth as a fraction (1.0 = 100%)
        soft_bound: Magnitude kept as-is
        hard_bound: Magnitude beyond which the value is unreliable

    Returns:
        The clipped value or None
    """
    number = to_number(value)
    if number is None:
        return None
    if abs(number) > hard_bound:
        return None
    if number > soft_bound:
        return soft_bound
    if number < -soft_bound:
        return -soft_bound
    return number


def validate_annual_growth(value) -> Optional[float]:
    """Clip a one-year growth figure (soft 100%, hard 200%)."""
    return clip_growth(value, ANNUAL_GROWTH_SOFT_BOUND, ANNUAL_GROWTH_HARD_BOUND)


def validate_cagr_5y(value) -> Optional[float]:
    """Clip a five-year CAGR (soft 50%, hard 100%)."""
    return clip_growth(value, CAGR_SOFT_BOUND, CAGR_HARD_BOUND)


def calculate_upside(fair_value: Optional[float], price: Optional[float]) -> Optional[float]:
    """Percentage gap between fair value and price."""
    if fair_value is None or price is None or price <= 0:
        return None
    return (fair_value / price - 1) * 100


def calculate_graham_fair_value(eps: Optional[float], book_value_per_share: Optional[float]) -> Optional[float]:
    """Graham number, sqrt(22.5 * EPS * BVPS), for positive operands."""
    if eps is None or book_value_per_share is None:
        return None
    if eps <= 0 or book_value_per_share <= 0:
        return None
    return math.sqrt(22.5 * eps * book_value_per_share)

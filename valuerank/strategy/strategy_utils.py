"""Formatting helpers for strategy criteria and rationales."""

from typing import Optional

NOT_AVAILABLE = "N/A (benefit of the doubt)"


def format_percent(value: Optional[float], digits: int = 1) -> str:
    """Format a fraction as a percentage, e.g. 0.153 -> '15.3%'."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value * 100:.{digits}f}%"


def format_ratio(value: Optional[float], digits: int = 2) -> str:
    """Format a plain multiple."""
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.{digits}f}"


def format_currency(value: Optional[float]) -> str:
    """Format an amount with a magnitude suffix."""
    if value is None:
        return NOT_AVAILABLE
    magnitude = abs(value)
    if magnitude >= 1e9:
        return f"{value / 1e9:.2f}B"
    if magnitude >= 1e6:
        return f"{value / 1e6:.1f}M"
    return f"{value:.2f}"


def capped(value: Optional[float], cap: float) -> float:
    """``min(value, cap)`` with missing values counted as zero."""
    return min(value or 0.0, cap)

"""
Volume and range helpers.
"""

from collections.abc import Sequence


def average_volume(volumes: Sequence[float]) -> float:
    """
    Arithmetic mean of all volume values in the window supplied.

    Returns:
        Mean volume, or 0.0 for an empty window
    """
    if not volumes:
        return 0.0

    return sum(volumes) / len(volumes)


def volatility(prices: Sequence[float], period: int = 14) -> float | None:
    """
    High-low range of the last `period` prices as a percentage of the low.

    Returns:
        Range percent, or None if there is no data
    """
    recent = prices[-period:] if period > 0 else []
    if not recent:
        return None

    low = min(recent)
    if low == 0:
        return None

    return (max(recent) - low) / low * 100

"""
ATR Indicator - Average True Range.

Measures market volatility by calculating the average of true ranges
over a specified period.
"""

from collections.abc import Sequence


def true_range(high: float, low: float, previous_close: float | None = None) -> float:
    """
    Calculate True Range for a single bar.

    True Range is the greatest of:
    1. Current High - Current Low
    2. |Current High - Previous Close|
    3. |Current Low - Previous Close|

    Args:
        high: Bar high
        low: Bar low
        previous_close: Previous bar's close price (None for first bar)

    Returns:
        True Range value
    """
    high_low = high - low

    if previous_close is None:
        return high_low

    return max(high_low, abs(high - previous_close), abs(low - previous_close))


def atr_series(
    high: Sequence[float],
    low: Sequence[float],
    close: Sequence[float],
    period: int = 14,
) -> list[float]:
    """
    Calculate ATR for every data point.

    The first ATR is the simple average of the first `period` true ranges,
    later values use Wilder's smoothing:
        atr[i] = (atr[i-1] * (period - 1) + tr[i]) / period

    The head of the output is padded with the first computed ATR so the
    result has the same length as the input.

    Args:
        high: Bar highs (most recent last)
        low: Bar lows
        close: Bar closes
        period: Lookback period (default 14)

    Returns:
        List of ATR values, or an empty list with fewer than period + 1 bars

    Raises:
        ValueError: If the input sequences differ in length
    """
    if not len(high) == len(low) == len(close):
        raise ValueError("high, low and close must have the same length")

    if len(close) < period + 1 or period <= 0:
        return []

    # True ranges start at the second bar (first bar has no previous close)
    true_ranges = [true_range(high[i], low[i], close[i - 1]) for i in range(1, len(close))]

    values = [sum(true_ranges[:period]) / period]
    for tr in true_ranges[period:]:
        values.append((values[-1] * (period - 1) + tr) / period)

    padding = [values[0]] * (len(close) - len(values))
    return padding + values


def atr(
    high: Sequence[float],
    low: Sequence[float],
    close: Sequence[float],
    period: int = 14,
) -> float | None:
    """
    Calculate the latest Average True Range.

    Returns:
        ATR value or None if insufficient data
    """
    series = atr_series(high, low, close, period)
    return series[-1] if series else None


def atr_percent(close: Sequence[float], period: int = 14) -> float | None:
    """
    ATR of a close-only series as a percentage of the latest close.

    With no high/low data the true range reduces to the absolute close-to-close move.
    """
    value = atr(close, close, close, period)
    if value is None or close[-1] == 0:
        return None

    return (value / close[-1]) * 100

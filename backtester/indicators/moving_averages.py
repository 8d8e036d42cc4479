"""
Moving Average Indicators - SMA and EMA calculations.

Pure math functions for calculating simple and exponential moving averages.
"""

from collections.abc import Sequence


def sma(prices: Sequence[float], period: int) -> float | None:
    """
    Calculate Simple Moving Average.

    Args:
        prices: List of prices (most recent last)
        period: Number of periods to average

    Returns:
        SMA value or None if insufficient data
    """
    if len(prices) < period or period <= 0:
        return None

    return sum(prices[-period:]) / period


def ema(prices: Sequence[float], period: int) -> float | None:
    """
    Calculate the latest Exponential Moving Average value.

    Args:
        prices: List of prices (most recent last)
        period: Number of periods for EMA calculation

    Returns:
        Current EMA value or None if there is no data
    """
    series = ema_series(prices, period)
    return series[-1] if series else None


def ema_series(prices: Sequence[float], period: int) -> list[float]:
    """
    Calculate EMA series for all data points.

    Uses multiplier k = 2 / (period + 1). The first value is seeded with the
    first price (not an SMA), so the output has the same length as the input
    and ema[0] == prices[0].

    Args:
        prices: List of prices (most recent last)
        period: Number of periods for EMA calculation

    Returns:
        List of EMA values, same length as prices (empty if no data)
    """
    if not prices or period <= 0:
        return []

    k = 2 / (period + 1)
    result: list[float] = [float(prices[0])]

    for price in prices[1:]:
        result.append(price * k + result[-1] * (1 - k))

    return result

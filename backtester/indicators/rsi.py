"""
RSI Indicator - Relative Strength Index calculation.

Measures the speed and magnitude of recent price changes
to evaluate overbought or oversold conditions.
"""

import math
from collections.abc import Sequence


def rsi(prices: Sequence[float], period: int = 14) -> float | None:
    """
    Calculate Relative Strength Index over a fixed window.

    RSI = 100 - (100 / (1 + RS))
    RS = Average Gain / Average Loss over the most recent period + 1 prices

    The averages are plain means over that window, not smoothed across the
    whole history.

    Args:
        prices: List of prices (most recent last), needs period + 1 prices minimum
        period: Lookback period (default 14)

    Returns:
        RSI value (0-100) or None if insufficient data. 100 when there are no losses.
    """
    if len(prices) < period + 1 or period <= 0:
        return None

    window = prices[-(period + 1) :]
    changes = [window[i] - window[i - 1] for i in range(1, len(window))]

    avg_gain = sum(c for c in changes if c > 0) / period
    avg_loss = sum(-c for c in changes if c < 0) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    rsi_value = 100 - (100 / (1 + rs))

    return min(100.0, max(0.0, rsi_value))


def rsi_series(prices: Sequence[float], period: int = 14) -> list[float]:
    """
    Calculate RSI for every index of the price list.

    Indices without enough history (i < period) hold NaN so the result
    stays aligned with the input.

    Args:
        prices: List of prices (most recent last)
        period: Lookback period (default 14)

    Returns:
        List of RSI values, same length as prices
    """
    if period <= 0:
        return [math.nan] * len(prices)

    result: list[float] = []
    for i in range(len(prices)):
        value = rsi(prices[max(0, i - period) : i + 1], period)
        result.append(math.nan if value is None else value)

    return result

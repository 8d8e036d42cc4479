"""
MACD Indicator - Moving Average Convergence Divergence.

Trend-following momentum indicator showing the relationship
between two exponential moving averages of price.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from .moving_averages import ema_series

Crossover = Literal["bullish", "bearish"]


@dataclass(frozen=True)
class MACDResult:
    """Result of MACD calculation."""

    macd_line: float  # Fast EMA - Slow EMA
    signal_line: float  # EMA of MACD line
    histogram: float  # MACD line - Signal line

    @property
    def is_bullish(self) -> bool:
        """True if MACD is above signal line."""
        return self.histogram > 0

    @property
    def is_bearish(self) -> bool:
        """True if MACD is below signal line."""
        return self.histogram < 0


ZERO_MACD = MACDResult(macd_line=0.0, signal_line=0.0, histogram=0.0)


def macd_lines(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[list[float], list[float]]:
    """
    Calculate the full MACD and signal line series.

    Both EMAs are seeded with the first price, so the lines are the same
    length as the input and need no alignment.

    Returns:
        (macd_line, signal_line), both empty if fewer than `slow` prices
    """
    if len(prices) < slow or fast <= 0 or slow <= 0 or signal <= 0:
        return [], []

    fast_ema = ema_series(prices, fast)
    slow_ema = ema_series(prices, slow)
    macd_line = [f - s for f, s in zip(fast_ema, slow_ema, strict=True)]

    return macd_line, ema_series(macd_line, signal)


def macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """
    Calculate MACD (Moving Average Convergence Divergence) at the latest bar.

    MACD Line = Fast EMA - Slow EMA
    Signal Line = EMA of MACD Line
    Histogram = MACD Line - Signal Line

    Args:
        prices: List of prices (most recent last)
        fast: Fast EMA period (default 12)
        slow: Slow EMA period (default 26)
        signal: Signal line EMA period (default 9)

    Returns:
        MACDResult for the latest bar. A zero-valued result when there are
        fewer than `slow` prices.
    """
    macd_line, signal_line = macd_lines(prices, fast, slow, signal)
    if not macd_line:
        return ZERO_MACD

    return MACDResult(
        macd_line=macd_line[-1],
        signal_line=signal_line[-1],
        histogram=macd_line[-1] - signal_line[-1],
    )


def macd_series(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> list[MACDResult]:
    """
    Calculate MACD for every data point.

    Useful for detecting crossovers by comparing consecutive values.

    Returns:
        List of MACDResult aligned with prices (empty if fewer than `slow` prices)
    """
    macd_line, signal_line = macd_lines(prices, fast, slow, signal)
    return [
        MACDResult(macd_line=m, signal_line=s, histogram=m - s)
        for m, s in zip(macd_line, signal_line, strict=True)
    ]


def macd_crossover(results: Sequence[MACDResult]) -> Crossover | None:
    """
    Detect a crossover between the last two MACD results.

    Returns:
        "bullish" if MACD crossed above the signal line, "bearish" if it
        crossed below, None otherwise
    """
    if len(results) < 2:
        return None

    previous, current = results[-2], results[-1]
    if previous.macd_line < previous.signal_line and current.macd_line > current.signal_line:
        return "bullish"
    if previous.macd_line > previous.signal_line and current.macd_line < current.signal_line:
        return "bearish"
    return None

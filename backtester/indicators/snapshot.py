"""
Indicator snapshots and per-series memoization.

IndicatorCache stores full indicator series keyed by their parameters so
several strategies running over the same PriceSeries compute each series once.
Cached values are exactly what the underlying pure functions return.
"""

import logging
import math
from dataclasses import dataclass

from backtester.core.models import PriceSeries

from .atr import atr_series
from .macd import MACDResult, ZERO_MACD, Crossover, macd_crossover, macd_lines
from .moving_averages import ema_series, sma
from .rsi import rsi_series
from .volume import volatility

logger = logging.getLogger(__name__)


class IndicatorCache:
    """
    Memoizes indicator series for one PriceSeries.

    Usage:
        cache = IndicatorCache(series)
        ema12 = cache.ema(12)
        macd_line, signal_line = cache.macd(12, 26, 9)
    """

    def __init__(self, series: PriceSeries):
        self.series = series
        self._ema: dict[int, list[float]] = {}
        self._macd: dict[tuple[int, int, int], tuple[list[float], list[float]]] = {}
        self._macd_line: dict[tuple[int, int], list[float]] = {}
        self._rsi: dict[int, list[float]] = {}
        self._atr: dict[int, list[float]] = {}

    def ema(self, period: int) -> list[float]:
        """EMA series seeded with the first price."""
        if period not in self._ema:
            self._ema[period] = ema_series(self.series.prices, period)
        return self._ema[period]

    def macd(self, fast: int = 12, slow: int = 26, signal: int = 9) -> tuple[list[float], list[float]]:
        """(macd_line, signal_line) series, empty when the series is shorter than `slow`."""
        key = (fast, slow, signal)
        if key not in self._macd:
            self._macd[key] = macd_lines(self.series.prices, fast, slow, signal)
        return self._macd[key]

    def macd_line(self, fast: int = 12, slow: int = 26) -> list[float]:
        """
        MACD line only (fast EMA - slow EMA) over the whole series.

        Unlike macd(), there is no minimum length: both EMAs are seeded with the
        first price, so the line starts at 0.
        """
        key = (fast, slow)
        if key not in self._macd_line:
            self._macd_line[key] = [f - s for f, s in zip(self.ema(fast), self.ema(slow), strict=True)]
        return self._macd_line[key]

    def rsi(self, period: int = 14) -> list[float]:
        """RSI series aligned with prices (NaN during warm-up)."""
        if period not in self._rsi:
            self._rsi[period] = rsi_series(self.series.prices, period)
        return self._rsi[period]

    def atr(self, period: int = 14) -> list[float]:
        """ATR of the close-only series."""
        if period not in self._atr:
            closes = self.series.prices
            self._atr[period] = atr_series(closes, closes, closes, period)
        return self._atr[period]

    def warm(self) -> None:
        """Precompute the default indicator set used by the built-in strategies."""
        self.ema(12)
        self.ema(26)
        self.macd()
        self.macd_line()
        self.rsi()
        logger.debug(f"Indicator cache warmed for {self.series!r}")


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Read-only indicator values at one index of a PriceSeries."""

    index: int
    price: float
    sma20: float | None
    ema12: float
    ema26: float
    rsi: float | None
    macd: MACDResult
    macd_rising: bool
    macd_crossover: Crossover | None
    atr: float | None
    volatility: float | None

    @property
    def above_sma(self) -> bool:
        """True if price is above the 20-bar SMA."""
        return self.sma20 is not None and self.price > self.sma20

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "index": self.index,
            "price": self.price,
            "sma20": self.sma20,
            "aboveSma": self.above_sma,
            "ema12": self.ema12,
            "ema26": self.ema26,
            "rsi": self.rsi,
            "macd": {
                "macd": self.macd.macd_line,
                "signal": self.macd.signal_line,
                "histogram": self.macd.histogram,
                "isRising": self.macd_rising,
                "crossover": self.macd_crossover,
            },
            "atr": self.atr,
            "volatility": self.volatility,
        }


def compute_snapshot(
    series: PriceSeries,
    index: int | None = None,
    cache: IndicatorCache | None = None,
) -> IndicatorSnapshot | None:
    """
    Compute the indicator snapshot at `index` (default: the last bar).

    Only data up to and including `index` is used, so a snapshot never
    looks ahead.

    Returns:
        IndicatorSnapshot, or None for an empty series
    """
    if not len(series):
        return None

    if index is None:
        index = len(series) - 1
    if not 0 <= index < len(series):
        raise IndexError(f"index {index} out of range for {series!r}")

    # EMA values at `index` only depend on prices[:index + 1]
    cache = cache or IndicatorCache(series)
    prices = series.prices[: index + 1]

    macd_line, signal_line = cache.macd()
    if len(prices) >= 26 and macd_line:
        history = [
            MACDResult(macd_line=macd_line[i], signal_line=signal_line[i], histogram=macd_line[i] - signal_line[i])
            for i in range(max(0, index - 1), index + 1)
        ]
        current = history[-1]
        rising = len(history) == 2 and history[1].macd_line > history[0].macd_line
        crossover = macd_crossover(history)
    else:
        current, rising, crossover = ZERO_MACD, False, None

    rsi_value = cache.rsi()[index]
    atr_values = cache.atr()

    return IndicatorSnapshot(
        index=index,
        price=prices[-1],
        sma20=sma(prices, 20),
        ema12=cache.ema(12)[index],
        ema26=cache.ema(26)[index],
        rsi=None if math.isnan(rsi_value) else rsi_value,
        macd=current,
        macd_rising=rising,
        macd_crossover=crossover,
        atr=atr_values[index] if atr_values and index >= 14 else None,
        volatility=volatility(prices),
    )

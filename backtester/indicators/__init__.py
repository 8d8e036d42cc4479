"""
Technical Indicators Module - Pure math functions for market analysis.

All functions are stateless and operate on ordered price/volume sequences.
Insufficient data yields a documented sentinel (None, an empty list, NaN
or a zero-valued result), never an exception.
"""

from .atr import atr, atr_percent, atr_series, true_range
from .macd import MACDResult, macd, macd_crossover, macd_lines, macd_series
from .moving_averages import ema, ema_series, sma
from .rsi import rsi, rsi_series
from .snapshot import IndicatorCache, IndicatorSnapshot, compute_snapshot
from .volume import average_volume, volatility

__all__ = [
    # Moving Averages
    "sma",
    "ema",
    "ema_series",
    # RSI
    "rsi",
    "rsi_series",
    # MACD
    "macd",
    "macd_lines",
    "macd_series",
    "macd_crossover",
    "MACDResult",
    # ATR
    "atr",
    "atr_series",
    "atr_percent",
    "true_range",
    # Volume / range
    "average_volume",
    "volatility",
    # Snapshots
    "IndicatorCache",
    "IndicatorSnapshot",
    "compute_snapshot",
]

"""
Strategy backtester for crypto price series.

Runs MACD cross, RSI reversal and breakout strategies over historical
[timestamp, price] series, ranks them by return and reports support /
resistance structure when volume data is available.

Usage:
    from backtester import BacktestConfig, BacktestEngine

    engine = BacktestEngine(BacktestConfig(direction="both", leverage=2, amount=1000))
    summary = engine.run(prices, ["macd_cross", "rsi_reversal", "breakout"])
    print(summary.ranking_summary)
"""

# The backtest package must load before strategies: strategies import its
# models, and its engine imports the strategy registry.
from backtester.backtest import BacktestConfig, BacktestEngine, BacktestResult, BacktestSummary, Trade
from backtester.core import DirectionFilter, MalformedSeriesError, PriceSeries, VolumeSeries
from backtester.strategies import get_strategy, list_strategies

__version__ = "0.1.0"

__all__ = [
    "BacktestConfig",
    "BacktestEngine",
    "BacktestResult",
    "BacktestSummary",
    "DirectionFilter",
    "MalformedSeriesError",
    "PriceSeries",
    "Trade",
    "VolumeSeries",
    "get_strategy",
    "list_strategies",
]

"""
Backtest Module - Strategy state machines run over historical series.

Orchestrates the flow: PriceSeries → Indicators → Strategies → Ranking
"""

from .models import (
    Accounting,
    BacktestConfig,
    BacktestResult,
    BacktestSummary,
    EntryReason,
    ExitReason,
    StrategySummary,
    Trade,
    TradeAction,
)
from .position_manager import Flat, Open, PositionState, can_enter, close_position, open_position
from .engine import BacktestEngine, rank_results, ranking_summary, summarize_trades

__all__ = [
    "BacktestEngine",
    "rank_results",
    "ranking_summary",
    "summarize_trades",
    # Models
    "Accounting",
    "BacktestConfig",
    "BacktestResult",
    "BacktestSummary",
    "EntryReason",
    "ExitReason",
    "StrategySummary",
    "Trade",
    "TradeAction",
    # Position state
    "Flat",
    "Open",
    "PositionState",
    "can_enter",
    "close_position",
    "open_position",
]

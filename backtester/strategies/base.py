"""
Base definitions shared by the strategy state machines.

Defines:
- StrategyType: Enum of the built-in strategy families
- StrategyFn: Call signature every strategy implements
- Helpers to assemble a BacktestResult from closed trades
"""

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from backtester.backtest.models import Accounting, BacktestConfig, BacktestResult, Trade

if TYPE_CHECKING:
    from backtester.core.models import PriceSeries
    from backtester.indicators.snapshot import IndicatorCache


class StrategyType(Enum):
    """Available strategy families."""

    MACD_CROSS = "macd_cross"  # Trend-cross on MACD vs signal line
    RSI_REVERSAL = "rsi_reversal"  # Oscillator reversal on RSI extremes
    BREAKOUT = "breakout"  # Rolling high/low breakout with MACD momentum

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]


DISPLAY_NAMES = {
    StrategyType.MACD_CROSS: "MACD Cross Strategy",
    StrategyType.RSI_REVERSAL: "RSI Reversal Strategy",
    StrategyType.BREAKOUT: "Breakout Strategy",
}


class StrategyFn(Protocol):
    """A strategy: price series + shared config in, BacktestResult out."""

    def __call__(
        self,
        series: "PriceSeries",
        config: BacktestConfig,
        params: Any = None,
        cache: "IndicatorCache | None" = None,
    ) -> BacktestResult: ...


def win_rate(trades: Sequence[Trade]) -> float:
    """Percentage of trades with profit_percent > 0 (0 when there are none)."""
    if not trades:
        return 0.0
    return sum(1 for t in trades if t.is_win) / len(trades) * 100


def ordered(trades: Sequence[Trade]) -> tuple[Trade, ...]:
    """Trades in log order: by exit bar, then entry bar, long before short."""
    return tuple(sorted(trades, key=lambda t: (t.exit_index, t.entry_index, t.direction.value)))


def summed_result(strategy_name: str, trades: Sequence[Trade], config: BacktestConfig) -> BacktestResult:
    """
    Build a result whose total_return is the plain sum of trade percentages.

    No compounding: every trade is measured against the same notional.
    """
    log = ordered(trades)
    return BacktestResult(
        strategy_name=strategy_name,
        trades=log,
        total_return=sum(t.profit_percent for t in log),
        win_rate=win_rate(log),
        accounting=Accounting.SUM,
        leverage_used=config.leverage,
        spot_total_return=sum(t.spot_profit_percent for t in log),
    )

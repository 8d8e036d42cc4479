"""
Trading Strategies Module.

Each strategy is a pure function that folds a price series through a
per-direction position state machine and returns a BacktestResult.

Available strategies:
- macd_cross: MACD / signal line crossovers (summed returns)
- rsi_reversal: RSI oversold/overbought reversals (summed returns)
- breakout: Rolling range breakouts with MACD momentum (compounding)

Usage:
    from backtester.strategies import get_strategy

    strategy = get_strategy("macd_cross")
    strategy = get_strategy("MACD Cross Strategy")  # Display names also work
    result = strategy(series, BacktestConfig(direction="long", leverage=2))
"""

from backtester.strategies.base import (
    DISPLAY_NAMES,
    StrategyFn,
    StrategyType,
    ordered,
    summed_result,
    win_rate,
)
from backtester.strategies.breakout import breakout_strategy
from backtester.strategies.macd_cross import macd_cross_strategy
from backtester.strategies.rsi_reversal import rsi_reversal_strategy

# Registry of all strategies
_STRATEGIES: dict[StrategyType, StrategyFn] = {
    StrategyType.MACD_CROSS: macd_cross_strategy,
    StrategyType.RSI_REVERSAL: rsi_reversal_strategy,
    StrategyType.BREAKOUT: breakout_strategy,
}


def _normalize(name: str) -> str:
    return name.strip().lower().replace(" ", "_").replace("-", "_")


def resolve_strategy_type(name: str) -> StrategyType:
    """
    Resolve a strategy name to its StrategyType.

    Args:
        name: Registry key or display name (case-insensitive,
            underscores/hyphens/spaces accepted, "Strategy" suffix optional)

    Returns:
        Matching StrategyType

    Raises:
        ValueError: If strategy not found

    Example:
        >>> resolve_strategy_type("macd_cross")
        <StrategyType.MACD_CROSS: 'macd_cross'>
        >>> resolve_strategy_type("RSI Reversal Strategy")
        <StrategyType.RSI_REVERSAL: 'rsi_reversal'>
    """
    key = _normalize(name).removesuffix("_strategy")
    for strategy_type in _STRATEGIES:
        if key == strategy_type.value:
            return strategy_type

    available = ", ".join(t.value for t in _STRATEGIES)
    raise ValueError(f"Unknown strategy '{name}'. Available: {available}")


def get_strategy(name: str) -> StrategyFn:
    """
    Get a strategy function by name.

    Raises:
        ValueError: If strategy not found
    """
    return _STRATEGIES[resolve_strategy_type(name)]


def list_strategies() -> list[tuple[str, str]]:
    """
    List available strategies with descriptions.

    Returns:
        List of (name, description) tuples
    """
    return [
        ("macd_cross", "MACD / signal crossovers, summed returns"),
        ("rsi_reversal", "RSI 30/70 reversals exiting at the 50 midline, summed returns"),
        ("breakout", "20-bar range breakout + MACD momentum, compounding 50% sizing"),
    ]


__all__ = [
    # Base definitions
    "DISPLAY_NAMES",
    "StrategyFn",
    "StrategyType",
    "ordered",
    "summed_result",
    "win_rate",
    # Registry functions
    "get_strategy",
    "list_strategies",
    "resolve_strategy_type",
    # Strategies
    "breakout_strategy",
    "macd_cross_strategy",
    "rsi_reversal_strategy",
]

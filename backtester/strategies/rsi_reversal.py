"""
RSI Reversal Strategy - Fade oscillator extremes.

Entry:
- LONG when RSI crosses down into oversold (< 30)
- SHORT when RSI crosses up into overbought (> 70)

Exit:
1. Stop loss (unleveraged loss >= stop_loss_pct)
2. RSI crosses the midline against the entry extreme
   (up through 50 for longs, down through 50 for shorts):
   rsi-target when the trade is in profit, rsi-exit otherwise
3. Time expiry on the final bar

Cooldown is tracked per direction.
"""

import logging
import math

from backtester.backtest.models import BacktestConfig, BacktestResult, EntryReason, ExitReason
from backtester.backtest.position_manager import (
    Flat,
    Open,
    PositionState,
    can_enter,
    close_position,
    open_position,
)
from backtester.core.config import DEFAULT_RSI_REVERSAL, RSIReversalConfig
from backtester.core.models import Direction, PriceSeries
from backtester.indicators.snapshot import IndicatorCache

from .base import StrategyType, summed_result

logger = logging.getLogger(__name__)

STRATEGY_NAME = StrategyType.RSI_REVERSAL.display_name


def entry_signal(
    direction: Direction,
    prev_rsi: float,
    current_rsi: float,
    params: RSIReversalConfig = DEFAULT_RSI_REVERSAL,
) -> EntryReason | None:
    """Entry reason when RSI has just crossed into the extreme for `direction`."""
    if direction == Direction.LONG:
        if prev_rsi >= params.oversold > current_rsi:
            return EntryReason.RSI_OVERSOLD
    elif prev_rsi <= params.overbought < current_rsi:
        return EntryReason.RSI_OVERBOUGHT
    return None


def exit_signal(
    state: Open,
    price: float,
    prev_rsi: float,
    current_rsi: float,
    is_last_bar: bool,
    params: RSIReversalConfig = DEFAULT_RSI_REVERSAL,
) -> ExitReason | None:
    """
    Decide whether an open position closes on this bar.

    Args:
        state: The open position
        price: Current price
        prev_rsi: RSI on the previous bar
        current_rsi: RSI on the current bar
        is_last_bar: True on the final bar of the series
        params: Strategy parameters

    Returns:
        ExitReason, or None to keep holding
    """
    spot = state.spot_return(price)
    if spot <= -params.stop_loss_pct:
        return ExitReason.STOP_LOSS_HIT

    if state.direction == Direction.LONG:
        reverted = prev_rsi < params.midline <= current_rsi
    else:
        reverted = prev_rsi > params.midline >= current_rsi

    if reverted:
        return ExitReason.RSI_TARGET if spot > 0 else ExitReason.RSI_EXIT

    if is_last_bar:
        return ExitReason.TIME_EXPIRY

    return None


def rsi_reversal_strategy(
    series: PriceSeries,
    config: BacktestConfig,
    params: RSIReversalConfig | None = None,
    cache: IndicatorCache | None = None,
) -> BacktestResult:
    """
    Run the RSI reversal state machine over a price series.

    Args:
        series: Price series (at least params.period + 2 points)
        config: Shared direction / leverage / amount configuration
        params: Strategy parameters (uses defaults if None)
        cache: Shared indicator cache for this series

    Returns:
        BacktestResult with summed returns, or an empty result for short series
    """
    params = params or DEFAULT_RSI_REVERSAL

    if len(series) < params.min_bars:
        logger.debug(f"{STRATEGY_NAME}: {len(series)} bars < {params.min_bars}, skipping")
        return BacktestResult.empty(STRATEGY_NAME, leverage=config.leverage)

    cache = cache or IndicatorCache(series)
    rsi_values = cache.rsi(params.period)
    prices = series.prices
    last_bar = len(prices) - 1

    states: dict[Direction, PositionState] = {d: Flat() for d in config.direction.directions}
    trades = []

    # First bar with RSI defined on both it and its predecessor
    for i in range(params.period + 1, len(prices)):
        price = prices[i]
        prev_rsi, current_rsi = rsi_values[i - 1], rsi_values[i]
        if math.isnan(prev_rsi) or math.isnan(current_rsi):
            continue

        for direction, state in states.items():
            if not isinstance(state, Open):
                continue
            reason = exit_signal(state, price, prev_rsi, current_rsi, i == last_bar, params)
            if reason is None:
                continue
            states[direction], trade = close_position(
                state, i, price, reason, config.leverage, STRATEGY_NAME
            )
            trades.append(trade)
            logger.debug(
                f"{STRATEGY_NAME}: close {direction.value} @ bar {i} "
                f"(RSI {current_rsi:.1f}, {reason.value}, {trade.profit_percent:+.2f}%)"
            )

        if i == last_bar:
            continue

        for direction in states:
            entry_reason = entry_signal(direction, prev_rsi, current_rsi, params)
            if entry_reason and can_enter(states[direction], i, params.cooldown_bars):
                states[direction] = open_position(
                    states[direction],
                    direction,
                    i,
                    price,
                    entry_reason=entry_reason,
                    position_size=config.amount,
                )

    return summed_result(STRATEGY_NAME, trades, config)

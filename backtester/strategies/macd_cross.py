"""
MACD Cross Strategy - Trend-following on MACD / signal line crossovers.

Entry:
- LONG when the MACD line crosses above the signal line
- SHORT when the MACD line crosses below the signal line

Exit (first match wins, only after min_hold_bars):
1. Stop loss (unleveraged loss >= stop_loss_pct)
2. Opposing crossover
3. Momentum fade (|MACD - signal| smaller than on the previous bar)
4. Time expiry on the final bar (always honoured)

After any exit, a cooldown blocks new entries in both directions.
Returns are summed per trade, not compounded.
"""

import logging

from backtester.backtest.models import BacktestConfig, BacktestResult, EntryReason, ExitReason
from backtester.backtest.position_manager import (
    Flat,
    Open,
    PositionState,
    can_enter,
    close_position,
    open_position,
)
from backtester.core.config import DEFAULT_MACD_CROSS, MACDCrossConfig
from backtester.core.models import Direction, PriceSeries
from backtester.indicators.snapshot import IndicatorCache

from .base import StrategyType, summed_result

logger = logging.getLogger(__name__)

STRATEGY_NAME = StrategyType.MACD_CROSS.display_name


def crossed_up(prev_gap: float, gap: float) -> bool:
    """MACD moved from at/below the signal line to above it."""
    return prev_gap <= 0 < gap


def crossed_down(prev_gap: float, gap: float) -> bool:
    """MACD moved from at/above the signal line to below it."""
    return prev_gap >= 0 > gap


def exit_signal(
    state: Open,
    index: int,
    price: float,
    prev_gap: float,
    gap: float,
    is_last_bar: bool,
    params: MACDCrossConfig = DEFAULT_MACD_CROSS,
) -> ExitReason | None:
    """
    Decide whether an open position closes at bar `index`.

    Args:
        state: The open position
        index: Current bar
        price: Current price
        prev_gap: MACD - signal on the previous bar
        gap: MACD - signal on the current bar
        is_last_bar: True on the final bar of the series
        params: Strategy parameters

    Returns:
        ExitReason, or None to keep holding
    """
    if state.bars_held(index) >= params.min_hold_bars:
        if state.spot_return(price) <= -params.stop_loss_pct:
            return ExitReason.STOP_LOSS_HIT

        opposing = crossed_down if state.direction == Direction.LONG else crossed_up
        if opposing(prev_gap, gap):
            return ExitReason.MACD_CROSS

        if abs(gap) < abs(prev_gap):
            return ExitReason.TREND_FADE

    if is_last_bar:
        return ExitReason.TIME_EXPIRY

    return None


def macd_cross_strategy(
    series: PriceSeries,
    config: BacktestConfig,
    params: MACDCrossConfig | None = None,
    cache: IndicatorCache | None = None,
) -> BacktestResult:
    """
    Run the MACD cross state machine over a price series.

    Args:
        series: Price series (at least params.min_bars points)
        config: Shared direction / leverage / amount configuration
        params: Strategy parameters (uses defaults if None)
        cache: Shared indicator cache for this series

    Returns:
        BacktestResult with summed returns, or an empty result for short series
    """
    params = params or DEFAULT_MACD_CROSS

    if len(series) < params.min_bars:
        logger.debug(f"{STRATEGY_NAME}: {len(series)} bars < {params.min_bars}, skipping")
        return BacktestResult.empty(STRATEGY_NAME, leverage=config.leverage)

    cache = cache or IndicatorCache(series)
    macd_line, signal_line = cache.macd(params.fast, params.slow, params.signal)
    gaps = [m - s for m, s in zip(macd_line, signal_line, strict=True)]
    prices = series.prices
    last_bar = len(prices) - 1

    states: dict[Direction, PositionState] = {d: Flat() for d in config.direction.directions}
    last_exit: int | None = None
    trades = []

    for i in range(1, len(prices)):
        price = prices[i]
        prev_gap, gap = gaps[i - 1], gaps[i]

        for direction, state in states.items():
            if not isinstance(state, Open):
                continue
            reason = exit_signal(state, i, price, prev_gap, gap, i == last_bar, params)
            if reason is None:
                continue
            states[direction], trade = close_position(
                state, i, price, reason, config.leverage, STRATEGY_NAME
            )
            trades.append(trade)
            last_exit = i
            logger.debug(
                f"{STRATEGY_NAME}: close {direction.value} @ bar {i} "
                f"({reason.value}, {trade.profit_percent:+.2f}%)"
            )

        # No entries on the final bar or while cooling down
        if i == last_bar or (last_exit is not None and i - last_exit < params.cooldown_bars):
            continue

        for direction in states:
            if direction == Direction.LONG:
                fired, entry_reason = crossed_up(prev_gap, gap), EntryReason.MACD_BULLISH_CROSS
            else:
                fired, entry_reason = crossed_down(prev_gap, gap), EntryReason.MACD_BEARISH_CROSS

            if fired and can_enter(states[direction], i):
                states[direction] = open_position(
                    states[direction],
                    direction,
                    i,
                    price,
                    entry_reason=entry_reason,
                    position_size=config.amount,
                )

    return summed_result(STRATEGY_NAME, trades, config)

"""
Breakout Strategy - Rolling range breakouts confirmed by MACD momentum.

Entry:
- LONG when price closes above the rolling `lookback` high by threshold_pct
  and the MACD line is rising
- SHORT when price closes below the rolling low by threshold_pct and the
  MACD line is falling

The high (long) or low (short) that was broken is recorded at entry.

Exit (first match wins):
1. Stop loss (unleveraged loss >= stop_loss_pct)
2. Profit target reached (reported as trend-fade)
3. Fakeout: price back through the recorded breakout level
4. Time expiry on the final bar

Unlike the other strategies this one compounds: each trade commits
position_size_pct of the current account value, and total_return is the
growth of that account. Leveraged and spot accounts evolve separately and
are floored at zero; once the account is exhausted no new trades open.
"""

import logging

from backtester.backtest.models import (
    Accounting,
    BacktestConfig,
    BacktestResult,
    EntryReason,
    ExitReason,
)
from backtester.backtest.position_manager import (
    Flat,
    Open,
    PositionState,
    can_enter,
    close_position,
    open_position,
)
from backtester.core.config import DEFAULT_BREAKOUT, BreakoutConfig
from backtester.core.models import Direction, PriceSeries
from backtester.indicators.snapshot import IndicatorCache

from .base import StrategyType, ordered, win_rate

logger = logging.getLogger(__name__)

STRATEGY_NAME = StrategyType.BREAKOUT.display_name


def exit_signal(
    state: Open,
    price: float,
    is_last_bar: bool,
    params: BreakoutConfig = DEFAULT_BREAKOUT,
) -> ExitReason | None:
    """
    Decide whether an open breakout position closes at `price`.

    Returns:
        ExitReason, or None to keep holding
    """
    spot = state.spot_return(price)
    if spot <= -params.stop_loss_pct:
        return ExitReason.STOP_LOSS_HIT
    if spot >= params.profit_target_pct:
        return ExitReason.TREND_FADE

    level = state.reference_level
    if level is not None:
        if state.direction == Direction.LONG and price < level:
            return ExitReason.FAKEOUT
        if state.direction == Direction.SHORT and price > level:
            return ExitReason.FAKEOUT

    if is_last_bar:
        return ExitReason.TIME_EXPIRY

    return None


def breakout_strategy(
    series: PriceSeries,
    config: BacktestConfig,
    params: BreakoutConfig | None = None,
    cache: IndicatorCache | None = None,
) -> BacktestResult:
    """
    Run the compounding breakout state machine over a price series.

    Args:
        series: Price series (at least lookback + 1 points)
        config: Shared direction / leverage / amount configuration
        params: Strategy parameters (uses defaults if None)
        cache: Shared indicator cache for this series

    Returns:
        BacktestResult with COMPOUND accounting and final account values
    """
    params = params or DEFAULT_BREAKOUT
    starting_value = config.amount if config.amount is not None else params.default_account_value

    if len(series) <= params.lookback:
        logger.debug(f"{STRATEGY_NAME}: {len(series)} bars <= lookback {params.lookback}, skipping")
        return BacktestResult.empty(STRATEGY_NAME, Accounting.COMPOUND, config.leverage)

    cache = cache or IndicatorCache(series)
    macd_line = cache.macd_line(params.fast, params.slow)
    prices = series.prices
    last_bar = len(prices) - 1
    margin = params.threshold_pct / 100

    account_value = starting_value
    spot_account_value = starting_value
    states: dict[Direction, PositionState] = {d: Flat() for d in config.direction.directions}
    trades = []

    for i in range(params.lookback, len(prices)):
        price = prices[i]
        past = prices[i - params.lookback : i]
        high, low = max(past), min(past)

        for direction, state in states.items():
            if not isinstance(state, Open):
                continue
            reason = exit_signal(state, price, i == last_bar, params)
            if reason is None:
                continue
            states[direction], trade = close_position(
                state, i, price, reason, config.leverage, STRATEGY_NAME
            )
            trades.append(trade)

            # Liquidation guard
            account_value = max(0.0, account_value + trade.profit_amount)
            spot_account_value = max(0.0, spot_account_value + trade.spot_profit_amount)
            logger.debug(
                f"{STRATEGY_NAME}: close {direction.value} @ bar {i} "
                f"({reason.value}, {trade.profit_percent:+.2f}%, account {account_value:.2f})"
            )

        if i == last_bar:
            continue
        if account_value <= 0:
            logger.debug(f"{STRATEGY_NAME}: account exhausted at bar {i}, no further entries")
            continue

        breakouts = {
            Direction.LONG: (price > high * (1 + margin) and macd_line[i] > macd_line[i - 1], high),
            Direction.SHORT: (price < low * (1 - margin) and macd_line[i] < macd_line[i - 1], low),
        }
        for direction in states:
            fired, level = breakouts[direction]
            if fired and can_enter(states[direction], i):
                states[direction] = open_position(
                    states[direction],
                    direction,
                    i,
                    price,
                    entry_reason=EntryReason.PATTERN_BREAKOUT,
                    reference_level=level,
                    position_size=account_value * params.position_size_pct / 100,
                )

    log = ordered(trades)
    return BacktestResult(
        strategy_name=STRATEGY_NAME,
        trades=log,
        total_return=(account_value - starting_value) / starting_value * 100,
        win_rate=win_rate(log),
        accounting=Accounting.COMPOUND,
        leverage_used=config.leverage,
        spot_total_return=(spot_account_value - starting_value) / starting_value * 100,
        account_value=account_value,
        spot_account_value=spot_account_value,
    )

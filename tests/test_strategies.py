#!/usr/bin/env python3
"""
Tests for the strategy state machines and the strategy registry.

Run with:
    python -m pytest tests/test_strategies.py -v
"""

import math
import sys
from pathlib import Path

import pytest

# Add project root to path for standalone execution
sys.path.insert(0, str(Path(__file__).parent.parent))

from backtester.backtest.models import Accounting, BacktestConfig, EntryReason, ExitReason
from backtester.core.config import BreakoutConfig, MACDCrossConfig, RSIReversalConfig
from backtester.core.models import Direction, PriceSeries
from backtester.indicators import macd_series
from backtester.strategies import (
    StrategyType,
    breakout_strategy,
    get_strategy,
    list_strategies,
    macd_cross_strategy,
    resolve_strategy_type,
    rsi_reversal_strategy,
)

ALL_STRATEGIES = [macd_cross_strategy, rsi_reversal_strategy, breakout_strategy]


def choppy(n: int = 200) -> PriceSeries:
    """Deterministic series with trends, reversals and noise."""
    return PriceSeries.from_prices(
        [100 + 8 * math.sin(i / 4) + 3 * math.sin(i / 1.7) + 0.05 * i for i in range(n)]
    )


def rise_then_fall() -> list[float]:
    """20 bars up by 1, then 20 bars down by 1 (40 bars)."""
    return [100.0 + i for i in range(20)] + [119.0 - i for i in range(1, 21)]


class TestRegistry:
    """Tests for strategy lookup."""

    def test_lookup_by_key_and_display_name(self):
        assert get_strategy("macd_cross") is macd_cross_strategy
        assert get_strategy("MACD Cross Strategy") is macd_cross_strategy
        assert get_strategy("rsi-reversal") is rsi_reversal_strategy
        assert get_strategy("Breakout") is breakout_strategy

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Available"):
            get_strategy("martingale")

    def test_resolve_type(self):
        assert resolve_strategy_type("RSI Reversal Strategy") == StrategyType.RSI_REVERSAL
        assert StrategyType.BREAKOUT.display_name == "Breakout Strategy"

    def test_list_strategies(self):
        assert [name for name, _ in list_strategies()] == ["macd_cross", "rsi_reversal", "breakout"]


class TestMACDCross:
    """Tests for the MACD cross strategy."""

    def test_rise_then_fall_scenario(self):
        """One profitable long from the early up-cross, at most one short after the top."""
        prices = rise_then_fall()
        result = macd_cross_strategy(PriceSeries.from_prices(prices), BacktestConfig(direction="both"))

        longs = result.trades_for(Direction.LONG)
        shorts = result.trades_for(Direction.SHORT)

        hist = [r.histogram for r in macd_series(prices)]
        down_cross = next(i for i in range(1, len(hist)) if hist[i - 1] >= 0 > hist[i])

        assert len(longs) == 1
        assert longs[0].entry_index <= 3
        assert longs[0].exit_index <= down_cross
        assert longs[0].profit_percent > 0
        assert longs[0].entry_reason == EntryReason.MACD_BULLISH_CROSS

        assert len(shorts) <= 1
        for short in shorts:
            assert short.entry_index >= 20
            assert short.entry_reason == EntryReason.MACD_BEARISH_CROSS

    def test_short_series_is_empty(self):
        result = macd_cross_strategy(PriceSeries.from_prices(rise_then_fall()[:34]), BacktestConfig())
        assert result.trades == ()
        assert result.total_return == 0
        assert result.win_rate == 0

    def test_sum_accounting(self):
        result = macd_cross_strategy(choppy(), BacktestConfig())
        assert result.accounting == Accounting.SUM
        assert result.total_return == pytest.approx(sum(t.profit_percent for t in result.trades))
        assert result.account_value is None

    def test_global_cooldown(self):
        """No entry in either direction within cooldown_bars of any exit."""
        params = MACDCrossConfig(cooldown_bars=5)
        result = macd_cross_strategy(choppy(), BacktestConfig(), params)
        exits = [t.exit_index for t in result.trades]
        for trade in result.trades:
            assert all(not 0 <= trade.entry_index - e < 5 for e in exits)

    def test_min_hold(self):
        """Only time expiry may close a trade before min_hold_bars."""
        result = macd_cross_strategy(choppy(), BacktestConfig(), MACDCrossConfig(min_hold_bars=4))
        for trade in result.trades:
            assert trade.bars_held >= 4 or trade.exit_reason == ExitReason.TIME_EXPIRY

    def test_amount_sets_sizing_fields(self):
        result = macd_cross_strategy(choppy(), BacktestConfig(leverage=2, amount=1000))
        assert result.trades
        for trade in result.trades:
            assert trade.position_size == 1000
            assert trade.profit_amount == pytest.approx(1000 * trade.profit_percent / 100)


class TestRSIReversal:
    """Tests for the RSI reversal strategy (period 4 to keep series short)."""

    PARAMS = RSIReversalConfig(period=4)

    # RSI(4): idx5 42.9, idx6 20.0 (cross below 30), idx10 73.3 (cross above 50)
    TARGET = [100.0, 101.0, 102.0, 103.0, 104.0, 100.0, 96.0, 92.0, 95.0, 99.0, 103.0, 104.0]

    def test_oversold_entry_and_target_exit(self):
        series = PriceSeries.from_prices(self.TARGET)
        result = rsi_reversal_strategy(series, BacktestConfig(direction="long"), self.PARAMS)

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert (trade.entry_index, trade.exit_index) == (6, 10)
        assert trade.entry_reason == EntryReason.RSI_OVERSOLD
        assert trade.exit_reason == ExitReason.RSI_TARGET
        assert trade.profit_percent == pytest.approx((103 - 96) / 96 * 100)

    def test_overbought_short_closes_on_final_bar(self):
        series = PriceSeries.from_prices(self.TARGET)
        result = rsi_reversal_strategy(series, BacktestConfig(direction="both"), self.PARAMS)

        assert [t.direction for t in result.trades] == [Direction.LONG, Direction.SHORT]
        short = result.trades[1]
        assert (short.entry_index, short.exit_index) == (10, 11)
        assert short.entry_reason == EntryReason.RSI_OVERBOUGHT
        assert short.exit_reason == ExitReason.TIME_EXPIRY

    def test_losing_reversion_is_rsi_exit(self):
        prices = [100.0, 101.0, 102.0, 103.0, 104.0, 100.0, 96.0, 92.0, 93.0, 94.0, 95.0, 95.5]
        result = rsi_reversal_strategy(PriceSeries.from_prices(prices), BacktestConfig(direction="long"), self.PARAMS)

        assert len(result.trades) == 1
        assert result.trades[0].exit_reason == ExitReason.RSI_EXIT
        assert result.trades[0].profit_percent < 0

    def test_stop_loss(self):
        prices = [100.0, 101.0, 102.0, 103.0, 104.0, 100.0, 96.0, 91.0, 92.0]
        result = rsi_reversal_strategy(PriceSeries.from_prices(prices), BacktestConfig(direction="long"), self.PARAMS)

        assert len(result.trades) == 1
        assert result.trades[0].exit_index == 7
        assert result.trades[0].exit_reason == ExitReason.STOP_LOSS_HIT

    def test_short_series_is_empty(self):
        result = rsi_reversal_strategy(PriceSeries.from_prices([100.0] * 15), BacktestConfig())
        assert result.trades == ()
        assert result.total_return == 0


class TestBreakout:
    """Tests for the compounding breakout strategy."""

    # Flat range, then a breakout and two consecutive +10% legs
    TWO_WINNERS = [100.0] * 21 + [100.5, 110.55, 121.605]

    def test_compounding(self):
        """Two +10% trades at 50% sizing compound past the naive 1100."""
        params = BreakoutConfig(profit_target_pct=9.5)
        result = breakout_strategy(
            PriceSeries.from_prices(self.TWO_WINNERS),
            BacktestConfig(direction="long", amount=1000),
            params,
        )

        assert len(result.trades) == 2
        assert [t.exit_reason for t in result.trades] == [ExitReason.TREND_FADE, ExitReason.TREND_FADE]
        assert [t.spot_profit_percent for t in result.trades] == [pytest.approx(10.0), pytest.approx(10.0)]
        assert result.trades[0].position_size == pytest.approx(500.0)
        assert result.trades[1].position_size == pytest.approx(525.0)

        naive = 1000 * (1 + 0.5 * sum(t.profit_percent for t in result.trades) / 100)
        assert result.account_value == pytest.approx(1102.5)
        assert result.account_value > naive
        assert result.total_return == pytest.approx(10.25)
        assert result.accounting == Accounting.COMPOUND

    def test_default_account_without_amount(self):
        params = BreakoutConfig(profit_target_pct=9.5)
        result = breakout_strategy(PriceSeries.from_prices(self.TWO_WINNERS), BacktestConfig(direction="long"), params)
        assert result.account_value == pytest.approx(1102.5)

    def test_leveraged_and_spot_accounts_diverge(self):
        params = BreakoutConfig(profit_target_pct=9.5)
        result = breakout_strategy(
            PriceSeries.from_prices(self.TWO_WINNERS),
            BacktestConfig(direction="long", leverage=2, amount=1000),
            params,
        )
        # 1000 -> 1100 (500 * 20%) -> 1210 (550 * 20%)
        assert result.account_value == pytest.approx(1210.0)
        # Spot uses the same position sizes: 1000 + 50 + 55
        assert result.spot_account_value == pytest.approx(1105.0)

    def test_per_trade_leverage_is_linear(self):
        """Leverage scales each trade's percent; only the account compounds differently."""
        prices = self.TWO_WINNERS + [115.0, 100.0, 100.0]
        params = BreakoutConfig(profit_target_pct=9.5)
        spot = breakout_strategy(PriceSeries.from_prices(prices), BacktestConfig(direction="long"), params)
        levered = breakout_strategy(
            PriceSeries.from_prices(prices), BacktestConfig(direction="long", leverage=3), params
        )

        assert len(spot.trades) >= 2
        assert [(t.entry_index, t.exit_index, t.exit_reason) for t in levered.trades] == [
            (t.entry_index, t.exit_index, t.exit_reason) for t in spot.trades
        ]
        for s, lv in zip(spot.trades, levered.trades):
            assert lv.profit_percent == pytest.approx(3 * s.profit_percent)
            assert lv.spot_profit_percent == pytest.approx(s.spot_profit_percent)
        assert levered.account_value > 0

    def test_fakeout(self):
        prices = [100.0] * 21 + [100.5, 99.9, 100.0]
        result = breakout_strategy(PriceSeries.from_prices(prices), BacktestConfig(direction="long"))

        assert len(result.trades) == 1
        assert result.trades[0].exit_reason == ExitReason.FAKEOUT
        assert result.trades[0].exit_index == 22
        assert result.total_return < 0

    def test_short_breakdown(self):
        prices = [100.0] * 21 + [99.5, 89.55, 89.0]
        params = BreakoutConfig(profit_target_pct=9.5)
        result = breakout_strategy(PriceSeries.from_prices(prices), BacktestConfig(direction="short"), params)

        assert result.trades[0].direction == Direction.SHORT
        assert result.trades[0].entry_index == 21
        assert result.trades[0].exit_reason == ExitReason.TREND_FADE
        assert result.trades[0].profit_percent > 0

    def test_short_series_is_empty(self):
        result = breakout_strategy(PriceSeries.from_prices([100.0] * 20), BacktestConfig())
        assert result.trades == ()
        assert result.total_return == 0
        assert result.accounting == Accounting.COMPOUND


class TestStrategyProperties:
    """Invariants every strategy must satisfy."""

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_win_rate_consistency(self, strategy):
        result = strategy(choppy(), BacktestConfig())
        wins = sum(1 for t in result.trades if t.profit_percent > 0)
        expected = 100 * wins / len(result.trades) if result.trades else 0.0
        assert result.win_rate == pytest.approx(expected)

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_trades_never_overlap_per_direction(self, strategy):
        result = strategy(choppy(), BacktestConfig())
        for direction in Direction:
            trades = sorted(result.trades_for(direction), key=lambda t: t.entry_index)
            for trade in trades:
                assert trade.entry_index < trade.exit_index
            for previous, current in zip(trades, trades[1:]):
                assert previous.exit_index <= current.entry_index

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_trades_ordered_by_exit(self, strategy):
        result = strategy(choppy(), BacktestConfig())
        keys = [(t.exit_index, t.entry_index) for t in result.trades]
        assert keys == sorted(keys)

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_deterministic(self, strategy):
        config = BacktestConfig(leverage=3, amount=500)
        assert strategy(choppy(), config) == strategy(choppy(), config)

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_leverage_linearity(self, strategy):
        base = strategy(choppy(), BacktestConfig(leverage=1))
        levered = strategy(choppy(), BacktestConfig(leverage=2.5))

        assert [(t.entry_index, t.exit_index) for t in base.trades] == [
            (t.entry_index, t.exit_index) for t in levered.trades
        ]
        for b, lv in zip(base.trades, levered.trades):
            assert lv.profit_percent == pytest.approx(2.5 * b.profit_percent)
            assert lv.spot_profit_percent == b.spot_profit_percent
        assert levered.leverage_used == 2.5
        if levered.account_value is not None:
            # Entries only diverge once a compounding account is exhausted
            assert levered.account_value > 0

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_win_loss_counts(self, strategy):
        result = strategy(choppy(), BacktestConfig())
        wins = [t for t in result.trades if t.is_win]

        assert result.winning_trades == len(wins)
        assert result.winning_trades + result.losing_trades <= result.total_trades
        if result.trades:
            assert result.win_rate == pytest.approx(len(wins) / result.total_trades * 100)

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_direction_filter(self, strategy):
        result = strategy(choppy(), BacktestConfig(direction="long"))
        assert all(t.direction == Direction.LONG for t in result.trades)

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_short_series_degrades(self, strategy):
        result = strategy(PriceSeries.from_prices([100.0, 101.0, 102.0]), BacktestConfig())
        assert (result.trades, result.total_return, result.win_rate) == ((), 0.0, 0.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

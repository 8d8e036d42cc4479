#!/usr/bin/env python3
"""
Unit tests for the indicators module.

Run with:
    python -m pytest tests/test_indicators.py -v

Or standalone:
    python tests/test_indicators.py
"""

import math
import sys
from pathlib import Path

import pytest

# Add project root to path for standalone execution
sys.path.insert(0, str(Path(__file__).parent.parent))

from backtester.core.models import PriceSeries
from backtester.indicators import (
    IndicatorCache,
    MACDResult,
    atr,
    atr_percent,
    atr_series,
    average_volume,
    compute_snapshot,
    ema,
    ema_series,
    macd,
    macd_crossover,
    macd_series,
    rsi,
    rsi_series,
    sma,
    true_range,
    volatility,
)


def wave(n: int) -> list[float]:
    """Deterministic oscillating price path."""
    return [100 + 10 * math.sin(i / 3) + i * 0.2 for i in range(n)]


class TestSMA:
    """Tests for Simple Moving Average."""

    def test_sma_basic(self):
        """Test basic SMA calculation."""
        prices = [10.0, 11.0, 12.0, 13.0, 14.0]
        # Last 3 prices: 12, 13, 14 -> avg = 13
        assert sma(prices, period=3) == 13.0

    def test_sma_insufficient_data(self):
        """Test SMA returns None with insufficient data."""
        assert sma([10.0, 11.0], period=3) is None
        assert sma([], period=3) is None

    def test_sma_invalid_period(self):
        """Test SMA with invalid period."""
        prices = [10.0, 11.0, 12.0]
        assert sma(prices, period=0) is None
        assert sma(prices, period=-1) is None


class TestEMA:
    """Tests for Exponential Moving Average."""

    def test_ema_series_seeded_with_first_price(self):
        """First EMA value equals the first price for any period."""
        prices = wave(40)
        for period in (1, 3, 12, 26, 100):
            assert ema_series(prices, period)[0] == prices[0]

    def test_ema_series_length(self):
        """EMA series is as long as the input."""
        prices = [10.0, 11.0, 12.0, 13.0, 14.0]
        assert len(ema_series(prices, period=3)) == 5

    def test_ema_values(self):
        """k = 2 / (3 + 1) = 0.5 gives a simple halving recurrence."""
        prices = [10.0, 11.0, 12.0, 13.0, 14.0]
        assert ema_series(prices, period=3) == [10.0, 10.5, 11.25, 12.125, 13.0625]
        assert ema(prices, period=3) == 13.0625

    def test_ema_no_data(self):
        """Test EMA sentinels with no data."""
        assert ema_series([], period=3) == []
        assert ema([], period=3) is None
        assert ema_series([1.0, 2.0], period=0) == []


class TestRSI:
    """Tests for Relative Strength Index."""

    def test_rsi_uptrend(self):
        """All gains, no losses -> RSI 100."""
        prices = [100.0 + i for i in range(16)]
        assert rsi(prices, period=14) == 100.0

    def test_rsi_downtrend(self):
        """All losses, no gains -> RSI 0."""
        prices = [115.0 - i for i in range(16)]
        assert rsi(prices, period=14) == 0.0

    def test_rsi_flat(self):
        """No movement at all counts as no losses."""
        assert rsi([50.0] * 15, period=14) == 100.0

    def test_rsi_insufficient_data(self):
        """Needs period + 1 prices."""
        assert rsi([100.0 + i for i in range(14)], period=14) is None

    def test_rsi_uses_recent_window_only(self):
        """Only the last period + 1 prices matter."""
        tail = [100.0, 102.0, 101.0, 103.0, 102.0]
        assert rsi([1.0, 500.0, 3.0] + tail, period=4) == rsi(tail, period=4)

    def test_rsi_bounds(self):
        """RSI stays within [0, 100]."""
        for value in rsi_series(wave(120)):
            if not math.isnan(value):
                assert 0.0 <= value <= 100.0

    def test_rsi_series_alignment(self):
        """Warm-up indices are NaN, the rest match rsi() on the prefix."""
        prices = wave(30)
        series = rsi_series(prices, period=14)
        assert len(series) == 30
        assert all(math.isnan(v) for v in series[:14])
        assert series[20] == rsi(prices[:21], period=14)


class TestMACD:
    """Tests for MACD indicator."""

    def test_macd_insufficient_data(self):
        """Fewer than `slow` prices gives a zero-valued result."""
        result = macd([100.0] * 25)
        assert result == MACDResult(macd_line=0.0, signal_line=0.0, histogram=0.0)
        assert macd_series([100.0] * 25) == []

    def test_macd_histogram(self):
        """Histogram is MACD minus signal."""
        result = macd(wave(60))
        assert result.histogram == pytest.approx(result.macd_line - result.signal_line)

    def test_macd_uptrend_is_bullish(self):
        """A steady climb keeps MACD above its signal line."""
        result = macd([100.0 + i for i in range(40)])
        assert result.macd_line > 0
        assert result.is_bullish

    def test_macd_series_length(self):
        """Series output is aligned with the input."""
        assert len(macd_series(wave(50))) == 50

    def test_macd_crossover(self):
        """Crossovers compare the last two results."""
        below = MACDResult(macd_line=-1.0, signal_line=0.0, histogram=-1.0)
        above = MACDResult(macd_line=1.0, signal_line=0.0, histogram=1.0)
        assert macd_crossover([below, above]) == "bullish"
        assert macd_crossover([above, below]) == "bearish"
        assert macd_crossover([above, above]) is None
        assert macd_crossover([above]) is None


class TestATR:
    """Tests for Average True Range."""

    def test_true_range_basic(self):
        """Test TR without previous close."""
        assert true_range(high=12.0, low=10.0) == 2.0

    def test_true_range_with_gap(self):
        """Gaps away from the previous close widen the range."""
        assert true_range(high=12.0, low=10.0, previous_close=15.0) == 5.0
        assert true_range(high=12.0, low=10.0, previous_close=8.0) == 4.0

    def test_atr_constant_range(self):
        """Constant bars give a constant ATR."""
        high, low, close = [12.0] * 20, [10.0] * 20, [11.0] * 20
        assert atr(high, low, close, period=14) == pytest.approx(2.0)

    def test_atr_series_padded_to_input_length(self):
        """Head is padded with the first computed value."""
        closes = wave(30)
        series = atr_series(closes, closes, closes, period=14)
        assert len(series) == 30
        assert series[:15] == [series[14]] * 15

    def test_atr_insufficient_data(self):
        """Needs period + 1 bars."""
        closes = [100.0] * 14
        assert atr_series(closes, closes, closes, period=14) == []
        assert atr(closes, closes, closes, period=14) is None

    def test_atr_length_mismatch(self):
        """Unequal inputs are a caller error."""
        with pytest.raises(ValueError):
            atr_series([1.0, 2.0], [1.0], [1.0, 2.0])

    def test_atr_percent(self):
        """Close-only ATR as percent of the last close."""
        closes = [100.0, 101.0] * 10
        assert atr_percent(closes, period=14) == pytest.approx(1 / 101 * 100)


class TestVolumeHelpers:
    """Tests for volume and range helpers."""

    def test_average_volume(self):
        assert average_volume([10.0, 20.0, 30.0]) == 20.0
        assert average_volume([]) == 0.0

    def test_volatility(self):
        assert volatility([100.0, 105.0, 110.0]) == pytest.approx(10.0)
        assert volatility([]) is None

    def test_volatility_uses_recent_window(self):
        prices = [1.0] + [100.0] * 14
        assert volatility(prices, period=14) == 0.0


class TestSnapshot:
    """Tests for indicator snapshots and the cache."""

    def test_cache_memoizes(self):
        """Repeated lookups return the same list object."""
        cache = IndicatorCache(PriceSeries.from_prices(wave(40)))
        assert cache.ema(12) is cache.ema(12)
        assert cache.macd() is cache.macd()
        assert cache.rsi() is cache.rsi()
        assert cache.macd_line(12, 26) is cache.macd_line(12, 26)

    def test_macd_line_without_minimum_length(self):
        """The MACD line is fast EMA minus slow EMA for every bar, even short series."""
        cache = IndicatorCache(PriceSeries.from_prices(wave(10)))
        line = cache.macd_line(12, 26)

        assert len(line) == 10
        assert line[0] == 0.0
        assert line == [f - s for f, s in zip(cache.ema(12), cache.ema(26))]
        assert cache.macd() == ([], [])

    def test_snapshot_has_no_look_ahead(self):
        """A snapshot at index i equals the snapshot of the series cut at i."""
        prices = wave(60)
        full = compute_snapshot(PriceSeries.from_prices(prices), index=40)
        cut = compute_snapshot(PriceSeries.from_prices(prices[:41]))

        assert full.price == cut.price
        assert full.ema12 == pytest.approx(cut.ema12)
        assert full.rsi == pytest.approx(cut.rsi)
        assert full.macd.histogram == pytest.approx(cut.macd.histogram)
        assert full.atr == pytest.approx(cut.atr)
        assert full.macd_crossover == cut.macd_crossover

    def test_snapshot_short_series(self):
        """Warm-up values fall back to sentinels."""
        snapshot = compute_snapshot(PriceSeries.from_prices([100.0, 101.0, 102.0]))
        assert snapshot.rsi is None
        assert snapshot.sma20 is None
        assert snapshot.atr is None
        assert snapshot.macd.histogram == 0.0
        assert not snapshot.above_sma

    def test_snapshot_empty_and_out_of_range(self):
        assert compute_snapshot(PriceSeries([])) is None
        with pytest.raises(IndexError):
            compute_snapshot(PriceSeries.from_prices([100.0, 101.0]), index=5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Strategy and structure-detection parameters.

Centralizes all magic numbers and adjustable parameters for easy tuning.
All percentage values are expressed as percent (e.g., 10.0 = 10%).
"""

from dataclasses import dataclass


def _require_positive(**values: float) -> None:
    for name, value in values.items():
        if value <= 0:
            raise ValueError(f"{name} must be positive")


@dataclass(frozen=True)
class MACDCrossConfig:
    """Parameters for the MACD trend-cross strategy."""

    fast: int = 12
    slow: int = 26
    signal: int = 9

    # Series shorter than this produce an empty result
    min_bars: int = 35

    # Exit when the position is down this much (unleveraged)
    stop_loss_pct: float = 10.0

    # Exits other than time expiry wait this many bars after entry
    # Range: 1-10 | Higher = fewer whipsaw exits, slower reaction
    min_hold_bars: int = 3

    # Bars after any exit during which no new entry is allowed (either direction)
    cooldown_bars: int = 5

    def __post_init__(self) -> None:
        _require_positive(fast=self.fast, slow=self.slow, signal=self.signal, stop_loss_pct=self.stop_loss_pct)
        if self.fast >= self.slow:
            raise ValueError("fast period must be less than slow period")
        if self.min_bars < self.slow:
            raise ValueError("min_bars must be at least the slow period")
        if self.min_hold_bars < 0 or self.cooldown_bars < 0:
            raise ValueError("min_hold_bars and cooldown_bars cannot be negative")


@dataclass(frozen=True)
class RSIReversalConfig:
    """Parameters for the RSI oscillator-reversal strategy."""

    period: int = 14
    oversold: float = 30.0
    overbought: float = 70.0
    midline: float = 50.0

    stop_loss_pct: float = 5.0

    # Bars after an exit before the same direction may enter again
    cooldown_bars: int = 3

    def __post_init__(self) -> None:
        _require_positive(period=self.period, stop_loss_pct=self.stop_loss_pct)
        if not 0 < self.oversold < self.midline < self.overbought < 100:
            raise ValueError("RSI thresholds must satisfy 0 < oversold < midline < overbought < 100")
        if self.cooldown_bars < 0:
            raise ValueError("cooldown_bars cannot be negative")

    @property
    def min_bars(self) -> int:
        # One RSI value plus a previous one to detect a cross
        return self.period + 2


@dataclass(frozen=True)
class BreakoutConfig:
    """Parameters for the rolling high/low breakout strategy."""

    lookback: int = 20

    # Price must clear the rolling high/low by this margin
    threshold_pct: float = 0.2

    stop_loss_pct: float = 10.0

    # Close winners once they reach this gain (reported as trend fade)
    profit_target_pct: float = 25.0

    # Share of current account value committed per trade
    position_size_pct: float = 50.0

    # Starting account when the caller supplies no amount
    default_account_value: float = 1000.0

    fast: int = 12
    slow: int = 26

    def __post_init__(self) -> None:
        _require_positive(
            lookback=self.lookback,
            threshold_pct=self.threshold_pct,
            stop_loss_pct=self.stop_loss_pct,
            profit_target_pct=self.profit_target_pct,
            default_account_value=self.default_account_value,
        )
        if not 0 < self.position_size_pct <= 100:
            raise ValueError("position_size_pct must be between 0 and 100")


@dataclass(frozen=True)
class StructureConfig:
    """Parameters for support/resistance level detection."""

    # A local extreme must dominate +/- this many bars
    lookback: int = 2

    # Only scan the most recent N bars (None = whole series)
    window: int | None = None

    # Level volume must exceed average volume times this
    volume_multiplier: float = 1.5

    # Levels closer than this (percent) are merged
    dedup_pct: float = 2.0

    def __post_init__(self) -> None:
        _require_positive(lookback=self.lookback, volume_multiplier=self.volume_multiplier, dedup_pct=self.dedup_pct)
        if self.window is not None and self.window <= 0:
            raise ValueError("window must be positive")


@dataclass(frozen=True)
class RetestConfig:
    """Parameters for the breakout retest / entry-zone detector."""

    lookback: int = 30
    extreme_radius: int = 2
    volume_multiplier: float = 1.3

    # Rolling std of the last N closes for the compression flag
    compression_bars: int = 6
    compression_pct: float = 0.2

    # Supports within this percent of the nearest one add to its strength
    support_cluster_pct: float = 1.0

    def __post_init__(self) -> None:
        _require_positive(
            lookback=self.lookback,
            extreme_radius=self.extreme_radius,
            volume_multiplier=self.volume_multiplier,
            compression_bars=self.compression_bars,
            compression_pct=self.compression_pct,
        )


# Default configuration instances
DEFAULT_MACD_CROSS = MACDCrossConfig()
DEFAULT_RSI_REVERSAL = RSIReversalConfig()
DEFAULT_BREAKOUT = BreakoutConfig()
DEFAULT_STRUCTURE = StructureConfig()
DEFAULT_RETEST = RetestConfig()

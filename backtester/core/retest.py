"""
Breakout Retest / Entry-Zone Detection.

Scans recent resistance levels that price has since closed above, with a
volume spike at the original level, and reports the band between the lowest
and highest such "broken" level as a candidate entry zone, together with
breakout diagnostics:

- breakout_age: bars since price first closed above the breakout level
- breakout_volatility: % move from the pre-breakout close to the level
- false_breakout: price has fallen back below the breakout level
- support_distance: current price minus the nearest support below it
- price_compression: std of the last closes is tiny relative to price
"""

import logging
import math
from dataclasses import dataclass, field

from backtester.indicators.volume import average_volume

from .config import DEFAULT_RETEST, RetestConfig
from .levels import find_local_extremes
from .models import PriceSeries, VolumeIndex, VolumeSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryZone:
    """Price band bounded by broken resistance levels."""

    low: float
    high: float

    def __str__(self) -> str:
        return f"${self.low:,.2f} – ${self.high:,.2f}"


@dataclass(frozen=True)
class RetestStructure:
    """Snapshot of breakout/retest structure at the latest bar."""

    recent_price: float
    resistance_levels: tuple[float, ...]  # Highest first
    volume_average: float
    volume_threshold: float
    volume_confirmations: dict[float, bool] = field(default_factory=dict)

    entry_zone: EntryZone | None = None
    breakout_level: float | None = None
    breakout_age: int | None = None
    breakout_volatility: float | None = None
    false_breakout: bool = False
    recent_breakout_strength: float | None = None

    price_compression: bool = False
    price_acceleration: float | None = None

    support_distance: float | None = None
    support_strength: int = 0
    recent_rejection: bool = False

    def to_dict(self) -> dict:
        return {
            "recentPrice": self.recent_price,
            "resistanceLevels": list(self.resistance_levels),
            "volumeAverage": self.volume_average,
            "volumeThreshold": self.volume_threshold,
            "entryBreakout": (
                {"level": self.breakout_level, "entryZone": str(self.entry_zone)}
                if self.entry_zone
                else None
            ),
            "breakoutAge": self.breakout_age,
            "breakoutVolatility": self.breakout_volatility,
            "falseBreakout": self.false_breakout,
            "recentBreakoutStrength": self.recent_breakout_strength,
            "priceCompression": self.price_compression,
            "priceAcceleration": self.price_acceleration,
            "supportDistance": self.support_distance,
            "supportStrength": self.support_strength,
            "recentRejection": self.recent_rejection,
        }


def _population_std(values: list[float]) -> float:
    mean = sum(values) / len(values)
    return math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def detect_retest_structure(
    prices: PriceSeries,
    volumes: VolumeSeries,
    config: RetestConfig | None = None,
) -> RetestStructure | None:
    """
    Detect broken resistance levels and the resulting entry zone.

    Args:
        prices: Price series (most recent last)
        volumes: Volume series aligned by timestamp
        config: Detection parameters (uses defaults if None)

    Returns:
        RetestStructure, or None if either series is empty
    """
    if not len(prices) or not len(volumes):
        return None

    config = config or DEFAULT_RETEST
    closes = prices.prices
    n = len(closes)
    recent_price = closes[-1]
    start = max(0, n - config.lookback)

    maxima, _ = find_local_extremes(closes, config.extreme_radius, start)
    maxima.sort(key=lambda i: (-closes[i], i))

    index = VolumeIndex(volumes)
    volume_avg = average_volume(volumes.volumes)
    volume_threshold = volume_avg * config.volume_multiplier

    confirmations: dict[float, bool] = {}
    level_bars: dict[float, int] = {}
    for i in maxima:
        volume = index.volume_at(prices.timestamps[i])
        ok = volume_avg == 0 or (volume is not None and volume > volume_threshold)
        confirmations[closes[i]] = confirmations.get(closes[i], False) or ok
        level_bars.setdefault(closes[i], i)

    # Bar of the first close above each confirmed level after it formed
    breakouts: dict[float, int] = {}
    for level, bar in level_bars.items():
        if not confirmations[level]:
            continue
        for j in range(bar + 1, n):
            if closes[j] > level:
                breakouts[level] = j
                break

    entry_zone = None
    breakout_level = None
    breakout_age = None
    breakout_volatility = None
    false_breakout = False
    recent_breakout_strength = None

    if breakouts:
        entry_zone = EntryZone(low=min(breakouts), high=max(breakouts))
        breakout_level = entry_zone.high
        breakout_bar = breakouts[breakout_level]
        breakout_age = (n - 1) - breakout_bar

        pre_breakout = closes[breakout_bar - 1]
        breakout_volatility = (breakout_level - pre_breakout) / pre_breakout * 100
        false_breakout = recent_price < breakout_level

        if recent_price > breakout_level:
            recent_breakout_strength = (recent_price - breakout_level) / breakout_level * 100

    # Price action over the last few closes
    recent_closes = list(closes[-config.compression_bars :])
    price_acceleration = recent_closes[-1] - recent_closes[-2] if len(recent_closes) >= 2 else None
    price_compression = (
        len(recent_closes) >= 5
        and _population_std(recent_closes) / recent_closes[-1] < config.compression_pct / 100
    )

    # Support: local minima (one bar each side) inside the lookback window
    window = closes[start:]
    supports = [
        window[i]
        for i in range(len(window))
        if (i == 0 or window[i] < window[i - 1]) and (i == len(window) - 1 or window[i] < window[i + 1])
    ]
    below = [s for s in supports if s < recent_price]
    nearest_support = max(below) if below else min(window)
    support_distance = recent_price - nearest_support
    support_strength = sum(
        1 for s in supports if abs(s - nearest_support) / nearest_support * 100 < config.support_cluster_pct
    )

    resistance_levels = tuple(sorted(level_bars, reverse=True))
    recent_rejection = bool(
        resistance_levels
        and recent_price < resistance_levels[0]
        and confirmations.get(resistance_levels[0], False)
    )

    logger.debug(
        f"Retest: {len(resistance_levels)} resistance levels, "
        f"{len(breakouts)} broken, entry zone {entry_zone or 'none'}"
    )

    return RetestStructure(
        recent_price=recent_price,
        resistance_levels=resistance_levels,
        volume_average=volume_avg,
        volume_threshold=volume_threshold,
        volume_confirmations=confirmations,
        entry_zone=entry_zone,
        breakout_level=breakout_level,
        breakout_age=breakout_age,
        breakout_volatility=breakout_volatility,
        false_breakout=false_breakout,
        recent_breakout_strength=recent_breakout_strength,
        price_compression=price_compression,
        price_acceleration=price_acceleration,
        support_distance=support_distance,
        support_strength=support_strength,
        recent_rejection=recent_rejection,
    )

"""
Support/Resistance Level Detection.

Finds price levels that have historically acted as resistance or support,
validated by a volume spike at the level:

1. Local extremes: a bar is a resistance candidate if its price is
   strictly above every other bar in the symmetric window of +/- lookback
   bars around it (support: strictly below).
2. Volume confirmation: the volume aligned to the bar's timestamp must exceed
   average volume * volume_multiplier. With zero average volume the check is
   skipped.
3. Deduplication: levels are sorted by price (highest first) and a level is
   kept only if no kept level lies within dedup_pct of it.

Read-only: produces a StructureSnapshot and never touches trade state.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from backtester.indicators.volume import average_volume

from .config import DEFAULT_STRUCTURE, StructureConfig
from .models import PriceSeries, VolumeIndex, VolumeSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Level:
    """A detected support or resistance price."""

    price: float
    timestamp: int
    index: int  # Bar index in the source PriceSeries

    def distance_pct(self, price: float) -> float:
        """Signed distance from this level to `price` as a percentage of the level."""
        return (price - self.price) / self.price * 100


@dataclass(frozen=True)
class StructureSnapshot:
    """Resistance and support levels of a series, both ordered highest first."""

    resistance: tuple[Level, ...]
    support: tuple[Level, ...]
    lookback: int
    window: int | None = None

    def nearest_resistance(self, price: float) -> Level | None:
        """Closest resistance above `price`."""
        above = [lvl for lvl in self.resistance if lvl.price > price]
        return min(above, key=lambda lvl: lvl.price) if above else None

    def nearest_support(self, price: float) -> Level | None:
        """Closest support below `price`."""
        below = [lvl for lvl in self.support if lvl.price < price]
        return max(below, key=lambda lvl: lvl.price) if below else None

    def to_dict(self) -> dict:
        return {
            "resistanceLevels": [lvl.price for lvl in self.resistance],
            "supportLevels": [lvl.price for lvl in self.support],
            "lookback": self.lookback,
            "window": self.window,
        }


def find_local_extremes(
    prices: tuple[float, ...] | list[float],
    lookback: int,
    start: int = 0,
) -> tuple[list[int], list[int]]:
    """
    Find indices of local maxima and minima.

    A bar qualifies only when it has a full window of `lookback` bars on both
    sides inside prices[start:] and is strictly above (maximum) or below
    (minimum) every other bar in that window, so flat stretches yield nothing.

    Returns:
        (max_indices, min_indices) in ascending index order
    """
    maxima: list[int] = []
    minima: list[int] = []

    for i in range(start + lookback, len(prices) - lookback):
        neighbours = [*prices[i - lookback : i], *prices[i + 1 : i + lookback + 1]]
        if prices[i] > max(neighbours):
            maxima.append(i)
        if prices[i] < min(neighbours):
            minima.append(i)

    return maxima, minima


def dedupe_levels(levels: Iterable[Level], tolerance_pct: float = 2.0) -> tuple[Level, ...]:
    """
    Merge levels that fall within `tolerance_pct` of each other.

    Levels are visited highest price first; a level is kept only when no
    already-kept level is within the tolerance, so the highest level of a
    cluster represents it.

    Args:
        levels: Candidate levels in any order
        tolerance_pct: Relative distance (percent) under which levels merge

    Returns:
        Kept levels ordered by price, highest first
    """
    # Ties on price keep the earliest bar
    ordered = sorted(levels, key=lambda lvl: (-lvl.price, lvl.index))
    kept: list[Level] = []

    for level in ordered:
        if all(abs(level.price - k.price) / k.price * 100 >= tolerance_pct for k in kept):
            kept.append(level)

    return tuple(kept)


def detect_levels(
    prices: PriceSeries,
    volumes: VolumeSeries,
    config: StructureConfig | None = None,
) -> StructureSnapshot:
    """
    Detect volume-confirmed support and resistance levels.

    Args:
        prices: Price series
        volumes: Volume series aligned by timestamp
        config: Detection parameters (uses defaults if None)

    Returns:
        StructureSnapshot with deduplicated resistance and support levels
    """
    config = config or DEFAULT_STRUCTURE
    closes = prices.prices
    start = 0 if config.window is None else max(0, len(closes) - config.window)

    maxima, minima = find_local_extremes(closes, config.lookback, start)

    index = VolumeIndex(volumes)
    avg_volume = average_volume(volumes.volumes)
    threshold = avg_volume * config.volume_multiplier

    def confirmed(i: int) -> bool:
        if avg_volume == 0:
            return True
        volume = index.volume_at(prices.timestamps[i])
        return volume is not None and volume > threshold

    def to_level(i: int) -> Level:
        return Level(price=closes[i], timestamp=prices.timestamps[i], index=i)

    resistance = dedupe_levels((to_level(i) for i in maxima if confirmed(i)), config.dedup_pct)
    support = dedupe_levels((to_level(i) for i in minima if confirmed(i)), config.dedup_pct)

    logger.debug(
        f"Structure: {len(maxima)} max / {len(minima)} min candidates -> "
        f"{len(resistance)} resistance, {len(support)} support levels"
    )

    return StructureSnapshot(
        resistance=resistance,
        support=support,
        lookback=config.lookback,
        window=config.window,
    )

"""
Series data models for the backtesting engine.

Price and volume series are immutable, validated on construction, and
safe to share between strategies running concurrently.
"""

import math
import numbers
from bisect import bisect_left
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum


class MalformedSeriesError(ValueError):
    """Raised when a series violates the ordering or numeric preconditions."""


class Direction(Enum):
    """Trade direction."""

    LONG = "long"  # Profits when price goes UP
    SHORT = "short"  # Profits when price goes DOWN

    @property
    def sign(self) -> int:
        """+1 for long, -1 for short."""
        return 1 if self is Direction.LONG else -1


class DirectionFilter(Enum):
    """Which directions a backtest is allowed to trade."""

    LONG = "long"
    SHORT = "short"
    BOTH = "both"

    def includes(self, direction: Direction) -> bool:
        """True if trades in `direction` are allowed by this filter."""
        return self is DirectionFilter.BOTH or self.value == direction.value

    @property
    def directions(self) -> tuple[Direction, ...]:
        """Directions enabled by this filter, long first."""
        return tuple(d for d in Direction if self.includes(d))


@dataclass(frozen=True)
class PricePoint:
    """A single price observation."""

    timestamp: int  # Epoch milliseconds
    price: float


@dataclass(frozen=True)
class VolumePoint:
    """A single traded-volume observation."""

    timestamp: int  # Epoch milliseconds
    volume: float


def _validate(timestamps: Sequence[int], values: Sequence[float], kind: str, positive: bool) -> None:
    """Check ascending unique timestamps and finite values."""
    for i, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
            raise MalformedSeriesError(f"{kind} series has non-numeric or non-finite value {value!r} at index {i}")
        if positive and value <= 0:
            raise MalformedSeriesError(f"{kind} series has non-positive value {value!r} at index {i}")
        if not positive and value < 0:
            raise MalformedSeriesError(f"{kind} series has negative value {value!r} at index {i}")

    for i in range(1, len(timestamps)):
        if timestamps[i] <= timestamps[i - 1]:
            raise MalformedSeriesError(
                f"{kind} series timestamps must be strictly ascending: "
                f"index {i} ({timestamps[i]}) follows {timestamps[i - 1]}"
            )


class PriceSeries:
    """
    Ordered, immutable sequence of PricePoint.

    Usage:
        series = PriceSeries.from_pairs([[1700000000000, 42000.0], ...])
        closes = series.prices
    """

    def __init__(self, points: Iterable[PricePoint]):
        self._points: tuple[PricePoint, ...] = tuple(points)
        self._timestamps: tuple[int, ...] = tuple(p.timestamp for p in self._points)
        _validate(self._timestamps, [p.price for p in self._points], "price", positive=True)
        self._prices: tuple[float, ...] = tuple(float(p.price) for p in self._points)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[float]]) -> "PriceSeries":
        """Build from `[timestampMs, price]` pairs (the provider wire shape)."""
        return cls(PricePoint(timestamp=int(ts), price=price) for ts, price in pairs)

    @classmethod
    def from_prices(cls, prices: Iterable[float], start: int = 0, step: int = 3_600_000) -> "PriceSeries":
        """Build from bare prices with synthetic evenly spaced timestamps."""
        return cls(PricePoint(timestamp=start + i * step, price=p) for i, p in enumerate(prices))

    @property
    def prices(self) -> tuple[float, ...]:
        return self._prices

    @property
    def timestamps(self) -> tuple[int, ...]:
        return self._timestamps

    @property
    def last_price(self) -> float | None:
        return self._prices[-1] if self._prices else None

    def to_pairs(self) -> list[list[float]]:
        """Convert back to `[timestampMs, price]` pairs."""
        return [[p.timestamp, p.price] for p in self._points]

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index: int) -> PricePoint:
        return self._points[index]

    def __iter__(self) -> Iterator[PricePoint]:
        return iter(self._points)

    def __repr__(self) -> str:
        return f"PriceSeries({len(self)} points)"


class VolumeSeries:
    """Ordered, immutable sequence of VolumePoint aligned to a PriceSeries by timestamp."""

    def __init__(self, points: Iterable[VolumePoint]):
        self._points: tuple[VolumePoint, ...] = tuple(points)
        self._timestamps: tuple[int, ...] = tuple(p.timestamp for p in self._points)
        _validate(self._timestamps, [p.volume for p in self._points], "volume", positive=False)
        self._volumes: tuple[float, ...] = tuple(float(p.volume) for p in self._points)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[float]]) -> "VolumeSeries":
        """Build from `[timestampMs, volume]` pairs."""
        return cls(VolumePoint(timestamp=int(ts), volume=volume) for ts, volume in pairs)

    @property
    def volumes(self) -> tuple[float, ...]:
        return self._volumes

    @property
    def timestamps(self) -> tuple[int, ...]:
        return self._timestamps

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index: int) -> VolumePoint:
        return self._points[index]

    def __iter__(self) -> Iterator[VolumePoint]:
        return iter(self._points)

    def __repr__(self) -> str:
        return f"VolumeSeries({len(self)} points)"


class VolumeIndex:
    """
    Timestamp lookup over a VolumeSeries.

    Built once per series. Lookups return the volume at the equal timestamp,
    or at the nearest one (ties go to the earlier point).
    """

    def __init__(self, volumes: VolumeSeries):
        self._timestamps = volumes.timestamps
        self._volumes = volumes.volumes

    def volume_at(self, timestamp: int) -> float | None:
        """
        Get the volume aligned to a timestamp.

        Args:
            timestamp: Epoch-ms timestamp of a price point

        Returns:
            Volume value, or None if the volume series is empty
        """
        if not self._timestamps:
            return None

        pos = bisect_left(self._timestamps, timestamp)
        if pos < len(self._timestamps) and self._timestamps[pos] == timestamp:
            return self._volumes[pos]
        if pos == 0:
            return self._volumes[0]
        if pos == len(self._timestamps):
            return self._volumes[-1]

        before = timestamp - self._timestamps[pos - 1]
        after = self._timestamps[pos] - timestamp
        return self._volumes[pos - 1] if before <= after else self._volumes[pos]

    def aligned(self, timestamps: Iterable[int]) -> list[float | None]:
        """Volumes aligned to each of the given timestamps."""
        return [self.volume_at(ts) for ts in timestamps]

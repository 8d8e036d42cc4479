"""
Core Module - Series models, tunable parameters and market structure detection.
"""

from .config import (
    DEFAULT_BREAKOUT,
    DEFAULT_MACD_CROSS,
    DEFAULT_RETEST,
    DEFAULT_RSI_REVERSAL,
    DEFAULT_STRUCTURE,
    BreakoutConfig,
    MACDCrossConfig,
    RetestConfig,
    RSIReversalConfig,
    StructureConfig,
)
from .levels import Level, StructureSnapshot, dedupe_levels, detect_levels
from .models import (
    Direction,
    DirectionFilter,
    MalformedSeriesError,
    PricePoint,
    PriceSeries,
    VolumeIndex,
    VolumePoint,
    VolumeSeries,
)
from .retest import EntryZone, RetestStructure, detect_retest_structure

__all__ = [
    # Models
    "Direction",
    "DirectionFilter",
    "MalformedSeriesError",
    "PricePoint",
    "PriceSeries",
    "VolumeIndex",
    "VolumePoint",
    "VolumeSeries",
    # Config
    "BreakoutConfig",
    "MACDCrossConfig",
    "RetestConfig",
    "RSIReversalConfig",
    "StructureConfig",
    "DEFAULT_BREAKOUT",
    "DEFAULT_MACD_CROSS",
    "DEFAULT_RETEST",
    "DEFAULT_RSI_REVERSAL",
    "DEFAULT_STRUCTURE",
    # Structure
    "Level",
    "StructureSnapshot",
    "dedupe_levels",
    "detect_levels",
    "EntryZone",
    "RetestStructure",
    "detect_retest_structure",
]

"""
Historical Data Module - Load price / volume series from local files.
"""

from .source import HistoricalDataSource

__all__ = ["HistoricalDataSource"]

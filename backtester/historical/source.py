"""
Historical Data Source for backtests.

Reads price (and optional volume) history from local files:

- CSV with a header row: timestamp,price[,volume]
  (timestamp in epoch milliseconds or ISO-8601)
- JSON in CoinGecko market_chart shape:
  {"prices": [[ts, price], ...], "total_volumes": [[ts, volume], ...]}
- JSON bare list: [[ts, price], ...]
"""

import csv
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from backtester.core.models import PriceSeries, VolumeSeries

logger = logging.getLogger(__name__)


def _parse_timestamp(value: str) -> int:
    """Epoch milliseconds from a numeric or ISO-8601 string."""
    try:
        return int(float(value))
    except ValueError:
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)


class HistoricalDataSource:
    """
    Reads a historical price file into PriceSeries / VolumeSeries.

    Usage:
        source = HistoricalDataSource("data/bitcoin_90d.json")
        prices = source.prices()
        volumes = source.volumes()  # None when the file has no volume data
    """

    def __init__(self, filepath: str | Path):
        """
        Initialize with path to a CSV or JSON file.

        Args:
            filepath: Path to the data file

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file holds no price rows
        """
        self.filepath = Path(filepath)
        if not self.filepath.exists():
            raise FileNotFoundError(f"Historical data file not found: {filepath}")

        self._prices: list[list[float]] = []
        self._volumes: list[list[float]] = []
        self._load_data()

    def _load_data(self) -> None:
        """Load the file into [timestamp, value] pair lists."""
        if self.filepath.suffix.lower() == ".json":
            self._load_json()
        else:
            self._load_csv()

        if not self._prices:
            raise ValueError(f"No data found in {self.filepath}")

        logger.info(
            f"Loaded {len(self._prices)} prices"
            f"{f' and {len(self._volumes)} volumes' if self._volumes else ''} from {self.filepath}"
        )

    def _load_csv(self) -> None:
        with self.filepath.open(newline="") as f:
            reader = csv.DictReader(f)
            missing = [c for c in ("timestamp", "price") if c not in (reader.fieldnames or [])]
            if missing:
                raise ValueError(
                    f"{self.filepath} is missing column(s) {', '.join(missing)}; "
                    f"expected a header of timestamp,price[,volume]"
                )
            for row in reader:
                timestamp = _parse_timestamp(row["timestamp"])
                self._prices.append([timestamp, float(row["price"])])
                if row.get("volume") not in (None, ""):
                    self._volumes.append([timestamp, float(row["volume"])])

    def _load_json(self) -> None:
        with self.filepath.open() as f:
            data = json.load(f)

        if isinstance(data, dict):
            self._prices = [[int(ts), float(p)] for ts, p in data.get("prices", [])]
            self._volumes = [[int(ts), float(v)] for ts, v in data.get("total_volumes", [])]
        elif isinstance(data, list):
            self._prices = [[int(ts), float(p)] for ts, p in data]
        else:
            raise ValueError(f"Unsupported JSON layout in {self.filepath}")

    @property
    def has_volume(self) -> bool:
        return bool(self._volumes)

    @property
    def point_count(self) -> int:
        """Get the number of price points in the file."""
        return len(self._prices)

    def prices(self) -> PriceSeries:
        """
        Price history as a validated series.

        Raises:
            MalformedSeriesError: If timestamps are not ascending or prices invalid
        """
        return PriceSeries.from_pairs(self._prices)

    def volumes(self) -> VolumeSeries | None:
        """Volume history, or None when the file carries none."""
        if not self._volumes:
            return None
        return VolumeSeries.from_pairs(self._volumes)

    def __repr__(self) -> str:
        return f"HistoricalDataSource({self.filepath.name}, {self.point_count} points)"

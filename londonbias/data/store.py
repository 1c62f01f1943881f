"""
Candle Store

Keeps the merged candle history for each timeframe between runs.
One parquet file per key, e.g. EURUSD_5M.parquet.
"""

import logging
import pandas as pd
from pathlib import Path
import pyarrow as pa
import pyarrow.parquet as pq

from .processor import REQUIRED_COLUMNS, merge_candles

logger = logging.getLogger(__name__)


class CandleStore:
    """
    Keyed parquet store for candle histories.

    The evaluation core never touches the store; the runner loads
    already-merged frames from here and hands them over.
    """

    def __init__(self, data_path: str | Path, symbol: str = "EURUSD"):
        """
        Initialize the store.

        Args:
            data_path: Directory holding the parquet files
            symbol: Symbol prefix for the keys
        """
        self.data_path = Path(data_path)
        self.symbol = symbol.replace("/", "")
        if not self.data_path.exists():
            self.data_path.mkdir(parents=True, exist_ok=True)

    def key(self, timeframe: str) -> str:
        return f"{self.symbol}_{timeframe}"

    def _path(self, timeframe: str) -> Path:
        return self.data_path / f"{self.key(timeframe)}.parquet"

    def load(self, timeframe: str) -> pd.DataFrame:
        """
        Load stored candles for a timeframe.

        Returns:
            DataFrame with columns: timestamp, open, high, low, close
            (empty if nothing has been stored yet)
        """
        filepath = self._path(timeframe)
        if not filepath.exists():
            return pd.DataFrame(columns=REQUIRED_COLUMNS)

        df = pq.read_table(filepath).to_pandas()
        if df.empty:
            return pd.DataFrame(columns=REQUIRED_COLUMNS)

        # Stored naive UTC; normalise anything tz-aware that slipped in
        if df["timestamp"].dt.tz is not None:
            df["timestamp"] = df["timestamp"].dt.tz_convert("UTC").dt.tz_localize(None)

        return df.sort_values("timestamp").reset_index(drop=True)

    def save(self, timeframe: str, df: pd.DataFrame) -> None:
        """Replace the stored history for a timeframe."""
        table = pa.Table.from_pandas(df[REQUIRED_COLUMNS], preserve_index=False)
        pq.write_table(table, self._path(timeframe))

    def merge(
        self,
        timeframe: str,
        incoming: pd.DataFrame,
        keep: int | None = None
    ) -> pd.DataFrame:
        """
        Merge freshly fetched candles into the stored history and persist.

        Args:
            timeframe: Timeframe key (1D, 1H, 5M)
            incoming: New candles
            keep: Keep only the newest N rows

        Returns:
            The merged history
        """
        existing = self.load(timeframe)
        merged = merge_candles(existing, incoming, keep=keep)
        self.save(timeframe, merged)
        logger.info(
            f"{self.key(timeframe)}: {len(existing)} stored + {len(incoming)} fetched -> {len(merged)} kept"
        )
        return merged

    def list_keys(self) -> list[str]:
        """List stored keys."""
        return sorted(f.stem for f in self.data_path.glob("*.parquet"))

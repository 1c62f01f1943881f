"""
Candle Processor

Validation and normalisation of OHLC candle frames, history merging and
provider clock-skew correction.
"""

import pandas as pd
import numpy as np
from datetime import datetime


REQUIRED_COLUMNS = ["timestamp", "open", "high", "low", "close"]


def validate_candles(df: pd.DataFrame) -> None:
    """Raise if the frame is missing OHLC columns."""
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def prepare_candles(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalise a raw candle frame.

    - Parses timestamps (date-only strings become midnight)
    - Coerces prices to float and drops rows that are not finite
    - Sorts oldest -> newest and resets the index

    Args:
        df: Frame with at least timestamp/open/high/low/close

    Returns:
        Clean copy of the frame
    """
    validate_candles(df)
    df = df.copy()

    df["timestamp"] = pd.to_datetime(df["timestamp"])
    for col in ["open", "high", "low", "close"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(np.float64)

    finite = np.isfinite(df[["open", "high", "low", "close"]]).all(axis=1)
    df = df[finite]

    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


def merge_candles(
    existing: pd.DataFrame | None,
    incoming: pd.DataFrame,
    keep: int | None = None
) -> pd.DataFrame:
    """
    Merge two candle histories keyed by timestamp.

    Incoming rows replace existing rows with the same timestamp.

    Args:
        existing: Stored history (may be None or empty)
        incoming: Freshly fetched candles
        keep: Keep only the newest N rows

    Returns:
        Merged frame, oldest -> newest
    """
    frames = [f for f in (existing, incoming) if f is not None and not f.empty]
    if not frames:
        return pd.DataFrame(columns=REQUIRED_COLUMNS)

    merged = pd.concat(frames, ignore_index=True)
    merged = merged.drop_duplicates(subset="timestamp", keep="last")
    merged = merged.sort_values("timestamp", kind="stable").reset_index(drop=True)

    if keep is not None and len(merged) > keep:
        merged = merged.iloc[-keep:].reset_index(drop=True)

    return merged


def pick_best_shift_hours(raw_now: datetime, server_now: datetime) -> int:
    """
    Find the whole-hour shift that brings the provider's newest timestamp
    closest to the server clock.

    Args:
        raw_now: Newest timestamp as reported by the provider (naive UTC)
        server_now: Current server time (naive UTC)

    Returns:
        Shift in hours within [-24, 24]
    """
    raw_now = pd.Timestamp(raw_now)
    server_now = pd.Timestamp(server_now)

    best_shift = 0
    best_abs = None
    for hours in range(-24, 25):
        gap = abs((raw_now + pd.Timedelta(hours=hours) - server_now).total_seconds())
        if best_abs is None or gap < best_abs:
            best_abs = gap
            best_shift = hours

    return best_shift


def shift_timestamps(df: pd.DataFrame, hours: int) -> pd.DataFrame:
    """Shift intraday candle timestamps by whole hours."""
    if hours == 0:
        return df
    df = df.copy()
    df["timestamp"] = df["timestamp"] + pd.Timedelta(hours=hours)
    return df

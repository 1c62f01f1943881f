"""
Session Windows and Statistics

Converts source (UTC) candle timestamps to the display timezone and
buckets 5M candles into the named daily sessions:
- Asia 02:00-06:59
- Frankfurt 08:00-08:59
- London setup 09:00-09:59
- London main move (payoff) 10:00-13:59

All windows are Europe/Oslo wall-clock, so DST moves them in UTC.
"""

import pandas as pd
import pytz
from dataclasses import dataclass
from datetime import date, datetime

from londonbias.config import DISPLAY_TZ, PIP_SIZE, SESSION_WINDOWS, SOURCE_TZ, SessionWindow
from londonbias.data.processor import validate_candles


@dataclass(frozen=True)
class DisplayTime:
    """Wall-clock date and time of day in the display timezone."""
    date: date
    hour: int
    minute: int

    @property
    def hhmm(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute


@dataclass
class SessionStats:
    """Reduced statistics for one session window on one day."""
    ok: bool
    name: str
    reason: str | None = None
    open: float | None = None
    close: float | None = None
    high: float | None = None
    low: float | None = None
    range: float | None = None
    range_pips: float | None = None
    candle_count: int = 0
    start_ts: datetime | None = None
    end_ts: datetime | None = None


@dataclass
class Session:
    """Candles of a session window plus their statistics."""
    rows: pd.DataFrame
    stats: SessionStats

    @property
    def ok(self) -> bool:
        return self.stats.ok and not self.rows.empty


def to_utc(ts, source_tz: str = SOURCE_TZ) -> pd.Timestamp:
    """Interpret a naive timestamp in the source timezone and return it in UTC."""
    ts = pd.Timestamp(ts)
    if ts.tzinfo is None:
        ts = ts.tz_localize(pytz.timezone(source_tz))
    return ts.tz_convert(pytz.utc)


def to_display_time(
    ts,
    tz: str = DISPLAY_TZ,
    source_tz: str = SOURCE_TZ
) -> DisplayTime:
    """
    Convert a candle timestamp to display-timezone date/hour/minute.

    Uses the civil calendar of the display timezone, so a UTC 07:00 candle
    is 08:00 in Oslo winter time and 09:00 in summer time.

    Args:
        ts: Naive (source timezone) or tz-aware timestamp
        tz: Display timezone name
        source_tz: Timezone of naive timestamps

    Returns:
        DisplayTime
    """
    local = to_utc(ts, source_tz).tz_convert(pytz.timezone(tz))
    return DisplayTime(date=local.date(), hour=local.hour, minute=local.minute)


def display_date(ts, tz: str = DISPLAY_TZ, source_tz: str = SOURCE_TZ) -> date:
    return to_display_time(ts, tz, source_tz).date


def with_display_time(
    candles: pd.DataFrame,
    tz: str = DISPLAY_TZ,
    source_tz: str = SOURCE_TZ
) -> pd.DataFrame:
    """
    Add a tz-aware `display_ts` column.

    Frames that already carry `display_ts` are returned unchanged.
    """
    if "display_ts" in candles.columns:
        return candles

    validate_candles(candles)
    df = candles.copy()
    ts = pd.to_datetime(df["timestamp"])
    if ts.dt.tz is None:
        ts = ts.dt.tz_localize(pytz.timezone(source_tz))
    df["display_ts"] = ts.dt.tz_convert(pytz.timezone(tz))
    return df


def _local_now(df: pd.DataFrame, now, source_tz: str) -> pd.Timestamp:
    return to_utc(now, source_tz).tz_convert(df["display_ts"].dt.tz)


def _as_date(day) -> date:
    if isinstance(day, date) and not isinstance(day, datetime):
        return day
    return pd.Timestamp(day).date()


def slice_window(
    candles: pd.DataFrame,
    day,
    window: SessionWindow,
    tz: str = DISPLAY_TZ,
    source_tz: str = SOURCE_TZ
) -> pd.DataFrame:
    """
    Select the candles of one session window on one display date.

    Args:
        candles: Candle frame (oldest -> newest)
        day: Target display date
        window: Session window (display timezone)
        tz: Display timezone
        source_tz: Timezone of naive timestamps

    Returns:
        Possibly empty frame with a `display_ts` column
    """
    df = with_display_time(candles, tz, source_tz)
    if df.empty:
        return df

    local = df["display_ts"]
    minutes = local.dt.hour * 60 + local.dt.minute
    start = window.start.hour * 60 + window.start.minute
    end = window.end.hour * 60 + window.end.minute

    in_day = local.dt.date == _as_date(day)
    after_start = minutes >= start
    before_end = minutes <= end if window.end_inclusive else minutes < end

    return df[in_day & after_start & before_end].reset_index(drop=True)


def rows_same_day(
    candles: pd.DataFrame,
    day,
    now,
    tz: str = DISPLAY_TZ,
    source_tz: str = SOURCE_TZ
) -> pd.DataFrame:
    """Candles of a display date up to and including `now`."""
    df = with_display_time(candles, tz, source_tz)
    if df.empty:
        return df

    mask = (df["display_ts"].dt.date == _as_date(day)) & (df["display_ts"] <= _local_now(df, now, source_tz))
    return df[mask].reset_index(drop=True)


def compute_session_stats(rows: pd.DataFrame, name: str) -> SessionStats:
    """
    Reduce a session slice to open/close/high/low/range/count.

    An empty slice is a valid outcome reported with ok=False.
    """
    if rows is None or rows.empty:
        return SessionStats(ok=False, name=name, reason="no_candles_in_window")

    high = float(rows["high"].max())
    low = float(rows["low"].min())
    price_range = high - low

    return SessionStats(
        ok=True,
        name=name,
        open=float(rows["open"].iloc[0]),
        close=float(rows["close"].iloc[-1]),
        high=high,
        low=low,
        range=price_range,
        range_pips=round(price_range / PIP_SIZE, 6),
        candle_count=len(rows),
        start_ts=rows["timestamp"].iloc[0],
        end_ts=rows["timestamp"].iloc[-1],
    )


def build_sessions(
    candles: pd.DataFrame,
    day,
    now,
    windows: dict[str, SessionWindow] | None = None,
    tz: str = DISPLAY_TZ,
    source_tz: str = SOURCE_TZ
) -> dict[str, Session]:
    """
    Slice every configured window for a display date, as of `now`.

    Candles after `now` are never seen, so an evaluation at 09:15 only
    knows the first part of the London setup window.

    Args:
        candles: 5M candle frame
        day: Display date
        now: Evaluation timestamp
        windows: Mapping of session key -> SessionWindow
        tz: Display timezone
        source_tz: Timezone of naive timestamps

    Returns:
        Mapping of session key -> Session
    """
    windows = windows or SESSION_WINDOWS
    df = with_display_time(candles, tz, source_tz)
    if not df.empty:
        df = df[df["display_ts"] <= _local_now(df, now, source_tz)]

    sessions = {}
    for key, window in windows.items():
        rows = slice_window(df, day, window, tz, source_tz)
        sessions[key] = Session(rows=rows, stats=compute_session_stats(rows, window.name))

    return sessions

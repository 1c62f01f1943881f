"""
Daily Bias

Scores the day from the two most recent daily candles (D-1, D-2):
- Close position inside D-1's range
- Inside day
- Overlap of D-1 and D-2 relative to the smaller range

The bias is fixed for the whole day; intraday data never revises it.
"""

import logging
import pandas as pd
from datetime import date
from typing import Literal
from pydantic import BaseModel

logger = logging.getLogger(__name__)

STRONG_BULL_CLOSE = 0.60
STRONG_BEAR_CLOSE = 0.40
NARROW_BULL_CLOSE = 0.55
NARROW_BEAR_CLOSE = 0.45
OVERLAP_HEAVY_PCT = 0.70

Bias = Literal["Bullish", "Bearish", "Ranging"]


class BiasResult(BaseModel):
    """Daily bias outcome."""
    ok: bool
    reason: str | None = None
    score: Literal[1, 2, 3] | None = None
    trade: Literal["Yes", "No"] = "No"
    base_bias: Bias | None = None
    bias09: Bias | None = None
    bias10: Bias | None = None
    close_position: float | None = None
    inside_day: bool | None = None
    overlap_pct: float | None = None
    overlap_heavy: bool | None = None
    d1_date: date | None = None
    d2_date: date | None = None


def close_position(candle) -> float | None:
    """(close - low) / (high - low), None for a non-positive range."""
    price_range = candle["high"] - candle["low"]
    if not price_range > 0:
        return None
    return float((candle["close"] - candle["low"]) / price_range)


def is_inside_day(d1, d2) -> bool:
    return bool(d1["high"] <= d2["high"] and d1["low"] >= d2["low"])


def overlap_pct(d1, d2) -> float | None:
    """Overlap of two daily ranges as a fraction of the smaller range."""
    overlap = max(0.0, min(d1["high"], d2["high"]) - max(d1["low"], d2["low"]))
    smaller = min(d1["high"] - d1["low"], d2["high"] - d2["low"])
    if smaller <= 0:
        return None
    return float(overlap / smaller)


def score_daily(close_pos: float | None, inside: bool, overlap_heavy: bool) -> int:
    """
    3: strong close, not inside day, not overlap-heavy
    2: narrow-band close, or a strong close on an inside/overlap day
    1: anything else (no trade)
    """
    if close_pos is None:
        return 1

    strong = close_pos >= STRONG_BULL_CLOSE or close_pos <= STRONG_BEAR_CLOSE
    if strong and not inside and not overlap_heavy:
        return 3

    narrow = (NARROW_BULL_CLOSE <= close_pos < STRONG_BULL_CLOSE
              or STRONG_BEAR_CLOSE < close_pos <= NARROW_BEAR_CLOSE)
    if narrow or strong:
        return 2

    return 1


def base_bias(close_pos: float | None) -> Bias:
    if close_pos is None:
        return "Ranging"
    if close_pos >= STRONG_BULL_CLOSE:
        return "Bullish"
    if close_pos <= STRONG_BEAR_CLOSE:
        return "Bearish"
    return "Ranging"


def _candle_date(candle) -> date | None:
    ts = candle.get("timestamp") if hasattr(candle, "get") else None
    return pd.Timestamp(ts).date() if ts is not None else None


def compute_daily_bias(d1, d2) -> BiasResult:
    """
    Compute the daily bias from yesterday (d1) and the day before (d2).

    Args:
        d1: D-1 candle (mapping or Series with high/low/close)
        d2: D-2 candle

    Returns:
        BiasResult
    """
    if d1 is None or d2 is None:
        return BiasResult(ok=False, reason="missing_daily_candles")

    close_pos = close_position(d1)
    inside = is_inside_day(d1, d2)
    overlap = overlap_pct(d1, d2)
    overlap_heavy = overlap is not None and overlap >= OVERLAP_HEAVY_PCT

    score = score_daily(close_pos, inside, overlap_heavy)
    bias = base_bias(close_pos)

    return BiasResult(
        ok=True,
        score=score,
        trade="No" if score == 1 else "Yes",
        base_bias=bias,
        bias09=bias,
        bias10=bias,
        close_position=close_pos,
        inside_day=inside,
        overlap_pct=overlap,
        overlap_heavy=overlap_heavy,
        d1_date=_candle_date(d1),
        d2_date=_candle_date(d2),
    )


def bias_for_date(daily: pd.DataFrame, day) -> BiasResult:
    """
    Daily bias for a trading date, from the last two daily candles
    strictly before it.
    """
    if daily is None or daily.empty:
        return BiasResult(ok=False, reason="missing_daily_candles")

    day = pd.Timestamp(day).date()
    candle_dates = pd.to_datetime(daily["timestamp"]).dt.date
    prior = daily[(candle_dates < day).to_numpy()]

    if len(prior) < 2:
        return BiasResult(ok=False, reason="missing_daily_candles")

    result = compute_daily_bias(prior.iloc[-1], prior.iloc[-2])
    logger.debug(
        f"Bias for {day}: {result.base_bias} score={result.score} "
        f"close_pos={result.close_position}"
    )
    return result

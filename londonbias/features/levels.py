"""
Level Interaction Primitives

Implements:
- Sweep of a level (wick through, close back across)
- Test-then-fail of a level (double-tap building block)
- Wick-dominance manipulation classification of a session
- Target reach without invalidation of a sweep extreme
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from londonbias.config import PIP_SIZE
from londonbias.features.sessions import SessionStats


@dataclass(frozen=True)
class Level:
    """Named reference price (PDH/PDL, session high/low, ...)."""
    name: str
    price: float
    side: Literal["UP", "DOWN", "BOTH"] = "BOTH"


@dataclass
class SweepResult:
    swept: bool
    side: str
    level: float | None = None
    index: int | None = None
    timestamp: datetime | None = None
    extreme: float | None = None


@dataclass
class TestResult:
    tested: bool
    failed: bool
    accepted: bool = False
    first_test_index: int | None = None
    first_test_ts: datetime | None = None


@dataclass
class Manipulation:
    ok: bool
    direction: Literal["UP", "DOWN"] | None = None
    reason: str | None = None
    open: float | None = None
    close: float | None = None
    high: float | None = None
    low: float | None = None
    up_wick_pips: float | None = None
    down_wick_pips: float | None = None
    range_pips: float | None = None


@dataclass
class TargetReach:
    ok: bool
    reason: str | None = None
    move_pips: float | None = None
    target_pips: float | None = None
    index: int | None = None


def price_to_pips(diff: float) -> float:
    """Absolute price distance in pips (rounded to kill float noise)."""
    return round(abs(diff) / PIP_SIZE, 6)


def _valid_level(level) -> bool:
    return level is not None and np.isfinite(level)


def first_break(
    rows: pd.DataFrame,
    level: float,
    side: Literal["UP", "DOWN"]
) -> int | None:
    """Position of the first candle whose wick trades through `level`."""
    if rows is None or rows.empty or not _valid_level(level):
        return None

    if side == "UP":
        hits = np.flatnonzero(rows["high"].to_numpy() > level)
    else:
        hits = np.flatnonzero(rows["low"].to_numpy() < level)

    return int(hits[0]) if len(hits) else None


def has_acceptance_beyond(
    rows: pd.DataFrame,
    level: float,
    side: Literal["UP", "DOWN"]
) -> bool:
    """True when any candle closes beyond `level`."""
    if rows is None or rows.empty or not _valid_level(level):
        return False

    closes = rows["close"].to_numpy()
    if side == "UP":
        return bool((closes > level).any())
    return bool((closes < level).any())


def sweep_of_level(
    rows: pd.DataFrame,
    level: float,
    side: Literal["HIGH", "LOW"]
) -> SweepResult:
    """
    Detect a confirmed sweep of a level.

    HIGH: first candle with high > level, confirmed only if that candle
    or a later one closes back below the level.
    LOW: first candle with low < level, confirmed by a close back above.

    A wick through the level with no close back across is a breakout,
    not a sweep.

    Args:
        rows: Candles to scan
        level: Reference price
        side: Which side of the level is being swept

    Returns:
        SweepResult with the sweep candle and its extreme
    """
    no_sweep = SweepResult(swept=False, side=side, level=level)

    idx = first_break(rows, level, "UP" if side == "HIGH" else "DOWN")
    if idx is None:
        return no_sweep

    closes = rows["close"].to_numpy()[idx:]
    returned = (closes < level).any() if side == "HIGH" else (closes > level).any()
    if not returned:
        return no_sweep

    extreme = rows["high"].iloc[idx] if side == "HIGH" else rows["low"].iloc[idx]
    return SweepResult(
        swept=True,
        side=side,
        level=level,
        index=idx,
        timestamp=rows["timestamp"].iloc[idx],
        extreme=float(extreme),
    )


def test_then_fail(
    rows: pd.DataFrame,
    level: float,
    side: Literal["UP", "DOWN"]
) -> TestResult:
    """
    Classify a wick test of a level.

    - test: first wick beyond the level
    - accepted: a close beyond the level -> not a failure
    - failed: no acceptance and a close back inside after the test
    - otherwise ambiguous (tested, not failed)
    """
    idx = first_break(rows, level, side)
    if idx is None:
        return TestResult(tested=False, failed=False)

    first_ts = rows["timestamp"].iloc[idx]
    after = rows.iloc[idx:]

    if has_acceptance_beyond(after, level, side):
        return TestResult(tested=True, failed=False, accepted=True,
                          first_test_index=idx, first_test_ts=first_ts)

    closes = after["close"].to_numpy()
    back_inside = (closes <= level).any() if side == "UP" else (closes >= level).any()

    return TestResult(tested=True, failed=bool(back_inside),
                      first_test_index=idx, first_test_ts=first_ts)


def classify_wick_manipulation(
    rows: pd.DataFrame,
    min_wick_pips: float = 4.0,
    dominance: float = 1.7,
    min_range_pips: float = 8.0,
    min_rows: int = 3
) -> Manipulation:
    """
    Classify a session as UP- or DOWN-manipulated by wick dominance.

    upWick = high - open, downWick = open - low (pips). UP wins when
    upWick >= min_wick_pips and upWick >= dominance * downWick; DOWN is
    symmetric. Both winning is ambiguous and yields no manipulation.

    Args:
        rows: Session candles
        min_wick_pips: Minimum dominant wick
        dominance: Required ratio of dominant to opposite wick
        min_range_pips: Minimum session range
        min_rows: Minimum candle count

    Returns:
        Manipulation
    """
    if rows is None or len(rows) < min_rows:
        return Manipulation(ok=False, reason="not_enough_rows")

    open_ = float(rows["open"].iloc[0])
    close = float(rows["close"].iloc[-1])
    high = float(rows["high"].max())
    low = float(rows["low"].min())

    measured = dict(open=open_, close=close, high=high, low=low,
                    up_wick_pips=price_to_pips(high - open_),
                    down_wick_pips=price_to_pips(open_ - low),
                    range_pips=price_to_pips(high - low))

    if high - low <= 0 or measured["range_pips"] < min_range_pips:
        return Manipulation(ok=False, reason="range_too_small", **measured)

    up = measured["up_wick_pips"]
    down = measured["down_wick_pips"]
    up_wins = up >= min_wick_pips and up >= dominance * down
    down_wins = down >= min_wick_pips and down >= dominance * up

    if up_wins and down_wins:
        return Manipulation(ok=False, reason="ambiguous_manipulation", **measured)
    if up_wins:
        return Manipulation(ok=True, direction="UP", **measured)
    if down_wins:
        return Manipulation(ok=True, direction="DOWN", **measured)

    return Manipulation(ok=False, reason="no_wick_dominance", **measured)


def reaches_target_without_invalidation(
    rows: pd.DataFrame,
    sweep_extreme: float,
    direction: Literal["UP", "DOWN"],
    target_pips: float
) -> TargetReach:
    """
    Check that price travels `target_pips` from the sweep extreme before
    the extreme is broken.

    UP: favourable excursion = best high - sweep low; invalidation is a
    low below the sweep low at or before the first candle meeting the target.
    DOWN is symmetric.
    """
    if rows is None or rows.empty:
        return TargetReach(ok=False, reason="missing_rows", target_pips=target_pips)
    if not _valid_level(sweep_extreme):
        return TargetReach(ok=False, reason="missing_sweep_extreme", target_pips=target_pips)

    highs = rows["high"].to_numpy()
    lows = rows["low"].to_numpy()

    if direction == "UP":
        best = np.maximum.accumulate(highs)
        moves = np.round((best - sweep_extreme) / PIP_SIZE, 6)
        broken = lows < sweep_extreme
        broken_reason = "sweep_low_broken_before_target"
    else:
        best = np.minimum.accumulate(lows)
        moves = np.round((sweep_extreme - best) / PIP_SIZE, 6)
        broken = highs > sweep_extreme
        broken_reason = "sweep_high_broken_before_target"

    hits = np.flatnonzero(moves >= target_pips)
    if not len(hits):
        return TargetReach(ok=False, reason="target_not_reached",
                           move_pips=float(moves.max()), target_pips=target_pips)

    i = int(hits[0])
    if broken[: i + 1].any():
        return TargetReach(ok=False, reason=broken_reason,
                           move_pips=float(moves[i]), target_pips=target_pips, index=i)

    return TargetReach(ok=True, move_pips=float(moves[i]), target_pips=target_pips, index=i)


def build_reference_levels(
    asia: SessionStats | None,
    pdh: float | None,
    pdl: float | None
) -> list[Level]:
    """Asia high/low and PDH/PDL as named levels, skipping missing ones."""
    levels = []
    if asia is not None and asia.ok:
        levels.append(Level("Asia High", asia.high, "UP"))
        levels.append(Level("Asia Low", asia.low, "DOWN"))
    if _valid_level(pdh):
        levels.append(Level("PDH", float(pdh), "UP"))
    if _valid_level(pdl):
        levels.append(Level("PDL", float(pdl), "DOWN"))
    return levels

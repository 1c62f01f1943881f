"""
London First Sweep

Day qualifier: a clean Asia range left alone before London, whose
first interaction at the London open is a shallow sweep of a reference
level (Asia high/low, PDH, PDL) that closes back.

Only qualifies the day for reversal logic; it carries no entry or exit.
"""

import logging
import pandas as pd

from londonbias.config import SESSION_WINDOWS, SessionWindow, SetupConfig
from londonbias.features.bias import BiasResult
from londonbias.features.levels import build_reference_levels, first_break, price_to_pips, sweep_of_level
from londonbias.features.sessions import Session, to_display_time
from .base import BaseSetup, DecisionRecord, EvaluationContext, scenario_for_direction

logger = logging.getLogger(__name__)


def _minute_of_day(ts: pd.Timestamp) -> int:
    return ts.hour * 60 + ts.minute


def _in_window(ts: pd.Timestamp, window: SessionWindow) -> bool:
    minute = _minute_of_day(ts)
    start = window.start.hour * 60 + window.start.minute
    end = window.end.hour * 60 + window.end.minute
    return start <= minute and (minute <= end if window.end_inclusive else minute < end)


class LondonFirstSweep(BaseSetup):
    """First-sweep day qualifier."""

    required_sessions = ("asia",)

    def __init__(
        self,
        config: SetupConfig | None = None,
        buffer: SessionWindow | None = None,
        open_window: SessionWindow | None = None
    ):
        super().__init__(name="LondonFirstSweep", config=config)
        self.buffer = buffer or SESSION_WINDOWS["buffer"]
        self.open_window = open_window or SESSION_WINDOWS["london_open"]

    def _evaluate(
        self,
        bias: BiasResult,
        sessions: dict[str, Session],
        context: EvaluationContext
    ) -> DecisionRecord:
        cfg = self.config
        asia = sessions["asia"].stats

        if asia.range_pips < cfg.first_sweep_min_asia_range_pips:
            return self.no_trade(bias, "asia_range_too_small", asia_range_pips=asia.range_pips)

        buffer_rows = sessions["buffer"].rows if "buffer" in sessions else pd.DataFrame()
        if not buffer_rows.empty:
            touched = (buffer_rows["high"] > asia.high).any() or (buffer_rows["low"] < asia.low).any()
            if touched:
                return self.no_trade(bias, "asia_range_touched_in_buffer",
                                     asia_high=asia.high, asia_low=asia.low)

        rows = context.rows_same_day
        if rows is None or rows.empty:
            return self.no_trade(bias, "no_first_sweep")
        start = self.buffer.start.hour * 60 + self.buffer.start.minute
        minutes = rows["display_ts"].dt.hour * 60 + rows["display_ts"].dt.minute
        rows = rows[(minutes >= start).to_numpy()].reset_index(drop=True)

        # Earliest breach across all candidate levels; ties keep level order
        first = None
        for level in build_reference_levels(asia, context.pdh, context.pdl):
            idx = first_break(rows, level.price, level.side)
            if idx is not None and (first is None or idx < first[0]):
                first = (idx, level)

        if first is None:
            return self.no_trade(bias, "no_first_sweep")

        idx, level = first
        breach = rows.iloc[idx]
        extreme = breach["high"] if level.side == "UP" else breach["low"]
        depth = price_to_pips(extreme - level.price)
        info = dict(level=level.name, level_price=level.price, depth_pips=depth,
                    breach_ts=breach["timestamp"])

        if depth > cfg.first_sweep_max_depth_pips:
            return self.no_trade(bias, "first_break_too_deep", **info)

        sweep = sweep_of_level(rows, level.price, "HIGH" if level.side == "UP" else "LOW")
        if not sweep.swept:
            return self.no_trade(bias, "first_sweep_no_return", **info)

        if not _in_window(breach["display_ts"], self.open_window):
            return self.no_trade(bias, "first_sweep_outside_open_window",
                                 breach_time=to_display_time(breach["display_ts"]).hhmm, **info)

        # High swept -> reversal down, low swept -> reversal up
        direction = "DOWN" if level.side == "UP" else "UP"
        logger.debug(f"{context.date}: first sweep of {level.name} ({depth} pips)")
        return self.trade(bias, "LondonFirstSweep", scenario_for_direction(direction),
                          "london_first_sweep_qualified", direction=direction, sweep=sweep, **info)

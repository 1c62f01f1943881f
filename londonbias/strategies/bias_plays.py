"""
Bias Plays

Setups that trade with the daily bias:

BiasAsiaBreak (directional-break continuation):
- Asia breaks PDH (Bullish) / PDL (Bearish)
- No reclaim of the broken level before 10:00
- London 09-10 sweeps the Asia/Frankfurt extreme on the bias side

BiasAsiaNoBreak (directional fake reversal), when Asia did not break:
- Variant 1: London takes the Asia/Frankfurt extreme against the bias
  and closes below (above) its open
- Variant 2: London pushes >= 6 pips against the bias from its open
  and closes back, with a London range of at least 8 pips
"""

import logging
import pandas as pd
from dataclasses import dataclass
from datetime import datetime, time

from londonbias.config import SESSION_CONFIG, SetupConfig
from londonbias.features.bias import BiasResult
from londonbias.features.levels import SweepResult, price_to_pips, sweep_of_level
from londonbias.features.sessions import Session, SessionStats
from .base import BaseSetup, DecisionRecord, EvaluationContext, scenario_for_direction

logger = logging.getLogger(__name__)


@dataclass
class AsiaBreak:
    broke: bool
    direction: str = "NONE"
    index: int | None = None
    timestamp: datetime | None = None


@dataclass
class LondonTrigger:
    ok: bool
    kind: str = "none"
    reason: str | None = None
    asia_sweep: SweepResult | None = None
    frankfurt_sweep: SweepResult | None = None


@dataclass
class FakeMove:
    ok: bool
    kind: str = "none"
    reason: str | None = None
    took_extreme: bool | None = None
    failed: bool | None = None
    up_pips: float | None = None
    down_pips: float | None = None
    london_range_pips: float | None = None


def _direction(base_bias: str) -> str:
    return "UP" if base_bias == "Bullish" else "DOWN"


def asia_break(
    base_bias: str,
    asia_rows: pd.DataFrame,
    pdh: float | None,
    pdl: float | None
) -> AsiaBreak:
    """First Asia candle trading through PDH (Bullish) or PDL (Bearish)."""
    if asia_rows.empty or pdh is None or pdl is None:
        return AsiaBreak(broke=False)

    if base_bias == "Bullish":
        hits = (asia_rows["high"] > pdh).to_numpy().nonzero()[0]
    elif base_bias == "Bearish":
        hits = (asia_rows["low"] < pdl).to_numpy().nonzero()[0]
    else:
        return AsiaBreak(broke=False)

    if not len(hits):
        return AsiaBreak(broke=False)

    i = int(hits[0])
    return AsiaBreak(broke=True, direction=_direction(base_bias), index=i,
                     timestamp=asia_rows["timestamp"].iloc[i])


def no_reclaim_until(
    base_bias: str,
    rows_same_day: pd.DataFrame,
    break_ts,
    pdh: float,
    pdl: float,
    cutoff: time
) -> bool:
    """
    True when price stays beyond the broken level from the break until `cutoff`.

    Bullish reclaim: any low <= PDH from the break candle on.
    Bearish reclaim: any high >= PDL from the break candle on.
    """
    if rows_same_day is None or rows_same_day.empty:
        return True

    local = rows_same_day["display_ts"]
    minutes = local.dt.hour * 60 + local.dt.minute
    window = rows_same_day[
        ((rows_same_day["timestamp"] >= break_ts) & (minutes < cutoff.hour * 60 + cutoff.minute)).to_numpy()
    ]
    if window.empty:
        return True

    if base_bias == "Bullish":
        return not bool((window["low"] <= pdh).any())
    return not bool((window["high"] >= pdl).any())


def london_trigger(
    base_bias: str,
    london_rows: pd.DataFrame,
    asia: SessionStats,
    frankfurt: SessionStats
) -> LondonTrigger:
    """Bias-side sweep of the Asia or Frankfurt extreme during London 09-10."""
    if base_bias == "Bullish":
        s1 = sweep_of_level(london_rows, asia.low, "LOW")
        s2 = sweep_of_level(london_rows, frankfurt.low, "LOW")
        if s1.swept or s2.swept:
            return LondonTrigger(ok=True, kind="sweep_low_then_up", asia_sweep=s1, frankfurt_sweep=s2)
        return LondonTrigger(ok=False, reason="no_sweep_of_asia_or_ff_low", asia_sweep=s1, frankfurt_sweep=s2)

    s1 = sweep_of_level(london_rows, asia.high, "HIGH")
    s2 = sweep_of_level(london_rows, frankfurt.high, "HIGH")
    if s1.swept or s2.swept:
        return LondonTrigger(ok=True, kind="sweep_high_then_down", asia_sweep=s1, frankfurt_sweep=s2)
    return LondonTrigger(ok=False, reason="no_sweep_of_asia_or_ff_high", asia_sweep=s1, frankfurt_sweep=s2)


def fake_open_close_failure(
    base_bias: str,
    london_rows: pd.DataFrame,
    asia: SessionStats,
    frankfurt: SessionStats
) -> FakeMove:
    """
    Variant 1: London takes the counter-bias extreme then closes against it.

    Bullish: high above Asia or Frankfurt high, London close < open.
    Bearish: low below Asia or Frankfurt low, London close > open.
    """
    london_open = london_rows["open"].iloc[0]
    london_close = london_rows["close"].iloc[-1]

    if base_bias == "Bullish":
        took = bool((london_rows["high"] > asia.high).any() or (london_rows["high"] > frankfurt.high).any())
        failed = bool(london_close < london_open)
        kind = "london_up_fake_then_down"
    else:
        took = bool((london_rows["low"] < asia.low).any() or (london_rows["low"] < frankfurt.low).any())
        failed = bool(london_close > london_open)
        kind = "london_down_fake_then_up"

    ok = took and failed
    return FakeMove(ok=ok, kind=kind if ok else "none", took_extreme=took, failed=failed)


def fake_push_failure(
    base_bias: str,
    london_rows: pd.DataFrame,
    london: SessionStats,
    min_push_pips: float = 6.0,
    min_range_pips: float = 8.0
) -> FakeMove:
    """
    Variant 2: a counter-bias push of `min_push_pips` from the London open
    that fails to hold by the close. Needs a London range of `min_range_pips`.
    """
    if london.range_pips is None or london.range_pips < min_range_pips:
        return FakeMove(ok=False, reason="london_range_too_small", london_range_pips=london.range_pips)

    london_open = float(london_rows["open"].iloc[0])
    london_close = float(london_rows["close"].iloc[-1])
    up_pips = price_to_pips(max(london_open, london_rows["high"].max()) - london_open)
    down_pips = price_to_pips(london_open - min(london_open, london_rows["low"].min()))

    if base_bias == "Bearish":
        pushed = up_pips >= min_push_pips
        failed = london_close <= london_open
        kind = "london_push_up_fail_then_down"
    else:
        pushed = down_pips >= min_push_pips
        failed = london_close >= london_open
        kind = "london_push_down_fail_then_up"

    ok = pushed and failed
    return FakeMove(ok=ok, kind=kind if ok else "none", took_extreme=pushed, failed=failed,
                    up_pips=up_pips, down_pips=down_pips, london_range_pips=london.range_pips)


class BiasPlays(BaseSetup):
    """
    BiasAsiaBreak / BiasAsiaNoBreak.

    Only Bullish or Bearish days are eligible.
    """

    required_sessions = ("asia", "frankfurt", "london_setup")

    def __init__(
        self,
        config: SetupConfig | None = None,
        reclaim_cutoff: time | None = None
    ):
        super().__init__(name="BiasPlays", config=config)
        self.reclaim_cutoff = reclaim_cutoff or SESSION_CONFIG.reclaim_cutoff

    def eligibility(self, bias: BiasResult) -> str | None:
        if bias.base_bias not in ("Bullish", "Bearish"):
            return "not_a_bias_day"
        return None

    def _evaluate(
        self,
        bias: BiasResult,
        sessions: dict[str, Session],
        context: EvaluationContext
    ) -> DecisionRecord:
        base_bias = bias.base_bias
        asia = sessions["asia"]
        frankfurt = sessions["frankfurt"]
        london = sessions["london_setup"]
        direction = _direction(base_bias)
        levels = dict(base_bias=base_bias, pdh=context.pdh, pdl=context.pdl)

        brk = asia_break(base_bias, asia.rows, context.pdh, context.pdl)

        if brk.broke:
            held = no_reclaim_until(base_bias, context.rows_same_day, brk.timestamp,
                                    context.pdh, context.pdl, self.reclaim_cutoff)
            if not held:
                return self.no_trade(bias, "asia_break_but_reclaim", asia_break=brk, **levels)

            trigger = london_trigger(base_bias, london.rows, asia.stats, frankfurt.stats)
            if trigger.ok:
                logger.debug(f"{context.date}: BiasAsiaBreak {trigger.kind}")
                return self.trade(bias, "BiasAsiaBreak", scenario_for_direction(direction),
                                  "bias_asia_break_triggered", asia_break=brk, trigger=trigger, **levels)

            return self.no_trade(bias, "bias_asia_break_no_london_trigger",
                                 asia_break=brk, trigger=trigger, **levels)

        v1 = fake_open_close_failure(base_bias, london.rows, asia.stats, frankfurt.stats)
        if v1.ok:
            return self.trade(bias, "BiasAsiaNoBreak", scenario_for_direction(direction),
                              "bias_asia_no_break_variant1", variant="v1", v1=v1, **levels)

        v2 = fake_push_failure(base_bias, london.rows, london.stats,
                               self.config.fake_min_push_pips, self.config.fake_min_range_pips)
        if v2.ok:
            return self.trade(bias, "BiasAsiaNoBreak", scenario_for_direction(direction),
                              "bias_asia_no_break_variant2", variant="v2", v2=v2, **levels)

        return self.no_trade(bias, "bias_day_no_signal", v1=v1, v2=v2,
                             weekday=context.weekday, **levels)

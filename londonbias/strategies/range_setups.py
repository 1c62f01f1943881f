"""
Range Day Setups

FrankLondonMW: double test -> mean reversion on Ranging days.
Frankfurt tests the Asia high (low) and fails, London tests it again
and fails again; the trade is the rotation back into the range.
"""

import logging
import pandas as pd
from dataclasses import dataclass
from datetime import time

from londonbias.config import SESSION_CONFIG, SetupConfig
from londonbias.features.bias import BiasResult
from londonbias.features.levels import test_then_fail
from londonbias.features.sessions import Session
from .base import SCENARIO_DOUBLE_TAP, BaseSetup, DecisionRecord, EvaluationContext

logger = logging.getLogger(__name__)


@dataclass
class LevelHold:
    holds: bool
    which: str = "NONE"


def pdh_pdl_break_holds(
    rows_same_day: pd.DataFrame,
    pdh: float | None,
    pdl: float | None,
    cutoff: time
) -> LevelHold:
    """A close beyond PDH or PDL before `cutoff` disqualifies a range day."""
    if rows_same_day is None or rows_same_day.empty or pdh is None or pdl is None:
        return LevelHold(holds=False)

    local = rows_same_day["display_ts"]
    before = rows_same_day[((local.dt.hour * 60 + local.dt.minute) < cutoff.hour * 60 + cutoff.minute).to_numpy()]

    for close in before["close"]:
        if close > pdh:
            return LevelHold(holds=True, which="PDH")
        if close < pdl:
            return LevelHold(holds=True, which="PDL")

    return LevelHold(holds=False)


class FrankLondonMW(BaseSetup):
    """Range-day double rejection of the Asia high or low."""

    required_sessions = ("asia", "frankfurt", "london_setup")

    def __init__(self, config: SetupConfig | None = None, cutoff: time | None = None):
        super().__init__(name="FrankLondonMW", config=config)
        self.cutoff = cutoff or SESSION_CONFIG.reclaim_cutoff

    def eligibility(self, bias: BiasResult) -> str | None:
        if bias.base_bias != "Ranging":
            return "franklondonmw_only_on_ranging_days"
        return None

    def _evaluate(
        self,
        bias: BiasResult,
        sessions: dict[str, Session],
        context: EvaluationContext
    ) -> DecisionRecord:
        hold = pdh_pdl_break_holds(context.rows_same_day, context.pdh, context.pdl, self.cutoff)
        if hold.holds:
            return self.no_trade(bias, "pdh_pdl_break_holds_before_10", hold=hold)

        asia = sessions["asia"].stats
        if asia.high is None or asia.low is None or asia.high <= asia.low:
            return self.no_trade(bias, "invalid_asia_levels", asia_high=asia.high, asia_low=asia.low)

        ff_rows = sessions["frankfurt"].rows
        ld_rows = sessions["london_setup"].rows

        ff_high = test_then_fail(ff_rows, asia.high, "UP")
        ld_high = test_then_fail(ld_rows, asia.high, "UP")
        ff_low = test_then_fail(ff_rows, asia.low, "DOWN")
        ld_low = test_then_fail(ld_rows, asia.low, "DOWN")

        high_double_fail = ff_high.failed and ld_high.failed
        low_double_fail = ff_low.failed and ld_low.failed
        tests = dict(ff_high=ff_high, ld_high=ld_high, ff_low=ff_low, ld_low=ld_low)

        if high_double_fail and low_double_fail:
            return self.no_trade(bias, "both_sides_double_fail_messy", **tests)

        if high_double_fail:
            logger.debug(f"{context.date}: Asia high double-tapped and failed")
            return self.trade(bias, "FrankLondonMW", SCENARIO_DOUBLE_TAP,
                              "double_test_asia_high_failed", side="ASIA_HIGH", direction="DOWN",
                              ff_high=ff_high, ld_high=ld_high, hold=hold)

        if low_double_fail:
            logger.debug(f"{context.date}: Asia low double-tapped and failed")
            return self.trade(bias, "FrankLondonMW", SCENARIO_DOUBLE_TAP,
                              "double_test_asia_low_failed", side="ASIA_LOW", direction="UP",
                              ff_low=ff_low, ld_low=ld_low, hold=hold)

        return self.no_trade(bias, "no_double_test_fail", hold=hold, **tests)

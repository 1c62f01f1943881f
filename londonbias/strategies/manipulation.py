"""
Manipulation Sweep Reverse

Overlay setup that can fire on any day:
1. Frankfurt is wick-dominant manipulated UP or DOWN
2. London sweeps the opposite Frankfurt extreme and closes back
3. The 10-14 move runs in the manipulation direction from the sweep
   extreme without breaking it first

Quality tiers: A reaches 15 pips, B reaches 25 pips.
"""

import logging

from londonbias.config import SetupConfig
from londonbias.features.bias import BiasResult
from londonbias.features.levels import (
    classify_wick_manipulation,
    reaches_target_without_invalidation,
    sweep_of_level,
)
from londonbias.features.sessions import Session
from .base import BaseSetup, DecisionRecord, EvaluationContext, scenario_for_direction

logger = logging.getLogger(__name__)


class ManipulationSweepReverse(BaseSetup):
    """Frankfurt manipulation -> London sweep of the other side -> payoff move."""

    required_sessions = ("frankfurt", "london_setup", "payoff")

    def __init__(self, config: SetupConfig | None = None):
        super().__init__(name="ManipulationSweepReverse", config=config)

    def _evaluate(
        self,
        bias: BiasResult,
        sessions: dict[str, Session],
        context: EvaluationContext
    ) -> DecisionRecord:
        cfg = self.config
        frankfurt = sessions["frankfurt"]

        manipulation = classify_wick_manipulation(
            frankfurt.rows,
            min_wick_pips=cfg.manipulation_min_wick_pips,
            dominance=cfg.manipulation_dominance,
            min_range_pips=cfg.manipulation_min_range_pips,
            min_rows=cfg.manipulation_min_rows,
        )
        if not manipulation.ok:
            return self.no_trade(bias, "no_frankfurt_manipulation", manipulation=manipulation)

        # UP manipulation -> London must sweep the Frankfurt low, and vice versa
        direction = manipulation.direction
        if direction == "UP":
            sweep = sweep_of_level(sessions["london_setup"].rows, manipulation.low, "LOW")
        else:
            sweep = sweep_of_level(sessions["london_setup"].rows, manipulation.high, "HIGH")

        if not sweep.swept:
            return self.no_trade(bias, "no_london_sweep_opposite", manipulation=manipulation, sweep=sweep)

        payoff_rows = sessions["payoff"].rows
        a_check = reaches_target_without_invalidation(
            payoff_rows, sweep.extreme, direction, cfg.overlay_a_target_pips
        )
        b_check = reaches_target_without_invalidation(
            payoff_rows, sweep.extreme, direction, cfg.overlay_b_target_pips
        )
        checks = dict(manipulation=manipulation, sweep=sweep, a_check=a_check, b_check=b_check)
        scenario = scenario_for_direction(direction)

        if b_check.ok:
            logger.debug(f"{context.date}: ManipulationSweepReverseB {direction} {b_check.move_pips} pips")
            return self.trade(bias, "ManipulationSweepReverseB", scenario,
                              "overlay_b_reached_25pips", direction=direction, **checks)

        if a_check.ok:
            logger.debug(f"{context.date}: ManipulationSweepReverseA {direction} {a_check.move_pips} pips")
            return self.trade(bias, "ManipulationSweepReverseA", scenario,
                              "overlay_a_reached_15pips", direction=direction, **checks)

        return self.no_trade(bias, "overlay_move_not_enough_or_broke_sweep", **checks)

"""London session setup evaluators."""

from .base import (
    BaseSetup,
    DecisionRecord,
    EvaluationContext,
    LONDON_SCENARIOS,
    SCENARIO_DOUBLE_TAP,
    SCENARIO_DOWN_THEN_UP,
    SCENARIO_NO_TRADE,
    SCENARIO_RANGE,
    SCENARIO_UP_THEN_DOWN,
    scenario_for_direction,
)
from .bias_plays import BiasPlays
from .range_setups import FrankLondonMW
from .manipulation import ManipulationSweepReverse
from .first_sweep import LondonFirstSweep
from .selector import default_setups, select_decision

__all__ = [
    "BaseSetup",
    "DecisionRecord",
    "EvaluationContext",
    "LONDON_SCENARIOS",
    "SCENARIO_DOUBLE_TAP",
    "SCENARIO_DOWN_THEN_UP",
    "SCENARIO_NO_TRADE",
    "SCENARIO_RANGE",
    "SCENARIO_UP_THEN_DOWN",
    "scenario_for_direction",
    "BiasPlays",
    "FrankLondonMW",
    "ManipulationSweepReverse",
    "LondonFirstSweep",
    "default_setups",
    "select_decision",
]

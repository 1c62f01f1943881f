"""
Setup Selector

Runs the setups in fixed precedence and returns the first trade.

Precedence: BiasPlays -> FrankLondonMW -> ManipulationSweepReverse
-> LondonFirstSweep. Bias plays come first; the context-only overlays
only get a say on days without a bias play.
"""

import logging

from londonbias.config import SetupConfig
from londonbias.features.bias import BiasResult
from londonbias.features.sessions import Session
from .base import SCENARIO_NO_TRADE, BaseSetup, DecisionRecord, EvaluationContext
from .bias_plays import BiasPlays
from .first_sweep import LondonFirstSweep
from .manipulation import ManipulationSweepReverse
from .range_setups import FrankLondonMW

logger = logging.getLogger(__name__)


def default_setups(config: SetupConfig | None = None) -> list[BaseSetup]:
    """Setups in precedence order."""
    return [
        BiasPlays(config),
        FrankLondonMW(config),
        ManipulationSweepReverse(config),
        LondonFirstSweep(config),
    ]


def select_decision(
    bias: BiasResult,
    sessions: dict[str, Session],
    context: EvaluationContext,
    setups: list[BaseSetup] | None = None
) -> DecisionRecord:
    """
    First trade="Yes" decision in precedence order.

    Args:
        bias: Daily bias
        sessions: Session key -> Session
        context: Per-day context
        setups: Setups in precedence order (defaults to default_setups())

    Returns:
        The winning DecisionRecord, or a no_setups_found record carrying
        every setup's reason in debug
    """
    bias09 = bias.bias09 or "Ranging"
    bias10 = bias.bias10 or "Ranging"

    if context.market_closed:
        return DecisionRecord(trade="No", bias09=bias09, bias10=bias10,
                              london_scenario=SCENARIO_NO_TRADE, reason="market_closed",
                              debug={"market_closed": True})

    setups = setups if setups is not None else default_setups()
    reasons = {}

    for setup in setups:
        decision = setup.evaluate(bias, sessions, context)
        if decision.trade == "Yes":
            logger.debug(f"{context.date}: {setup.name} -> {decision.play} ({decision.reason})")
            return decision
        reasons[setup.name] = decision.reason

    logger.debug(f"{context.date}: no setups found {reasons}")
    return DecisionRecord(trade="No", bias09=bias09, bias10=bias10,
                          london_scenario=SCENARIO_NO_TRADE, reason="no_setups_found",
                          debug={"base_bias": bias.base_bias, "reasons": reasons})

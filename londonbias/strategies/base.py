"""
Base Setup Class

Abstract base class for the London session setup evaluators, the shared
decision record and the evaluation context handed to every setup.
"""

import dataclasses
import numpy as np
import pandas as pd
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field

from londonbias.config import SETUP_CONFIG, SetupConfig
from londonbias.features.bias import BiasResult
from londonbias.features.sessions import Session


SCENARIO_UP_THEN_DOWN = "slightly up first → then price down"
SCENARIO_DOWN_THEN_UP = "slightly down first → then price up"
SCENARIO_RANGE = "range / back and forth"
SCENARIO_DOUBLE_TAP = "double tap → mean reversion"
SCENARIO_NO_TRADE = "no trade (messy day)"

LONDON_SCENARIOS = (
    SCENARIO_UP_THEN_DOWN,
    SCENARIO_DOWN_THEN_UP,
    SCENARIO_RANGE,
    SCENARIO_DOUBLE_TAP,
    SCENARIO_NO_TRADE,
)

LondonScenario = Literal[
    "slightly up first → then price down",
    "slightly down first → then price up",
    "range / back and forth",
    "double tap → mean reversion",
    "no trade (messy day)",
]


def scenario_for_direction(direction: str | None) -> str:
    """UP -> dip then rally, DOWN -> pop then drop."""
    if direction == "UP":
        return SCENARIO_DOWN_THEN_UP
    if direction == "DOWN":
        return SCENARIO_UP_THEN_DOWN
    return SCENARIO_NO_TRADE


class DecisionRecord(BaseModel):
    """Outcome of one setup evaluation (or of the selector)."""
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    trade: Literal["Yes", "No"] = "No"
    play: str | None = None
    bias09: str = "Ranging"
    bias10: str = "Ranging"
    london_scenario: LondonScenario = Field(SCENARIO_NO_TRADE, alias="londonScenario")
    reason: str
    # Diagnostics only, never read back for decisions
    debug: dict[str, Any] = Field(default_factory=dict)


@dataclass
class EvaluationContext:
    """Per-day inputs shared by all setups."""
    date: date
    now: datetime
    pdh: float | None
    pdl: float | None
    rows_same_day: pd.DataFrame
    weekday: int
    market_closed: bool = False


def to_debug(value: Any) -> Any:
    """Turn result dataclasses and numpy scalars into plain JSON-able values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {k: to_debug(v) for k, v in dataclasses.asdict(value).items()}
    if isinstance(value, dict):
        return {k: to_debug(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_debug(v) for v in value]
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, np.generic):
        return value.item()
    return value


class BaseSetup(ABC):
    """
    Abstract base class for setup evaluators.

    Subclasses implement `_evaluate`; the shared guards (closed market,
    eligibility, missing sessions) run first in `evaluate`.
    """

    required_sessions: tuple[str, ...] = ()

    def __init__(self, name: str = "BaseSetup", config: SetupConfig | None = None):
        self.name = name
        self.config = config or SETUP_CONFIG

    def evaluate(
        self,
        bias: BiasResult,
        sessions: dict[str, Session],
        context: EvaluationContext
    ) -> DecisionRecord:
        """
        Evaluate the setup for one day.

        Args:
            bias: Daily bias for the day
            sessions: Session key -> Session (as of context.now)
            context: Per-day context

        Returns:
            DecisionRecord (never raises for data conditions)
        """
        if context.market_closed:
            return self.no_trade(bias, "market_closed", market_closed=True)

        ineligible = self.eligibility(bias)
        if ineligible is not None:
            return self.no_trade(bias, ineligible, base_bias=bias.base_bias)

        missing = [key for key in self.required_sessions
                   if key not in sessions or not sessions[key].ok]
        if missing:
            return self.no_trade(bias, "missing_sessions", missing=missing)

        return self._evaluate(bias, sessions, context)

    def eligibility(self, bias: BiasResult) -> str | None:
        """Reason code when the day's bias rules this setup out."""
        return None

    @abstractmethod
    def _evaluate(
        self,
        bias: BiasResult,
        sessions: dict[str, Session],
        context: EvaluationContext
    ) -> DecisionRecord:
        pass

    def no_trade(self, bias: BiasResult, reason: str, **debug) -> DecisionRecord:
        return DecisionRecord(
            trade="No",
            play=None,
            bias09=bias.bias09 or "Ranging",
            bias10=bias.bias10 or "Ranging",
            london_scenario=SCENARIO_NO_TRADE,
            reason=reason,
            debug=to_debug(debug),
        )

    def trade(
        self,
        bias: BiasResult,
        play: str,
        scenario: str,
        reason: str,
        **debug
    ) -> DecisionRecord:
        return DecisionRecord(
            trade="Yes",
            play=play,
            bias09=bias.bias09 or "Ranging",
            bias10=bias.bias10 or "Ranging",
            london_scenario=scenario,
            reason=reason,
            debug=to_debug(debug),
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"

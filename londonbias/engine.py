"""
Day Engine

Composes bias, sessions, setups and the FVG map into one evaluation of
a trading day as of an explicit `now`. Pure: the engine never fetches,
stores or sends anything.
"""

import logging
import pandas as pd
from dataclasses import dataclass
from datetime import date

from londonbias.config import SESSION_CONFIG, SETUP_CONFIG, SessionConfig, SetupConfig
from londonbias.features.bias import BiasResult, bias_for_date
from londonbias.features.levels import build_reference_levels
from londonbias.features.sessions import Session, build_sessions, display_date, rows_same_day
from londonbias.features.zones import PoiMap, map_fvg_poi
from londonbias.strategies.base import BaseSetup, DecisionRecord, EvaluationContext
from londonbias.strategies.selector import default_setups, select_decision

logger = logging.getLogger(__name__)


@dataclass
class DayEvaluation:
    """Everything computed for one day."""
    date: date
    bias: BiasResult
    sessions: dict[str, Session]
    context: EvaluationContext
    decision: DecisionRecord
    poi: PoiMap | None = None


def prior_day_levels(daily: pd.DataFrame, day) -> tuple[float | None, float | None]:
    """PDH/PDL from the last daily candle strictly before `day`."""
    if daily is None or daily.empty:
        return None, None

    day = pd.Timestamp(day).date()
    prior = daily[(pd.to_datetime(daily["timestamp"]).dt.date < day).to_numpy()]
    if prior.empty:
        return None, None

    d1 = prior.iloc[-1]
    return float(d1["high"]), float(d1["low"])


def build_context(
    m5: pd.DataFrame,
    daily: pd.DataFrame,
    now,
    config: SessionConfig | None = None
) -> EvaluationContext:
    """Per-day context for the display date of `now`."""
    config = config or SESSION_CONFIG
    day = display_date(now, config.display_tz, config.source_tz)
    pdh, pdl = prior_day_levels(daily, day)

    return EvaluationContext(
        date=day,
        now=pd.Timestamp(now),
        pdh=pdh,
        pdl=pdl,
        rows_same_day=rows_same_day(m5, day, now, config.display_tz, config.source_tz),
        weekday=day.weekday(),
        market_closed=day.weekday() in config.closed_weekdays,
    )


def evaluate_day(
    daily: pd.DataFrame,
    hourly: pd.DataFrame | None,
    m5: pd.DataFrame,
    now,
    config: SetupConfig | None = None,
    session_config: SessionConfig | None = None,
    setups: list[BaseSetup] | None = None
) -> DayEvaluation:
    """
    Evaluate the trading day containing `now`.

    Args:
        daily: 1D candles
        hourly: 1H candles (FVG map only, may be None)
        m5: 5M candles
        now: Evaluation timestamp (naive = source timezone)
        config: Setup thresholds
        session_config: Timezones and windows
        setups: Setups in precedence order

    Returns:
        DayEvaluation
    """
    config = config or SETUP_CONFIG
    session_config = session_config or SESSION_CONFIG

    context = build_context(m5, daily, now, session_config)
    bias = bias_for_date(daily, context.date)
    sessions = build_sessions(m5, context.date, now, session_config.windows,
                              session_config.display_tz, session_config.source_tz)

    decision = select_decision(bias, sessions, context, setups or default_setups(config))

    price = None
    if not context.rows_same_day.empty:
        price = float(context.rows_same_day["close"].iloc[-1])

    candles_by_tf = {tf: df for tf, df in (("1H", hourly), ("1D", daily)) if df is not None}
    asia = sessions["asia"].stats if "asia" in sessions else None
    poi = map_fvg_poi(
        candles_by_tf,
        now,
        price=price,
        levels=build_reference_levels(asia, context.pdh, context.pdl),
        policy_version=config.zone_policy,
    )

    logger.debug(
        f"{context.date}: bias={bias.base_bias} score={bias.score} "
        f"trade={decision.trade} play={decision.play} reason={decision.reason}"
    )

    return DayEvaluation(
        date=context.date,
        bias=bias,
        sessions=sessions,
        context=context,
        decision=decision,
        poi=poi,
    )

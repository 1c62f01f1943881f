"""
Status Text

Renders a day evaluation as the operator status message. Formatting
only: everything shown comes from the evaluation's structured fields.
"""

from londonbias.config import DISPLAY_TZ
from londonbias.engine import DayEvaluation
from londonbias.features.sessions import to_utc
from londonbias.features.zones import poi_report_lines
from londonbias.strategies.base import SCENARIO_DOWN_THEN_UP, SCENARIO_UP_THEN_DOWN


def _normalize_bias(value: str | None) -> str:
    return value if value in ("Bullish", "Bearish", "Ranging") else "Ranging"


def trade_direction(evaluation: DayEvaluation) -> str:
    """Direction of a GO decision: from the scenario, else from the 10-14 bias."""
    decision = evaluation.decision
    if decision.trade != "Yes":
        return "—"
    if decision.london_scenario == SCENARIO_DOWN_THEN_UP:
        return "UP"
    if decision.london_scenario == SCENARIO_UP_THEN_DOWN:
        return "DOWN"

    bias10 = _normalize_bias(decision.bias10)
    if bias10 == "Bullish":
        return "UP"
    if bias10 == "Bearish":
        return "DOWN"
    return "—"


def setup_quality(play: str | None) -> str:
    """A for the manipulation overlays, B for any other play."""
    if not play:
        return "—"
    if play.startswith("ManipulationSweepReverse"):
        return "A"
    return "B"


def build_status_text(
    evaluation: DayEvaluation,
    tz: str = DISPLAY_TZ,
    include_poi: bool = False
) -> str:
    """
    Build the status message for one evaluation.

    Args:
        evaluation: Result of evaluate_day
        tz: Display timezone for the header
        include_poi: Append the FVG map lines

    Returns:
        Multi-line status text
    """
    decision = evaluation.decision
    local_now = to_utc(evaluation.context.now).tz_convert(tz)

    asia = evaluation.sessions.get("asia")
    if asia is not None and asia.stats.ok:
        asia_range = f"{asia.stats.low:.5f} – {asia.stats.high:.5f}"
    else:
        asia_range = "N/A"

    go = decision.trade == "Yes"
    if go:
        trigger = f"CONFIRMED — {decision.reason}" if decision.reason else "CONFIRMED"
    else:
        trigger = decision.reason or "NO VALID SETUP"

    lines = [
        f"DATE: {local_now:%Y-%m-%d}   TIME: {local_now:%H:%M} ({tz.split('/')[-1]})",
        f"BIAS (10–14): {_normalize_bias(decision.bias10)}",
        f"ASIA RANGE: {asia_range}",
        "",
        "ACTIVE SETUP:",
        decision.play or "NONE",
        "",
        "TRIGGER STATUS:",
        trigger,
        "",
        "TRADE:",
        "GO" if go else "NO",
        f"Direction: {trade_direction(evaluation)}",
        f"Quality: {setup_quality(decision.play)}",
    ]

    if include_poi and evaluation.poi is not None:
        lines.append("")
        lines.append("HTF POI (FVG):")
        lines.extend(poi_report_lines(evaluation.poi, tz))

    return "\n".join(lines)

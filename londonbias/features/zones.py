"""
Fair Value Gap (FVG) Zones

Implements:
- 3-candle FVG detection (wick to wick)
- Mitigation depth tracking
- Lifecycle status under a versioned relevance policy
- Nearest-zone selection around the current price
- Multi-timeframe point-of-interest (POI) map
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Literal

from londonbias.config import DISPLAY_TZ, PIP_SIZE, SOURCE_TZ
from londonbias.features.levels import Level
from londonbias.features.sessions import to_utc


@dataclass(frozen=True)
class Zone:
    """
    A detected FVG.

    Query-time annotations (mitigation_pct, status, relation,
    distance_pips) are only ever set on copies.
    """
    timeframe: str
    direction: Literal["BULLISH", "BEARISH"]
    lower: float
    upper: float
    created_at: datetime
    created_index: int
    mitigation_pct: float | None = None
    status: str | None = None
    relation: str | None = None
    distance_pips: float | None = None

    @property
    def height(self) -> float:
        return self.upper - self.lower


@dataclass(frozen=True)
class ZonePolicy:
    """Relevance rule for one timeframe."""
    version: str
    full_mitigation_pct: float | None = None
    freshness_window: timedelta | None = None


ZONE_POLICIES: dict[str, dict[str, ZonePolicy]] = {
    # Retirement only
    "v1": {
        "*": ZonePolicy("v1"),
    },
    # Short-lived hourly zones, no mitigation cut-off
    "v2": {
        "1H": ZonePolicy("v2", freshness_window=timedelta(hours=96)),
        "*": ZonePolicy("v2"),
    },
    "v3": {
        "5M": ZonePolicy("v3", full_mitigation_pct=0.90, freshness_window=timedelta(hours=12)),
        "1H": ZonePolicy("v3", full_mitigation_pct=0.96, freshness_window=timedelta(hours=96)),
        "1D": ZonePolicy("v3", full_mitigation_pct=0.98),
        "*": ZonePolicy("v3", full_mitigation_pct=0.98),
    },
}

DEFAULT_POLICY_VERSION = "v3"

BAR_DURATIONS = {
    "5M": timedelta(minutes=5),
    "1H": timedelta(hours=1),
    "1D": timedelta(days=1),
}


def get_zone_policy(version: str, timeframe: str) -> ZonePolicy:
    """
    Look up the policy of a version for a timeframe.

    Raises:
        KeyError: Unknown policy version
    """
    if version not in ZONE_POLICIES:
        raise KeyError(f"Unknown zone policy version: {version}")
    policies = ZONE_POLICIES[version]
    return policies.get(timeframe, policies["*"])


def detect_fvgs(candles: pd.DataFrame, timeframe: str) -> list[Zone]:
    """
    Detect FVGs over every 3-candle window.

    For c1 = i-2, c2 = i-1, c3 = i:
    - BULLISH when c1.high < c3.low, bounds [c1.high, c3.low]
    - BEARISH when c1.low > c3.high, bounds [c3.high, c1.low]

    The zone is anchored on c2 (created_at / created_index).

    Args:
        candles: OHLC frame, oldest -> newest
        timeframe: Timeframe label stored on the zones

    Returns:
        Zones in creation order
    """
    if candles is None or len(candles) < 3:
        return []

    highs = candles["high"].to_numpy(dtype=float)
    lows = candles["low"].to_numpy(dtype=float)
    timestamps = candles["timestamp"].to_numpy()

    zones = []
    for i in range(2, len(candles)):
        h1, l1 = highs[i - 2], lows[i - 2]
        h3, l3 = highs[i], lows[i]
        if not np.isfinite([h1, l1, h3, l3]).all():
            continue

        if h1 < l3:
            direction, lower, upper = "BULLISH", h1, l3
        elif l1 > h3:
            direction, lower, upper = "BEARISH", h3, l1
        else:
            continue

        # Invalid bounds never leave the detector
        if upper <= lower:
            continue

        zones.append(Zone(
            timeframe=timeframe,
            direction=direction,
            lower=float(lower),
            upper=float(upper),
            created_at=pd.Timestamp(timestamps[i - 1]),
            created_index=i - 1,
        ))

    return zones


def _after_creation(zone: Zone, candles: pd.DataFrame) -> pd.DataFrame:
    return candles.iloc[zone.created_index + 1:]


def mitigation_pct(zone: Zone, candles: pd.DataFrame) -> float:
    """
    Deepest retracement into the zone after creation, as a fraction.

    BULLISH: upper - max(low, lower) over lows below upper.
    BEARISH: min(high, upper) - lower over highs above lower.
    A zero-height zone counts as fully mitigated.
    """
    if zone.height <= 0:
        return 1.0

    later = _after_creation(zone, candles)
    if later.empty:
        return 0.0

    if zone.direction == "BULLISH":
        lows = later["low"].to_numpy(dtype=float)
        lows = lows[lows < zone.upper]
        depth = (zone.upper - np.maximum(lows, zone.lower)).max() if len(lows) else 0.0
    else:
        highs = later["high"].to_numpy(dtype=float)
        highs = highs[highs > zone.lower]
        depth = (np.minimum(highs, zone.upper) - zone.lower).max() if len(highs) else 0.0

    return float(min(1.0, max(0.0, depth / zone.height)))


def is_retired(zone: Zone, candles: pd.DataFrame) -> bool:
    """
    True once a later candle closes through the zone's far boundary.

    BULLISH: close <= lower. BEARISH: close >= upper. A wick alone
    never retires a zone.
    """
    later = _after_creation(zone, candles)
    if later.empty:
        return False

    if zone.direction == "BULLISH":
        return bool((later["close"].to_numpy(dtype=float) <= zone.lower).any())

    return bool((later["close"].to_numpy(dtype=float) >= zone.upper).any())


def zone_status(
    zone: Zone,
    candles: pd.DataFrame,
    now,
    policy: ZonePolicy
) -> tuple[str, float]:
    """
    Lifecycle status of a zone as of `now`.

    Returns:
        (status, mitigation_pct) where status is
        RETIRED | MITIGATED | EXPIRED | ACTIVE
    """
    mit = mitigation_pct(zone, candles)

    if is_retired(zone, candles):
        return "RETIRED", mit
    if policy.full_mitigation_pct is not None and mit >= policy.full_mitigation_pct:
        return "MITIGATED", mit
    if policy.freshness_window is not None:
        age = to_utc(now) - to_utc(zone.created_at)
        if age > policy.freshness_window:
            return "EXPIRED", mit

    return "ACTIVE", mit


def filter_zones(
    zones: list[Zone],
    candles: pd.DataFrame,
    now,
    policy: ZonePolicy
) -> list[Zone]:
    """Keep ACTIVE zones, annotated with mitigation_pct and status."""
    active = []
    for zone in zones:
        status, mit = zone_status(zone, candles, now, policy)
        if status == "ACTIVE":
            active.append(replace(zone, mitigation_pct=mit, status=status))
    return active


def classify_relation(price: float, zone: Zone) -> Literal["ABOVE", "BELOW", "CONTAINS"]:
    """Where the zone sits relative to price."""
    if price < zone.lower:
        return "ABOVE"
    if price > zone.upper:
        return "BELOW"
    return "CONTAINS"


def distance_pips(price: float, zone: Zone) -> float:
    relation = classify_relation(price, zone)
    if relation == "ABOVE":
        return round((zone.lower - price) / PIP_SIZE, 6)
    if relation == "BELOW":
        return round((price - zone.upper) / PIP_SIZE, 6)
    return 0.0


@dataclass
class NearestZones:
    above: Zone | None = None
    below: Zone | None = None
    contains: Zone | None = None


def nearest_zones(zones: list[Zone], price: float) -> NearestZones:
    """
    Pick the nearest zone above and below price, and the zone containing it.

    Above/below are nearest by pip distance; among containing zones the
    narrowest wins. Ties keep the first zone encountered.
    """
    best: dict[str, tuple[float, Zone]] = {}

    for zone in zones:
        relation = classify_relation(price, zone)
        dist = distance_pips(price, zone)
        key = zone.height if relation == "CONTAINS" else dist

        if relation not in best or key < best[relation][0]:
            best[relation] = (key, replace(zone, relation=relation, distance_pips=dist))

    return NearestZones(
        above=best.get("ABOVE", (None, None))[1],
        below=best.get("BELOW", (None, None))[1],
        contains=best.get("CONTAINS", (None, None))[1],
    )


def zone_aligns(level: float, zone: Zone, tolerance: float = 0.0) -> bool:
    """True when a level lies within the zone, widened by `tolerance` (price units)."""
    return zone.lower - tolerance <= level <= zone.upper + tolerance


@dataclass
class TimeframePoi:
    """Nearest active zones of one timeframe and the levels they align with."""
    timeframe: str
    nearest: NearestZones
    active_count: int = 0
    alignments: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class PoiMap:
    ok: bool
    price: float | None = None
    now: datetime | None = None
    reason: str | None = None
    timeframes: dict[str, TimeframePoi] = field(default_factory=dict)


def _until(candles: pd.DataFrame, now, bar: timedelta = timedelta(0)) -> pd.DataFrame:
    """Candles closed by `now`: open timestamp + `bar` at or before `now`."""
    if candles is None or candles.empty:
        return pd.DataFrame(columns=["timestamp", "open", "high", "low", "close"])

    ts = pd.to_datetime(candles["timestamp"])
    if ts.dt.tz is None:
        ts = ts.dt.tz_localize(SOURCE_TZ)
    mask = ts.dt.tz_convert("UTC") + bar <= to_utc(now)
    return candles[mask.to_numpy()].reset_index(drop=True)


def map_fvg_poi(
    candles_by_tf: dict[str, pd.DataFrame],
    now,
    price: float | None = None,
    levels: list[Level] | None = None,
    policy_version: str = DEFAULT_POLICY_VERSION,
    tolerance: float = 0.0
) -> PoiMap:
    """
    Map higher-timeframe FVGs around the current price.

    Context only: nothing here feeds the setup decision.

    Args:
        candles_by_tf: Timeframe label -> OHLC frame
        now: Evaluation timestamp
        price: Current price (defaults to the latest close of the last frame)
        levels: Reference levels checked for alignment with the nearest zones
        policy_version: Zone policy version
        tolerance: Alignment tolerance in price units

    Returns:
        PoiMap
    """
    # A bar still forming at `now` is not seen
    visible = {
        tf: _until(df, now, BAR_DURATIONS.get(tf, timedelta(0)))
        for tf, df in candles_by_tf.items()
    }

    if price is None:
        for df in reversed(list(visible.values())):
            if not df.empty:
                price = float(df["close"].iloc[-1])
                break
    if price is None or not np.isfinite(price):
        return PoiMap(ok=False, now=now, reason="missing_price")

    levels = levels or []
    result = PoiMap(ok=True, price=price, now=now)

    for tf, df in visible.items():
        policy = get_zone_policy(policy_version, tf)
        active = filter_zones(detect_fvgs(df, tf), df, now, policy)
        nearest = nearest_zones(active, price)

        alignments = {}
        for relation in ("above", "below", "contains"):
            zone = getattr(nearest, relation)
            if zone is not None:
                alignments[relation] = [
                    lvl.name for lvl in levels if zone_aligns(lvl.price, zone, tolerance)
                ]

        result.timeframes[tf] = TimeframePoi(
            timeframe=tf, nearest=nearest, active_count=len(active), alignments=alignments
        )

    return result


def _zone_line(label: str, zone: Zone | None, tz: str) -> str:
    if zone is None:
        return f"{label}: N/A"
    created = to_utc(zone.created_at).tz_convert(tz).strftime("%Y-%m-%d %H:%M")
    return (
        f"{label}: {zone.timeframe} {zone.direction} [{zone.lower:.5f}-{zone.upper:.5f}] "
        f"dist {round(zone.distance_pips)} pips mit {round((zone.mitigation_pct or 0) * 100)}% "
        f"(from {created})"
    )


def poi_report_lines(poi: PoiMap, tz: str = DISPLAY_TZ) -> list[str]:
    """Render a POI map as short text lines."""
    if not poi.ok:
        return [f"FVG map unavailable ({poi.reason})"]

    lines = [f"Now price: {poi.price:.5f}"]
    for tf, entry in poi.timeframes.items():
        nearest = entry.nearest
        lines.append(_zone_line(f"Nearest {tf} FVG above/at price", nearest.contains or nearest.above, tz))
        lines.append(_zone_line(f"Nearest {tf} FVG below price", nearest.below, tz))
    return lines

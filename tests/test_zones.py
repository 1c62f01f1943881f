"""Tests for FVG zones."""

import pytest
import pandas as pd
import numpy as np
from datetime import timedelta

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from londonbias.features.levels import Level
from londonbias.features.zones import (
    Zone,
    ZonePolicy,
    classify_relation,
    detect_fvgs,
    filter_zones,
    get_zone_policy,
    is_retired,
    map_fvg_poi,
    mitigation_pct,
    nearest_zones,
    poi_report_lines,
    zone_aligns,
    zone_status,
)
from tests.factories import simple_rows

BULLISH_GAP = [
    (1.1000, 1.1010, 1.0995, 1.1008),
    (1.1008, 1.1030, 1.1005, 1.1028),
    (1.1028, 1.1040, 1.1015, 1.1035),
]

BEARISH_GAP = [
    (1.1040, 1.1045, 1.1030, 1.1032),
    (1.1032, 1.1034, 1.1010, 1.1012),
    (1.1012, 1.1025, 1.1005, 1.1008),
]


def random_candles(n: int, seed: int = 7) -> pd.DataFrame:
    """Random walk candles with wide wicks."""
    rng = np.random.default_rng(seed)
    closes = 1.1000 + np.cumsum(rng.normal(0, 0.0008, n))
    opens = np.concatenate([[1.1000], closes[:-1]])
    highs = np.maximum(opens, closes) + rng.uniform(0, 0.0006, n)
    lows = np.minimum(opens, closes) - rng.uniform(0, 0.0006, n)
    return simple_rows(list(zip(opens, highs, lows, closes)))


def make_zone(direction="BULLISH", lower=1.1000, upper=1.1010, index=0) -> Zone:
    return Zone("1H", direction, lower, upper, pd.Timestamp("2024-03-12 08:00"), index)


class TestDetection:
    """Test FVG detection."""

    def test_bullish(self):
        """Test bullish gap bounds and anchor."""
        df = simple_rows(BULLISH_GAP)
        zones = detect_fvgs(df, "1H")

        assert len(zones) == 1
        z = zones[0]
        assert z.direction == "BULLISH"
        assert z.lower == 1.1010
        assert z.upper == 1.1015
        assert z.created_index == 1
        assert z.created_at == df["timestamp"].iloc[1]

    def test_bearish(self):
        """Test bearish gap bounds."""
        zones = detect_fvgs(simple_rows(BEARISH_GAP), "1H")

        assert len(zones) == 1
        assert zones[0].direction == "BEARISH"
        assert zones[0].lower == 1.1025
        assert zones[0].upper == 1.1030

    def test_overlapping_wicks(self):
        """Test no zone when c1 and c3 wicks overlap."""
        rows = [
            (1.1000, 1.1010, 1.0995, 1.1008),
            (1.1008, 1.1030, 1.1005, 1.1028),
            (1.1028, 1.1040, 1.1010, 1.1035),
        ]
        assert detect_fvgs(simple_rows(rows), "1H") == []

    def test_too_few_candles(self):
        """Test fewer than three candles yields nothing."""
        assert detect_fvgs(simple_rows(BULLISH_GAP[:2]), "1H") == []

    def test_soundness_random(self):
        """Test zone exists iff the wick gap condition holds, with exact bounds."""
        df = random_candles(300)
        zones = {z.created_index: z for z in detect_fvgs(df, "5M")}

        for i in range(2, len(df)):
            c1, c3 = df.iloc[i - 2], df.iloc[i]
            zone = zones.get(i - 1)
            if c1["high"] < c3["low"]:
                assert zone is not None and zone.direction == "BULLISH"
                assert (zone.lower, zone.upper) == (c1["high"], c3["low"])
            elif c1["low"] > c3["high"]:
                assert zone is not None and zone.direction == "BEARISH"
                assert (zone.lower, zone.upper) == (c3["high"], c1["low"])
            else:
                assert zone is None

        assert all(z.upper > z.lower for z in zones.values())


class TestMitigation:
    """Test mitigation depth."""

    def test_untouched(self):
        """Test zero mitigation without later intrusion."""
        df = simple_rows(BULLISH_GAP + [(1.1035, 1.1045, 1.1030, 1.1040)])
        zone = detect_fvgs(df, "1H")[0]
        assert mitigation_pct(zone, df) == 0.0

    def test_partial_then_deeper(self):
        """Test deepest intrusion is kept."""
        df = simple_rows(BULLISH_GAP + [
            (1.1035, 1.1036, 1.10125, 1.1030),
            (1.1030, 1.1035, 1.1020, 1.1030),
        ])
        zone = detect_fvgs(df, "1H")[0]
        assert mitigation_pct(zone, df) == pytest.approx(0.5)

        deeper = simple_rows(BULLISH_GAP + [
            (1.1035, 1.1036, 1.10125, 1.1030),
            (1.1030, 1.1035, 1.1011, 1.1030),
        ])
        assert mitigation_pct(zone, deeper) == pytest.approx(0.8)

    def test_bearish_depth(self):
        """Test bearish intrusion is measured from the lower bound."""
        df = simple_rows(BEARISH_GAP + [(1.1008, 1.10275, 1.1000, 1.1010)])
        zone = detect_fvgs(df, "1H")[0]
        assert mitigation_pct(zone, df) == pytest.approx(0.5)

    def test_clamped(self):
        """Test a wick through the whole zone caps at 1.0."""
        df = simple_rows(BULLISH_GAP + [(1.1035, 1.1036, 1.0990, 1.1030)])
        zone = detect_fvgs(df, "1H")[0]
        assert mitigation_pct(zone, df) == 1.0

    def test_zero_height(self):
        """Test a degenerate zone counts as fully mitigated."""
        zone = make_zone(lower=1.1000, upper=1.1000)
        assert mitigation_pct(zone, simple_rows(BULLISH_GAP)) == 1.0

    def test_monotone(self):
        """Test appending candles never lowers mitigation."""
        df = random_candles(200, seed=11)
        zones = detect_fvgs(df, "5M")[:10]

        for zone in zones:
            previous = 0.0
            for end in range(zone.created_index + 1, len(df) + 1):
                current = mitigation_pct(zone, df.iloc[:end])
                assert current >= previous
                previous = current


class TestLifecycle:
    """Test retirement and policy status."""

    def test_wick_does_not_retire(self):
        """Test a wick through the far boundary never retires the zone."""
        df = simple_rows(BULLISH_GAP + [(1.1035, 1.1036, 1.1005, 1.1030)])
        zone = detect_fvgs(df, "1H")[0]
        assert not is_retired(zone, df)
        assert zone_status(zone, df, df["timestamp"].iloc[-1], get_zone_policy("v2", "1H"))[0] == "ACTIVE"

    def test_close_retires(self):
        """Test a close at the far boundary retires the zone."""
        df = simple_rows(BULLISH_GAP + [(1.1035, 1.1036, 1.1005, 1.1010)])
        zone = detect_fvgs(df, "1H")[0]
        assert is_retired(zone, df)

    def test_retirement_one_way(self):
        """Test later recovery never un-retires a zone."""
        rows = BULLISH_GAP + [(1.1035, 1.1036, 1.1005, 1.1008)]
        zone = detect_fvgs(simple_rows(rows), "1H")[0]

        for extra in range(1, 20):
            recovery = [(1.1040, 1.1060, 1.1038, 1.1055)] * extra
            assert is_retired(zone, simple_rows(rows + recovery))

    def test_status_order(self):
        """Test RETIRED beats MITIGATED beats EXPIRED."""
        now = pd.Timestamp("2024-03-12 09:00")
        df = simple_rows(BULLISH_GAP + [(1.1035, 1.1036, 1.1005, 1.1008)])
        zone = detect_fvgs(df, "1H")[0]
        policy = get_zone_policy("v3", "1H")

        status, mit = zone_status(zone, df, now, policy)
        assert status == "RETIRED"
        assert mit == 1.0

        df = simple_rows(BULLISH_GAP + [(1.1035, 1.1036, 1.1010, 1.1030)])
        assert zone_status(zone, df, now, policy)[0] == "MITIGATED"

    def test_freshness(self):
        """Test 1H zones expire after 96 hours, daily ones never."""
        df = simple_rows(BULLISH_GAP)
        zone = detect_fvgs(df, "1H")[0]
        later = zone.created_at + timedelta(hours=97)

        assert zone_status(zone, df, later, get_zone_policy("v3", "1H"))[0] == "EXPIRED"
        assert zone_status(zone, df, later, get_zone_policy("v3", "1D"))[0] == "ACTIVE"
        assert zone_status(zone, df, later, get_zone_policy("v1", "1H"))[0] == "ACTIVE"

    def test_filter_annotates(self):
        """Test filter keeps ACTIVE zones with annotations on copies."""
        df = simple_rows(BULLISH_GAP + [(1.1035, 1.1036, 1.10125, 1.1030)])
        zones = detect_fvgs(df, "1H")
        kept = filter_zones(zones, df, df["timestamp"].iloc[-1], ZonePolicy("test"))

        assert len(kept) == 1
        assert kept[0].status == "ACTIVE"
        assert kept[0].mitigation_pct == pytest.approx(0.5)
        assert zones[0].mitigation_pct is None

    def test_unknown_policy(self):
        """Test unknown policy versions raise KeyError."""
        with pytest.raises(KeyError):
            get_zone_policy("v9", "1H")

    def test_policy_fallback_timeframe(self):
        """Test unlisted timeframes use the version default."""
        assert get_zone_policy("v3", "4H").full_mitigation_pct == 0.98
        assert get_zone_policy("v2", "4H").freshness_window is None


class TestNearest:
    """Test nearest-zone selection."""

    def test_above_and_below(self):
        """Test nearest above and below at 5 pips each."""
        bull = make_zone("BULLISH", 1.1000, 1.1010)
        bear = make_zone("BEARISH", 1.0980, 1.0990)
        nearest = nearest_zones([bull, bear], 1.0995)

        assert nearest.above.lower == 1.1000
        assert nearest.above.distance_pips == pytest.approx(5.0)
        assert nearest.below.upper == 1.0990
        assert nearest.below.distance_pips == pytest.approx(5.0)
        assert nearest.contains is None

    def test_contains(self):
        """Test the containing zone at 1.1005."""
        bull = make_zone("BULLISH", 1.1000, 1.1010)
        bear = make_zone("BEARISH", 1.0980, 1.0990)
        nearest = nearest_zones([bull, bear], 1.1005)

        assert nearest.contains.lower == 1.1000
        assert nearest.contains.relation == "CONTAINS"
        assert nearest.contains.distance_pips == 0.0
        assert nearest.below.upper == 1.0990

    def test_contains_prefers_narrowest(self):
        """Test the tightest containing zone wins."""
        wide = make_zone("BULLISH", 1.0990, 1.1020)
        narrow = make_zone("BULLISH", 1.1000, 1.1008, index=5)
        assert nearest_zones([wide, narrow], 1.1005).contains.created_index == 5

    def test_ties_keep_first(self):
        """Test equal distances keep the first zone."""
        first = make_zone("BULLISH", 1.1010, 1.1020, index=1)
        second = make_zone("BEARISH", 1.1010, 1.1030, index=2)
        assert nearest_zones([first, second], 1.1000).above.created_index == 1

    def test_relation(self):
        """Test boundaries count as CONTAINS."""
        zone = make_zone("BULLISH", 1.1000, 1.1010)
        assert classify_relation(1.1000, zone) == "CONTAINS"
        assert classify_relation(1.1010, zone) == "CONTAINS"
        assert classify_relation(1.0999, zone) == "ABOVE"
        assert classify_relation(1.1011, zone) == "BELOW"

    def test_alignment(self):
        """Test level alignment with and without tolerance."""
        zone = make_zone("BULLISH", 1.1000, 1.1010)
        assert zone_aligns(1.1005, zone)
        assert not zone_aligns(1.1012, zone)
        assert zone_aligns(1.1012, zone, tolerance=0.0003)


class TestPoiMap:
    """Test the multi-timeframe map."""

    def test_map(self):
        """Test nearest zones and level alignment per timeframe."""
        hourly = simple_rows(BULLISH_GAP + [(1.1035, 1.1045, 1.1030, 1.1040)], start="2024-03-12 05:00")
        now = hourly["timestamp"].iloc[-1] + pd.Timedelta(hours=1)
        levels = [Level("Asia High", 1.1012, "UP"), Level("PDL", 1.0950, "DOWN")]

        poi = map_fvg_poi({"1H": hourly}, now, price=1.1040, levels=levels)

        assert poi.ok
        entry = poi.timeframes["1H"]
        assert entry.active_count == 1
        assert entry.nearest.below.lower == 1.1010
        assert entry.alignments["below"] == ["Asia High"]

        lines = poi_report_lines(poi)
        assert lines[0] == "Now price: 1.10400"
        assert any("1H BULLISH" in line for line in lines)

    def test_no_look_ahead(self):
        """Test candles after now are not used."""
        hourly = simple_rows(BULLISH_GAP + [(1.1035, 1.1036, 1.1005, 1.1008)], start="2024-03-12 05:00")
        now = hourly["timestamp"].iloc[2] + pd.Timedelta(minutes=5)

        poi = map_fvg_poi({"5M": hourly}, now)
        assert poi.price == 1.1035
        assert poi.timeframes["5M"].active_count == 1

    def test_forming_bar_ignored(self):
        """Test today's unclosed daily bar never changes the map."""
        closed = [
            (pd.Timestamp("2024-03-08"), 1.0950, 1.0980, 1.0940, 1.0975),
            (pd.Timestamp("2024-03-11"), 1.0975, 1.1040, 1.0970, 1.1035),
        ]
        cols = ["timestamp", "open", "high", "low", "close"]
        gap = pd.DataFrame(closed + [(pd.Timestamp("2024-03-12"), 1.1035, 1.1050, 1.1000, 1.1030)], columns=cols)
        no_gap = pd.DataFrame(closed + [(pd.Timestamp("2024-03-12"), 1.1035, 1.1050, 1.0960, 1.1030)], columns=cols)
        now = pd.Timestamp("2024-03-12 08:55")

        with_gap = map_fvg_poi({"1D": gap}, now, price=1.1030).timeframes["1D"]
        without_gap = map_fvg_poi({"1D": no_gap}, now, price=1.1030).timeframes["1D"]

        assert with_gap.active_count == without_gap.active_count == 0
        assert with_gap.nearest == without_gap.nearest

        # Once the day has closed the gap is visible
        next_day = pd.Timestamp("2024-03-13 00:00")
        assert map_fvg_poi({"1D": gap}, next_day, price=1.1030).timeframes["1D"].active_count == 1
        assert map_fvg_poi({"1D": no_gap}, next_day, price=1.1030).timeframes["1D"].active_count == 0

    def test_missing_price(self):
        """Test an empty map reports missing_price."""
        poi = map_fvg_poi({"1H": pd.DataFrame()}, pd.Timestamp("2024-03-12"))
        assert not poi.ok
        assert poi.reason == "missing_price"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

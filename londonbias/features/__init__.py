"""
Session Feature Package

Building blocks for the London setup classifier:
1. Session windows and statistics (Oslo time)
2. Fair Value Gap zones and the multi-timeframe POI map
3. Level interactions (sweep, test-fail, manipulation, target reach)
4. Daily bias from D-1/D-2
"""

from .sessions import (
    DisplayTime,
    Session,
    SessionStats,
    build_sessions,
    compute_session_stats,
    rows_same_day,
    slice_window,
    to_display_time,
    with_display_time,
)

from .zones import (
    Zone,
    ZonePolicy,
    ZONE_POLICIES,
    NearestZones,
    PoiMap,
    classify_relation,
    detect_fvgs,
    filter_zones,
    get_zone_policy,
    is_retired,
    map_fvg_poi,
    mitigation_pct,
    nearest_zones,
    zone_aligns,
    zone_status,
)

from .levels import (
    Level,
    build_reference_levels,
    classify_wick_manipulation,
    first_break,
    has_acceptance_beyond,
    price_to_pips,
    reaches_target_without_invalidation,
    sweep_of_level,
    test_then_fail,
)

from .bias import (
    BiasResult,
    bias_for_date,
    compute_daily_bias,
)

__all__ = [
    # Sessions
    'DisplayTime',
    'Session',
    'SessionStats',
    'build_sessions',
    'compute_session_stats',
    'rows_same_day',
    'slice_window',
    'to_display_time',
    'with_display_time',
    # Zones
    'Zone',
    'ZonePolicy',
    'ZONE_POLICIES',
    'NearestZones',
    'PoiMap',
    'classify_relation',
    'detect_fvgs',
    'filter_zones',
    'get_zone_policy',
    'is_retired',
    'map_fvg_poi',
    'mitigation_pct',
    'nearest_zones',
    'zone_aligns',
    'zone_status',
    # Levels
    'Level',
    'build_reference_levels',
    'classify_wick_manipulation',
    'first_break',
    'has_acceptance_beyond',
    'price_to_pips',
    'reaches_target_without_invalidation',
    'sweep_of_level',
    'test_then_fail',
    # Bias
    'BiasResult',
    'bias_for_date',
    'compute_daily_bias',
]

"""
London Setup Classifier Configuration

All settings for the EUR/USD session classifier: timezones, session
windows, setup thresholds and collaborator credentials.
"""

from dataclasses import dataclass, field
from datetime import time
import os
from dotenv import load_dotenv

load_dotenv()


PIP_SIZE = 0.0001

# Candles arrive as naive UTC wall-clock; every window is defined in Oslo time
SOURCE_TZ = "UTC"
DISPLAY_TZ = "Europe/Oslo"


@dataclass(frozen=True)
class SessionWindow:
    """A time-of-day window in the display timezone."""

    name: str
    start: time
    end: time
    end_inclusive: bool = True


ASIA = SessionWindow("Asia", time(2, 0), time(6, 59))
PRE_LONDON_BUFFER = SessionWindow("Pre-London buffer", time(7, 0), time(8, 59))
FRANKFURT = SessionWindow("Frankfurt", time(8, 0), time(8, 59))
LONDON_OPEN = SessionWindow("London open", time(9, 0), time(9, 30))
LONDON_SETUP = SessionWindow("London setup", time(9, 0), time(9, 59))
PAYOFF = SessionWindow("London main move", time(10, 0), time(13, 59))

SESSION_WINDOWS = {
    "asia": ASIA,
    "buffer": PRE_LONDON_BUFFER,
    "frankfurt": FRANKFURT,
    "london_open": LONDON_OPEN,
    "london_setup": LONDON_SETUP,
    "payoff": PAYOFF,
}


@dataclass
class SessionConfig:
    """Timezone handling and session layout."""

    source_tz: str = SOURCE_TZ
    display_tz: str = DISPLAY_TZ
    windows: dict = field(default_factory=lambda: dict(SESSION_WINDOWS))

    # Bias-play reclaim checks and PDH/PDL hold checks stop here
    reclaim_cutoff: time = time(10, 0)

    # Saturday/Sunday in display time
    closed_weekdays: tuple = (5, 6)


@dataclass
class SetupConfig:
    """Thresholds for the setup evaluators (pips unless noted)."""

    # Directional fake reversal, variant 2
    fake_min_push_pips: float = 6.0
    fake_min_range_pips: float = 8.0

    # Wick-dominance manipulation
    manipulation_min_wick_pips: float = 4.0
    manipulation_dominance: float = 1.7
    manipulation_min_range_pips: float = 8.0
    manipulation_min_rows: int = 3

    # ManipulationSweepReverse quality tiers
    overlay_a_target_pips: float = 15.0
    overlay_b_target_pips: float = 25.0

    # London first sweep qualifier
    first_sweep_min_asia_range_pips: float = 15.0
    first_sweep_max_depth_pips: float = 10.0

    # FVG relevance policy version (see features.zones.ZONE_POLICIES)
    zone_policy: str = "v3"


@dataclass
class StoreConfig:
    """Rolling candle history per timeframe."""

    data_dir: str = os.getenv("LONDONBIAS_DATA_DIR", "data")
    keep: dict = field(default_factory=lambda: {"1D": 120, "1H": 600, "5M": 2500})
    fetch: dict = field(default_factory=lambda: {"1D": 120, "1H": 600, "5M": 2500})


@dataclass
class APIConfig:
    """Candle provider and notification credentials."""

    symbol: str = os.getenv("LONDONBIAS_SYMBOL", "EUR/USD")
    twelvedata_api_key: str = os.getenv("TWELVEDATA_API_KEY", "")
    telegram_token: str = os.getenv("TELEGRAM_TOKEN", "")
    telegram_chat_id: str = os.getenv("TELEGRAM_CHAT_ID", "")

    # Endpoints
    twelvedata_url: str = "https://api.twelvedata.com/time_series"
    telegram_url: str = "https://api.telegram.org"

    # TwelveData interval names per timeframe key
    intervals: dict = field(default_factory=lambda: {"1D": "1day", "1H": "1h", "5M": "5min"})


# Default instances
SESSION_CONFIG = SessionConfig()
SETUP_CONFIG = SetupConfig()
STORE_CONFIG = StoreConfig()
API_CONFIG = APIConfig()

"""Candle storage and processing modules."""

from .store import CandleStore
from .processor import (
    merge_candles,
    pick_best_shift_hours,
    prepare_candles,
    shift_timestamps,
    validate_candles,
)

__all__ = [
    "CandleStore",
    "merge_candles",
    "pick_best_shift_hours",
    "prepare_candles",
    "shift_timestamps",
    "validate_candles",
]

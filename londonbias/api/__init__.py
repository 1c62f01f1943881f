"""TwelveData candle source, Telegram notifier and wire models."""

from .client import CandleSourceError, TwelveDataClient
from .notifier import TelegramNotifier
from .models import Candle, TelegramMessage, TimeSeries

__all__ = [
    "CandleSourceError",
    "TwelveDataClient",
    "TelegramNotifier",
    "Candle",
    "TelegramMessage",
    "TimeSeries",
]

"""
API Data Models

Pydantic models for the TwelveData time series and Telegram payloads.
"""

from datetime import datetime
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Candle(BaseModel):
    """One OHLC value from a TwelveData time series."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    timestamp: datetime = Field(alias="datetime")
    open: float
    high: float
    low: float
    close: float

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value):
        # Daily values are date-only ("2024-01-05")
        return pd.Timestamp(value).to_pydatetime()


class TimeSeriesMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str = ""
    interval: str = ""
    exchange_timezone: str | None = None


class TimeSeries(BaseModel):
    """TwelveData /time_series response (values newest -> oldest)."""
    model_config = ConfigDict(extra="ignore")

    meta: TimeSeriesMeta | None = None
    values: list[Candle] = Field(default_factory=list)
    status: str = "ok"


class TelegramMessage(BaseModel):
    """sendMessage request body (plain text unless parse_mode is set)."""
    chat_id: str
    text: str
    parse_mode: str | None = None
    disable_web_page_preview: bool = True

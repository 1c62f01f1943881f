"""
TwelveData API Client

Async REST client for the TwelveData time series endpoint.
Returns normalised candle frames (oldest -> newest).
"""

import logging
import httpx
import pandas as pd

from londonbias.config import API_CONFIG
from londonbias.data.processor import REQUIRED_COLUMNS, prepare_candles
from .models import TimeSeries

logger = logging.getLogger(__name__)


class CandleSourceError(RuntimeError):
    """The provider answered without candle values."""


class TwelveDataClient:
    """
    Async client for TwelveData candles.

    Usage:
        async with TwelveDataClient(api_key) as client:
            m5 = await client.fetch_candles("5min", 2500)
    """

    def __init__(
        self,
        api_key: str | None = None,
        symbol: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        """
        Initialize API client.

        Args:
            api_key: TwelveData API key
            symbol: Instrument, e.g. "EUR/USD"
            base_url: time_series endpoint
            transport: Optional httpx transport (tests)
        """
        self.api_key = api_key if api_key is not None else API_CONFIG.twelvedata_api_key
        self.symbol = symbol or API_CONFIG.symbol
        self.base_url = base_url or API_CONFIG.twelvedata_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()

    async def connect(self):
        self._client = httpx.AsyncClient(timeout=30.0, transport=self._transport)

    async def disconnect(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_candles(self, interval: str, outputsize: int) -> pd.DataFrame:
        """
        Fetch a candle series.

        Args:
            interval: TwelveData interval ("5min", "1h", "1day")
            outputsize: Number of candles

        Returns:
            DataFrame with timestamp/open/high/low/close, oldest -> newest

        Raises:
            httpx.HTTPStatusError: Non-2xx response
            CandleSourceError: Payload without values
        """
        if not self._client:
            raise RuntimeError("Client not connected. Call connect() first.")

        response = await self._client.get(
            self.base_url,
            params={
                "symbol": self.symbol,
                "interval": interval,
                "outputsize": outputsize,
                "apikey": self.api_key,
            },
            headers={"Cache-Control": "no-cache"},
        )
        response.raise_for_status()

        data = response.json()
        if not data.get("values"):
            raise CandleSourceError(f"TwelveData response: {data}")

        series = TimeSeries.model_validate(data)
        # Provider sends newest first
        rows = [c.model_dump() for c in reversed(series.values)]
        df = prepare_candles(pd.DataFrame(rows, columns=REQUIRED_COLUMNS))

        logger.info(f"Fetched {len(df)} {interval} candles for {self.symbol}")
        return df

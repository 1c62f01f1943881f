"""Tests for the TwelveData client, Telegram notifier and bot cycle."""

import asyncio
import json
import pytest
import httpx
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from londonbias.api import CandleSourceError, TelegramNotifier, TwelveDataClient
from londonbias.bot import SetupBot
from londonbias.config import StoreConfig
from tests.factories import MANIPULATION_DAY, manipulation_day_m5, ranging_daily


def value(ts, price):
    return {"datetime": ts, "open": str(price), "high": str(price), "low": str(price), "close": str(price)}


SERIES = {
    "5min": [value("2024-03-12 10:00:00", 1.1060), value("2024-03-12 09:55:00", 1.1055)],
    "1h": [value("2024-03-12 10:00:00", 1.1060), value("2024-03-12 09:00:00", 1.1050)],
    "1day": [value("2024-03-11", 1.1050), value("2024-03-08", 1.1060)],
}


def twelvedata_handler(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        interval = request.url.params["interval"]
        return httpx.Response(200, json={"meta": {"symbol": "EUR/USD", "interval": interval},
                                         "values": SERIES[interval], "status": "ok"})
    return handler


async def fetch(transport, interval="5min"):
    async with TwelveDataClient(api_key="key", symbol="EUR/USD", transport=transport) as client:
        return await client.fetch_candles(interval, 2)


class TestTwelveDataClient:
    """Test candle fetching."""

    def test_fetch_reverses_values(self):
        """Test newest-first values come back oldest-first."""
        requests = []
        df = asyncio.run(fetch(httpx.MockTransport(twelvedata_handler(requests))))

        assert list(df.columns) == ["timestamp", "open", "high", "low", "close"]
        assert df["timestamp"].is_monotonic_increasing
        assert df["close"].iloc[-1] == 1.1060

        params = requests[0].url.params
        assert params["symbol"] == "EUR/USD"
        assert params["apikey"] == "key"
        assert params["outputsize"] == "2"

    def test_daily_dates(self):
        """Test date-only daily values parse as midnight."""
        df = asyncio.run(fetch(httpx.MockTransport(twelvedata_handler([])), "1day"))
        assert df["timestamp"].iloc[0] == pd.Timestamp("2024-03-08")

    def test_payload_without_values(self):
        """Test provider errors in a 200 body."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"status": "error", "code": 429, "message": "limit"})
        )
        with pytest.raises(CandleSourceError, match="limit"):
            asyncio.run(fetch(transport))

    def test_http_error(self):
        """Test non-2xx responses raise."""
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={}))
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(fetch(transport))

    def test_not_connected(self):
        """Test fetching before connect()."""
        client = TwelveDataClient(api_key="key")
        with pytest.raises(RuntimeError):
            asyncio.run(client.fetch_candles("5min", 1))


class TestTelegramNotifier:
    """Test message delivery."""

    def test_send(self):
        """Test a successful sendMessage."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        notifier = TelegramNotifier(token="TOKEN", chat_id="42", transport=httpx.MockTransport(handler))

        assert asyncio.run(notifier.send("hello"))
        assert requests[0].url.path == "/botTOKEN/sendMessage"
        body = json.loads(requests[0].content)
        assert body["chat_id"] == "42"
        assert body["text"] == "hello"

    def test_status_sent_as_plain_text(self):
        """Test reason codes with underscores go out without a Markdown parse mode."""
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        notifier = TelegramNotifier(token="TOKEN", chat_id="42", transport=httpx.MockTransport(handler))
        text = "TRIGGER STATUS:\nCONFIRMED — bias_asia_break_triggered"

        assert asyncio.run(notifier.send(text))
        assert "parse_mode" not in bodies[0]
        assert bodies[0]["text"] == text

    def test_http_failure(self):
        """Test a rejected message is reported, not raised."""
        transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"ok": False}))
        notifier = TelegramNotifier(token="TOKEN", chat_id="42", transport=transport)
        assert asyncio.run(notifier.send("hello")) is False

    def test_network_failure(self):
        """Test connection errors are reported, not raised."""
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        notifier = TelegramNotifier(token="TOKEN", chat_id="42", transport=httpx.MockTransport(handler))
        assert asyncio.run(notifier.send("hello")) is False

    def test_missing_credentials(self):
        """Test nothing is sent without a token."""
        calls = []
        transport = httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200))
        notifier = TelegramNotifier(token="", chat_id="42", transport=transport)

        assert not notifier.configured
        assert asyncio.run(notifier.send("hello")) is False
        assert calls == []


class TestSetupBot:
    """Test the fetch/store/evaluate cycle."""

    def make_bot(self, tmp_path, notifier=None):
        client = TwelveDataClient(api_key="key", transport=httpx.MockTransport(twelvedata_handler([])))
        return SetupBot(store_config=StoreConfig(data_dir=str(tmp_path)), client=client,
                        notifier=notifier or TelegramNotifier(token="", chat_id=""))

    def test_refresh_shifts_intraday_only(self, tmp_path):
        """Test a provider 2h ahead is shifted on 5M/1H, not on 1D."""
        bot = self.make_bot(tmp_path)
        merged = asyncio.run(bot.refresh(server_now=pd.Timestamp("2024-03-12 08:02")))

        assert merged["5M"]["timestamp"].iloc[-1] == pd.Timestamp("2024-03-12 08:00")
        assert merged["1H"]["timestamp"].iloc[-1] == pd.Timestamp("2024-03-12 08:00")
        assert merged["1D"]["timestamp"].iloc[-1] == pd.Timestamp("2024-03-11")
        assert bot.store.list_keys() == ["EURUSD_1D", "EURUSD_1H", "EURUSD_5M"]

    def test_evaluate_needs_candles(self, tmp_path):
        """Test an empty store cannot be evaluated."""
        with pytest.raises(RuntimeError):
            self.make_bot(tmp_path).evaluate()

    def test_evaluate_defaults_to_last_candle(self, tmp_path):
        """Test now defaults to the newest 5M candle."""
        candles = {"5M": manipulation_day_m5(), "1H": None, "1D": ranging_daily()}
        evaluation = self.make_bot(tmp_path).evaluate(candles=candles)

        assert str(evaluation.date) == MANIPULATION_DAY
        assert evaluation.decision.play == "ManipulationSweepReverseB"

    def test_run_once_notifies(self, tmp_path):
        """Test the status text is sent after evaluation."""
        sent = []

        def handler(request):
            sent.append(json.loads(request.content)["text"])
            return httpx.Response(200, json={"ok": True})

        notifier = TelegramNotifier(token="TOKEN", chat_id="42", transport=httpx.MockTransport(handler))
        bot = self.make_bot(tmp_path, notifier)

        async def fake_refresh():
            return {"5M": manipulation_day_m5(), "1H": None, "1D": ranging_daily()}

        bot.refresh = fake_refresh
        evaluation = asyncio.run(bot.run_once())

        assert evaluation.decision.trade == "Yes"
        assert len(sent) == 1
        assert "Quality: A" in sent[0]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

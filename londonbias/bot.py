#!/usr/bin/env python3
"""
London Setup Bot

Fetch -> store -> evaluate -> render -> notify, once per invocation.
Scheduling is left to cron or whatever calls this.
"""

import asyncio
import logging
from datetime import datetime
import pandas as pd
import pytz

from londonbias.api.client import TwelveDataClient
from londonbias.api.notifier import TelegramNotifier
from londonbias.config import (
    API_CONFIG,
    SESSION_CONFIG,
    SETUP_CONFIG,
    STORE_CONFIG,
    APIConfig,
    SessionConfig,
    SetupConfig,
    StoreConfig,
)
from londonbias.data.processor import pick_best_shift_hours, shift_timestamps
from londonbias.data.store import CandleStore
from londonbias.engine import DayEvaluation, evaluate_day
from londonbias.report import build_status_text

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

TIMEFRAMES = ("5M", "1H", "1D")


class SetupBot:
    """
    Runs the London setup classifier against live TwelveData candles.
    """

    def __init__(
        self,
        config: SetupConfig | None = None,
        session_config: SessionConfig | None = None,
        api_config: APIConfig | None = None,
        store_config: StoreConfig | None = None,
        client: TwelveDataClient | None = None,
        notifier: TelegramNotifier | None = None
    ):
        self.config = config or SETUP_CONFIG
        self.session_config = session_config or SESSION_CONFIG
        self.api_config = api_config or API_CONFIG
        self.store_config = store_config or STORE_CONFIG

        self.store = CandleStore(self.store_config.data_dir, symbol=self.api_config.symbol)
        self.client = client or TwelveDataClient(
            api_key=self.api_config.twelvedata_api_key,
            symbol=self.api_config.symbol,
            base_url=self.api_config.twelvedata_url,
        )
        self.notifier = notifier or TelegramNotifier(
            token=self.api_config.telegram_token,
            chat_id=self.api_config.telegram_chat_id,
            base_url=self.api_config.telegram_url,
        )

    async def refresh(self, server_now: datetime | None = None) -> dict[str, pd.DataFrame]:
        """
        Fetch fresh candles and merge them into the store.

        The 5M series is fetched first; its newest timestamp decides the
        whole-hour clock shift that is applied to the intraday series.
        Daily candles are date-only and never shifted.

        Returns:
            Merged history per timeframe
        """
        server_now = server_now or datetime.now(pytz.utc).replace(tzinfo=None)
        intervals = self.api_config.intervals
        fetch = self.store_config.fetch
        keep = self.store_config.keep

        merged = {}
        async with self.client:
            raw_5m = await self.client.fetch_candles(intervals["5M"], fetch["5M"])

            shift = 0
            if not raw_5m.empty:
                shift = pick_best_shift_hours(raw_5m["timestamp"].iloc[-1], server_now)
            if shift:
                logger.info(f"Provider clock off by {shift}h, shifting intraday candles")

            merged["5M"] = self.store.merge("5M", shift_timestamps(raw_5m, shift), keep["5M"])

            raw_1h = await self.client.fetch_candles(intervals["1H"], fetch["1H"])
            merged["1H"] = self.store.merge("1H", shift_timestamps(raw_1h, shift), keep["1H"])

            raw_1d = await self.client.fetch_candles(intervals["1D"], fetch["1D"])
            merged["1D"] = self.store.merge("1D", raw_1d, keep["1D"])

        return merged

    def evaluate(self, now=None, candles: dict[str, pd.DataFrame] | None = None) -> DayEvaluation:
        """
        Evaluate from stored (or given) candles.

        Args:
            now: Evaluation time; defaults to the newest stored 5M candle
            candles: Timeframe -> frame, defaults to the store

        Returns:
            DayEvaluation
        """
        candles = candles or {tf: self.store.load(tf) for tf in TIMEFRAMES}
        m5 = candles["5M"]

        if now is None:
            if m5.empty:
                raise RuntimeError("No 5M candles stored; run a refresh first")
            now = m5["timestamp"].iloc[-1]

        return evaluate_day(
            candles["1D"], candles.get("1H"), m5, now,
            config=self.config, session_config=self.session_config,
        )

    async def run_once(self, notify: bool = True, include_poi: bool = False) -> DayEvaluation:
        """Full cycle: refresh, evaluate, render, notify."""
        logger.info("=" * 60)
        logger.info("LONDON SETUP BOT")
        logger.info(f"Symbol: {self.api_config.symbol}")
        logger.info("=" * 60)

        try:
            candles = await self.refresh()
        except Exception as e:
            logger.error(f"Candle refresh failed: {e}")
            raise

        evaluation = self.evaluate(candles=candles)
        decision = evaluation.decision
        logger.info(
            f"{evaluation.date}: bias={evaluation.bias.base_bias} (score {evaluation.bias.score}) "
            f"| trade={decision.trade} play={decision.play or 'NONE'} | {decision.reason}"
        )

        text = build_status_text(evaluation, self.session_config.display_tz, include_poi=include_poi)
        for line in text.splitlines():
            logger.info(line)

        if notify:
            sent = await self.notifier.send(text)
            logger.info("Status sent to Telegram" if sent else "Status not sent")

        return evaluation


async def main():
    """Run one bot cycle."""
    bot = SetupBot()
    await bot.run_once()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()

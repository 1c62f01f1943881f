#!/usr/bin/env python3
"""
London Setup Report Runner

Usage:
    # Fetch fresh candles, evaluate now, send to Telegram
    python scripts/run_report.py live

    # Re-evaluate a past moment from stored candles (no fetch)
    python scripts/run_report.py evaluate --date 2024-03-12 --time 13:55

    # Same, printed as JSON decision record
    python scripts/run_report.py evaluate --date 2024-03-12 --json
"""

import sys
from pathlib import Path
import argparse
import asyncio
import json

sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
import pytz


def run_live(args):
    """Fetch, evaluate and (optionally) notify."""
    from londonbias.bot import SetupBot

    bot = SetupBot()
    asyncio.run(bot.run_once(notify=not args.no_notify, include_poi=args.poi))


def run_evaluate(args):
    """Evaluate a stored day as of a display-time moment."""
    from londonbias.bot import SetupBot
    from londonbias.config import SESSION_CONFIG
    from londonbias.report import build_status_text

    tz = pytz.timezone(SESSION_CONFIG.display_tz)
    local = tz.localize(pd.Timestamp(f"{args.date} {args.time}").to_pydatetime())
    now = pd.Timestamp(local).tz_convert("UTC").tz_localize(None)

    bot = SetupBot()
    evaluation = bot.evaluate(now=now)

    if args.json:
        print(json.dumps(evaluation.decision.model_dump(mode="json", by_alias=True), indent=2))
        return

    print("=" * 60)
    print(build_status_text(evaluation, SESSION_CONFIG.display_tz, include_poi=args.poi))
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="EUR/USD London setup report")
    subparsers = parser.add_subparsers(dest="command", required=True)

    live = subparsers.add_parser("live", help="Fetch candles, evaluate now, notify")
    live.add_argument("--no-notify", action="store_true", help="Do not send to Telegram")
    live.add_argument("--poi", action="store_true", help="Append the FVG map")

    evaluate = subparsers.add_parser("evaluate", help="Evaluate stored candles")
    evaluate.add_argument("--date", required=True, help="Display date YYYY-MM-DD")
    evaluate.add_argument("--time", default="13:59", help="Display time HH:MM (default 13:59)")
    evaluate.add_argument("--json", action="store_true", help="Print the decision record as JSON")
    evaluate.add_argument("--poi", action="store_true", help="Append the FVG map")

    args = parser.parse_args()

    if args.command == "live":
        run_live(args)
    else:
        run_evaluate(args)


if __name__ == "__main__":
    main()

"""Run a one-off prefetch from the command line and print diagnostics.

Usage:
  cd backend
  python run_prefetch.py --base-url "https://cosmo.su" --branch "Дыбенко"

Fetches the schedule and price pages once, reports which strategy matched
(or that the fallback was used) and prints the client view.
"""
from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import replace

from config import get_config
from logging_config import setup_logging
from studio_engine import StudioEngine


async def run(args: argparse.Namespace) -> int:
    engine_config = get_config().engine
    if args.base_url:
        engine_config = replace(engine_config, base_url=args.base_url)
    if args.timeout:
        engine_config = replace(engine_config, timeout_seconds=args.timeout)

    engine = StudioEngine(engine_config)
    print("Schedule URL:", engine_config.schedule_url)
    print("Prices URL:", engine_config.prices_url)

    res = await engine.prefetch()
    print("prefetch result:", json.dumps(res, ensure_ascii=False, indent=2))

    schedule = await engine.get_schedule(args.branch)
    print("client schedule:", json.dumps(schedule.to_dict(), ensure_ascii=False, indent=2))

    if args.prices:
        prices = await engine.get_prices()
        print("prices:", json.dumps(prices.to_dict(), ensure_ascii=False, indent=2))

    print("stats:", json.dumps(engine.get_stats(), ensure_ascii=False, indent=2))
    return 0 if all(r.get("origin") == "live" for r in res.values()) else 1


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base-url", help="Studio site root, e.g. https://cosmo.su", default=None)
    parser.add_argument("--branch", help="Branch to filter the client view by", default=None)
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds", default=None)
    parser.add_argument("--prices", action="store_true", help="Also print the price snapshot")
    args = parser.parse_args()

    app_config = get_config().app
    setup_logging(app_config.log_level, app_config.log_dir)
    raise SystemExit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Watch the live earthquake feed from a terminal.

Polls the USGS feed on the configured interval and prints the newest
events every time the list changes. Stop with Ctrl-C.

Usage:
    # Worldwide, default thresholds
    python scripts/watch_live_feed.py

    # Around a point, M3+ only, with exponential backoff on errors
    python scripts/watch_live_feed.py --latitude 23.7 --longitude 90.4 \\
        --min-magnitude 3 --backoff

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
"""

import argparse
import asyncio
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shakewatch.core.geo import region_around
from shakewatch.core.notifications import format_event_summary
from shakewatch.live_feed import LiveEarthquakeFeed
from shakewatch.scheduler import SchedulingPolicy
from shakewatch.shell.config_loader import load_config
from shakewatch.shell.usgs_client import FeedClient

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def print_feed(feed: LiveEarthquakeFeed, count: int) -> None:
    """Print the newest events, or the current error."""
    if feed.error_message:
        logger.warning(feed.error_message)
        return

    updated = feed.last_updated_at.strftime("%H:%M:%S") if feed.last_updated_at else "-"
    print(f"\n{len(feed.events)} events (updated {updated} UTC)")
    for event in feed.events[:count]:
        print(f"  {format_event_summary(event)}")


async def watch(args: argparse.Namespace) -> None:
    config = load_config(os.environ.get("CONFIG_PATH"))

    region = None
    if args.latitude is not None and args.longitude is not None:
        region = region_around(args.latitude, args.longitude, args.half_span)

    min_magnitude = args.min_magnitude
    if min_magnitude is None:
        min_magnitude = config.default_min_magnitude

    feed = LiveEarthquakeFeed(
        FeedClient(base_url=config.usgs_api_url, timeout=config.feed_timeout_seconds),
        config=config.polling,
        region=region,
        min_magnitude=min_magnitude,
        policy=SchedulingPolicy.BACKOFF if args.backoff else SchedulingPolicy.FIXED_INTERVAL,
        on_change=lambda f: print_feed(f, args.count),
    )

    feed.start()
    try:
        await asyncio.Event().wait()
    finally:
        feed.stop()
        await feed.wait_stopped()


def main():
    parser = argparse.ArgumentParser(description="Watch the live earthquake feed")
    parser.add_argument("--latitude", type=float, default=None, help="Region center latitude")
    parser.add_argument("--longitude", type=float, default=None, help="Region center longitude")
    parser.add_argument(
        "--half-span",
        type=float,
        default=7.0,
        help="Half-width of the region box in degrees (default: 7.0)",
    )
    parser.add_argument(
        "--min-magnitude",
        type=float,
        default=None,
        help="Minimum magnitude (default: from config)",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=10,
        help="Number of events to print (default: 10)",
    )
    parser.add_argument(
        "--backoff",
        action="store_true",
        help="Back off exponentially after failed fetches",
    )
    args = parser.parse_args()

    try:
        asyncio.run(watch(args))
    except KeyboardInterrupt:
        logger.info("Stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())

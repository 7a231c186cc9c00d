#!/usr/bin/env python3
"""Send a test push notification to one device.

⚠️  WARNING: This script sends a REAL notification through the push gateway!

This script creates a synthetic test earthquake and delivers it to a single
push token using the same formatting as production alerts.

Usage:
    # Dry run (preview the payload only)
    python scripts/send_test_push.py --token "ExponentPushToken[...]" --dry-run

    # Send for real
    python scripts/send_test_push.py --token "ExponentPushToken[...]" --magnitude 5.8

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    GCP_PROJECT: GCP project ID for Secret Manager access
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shakewatch.core.earthquake import SeismicEvent
from shakewatch.core.notifications import build_message, format_event_summary
from shakewatch.shell.config_loader import load_config
from shakewatch.shell.push_client import NotificationDispatcher, PushGatewayClient

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def create_test_event(
    magnitude: float = 5.5,
    location: str = "12 km SW of Sylhet, Bangladesh",
    latitude: float = 24.82,
    longitude: float = 91.79,
) -> SeismicEvent:
    """Create a synthetic test event."""
    now = datetime.now(timezone.utc)
    return SeismicEvent(
        id="test-event-" + now.strftime("%Y%m%d%H%M%S"),
        magnitude=magnitude,
        place=location,
        time=now,
        latitude=latitude,
        longitude=longitude,
        depth_km=10.0,
        url="https://earthquake.usgs.gov/earthquakes/map/",
        mag_type="mb",
    )


def main():
    parser = argparse.ArgumentParser(
        description="Send a test push notification to one device",
        epilog="⚠️  WARNING: This sends a REAL notification! Use --dry-run first.",
    )
    parser.add_argument(
        "--token",
        type=str,
        required=True,
        help="Target push token (ExponentPushToken[...])",
    )
    parser.add_argument(
        "--magnitude",
        type=float,
        default=5.5,
        help="Earthquake magnitude for test (default: 5.5)",
    )
    parser.add_argument(
        "--location",
        type=str,
        default="12 km SW of Sylhet, Bangladesh",
        help="Location description used as the notification body",
    )
    parser.add_argument(
        "--country",
        type=str,
        default=None,
        help="Region label placed in the notification data",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload without sending",
    )
    args = parser.parse_args()

    config = load_config(os.environ.get("CONFIG_PATH"))

    event = create_test_event(magnitude=args.magnitude, location=args.location)
    message = build_message(event, args.token, args.country)

    logger.info("Test event: %s", format_event_summary(event))

    if args.dry_run:
        logger.info("DRY RUN - Would send the following payload to %s:", config.push_gateway_url)
        print(json.dumps([message.to_payload()], indent=2))
        return 0

    dispatcher = NotificationDispatcher(
        PushGatewayClient(
            gateway_url=config.push_gateway_url,
            access_token=config.push_access_token,
            timeout=config.push_timeout_seconds,
        )
    )
    result = dispatcher.dispatch([message])

    if result.success:
        logger.info("  ✓ Push gateway accepted the message (HTTP %d)", result.status_code)
        return 0

    logger.error("  ✗ Failed to send test push: %s", result.error)
    return 1


if __name__ == "__main__":
    sys.exit(main())

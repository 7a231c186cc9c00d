"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Seismic event parsing
- Region filters
- Subscriber validation
- Alert evaluation and watermark deduplication
- Push message formatting
- Polling state and backoff math

All functions here are deterministic and have no I/O.
"""

from shakewatch.core.earthquake import SeismicEvent, parse_events
from shakewatch.core.geo import RegionFilter, region_around
from shakewatch.core.subscriber import Subscriber, subscriber_from_registration
from shakewatch.core.alerts import evaluate
from shakewatch.core.notifications import OutboundMessage
from shakewatch.core.backoff import PollState, compute_backoff_delay

__all__ = [
    # Events
    "SeismicEvent",
    "parse_events",
    # Geo
    "RegionFilter",
    "region_around",
    # Subscribers
    "Subscriber",
    "subscriber_from_registration",
    # Alerts
    "evaluate",
    "OutboundMessage",
    # Polling
    "PollState",
    "compute_backoff_delay",
]

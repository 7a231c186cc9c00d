"""Cloud Function Entry Point - Root Module.

This is the root-level entry point for Google Cloud Functions.
It imports from the shakewatch package.
"""

from shakewatch.main import (
    poll_feed,
    poll_feed_pubsub,
    register_device,
)

__all__ = [
    "poll_feed",
    "poll_feed_pubsub",
    "register_device",
]

"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- USGS feed client (HTTP)
- Push gateway client (HTTP)
- Subscriber registry (memory or Firestore)
- Configuration loading (environment/files/Secret Manager)

Keep this layer thin and simple. All business logic should be in core.
"""

from shakewatch.shell.usgs_client import FeedClient
from shakewatch.shell.push_client import NotificationDispatcher, PushGatewayClient
from shakewatch.shell.registry import (
    FirestoreSubscriberRegistry,
    InMemorySubscriberRegistry,
    SubscriberRegistry,
)
from shakewatch.shell.config_loader import load_config, load_config_from_env

__all__ = [
    "FeedClient",
    "NotificationDispatcher",
    "PushGatewayClient",
    "FirestoreSubscriberRegistry",
    "InMemorySubscriberRegistry",
    "SubscriberRegistry",
    "load_config",
    "load_config_from_env",
]

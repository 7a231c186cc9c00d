"""Subscriber Registry - Imperative Shell.

This module stores subscriber registrations and their watermarks.
Two backends are provided: a process-lifetime in-memory store and a
Google Cloud Firestore store (one document per push token).

All I/O is contained here; validation logic is in the core module.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from google.cloud import firestore

from shakewatch.core.dedup import advance_watermark
from shakewatch.core.subscriber import (
    Subscriber,
    subscriber_from_dict,
    subscriber_to_dict,
)


logger = logging.getLogger(__name__)


# Default collection name for storing subscribers
DEFAULT_COLLECTION = "subscribers"


class SubscriberRegistry(Protocol):
    """Storage interface the alert cycle and registration intake rely on."""

    def list_active(self) -> list[Subscriber]:
        """Return every subscriber that should be evaluated."""
        ...

    def persist(self, subscriber: Subscriber) -> bool:
        """Commit a subscriber's watermark change."""
        ...

    def add(self, subscriber: Subscriber) -> int:
        """Store a new registration, returning the registration count."""
        ...


class InMemorySubscriberRegistry:
    """Registry held in process memory.

    Registrations last only as long as the process. Re-registering a
    token replaces its preferences but keeps its watermark. Readers get
    copies; only persist() and add() change what is stored.
    """

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, Subscriber] = {}
        for subscriber in subscribers or []:
            self._subscribers[subscriber.token] = subscriber

    def list_active(self) -> list[Subscriber]:
        with self._lock:
            return [copy.deepcopy(s) for s in self._subscribers.values()]

    def persist(self, subscriber: Subscriber) -> bool:
        """Merge a subscriber's watermark into the stored registration.

        Preferences are left as stored, so a re-registration that landed
        while the subscriber was being evaluated is kept.

        Returns:
            True if the registration exists and was updated
        """
        if subscriber.last_notified_at is None:
            return True

        with self._lock:
            stored = self._subscribers.get(subscriber.token)
            if stored is None:
                logger.warning("Not persisting watermark: registration was removed")
                return False
            stored.last_notified_at = advance_watermark(
                stored.last_notified_at,
                subscriber.last_notified_at,
            )
        return True

    def add(self, subscriber: Subscriber) -> int:
        with self._lock:
            existing = self._subscribers.get(subscriber.token)
            if existing is not None and subscriber.last_notified_at is None:
                subscriber.last_notified_at = existing.last_notified_at
            self._subscribers[subscriber.token] = subscriber
            return len(self._subscribers)

    def get(self, token: str) -> Subscriber | None:
        """Look up a subscriber by token (a copy, for inspection)."""
        with self._lock:
            subscriber = self._subscribers.get(token)
            return copy.deepcopy(subscriber) if subscriber else None

    def remove(self, token: str) -> bool:
        """Delete a registration. Returns True if it existed."""
        with self._lock:
            return self._subscribers.pop(token, None) is not None


@dataclass
class FirestoreRegistryConfig:
    """Configuration for the Firestore registry.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Firestore collection name
    """
    project_id: str | None = None
    database: str | None = None
    collection: str = DEFAULT_COLLECTION


class FirestoreSubscriberRegistry:
    """Registry persisted in Firestore.

    This is part of the imperative shell - it handles database I/O.

    Document structure (document ID is the push token):
    {
        "expoPushToken": "...",
        "country": "Bangladesh",
        "boundingBox": {"minLatitude": ..., ...} | null,
        "minMagnitude": 0,
        "significantMagnitudeThreshold": 4.5,
        "lastNotifiedAt": <timestamp> | null,
        "active": true,
        "updated_at": <timestamp>
    }
    """

    def __init__(self, config: FirestoreRegistryConfig | None = None) -> None:
        """Initialize Firestore registry.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreRegistryConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _collection(self) -> Any:
        return self.client.collection(self.config.collection)

    def list_active(self) -> list[Subscriber]:
        """Fetch all active subscribers.

        This method performs database I/O.

        Returns:
            Active subscribers (empty on read failure)
        """
        logger.info("Fetching subscribers from Firestore")

        try:
            docs = self._collection().where("active", "==", True).stream()
            subscribers = []
            for doc in docs:
                data = doc.to_dict() or {}
                try:
                    subscribers.append(subscriber_from_dict(data))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping malformed subscriber %s: %s", doc.id, str(e))

            logger.info("Fetched %d subscribers from Firestore", len(subscribers))
            return subscribers

        except Exception as e:
            logger.error("Failed to fetch subscribers: %s", str(e))
            return []

    def persist(self, subscriber: Subscriber) -> bool:
        """Save a subscriber's watermark.

        This method performs database I/O.

        Returns:
            True if the update was successful
        """
        try:
            self._collection().document(subscriber.token).set(
                {
                    "lastNotifiedAt": subscriber.last_notified_at,
                    "updated_at": datetime.now(timezone.utc),
                },
                merge=True,
            )
            return True

        except Exception as e:
            logger.error("Failed to persist subscriber watermark: %s", str(e))
            return False

    def add(self, subscriber: Subscriber) -> int:
        """Store or replace a registration, keeping any existing watermark.

        This method performs database I/O.

        Returns:
            Number of stored registrations
        """
        data = subscriber_to_dict(subscriber)
        if data["lastNotifiedAt"] is None:
            # merge=True leaves an existing watermark untouched
            del data["lastNotifiedAt"]
        data["active"] = True
        data["updated_at"] = datetime.now(timezone.utc)

        self._collection().document(subscriber.token).set(data, merge=True)
        logger.info("Stored registration for device")

        # Aggregation query: one result set holding a single count
        results = self._collection().count().get()
        return int(results[0][0].value)

"""Orchestrator - Wires Functional Core and Imperative Shell.

This module runs one alert-evaluation cycle: it loads subscribers from
the registry, fetches each subscriber's own feed window, evaluates it,
commits watermark changes and dispatches the resulting messages as a
single batch.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from shakewatch.core.alerts import AlertDecision, decide, watermark_changed
from shakewatch.core.config import Config
from shakewatch.core.earthquake import SeismicEvent
from shakewatch.core.errors import FeedParseError, FeedUnavailable
from shakewatch.core.notifications import OutboundMessage
from shakewatch.core.subscriber import Subscriber
from shakewatch.shell.push_client import (
    DispatchResult,
    NotificationDispatcher,
    PushGatewayClient,
)
from shakewatch.shell.registry import InMemorySubscriberRegistry, SubscriberRegistry
from shakewatch.shell.usgs_client import FeedClient


logger = logging.getLogger(__name__)


def mask_token(token: str) -> str:
    """Shorten a push token for log output."""
    if len(token) <= 12:
        return token
    return f"{token[:8]}...{token[-4:]}"


class SubscriberLocks:
    """One lock per subscriber token.

    Serializes watermark updates when two cycles overlap in one process.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, token: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(token, threading.Lock())
        with lock:
            yield


@dataclass
class SubscriberOutcome:
    """Result of evaluating a single subscriber.

    Attributes:
        token: Subscriber push token
        decision: Evaluation decision, None if the fetch failed
        error: Error message if the fetch failed
    """
    token: str
    decision: AlertDecision | None = None
    error: str | None = None


@dataclass
class CycleResult:
    """Result of a complete alert cycle.

    Attributes:
        processed_registrations: Subscribers evaluated this cycle
        messages: Messages produced (and handed to the dispatcher)
        outcomes: Per-subscriber outcomes
        dispatch: Dispatcher outcome, None if there was nothing to send
        errors: Any errors that occurred
    """
    processed_registrations: int
    messages: list[OutboundMessage] = field(default_factory=list)
    outcomes: list[SubscriberOutcome] = field(default_factory=list)
    dispatch: DispatchResult | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def fetch_failures(self) -> list[SubscriberOutcome]:
        return [o for o in self.outcomes if o.error is not None]

    @property
    def sent_messages(self) -> int:
        """Messages accepted by the push gateway."""
        if self.dispatch is None:
            return 0
        return self.dispatch.sent

    @property
    def success(self) -> bool:
        """Returns True if no errors occurred."""
        return len(self.errors) == 0

    @property
    def summary(self) -> str:
        """Human-readable summary of the cycle."""
        return (
            f"Processed {self.processed_registrations} registrations, "
            f"{len(self.messages)} notifications, "
            f"{self.sent_messages} sent, "
            f"{len(self.fetch_failures)} fetch failures"
        )


class Orchestrator:
    """Coordinates one alert-evaluation cycle.

    This class wires together:
    - Subscriber registry (who to evaluate, watermark persistence)
    - Feed client (per-subscriber USGS queries)
    - Core functions (evaluation, formatting)
    - Notification dispatcher (push gateway)
    """

    def __init__(
        self,
        config: Config,
        registry: SubscriberRegistry | None = None,
        feed_client: FeedClient | None = None,
        dispatcher: NotificationDispatcher | None = None,
        locks: SubscriberLocks | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            registry: Subscriber registry (in-memory if not provided)
            feed_client: Feed client (created if not provided)
            dispatcher: Notification dispatcher (created if not provided)
            locks: Per-subscriber locks shared across cycles
        """
        self.config = config
        self.registry = registry if registry is not None else InMemorySubscriberRegistry()
        self.feed_client = feed_client or FeedClient(
            base_url=config.usgs_api_url,
            timeout=config.feed_timeout_seconds,
        )
        self.dispatcher = dispatcher or NotificationDispatcher(
            PushGatewayClient(
                gateway_url=config.push_gateway_url,
                access_token=config.push_access_token,
                timeout=config.push_timeout_seconds,
            )
        )
        self.locks = locks or SubscriberLocks()

    def _fetch_events(self, subscriber: Subscriber) -> list[SeismicEvent]:
        """Fetch the subscriber's own feed window.

        Returns:
            Events newest first
        """
        return self.feed_client.fetch_recent(
            region=subscriber.region,
            min_magnitude=max(subscriber.min_magnitude, 0.0),
            minutes=self.config.lookback_minutes,
            limit=self.config.fetch_limit,
        )

    def _evaluate_subscriber(
        self,
        subscriber: Subscriber,
        errors: list[str],
    ) -> SubscriberOutcome:
        """Fetch, evaluate and persist one subscriber.

        Fetch failures are captured in the outcome, never raised.
        """
        with self.locks.hold(subscriber.token):
            try:
                events = self._fetch_events(subscriber)
            except (FeedUnavailable, FeedParseError) as e:
                logger.error(
                    "Feed fetch failed for %s: %s",
                    mask_token(subscriber.token),
                    str(e),
                )
                return SubscriberOutcome(token=subscriber.token, error=str(e))

            before = subscriber.last_notified_at
            decision = decide(subscriber, events)

            if watermark_changed(before, subscriber):
                if not self.registry.persist(subscriber):
                    errors.append(
                        f"Failed to persist watermark for {mask_token(subscriber.token)}"
                    )

        if decision.should_notify:
            logger.info(
                "Notifying %s: %s",
                mask_token(subscriber.token),
                decision.message.title,
            )
        else:
            logger.debug(
                "No notification for %s (%s)",
                mask_token(subscriber.token),
                decision.skip_reason,
            )

        return SubscriberOutcome(token=subscriber.token, decision=decision)

    def process(self) -> CycleResult:
        """Run a complete alert cycle.

        This is the main entry point that:
        1. Loads active subscribers
        2. Fetches each subscriber's feed window
        3. Evaluates the newest event against threshold and watermark
        4. Persists advanced watermarks
        5. Dispatches all messages as one batch

        Returns:
            CycleResult with details of what happened
        """
        subscribers = self.registry.list_active()

        if not subscribers:
            logger.info("No registrations to process")
            return CycleResult(processed_registrations=0)

        errors: list[str] = []
        outcomes = [self._evaluate_subscriber(s, errors) for s in subscribers]

        messages = [
            o.decision.message
            for o in outcomes
            if o.decision is not None and o.decision.message is not None
        ]

        failures = [o for o in outcomes if o.error is not None]
        if failures:
            errors.append(f"Feed fetch failed for {len(failures)} registrations")

        # Watermarks are already committed; a failed dispatch does not roll them back
        dispatch = self.dispatcher.dispatch(messages) if messages else None
        if dispatch is not None and not dispatch.success:
            errors.append(f"Push dispatch failed: {dispatch.error}")

        return CycleResult(
            processed_registrations=len(subscribers),
            messages=messages,
            outcomes=outcomes,
            dispatch=dispatch,
            errors=errors,
        )

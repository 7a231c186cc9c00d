"""Alert evaluation - decides which subscribers get notified.

For each subscriber and each cycle, only the newest event in the
subscriber's own feed window is considered. It is announced when it is
strong enough and strictly newer than the subscriber's watermark.

The only side effect is advancing ``subscriber.last_notified_at``.
"""

from dataclasses import dataclass
from datetime import datetime

from shakewatch.core.dedup import advance_watermark, is_after_watermark
from shakewatch.core.earthquake import SeismicEvent, effective_magnitude
from shakewatch.core.notifications import OutboundMessage, build_message
from shakewatch.core.subscriber import Subscriber


# Reasons an evaluation produced no message
SKIP_NO_EVENTS = "no_events"
SKIP_BELOW_THRESHOLD = "below_threshold"
SKIP_ALREADY_NOTIFIED = "already_notified"


@dataclass(frozen=True)
class AlertDecision:
    """Outcome of evaluating one subscriber against its events.

    Attributes:
        event: Newest event considered, None if there were none
        message: Message to dispatch, None if nothing qualifies
        skip_reason: Why no message was produced
    """
    event: SeismicEvent | None
    message: OutboundMessage | None
    skip_reason: str | None = None

    @property
    def should_notify(self) -> bool:
        """Returns True if a message was produced."""
        return self.message is not None


def is_significant(event: SeismicEvent, threshold: float) -> bool:
    """Check an event against a significant-magnitude threshold.

    Pure function. Missing magnitudes compare as 0.0.
    """
    return effective_magnitude(event) >= threshold


def decide(subscriber: Subscriber, events: list[SeismicEvent]) -> AlertDecision:
    """Evaluate a subscriber's events and advance its watermark on a hit.

    Args:
        subscriber: Subscriber being evaluated (watermark mutated in place)
        events: Subscriber's fetched events, newest first

    Returns:
        AlertDecision describing the outcome
    """
    if not events:
        return AlertDecision(event=None, message=None, skip_reason=SKIP_NO_EVENTS)

    newest = events[0]

    if not is_significant(newest, subscriber.significant_magnitude):
        return AlertDecision(event=newest, message=None, skip_reason=SKIP_BELOW_THRESHOLD)

    if not is_after_watermark(newest.time, subscriber.last_notified_at):
        return AlertDecision(event=newest, message=None, skip_reason=SKIP_ALREADY_NOTIFIED)

    subscriber.last_notified_at = advance_watermark(
        subscriber.last_notified_at,
        newest.time,
    )

    message = build_message(newest, subscriber.token, subscriber.region_label)
    return AlertDecision(event=newest, message=message)


def evaluate(
    subscriber: Subscriber,
    events: list[SeismicEvent],
) -> OutboundMessage | None:
    """Return the message to send to a subscriber, if any.

    Thin wrapper over decide() for callers that only need the message.
    """
    return decide(subscriber, events).message


def watermark_changed(before: datetime | None, subscriber: Subscriber) -> bool:
    """True if an evaluation moved the subscriber's watermark."""
    return subscriber.last_notified_at != before

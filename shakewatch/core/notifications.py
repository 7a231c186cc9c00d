"""Push message model and formatting - Pure functions.

This module formats seismic events into push gateway messages.
All functions are pure with no side effects.
"""

from dataclasses import dataclass, field
from typing import Any

from shakewatch.core.earthquake import SeismicEvent, UNKNOWN_PLACE, effective_magnitude


# Body used when the feed gives no usable place description
FALLBACK_BODY = "A significant earthquake was detected in your region."


@dataclass(frozen=True)
class OutboundMessage:
    """A single push notification addressed to one device.

    Attributes:
        to: Target push token
        title: Notification title
        body: Notification body
        data: Structured payload (event id, subscriber region label)
        sound: Notification sound, None for silent
    """
    to: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    sound: str | None = "default"

    def to_payload(self) -> dict[str, Any]:
        """Render the push gateway JSON shape."""
        return {
            "to": self.to,
            "sound": self.sound,
            "title": self.title,
            "body": self.body,
            "data": dict(self.data),
        }


def format_title(event: SeismicEvent) -> str:
    """Format the notification title.

    Pure function. A missing magnitude renders as 0.0.
    """
    return f"Earthquake M{effective_magnitude(event):.1f}"


def format_body(event: SeismicEvent) -> str:
    """Format the notification body from the event's place label.

    Pure function.
    """
    if not event.place or event.place == UNKNOWN_PLACE:
        return FALLBACK_BODY
    return event.place


def build_message(
    event: SeismicEvent,
    token: str,
    region_label: str | None = None,
) -> OutboundMessage:
    """Build the push message announcing an event to one device.

    Pure function.

    Args:
        event: Event to announce
        token: Target push token
        region_label: Subscriber's country/region label

    Returns:
        OutboundMessage ready for dispatch
    """
    return OutboundMessage(
        to=token,
        title=format_title(event),
        body=format_body(event),
        data={
            "usgsId": event.id,
            "country": region_label,
        },
    )


def format_event_summary(event: SeismicEvent) -> str:
    """Format a one-line summary of an event for logs and terminals.

    Pure function.
    """
    time_str = event.time.strftime("%Y-%m-%d %H:%M:%S UTC")
    return (
        f"M{effective_magnitude(event):.1f} - {event.place} "
        f"at {time_str} (depth: {event.depth_km:.1f}km)"
    )

"""Watermark deduplication logic - Pure functions.

Each subscriber carries a watermark: the time of the newest event it has
already been notified about. An event is only announced if it is strictly
newer than that watermark.

Note: The actual persistence of watermarks is handled by the imperative
shell (subscriber registry). This module only contains the pure logic.
"""

from datetime import datetime


def is_after_watermark(event_time: datetime, watermark: datetime | None) -> bool:
    """Determine whether an event has not yet been announced.

    Pure function.

    Args:
        event_time: Time of the candidate event
        watermark: Time of the newest event already notified, None if never

    Returns:
        True if the event is strictly newer than the watermark
    """
    if watermark is None:
        return True
    return event_time > watermark


def advance_watermark(watermark: datetime | None, event_time: datetime) -> datetime:
    """Compute the next watermark after notifying an event.

    Pure function. The watermark never moves backwards.

    Args:
        watermark: Current watermark, None if never notified
        event_time: Time of the event just notified

    Returns:
        The new watermark
    """
    if watermark is None:
        return event_time
    return max(watermark, event_time)

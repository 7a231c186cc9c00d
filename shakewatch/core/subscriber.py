"""Subscriber model and registration validation - Pure functions.

A subscriber is a device that registered for alerts, identified by its
push token. Validation and (de)serialization live here; storage is the
registry's concern.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from shakewatch.core.config import ValidationError, validate_region
from shakewatch.core.errors import InvalidRegistration
from shakewatch.core.geo import RegionFilter, region_filter_from_dict


_BOUND_KEYS = ("minLatitude", "maxLatitude", "minLongitude", "maxLongitude")


@dataclass
class Subscriber:
    """A device subscribed to earthquake alerts.

    Attributes:
        token: Push address token (non-empty)
        region_label: Country or region label shown in notifications
        region: Region restricting the feed query, None for worldwide
        min_magnitude: Minimum magnitude retrieved from the feed
        significant_magnitude: Minimum magnitude that triggers a notification
        last_notified_at: Time of the newest event already notified
    """
    token: str
    region_label: str | None = None
    region: RegionFilter | None = None
    min_magnitude: float = 0.0
    significant_magnitude: float = 4.5
    last_notified_at: datetime | None = None


def _is_number(value: Any) -> bool:
    """True for finite int/float values; bools are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_registration(
    token: Any,
    preferences: dict[str, Any],
) -> list[ValidationError]:
    """Validate a registration request.

    Pure function.

    Args:
        token: Push token supplied by the device
        preferences: Registration preferences (``country``, ``boundingBox``,
            ``minMagnitude``, ``significantMagnitudeThreshold``)

    Returns:
        List of validation errors (empty if valid)
    """
    errors: list[ValidationError] = []

    if not isinstance(token, str) or not token.strip():
        errors.append(ValidationError(
            field="expoPushToken",
            message="expoPushToken is required",
        ))

    if not _is_number(preferences.get("minMagnitude")):
        errors.append(ValidationError(
            field="minMagnitude",
            message="minMagnitude must be a number",
        ))

    if not _is_number(preferences.get("significantMagnitudeThreshold")):
        errors.append(ValidationError(
            field="significantMagnitudeThreshold",
            message="significantMagnitudeThreshold must be a number",
        ))

    country = preferences.get("country")
    if country is not None and not isinstance(country, str):
        errors.append(ValidationError(
            field="country",
            message="country must be a string",
        ))

    box = preferences.get("boundingBox")
    if box is not None:
        if not isinstance(box, dict) or not all(_is_number(box.get(k)) for k in _BOUND_KEYS):
            errors.append(ValidationError(
                field="boundingBox",
                message="boundingBox is invalid",
            ))
        else:
            errors.extend(validate_region(region_filter_from_dict(box), "boundingBox"))

    return errors


def subscriber_from_registration(
    token: Any,
    preferences: dict[str, Any],
) -> Subscriber:
    """Build a Subscriber from a validated registration request.

    Pure function.

    Raises:
        InvalidRegistration: If any field fails validation
    """
    errors = validate_registration(token, preferences)
    if errors:
        raise InvalidRegistration([e.message for e in errors])

    box = preferences.get("boundingBox")
    return Subscriber(
        token=token,
        region_label=preferences.get("country"),
        region=region_filter_from_dict(box) if box is not None else None,
        min_magnitude=max(0.0, float(preferences["minMagnitude"])),
        significant_magnitude=float(preferences["significantMagnitudeThreshold"]),
    )


def subscriber_to_dict(subscriber: Subscriber) -> dict[str, Any]:
    """Serialize a subscriber for storage.

    Pure function.
    """
    return {
        "expoPushToken": subscriber.token,
        "country": subscriber.region_label,
        "boundingBox": subscriber.region.to_dict() if subscriber.region else None,
        "minMagnitude": subscriber.min_magnitude,
        "significantMagnitudeThreshold": subscriber.significant_magnitude,
        "lastNotifiedAt": subscriber.last_notified_at,
    }


def _parse_timestamp(value: Any) -> datetime | None:
    """Accept a datetime or epoch milliseconds."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def subscriber_from_dict(data: dict[str, Any]) -> Subscriber:
    """Deserialize a stored subscriber.

    Pure function.
    """
    box = data.get("boundingBox")
    return Subscriber(
        token=data["expoPushToken"],
        region_label=data.get("country"),
        region=region_filter_from_dict(box) if box else None,
        min_magnitude=float(data.get("minMagnitude", 0.0)),
        significant_magnitude=float(data.get("significantMagnitudeThreshold", 4.5)),
        last_notified_at=_parse_timestamp(data.get("lastNotifiedAt")),
    )

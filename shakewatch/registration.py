"""Registration intake.

Validates device registrations and stores them in the subscriber
registry. Invalid input raises InvalidRegistration before anything is
stored.
"""

import logging
from dataclasses import dataclass
from typing import Any

from shakewatch.core.capabilities import CapabilityProvider
from shakewatch.core.config import Config
from shakewatch.core.errors import InvalidRegistration
from shakewatch.core.subscriber import Subscriber, subscriber_from_registration
from shakewatch.shell.registry import SubscriberRegistry


logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
    """Outcome of a successful registration.

    Attributes:
        success: Always True (failures raise)
        registrations_count: Registrations stored after this one
        subscriber: The stored subscriber
    """
    success: bool
    registrations_count: int
    subscriber: Subscriber

    def to_response(self) -> dict[str, Any]:
        """JSON body returned to the device."""
        return {
            "success": self.success,
            "registrationsCount": self.registrations_count,
        }


def register(
    token: Any,
    preferences: dict[str, Any],
    registry: SubscriberRegistry,
) -> RegistrationResult:
    """Validate and store a registration.

    Args:
        token: Device push token
        preferences: ``country``, ``boundingBox``, ``minMagnitude``,
            ``significantMagnitudeThreshold``
        registry: Where the subscriber is stored

    Returns:
        RegistrationResult

    Raises:
        InvalidRegistration: If validation fails (nothing is stored)
    """
    subscriber = subscriber_from_registration(token, preferences)
    count = registry.add(subscriber)

    logger.info(
        "Registered device for alerts (region=%s, significant=M%.1f)",
        subscriber.region_label,
        subscriber.significant_magnitude,
    )

    return RegistrationResult(
        success=True,
        registrations_count=count,
        subscriber=subscriber,
    )


def register_from_payload(
    payload: Any,
    registry: SubscriberRegistry,
) -> RegistrationResult:
    """Register from a device JSON body.

    Raises:
        InvalidRegistration: If the body is not an object or fails validation
    """
    if not isinstance(payload, dict):
        raise InvalidRegistration(["Request body must be a JSON object"])

    preferences = {k: v for k, v in payload.items() if k != "expoPushToken"}
    return register(payload.get("expoPushToken"), preferences, registry)


async def register_device(
    provider: CapabilityProvider,
    registry: SubscriberRegistry,
    min_magnitude: float | None = None,
    significant_magnitude: float | None = None,
    config: Config | None = None,
) -> RegistrationResult:
    """Register the current device using its capabilities.

    Acquires the push token and the device's region from the provider.
    Thresholds not given explicitly come from the config's
    ``default_min_magnitude`` and ``significant_magnitude``.

    Raises:
        PermissionDenied: If the user declined notifications or location
        Unsupported: If the device cannot provide either capability
        InvalidRegistration: If the resulting registration is invalid
    """
    config = config or Config()
    if min_magnitude is None:
        min_magnitude = config.default_min_magnitude
    if significant_magnitude is None:
        significant_magnitude = config.significant_magnitude

    token = (await provider.acquire_push_token()).unwrap()
    located = (await provider.locate_region()).unwrap()

    preferences = {
        "country": located.label,
        "boundingBox": located.region.to_dict(),
        "minMagnitude": min_magnitude,
        "significantMagnitudeThreshold": significant_magnitude,
    }
    return register(token, preferences, registry)

"""Device capability interfaces.

Push-token acquisition and device geolocation happen on the device, not
here. These types describe what such a provider hands back so callers
can branch on denied or unsupported capabilities without callbacks.
"""

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from shakewatch.core.errors import PermissionDenied, ShakeWatchError, Unsupported
from shakewatch.core.geo import RegionFilter


T = TypeVar("T")

STATUS_GRANTED = "granted"
STATUS_DENIED = "denied"
STATUS_UNSUPPORTED = "unsupported"

NOTIFICATIONS_UNSUPPORTED_MESSAGE = "Push notifications are not supported on this device."
NOTIFICATIONS_PERMISSION_DENIED_MESSAGE = "Notification permissions were not granted."


@dataclass(frozen=True)
class CapabilityResult(Generic[T]):
    """Outcome of asking the device for a capability.

    Attributes:
        status: 'granted', 'denied' or 'unsupported'
        value: The capability's value when granted
        message: Human-readable reason when not granted
    """
    status: str
    value: T | None = None
    message: str | None = None

    @property
    def granted(self) -> bool:
        return self.status == STATUS_GRANTED

    def unwrap(self) -> T:
        """Return the value or raise the matching error."""
        if self.status == STATUS_DENIED:
            raise PermissionDenied(self.message or NOTIFICATIONS_PERMISSION_DENIED_MESSAGE)
        if self.status == STATUS_UNSUPPORTED:
            raise Unsupported(self.message or NOTIFICATIONS_UNSUPPORTED_MESSAGE)
        if self.value is None:
            raise ShakeWatchError("Capability granted without a value")
        return self.value


@dataclass(frozen=True)
class LocatedRegion:
    """Region resolved from the device location."""
    label: str | None
    region: RegionFilter


class CapabilityProvider(Protocol):
    """What a device integration offers to the registration flow."""

    async def acquire_push_token(self) -> CapabilityResult[str]:
        ...

    async def locate_region(self) -> CapabilityResult[LocatedRegion]:
        ...

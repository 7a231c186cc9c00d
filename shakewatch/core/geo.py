"""Geographic region filters - Pure functions.

This module provides the rectangular region used to restrict feed queries
and the helpers for building it.
All functions are pure with no side effects.
"""

from dataclasses import dataclass
from typing import Any


# Half-width (degrees) of the box drawn around a selected country centroid
DEFAULT_REGION_HALF_SPAN = 7.0

# Registration payloads use camelCase keys; config files use snake_case
_WIRE_KEYS = ("minLatitude", "maxLatitude", "minLongitude", "maxLongitude")
_CONFIG_KEYS = ("min_latitude", "max_latitude", "min_longitude", "max_longitude")


@dataclass(frozen=True)
class RegionFilter:
    """Geographic bounding box.

    Attributes:
        min_latitude: Southern boundary
        max_latitude: Northern boundary
        min_longitude: Western boundary
        max_longitude: Eastern boundary
    """
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within this bounding box."""
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )

    def to_dict(self) -> dict[str, float]:
        """Serialize using the registration wire keys."""
        return {
            "minLatitude": self.min_latitude,
            "maxLatitude": self.max_latitude,
            "minLongitude": self.min_longitude,
            "maxLongitude": self.max_longitude,
        }


def region_filter_from_dict(data: dict[str, Any]) -> RegionFilter:
    """Build a RegionFilter from either the wire or the config key style.

    Pure function.

    Args:
        data: Dict with four bounds, camelCase or snake_case

    Returns:
        Parsed RegionFilter

    Raises:
        KeyError: If a bound is missing
        TypeError, ValueError: If a bound is not numeric
    """
    keys = _WIRE_KEYS if _WIRE_KEYS[0] in data else _CONFIG_KEYS
    values = [float(data[key]) for key in keys]
    return RegionFilter(
        min_latitude=values[0],
        max_latitude=values[1],
        min_longitude=values[2],
        max_longitude=values[3],
    )


def region_around(
    latitude: float,
    longitude: float,
    half_span: float = DEFAULT_REGION_HALF_SPAN,
) -> RegionFilter:
    """Build a square region centered on a point.

    Pure function. Latitude is clamped to [-90, 90] and longitude to
    [-180, 180] so the result always satisfies min <= max.
    """
    return RegionFilter(
        min_latitude=max(latitude - half_span, -90.0),
        max_latitude=min(latitude + half_span, 90.0),
        min_longitude=max(longitude - half_span, -180.0),
        max_longitude=min(longitude + half_span, 180.0),
    )

"""Seismic event data model and parsing - Pure functions.

This module handles parsing USGS GeoJSON data into typed SeismicEvent objects.
All functions are pure with no side effects.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from shakewatch.core.errors import FeedParseError


# Label used when the feed omits a place description
UNKNOWN_PLACE = "Unknown location"


@dataclass(frozen=True)
class SeismicEvent:
    """Immutable seismic event as reported by the feed.

    Attributes:
        id: Unique USGS event ID
        magnitude: Event magnitude, None when the feed has not assigned one
        place: Human-readable location description
        time: Event timestamp (UTC)
        latitude: Epicenter latitude
        longitude: Epicenter longitude
        depth_km: Depth in kilometers
        url: USGS event detail URL
        felt: Number of "felt" reports (optional)
        tsunami: Whether a tsunami flag was set
        mag_type: Magnitude type (e.g., 'ml', 'md', 'mb')
    """
    id: str
    magnitude: float | None
    place: str
    time: datetime
    latitude: float
    longitude: float
    depth_km: float
    url: str = ""
    felt: int | None = None
    tsunami: bool = False
    mag_type: str | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        """Return (latitude, longitude) tuple."""
        return (self.latitude, self.longitude)


def effective_magnitude(event: SeismicEvent) -> float:
    """Magnitude used for threshold comparisons and titles.

    Pure function. A missing magnitude counts as 0.0.
    """
    return event.magnitude if event.magnitude is not None else 0.0


def parse_event(feature: dict[str, Any]) -> SeismicEvent | None:
    """Parse a single GeoJSON feature into a SeismicEvent.

    Pure function: takes raw dict, returns typed SeismicEvent or None if the
    feature lacks an id, a timestamp or a full coordinate triple.

    Args:
        feature: GeoJSON feature dict from USGS API

    Returns:
        SeismicEvent object or None if parsing fails
    """
    try:
        event_id = feature.get("id")
        if not event_id:
            return None

        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or []

        if len(coords) < 3:
            return None

        # USGS uses milliseconds since epoch
        time_ms = props.get("time")
        if time_ms is None:
            return None

        event_time = datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc)

        magnitude = props.get("mag")

        return SeismicEvent(
            id=str(event_id),
            magnitude=float(magnitude) if magnitude is not None else None,
            place=props.get("place") or UNKNOWN_PLACE,
            time=event_time,
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth_km=float(coords[2]),
            url=props.get("url") or "",
            felt=props.get("felt"),
            tsunami=bool(props.get("tsunami") or 0),
            mag_type=props.get("magType"),
        )
    except (AttributeError, KeyError, TypeError, ValueError, OverflowError):
        return None


def parse_events(geojson: Any) -> list[SeismicEvent]:
    """Parse a USGS GeoJSON response into a list of SeismicEvents.

    Pure function: individual malformed features are skipped, but a document
    that is not a feature collection at all is rejected.

    Args:
        geojson: Decoded GeoJSON FeatureCollection from the USGS API

    Returns:
        List of valid SeismicEvent objects, sorted by time (newest first)

    Raises:
        FeedParseError: If the document has no ``features`` sequence
    """
    if not isinstance(geojson, dict):
        raise FeedParseError(
            f"Expected a GeoJSON object, got {type(geojson).__name__}"
        )

    features = geojson.get("features")
    if not isinstance(features, list):
        raise FeedParseError("GeoJSON response has no 'features' list")

    events = []
    for feature in features:
        if not isinstance(feature, dict):
            continue
        event = parse_event(feature)
        if event is not None:
            events.append(event)

    # Sort by time, newest first
    return sorted(events, key=lambda e: e.time, reverse=True)

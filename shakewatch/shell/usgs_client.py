"""USGS Feed Client - Imperative Shell.

This module handles HTTP communication with the USGS Earthquake API.
All I/O is contained here; parsing and business logic are in the core module.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import requests

from shakewatch.core.config import USGS_API_URL
from shakewatch.core.earthquake import SeismicEvent, parse_events
from shakewatch.core.errors import FeedParseError, FeedUnavailable
from shakewatch.core.geo import RegionFilter


logger = logging.getLogger(__name__)


# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 30

# Default maximum events per request
DEFAULT_LIMIT = 200


@dataclass
class FeedQuery:
    """Parameters for a USGS API query.

    Attributes:
        start_time: Fetch events after this time
        end_time: Fetch events before this time (None for "now")
        region: Geographic bounding box (optional)
        min_magnitude: Minimum magnitude to fetch
        limit: Maximum number of results
    """
    start_time: datetime
    end_time: datetime | None = None
    region: RegionFilter | None = None
    min_magnitude: float = 0.0
    limit: int = DEFAULT_LIMIT


def _format_time(value: datetime) -> str:
    """Format a datetime as the UTC ISO string USGS expects."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S")


class FeedClient:
    """Client for fetching seismic events from the USGS API.

    This is part of the imperative shell - it handles HTTP I/O.
    No results are cached.
    """

    def __init__(
        self,
        base_url: str = USGS_API_URL,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize feed client.

        Args:
            base_url: USGS query endpoint
            timeout: Request timeout in seconds
            session: Optional requests session (for connection reuse)
        """
        self.base_url = base_url
        self.timeout = timeout
        self.session = session

    def _build_params(self, query: FeedQuery) -> dict[str, str]:
        """Build query parameters for USGS API request.

        Args:
            query: Query parameters

        Returns:
            Dict of URL query parameters
        """
        params: dict[str, str] = {
            "format": "geojson",
            "orderby": "time",
            "starttime": _format_time(query.start_time),
            "minmagnitude": str(query.min_magnitude),
            "limit": str(query.limit),
        }

        if query.end_time is not None:
            params["endtime"] = _format_time(query.end_time)

        if query.region is not None:
            params["minlatitude"] = str(query.region.min_latitude)
            params["maxlatitude"] = str(query.region.max_latitude)
            params["minlongitude"] = str(query.region.min_longitude)
            params["maxlongitude"] = str(query.region.max_longitude)

        return params

    def _get(self, params: dict[str, str]) -> requests.Response:
        getter = self.session.get if self.session is not None else requests.get
        return getter(self.base_url, params=params, timeout=self.timeout)

    def fetch_raw(self, query: FeedQuery) -> dict[str, Any]:
        """Fetch the raw GeoJSON document for a query.

        This method performs HTTP I/O.

        Args:
            query: Query parameters

        Returns:
            Decoded GeoJSON response

        Raises:
            FeedUnavailable: On transport failure or non-success status
            FeedParseError: If the body is not JSON
        """
        params = self._build_params(query)

        logger.info(
            "Fetching earthquakes from USGS",
            extra={"params": params},
        )

        try:
            response = self._get(params)
        except requests.Timeout as e:
            logger.error("USGS request timed out")
            raise FeedUnavailable("USGS request timed out") from e
        except requests.RequestException as e:
            logger.error("USGS request failed: %s", str(e))
            raise FeedUnavailable(f"USGS request failed: {e}") from e

        if not response.ok:
            logger.error(
                "USGS API returned non-success: %d - %s",
                response.status_code,
                response.reason,
            )
            raise FeedUnavailable(
                f"USGS API returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error("Failed to decode USGS response: %s", str(e))
            raise FeedParseError("USGS response is not valid JSON") from e

    def fetch_events(
        self,
        start_time: datetime,
        end_time: datetime | None = None,
        region: RegionFilter | None = None,
        min_magnitude: float = 0.0,
        limit: int = DEFAULT_LIMIT,
    ) -> list[SeismicEvent]:
        """Fetch and parse events for a feed window.

        This method performs HTTP I/O.

        Args:
            start_time: Start of the feed window
            end_time: End of the feed window (None for open-ended)
            region: Geographic restriction (None for worldwide)
            min_magnitude: Minimum magnitude (>= 0)
            limit: Maximum results (> 0)

        Returns:
            Events ordered newest first; empty if nothing matched

        Raises:
            ValueError: If min_magnitude or limit is out of range
            FeedUnavailable: On transport failure or non-success status
            FeedParseError: On malformed payload
        """
        if min_magnitude < 0:
            raise ValueError(f"min_magnitude must be >= 0, got {min_magnitude}")
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")

        query = FeedQuery(
            start_time=start_time,
            end_time=end_time,
            region=region,
            min_magnitude=min_magnitude,
            limit=limit,
        )

        data = self.fetch_raw(query)
        events = parse_events(data)

        logger.info("Fetched %d earthquakes from USGS", len(events))

        return events

    def fetch_recent(
        self,
        region: RegionFilter | None = None,
        min_magnitude: float = 0.0,
        minutes: int = 10,
        limit: int = DEFAULT_LIMIT,
    ) -> list[SeismicEvent]:
        """Convenience method to fetch events from the last few minutes.

        Args:
            region: Geographic bounds to filter by
            min_magnitude: Minimum magnitude
            minutes: How many minutes back to fetch
            limit: Maximum results

        Returns:
            Events ordered newest first
        """
        start = datetime.now(timezone.utc) - timedelta(minutes=minutes)

        return self.fetch_events(
            start_time=start,
            region=region,
            min_magnitude=min_magnitude,
            limit=limit,
        )

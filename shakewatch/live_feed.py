"""Live earthquake feed for interactive clients.

Keeps an up-to-date event list for a region by polling the USGS feed on a
fixed interval. It shares the FeedClient with the alert cycle but never
evaluates alerts.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from shakewatch.core.config import PollingConfig
from shakewatch.core.earthquake import SeismicEvent
from shakewatch.core.geo import RegionFilter, region_filter_from_dict
from shakewatch.scheduler import PollScheduler, SchedulingPolicy, SleepFn
from shakewatch.shell.usgs_client import FeedClient


logger = logging.getLogger(__name__)


REFRESH_FAILED_MESSAGE = "Unable to refresh earthquakes. Please check your connection."


def build_params(region: RegionFilter | None, min_magnitude: float) -> dict[str, Any]:
    """Query parameters in a JSON-friendly shape, so they fingerprint stably."""
    return {
        "region": region.to_dict() if region is not None else None,
        "minMagnitude": min_magnitude,
    }


class LiveEarthquakeFeed:
    """Polls the feed for one region and exposes the latest results.

    Attributes:
        scheduler: The underlying PollScheduler
    """

    def __init__(
        self,
        feed_client: FeedClient,
        config: PollingConfig | None = None,
        region: RegionFilter | None = None,
        min_magnitude: float = 0.0,
        policy: SchedulingPolicy = SchedulingPolicy.FIXED_INTERVAL,
        on_change: Callable[["LiveEarthquakeFeed"], None] | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the live feed.

        Args:
            feed_client: Client used for every fetch
            config: Polling configuration (interval, lookback, limits)
            region: Initial region, None for worldwide
            min_magnitude: Initial minimum magnitude
            policy: FIXED_INTERVAL (default) or BACKOFF
            on_change: Called after every applied result or error
            sleep: Timer coroutine (injectable for tests)
        """
        self.feed_client = feed_client
        self.config = config or PollingConfig()
        self.on_change = on_change
        self._params = build_params(region, min_magnitude)
        self.scheduler = PollScheduler(
            self._fetch,
            policy=policy,
            on_events=self._handle_events,
            on_error=self._handle_error,
            initial_backoff=self.config.initial_backoff_seconds,
            max_backoff=self.config.max_backoff_seconds,
            sleep=sleep,
        )

    @property
    def events(self) -> list[SeismicEvent]:
        return self.scheduler.state.events

    @property
    def is_loading(self) -> bool:
        return self.scheduler.state.in_flight

    @property
    def error_message(self) -> str | None:
        if self.scheduler.state.last_error is None:
            return None
        return REFRESH_FAILED_MESSAGE

    @property
    def last_updated_at(self) -> datetime | None:
        return self.scheduler.state.last_success_at

    def start(self) -> None:
        """Begin polling on the running event loop."""
        self.scheduler.start(self.config.interval_seconds, self._params)

    def set_filters(
        self,
        region: RegionFilter | None,
        min_magnitude: float = 0.0,
    ) -> None:
        """Change the region or magnitude filter."""
        self._params = build_params(region, min_magnitude)
        self.scheduler.update_params(self._params)

    async def refresh(self) -> bool | None:
        """Fetch immediately (skipped if a fetch is in flight)."""
        return await self.scheduler.refresh()

    def stop(self) -> None:
        self.scheduler.stop()

    async def wait_stopped(self) -> None:
        await self.scheduler.wait_stopped()

    async def _fetch(self, params: dict[str, Any]) -> list[SeismicEvent]:
        start = datetime.now(timezone.utc) - timedelta(days=self.config.lookback_days)
        region = region_filter_from_dict(params["region"]) if params["region"] else None

        # FeedClient is blocking; keep it off the event loop
        return await asyncio.to_thread(
            self.feed_client.fetch_events,
            start_time=start,
            region=region,
            min_magnitude=params["minMagnitude"],
            limit=self.config.fetch_limit,
        )

    def _handle_events(self, events: list[SeismicEvent]) -> None:
        logger.debug("Live feed updated with %d events", len(events))
        if self.on_change is not None:
            self.on_change(self)

    def _handle_error(self, error: Exception) -> None:
        logger.error("Polling error in live feed: %s", str(error))
        if self.on_change is not None:
            self.on_change(self)

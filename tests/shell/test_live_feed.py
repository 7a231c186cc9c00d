"""Tests for the live earthquake feed."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from shakewatch.core.config import PollingConfig
from shakewatch.core.earthquake import SeismicEvent
from shakewatch.core.errors import FeedUnavailable
from shakewatch.core.geo import RegionFilter
from shakewatch.live_feed import REFRESH_FAILED_MESSAGE, LiveEarthquakeFeed, build_params


REGION = RegionFilter(20.5, 26.7, 88.0, 92.7)


def make_event(event_id: str) -> SeismicEvent:
    return SeismicEvent(
        id=event_id,
        magnitude=3.1,
        place="Near Chittagong",
        time=datetime(2024, 7, 1, tzinfo=timezone.utc),
        latitude=22.3,
        longitude=91.8,
        depth_km=8.0,
    )


async def never_wake(delay):
    """Timer that never fires, so only explicit fetches run."""
    await asyncio.Event().wait()


class Changes:
    """on_change callback the test can await."""

    def __init__(self):
        self.count = 0
        self._event = None

    def __call__(self, feed):
        self.count += 1
        self._event.set()

    async def next(self):
        await asyncio.wait_for(self._event.wait(), timeout=5)
        self._event.clear()

    def arm(self):
        self._event = asyncio.Event()


def test_build_params():
    assert build_params(REGION, 2.5) == {
        "region": {
            "minLatitude": 20.5,
            "maxLatitude": 26.7,
            "minLongitude": 88.0,
            "maxLongitude": 92.7,
        },
        "minMagnitude": 2.5,
    }
    assert build_params(None, 0.0) == {"region": None, "minMagnitude": 0.0}


class TestLiveEarthquakeFeed:
    """Tests for LiveEarthquakeFeed."""

    def test_start_loads_events(self):
        async def scenario():
            client = Mock()
            client.fetch_events.return_value = [make_event("e1")]
            changes = Changes()
            changes.arm()
            feed = LiveEarthquakeFeed(
                client,
                config=PollingConfig(lookback_days=30, fetch_limit=100),
                region=REGION,
                min_magnitude=2.0,
                on_change=changes,
                sleep=never_wake,
            )

            before = datetime.now(timezone.utc)
            feed.start()
            await changes.next()

            assert [e.id for e in feed.events] == ["e1"]
            assert not feed.is_loading
            assert feed.error_message is None
            assert feed.last_updated_at is not None

            kwargs = client.fetch_events.call_args.kwargs
            assert kwargs["region"] == REGION
            assert kwargs["min_magnitude"] == 2.0
            assert kwargs["limit"] == 100
            assert kwargs["start_time"] <= before - timedelta(days=30) + timedelta(seconds=5)

            feed.stop()
            await feed.wait_stopped()

        asyncio.run(scenario())

    def test_failure_sets_error_message(self):
        async def scenario():
            client = Mock()
            client.fetch_events.side_effect = FeedUnavailable("USGS API returned 503", 503)
            changes = Changes()
            changes.arm()
            feed = LiveEarthquakeFeed(client, on_change=changes, sleep=never_wake)

            feed.start()
            await changes.next()

            assert feed.error_message == REFRESH_FAILED_MESSAGE
            assert feed.events == []
            assert feed.last_updated_at is None

            feed.stop()
            await feed.wait_stopped()

        asyncio.run(scenario())

    def test_set_filters_refetches_for_new_region(self):
        async def scenario():
            client = Mock()
            client.fetch_events.return_value = []
            changes = Changes()
            changes.arm()
            feed = LiveEarthquakeFeed(client, on_change=changes, sleep=never_wake)

            feed.start()
            await changes.next()
            assert client.fetch_events.call_args.kwargs["region"] is None

            client.fetch_events.return_value = [make_event("bd1")]
            feed.set_filters(REGION, min_magnitude=3.0)
            await changes.next()

            kwargs = client.fetch_events.call_args.kwargs
            assert kwargs["region"] == REGION
            assert kwargs["min_magnitude"] == 3.0
            assert [e.id for e in feed.events] == ["bd1"]

            feed.stop()
            await feed.wait_stopped()

        asyncio.run(scenario())

    def test_refresh(self):
        async def scenario():
            client = Mock()
            client.fetch_events.return_value = []
            changes = Changes()
            changes.arm()
            feed = LiveEarthquakeFeed(client, on_change=changes, sleep=never_wake)

            feed.start()
            await changes.next()

            assert await feed.refresh() is True
            assert client.fetch_events.call_count == 2

            feed.stop()
            await feed.wait_stopped()

        asyncio.run(scenario())

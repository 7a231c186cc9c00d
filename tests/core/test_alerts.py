"""Unit tests for alert evaluation.

No mocks needed: evaluation only touches the subscriber's watermark.
"""

from datetime import datetime, timedelta, timezone

import pytest

from shakewatch.core.alerts import (
    SKIP_ALREADY_NOTIFIED,
    SKIP_BELOW_THRESHOLD,
    SKIP_NO_EVENTS,
    decide,
    evaluate,
    is_significant,
    watermark_changed,
)
from shakewatch.core.earthquake import SeismicEvent, parse_events
from shakewatch.core.notifications import FALLBACK_BODY
from shakewatch.core.subscriber import Subscriber


T = datetime(2024, 5, 1, 8, 30, 0, tzinfo=timezone.utc)
TOKEN = "ExponentPushToken[device-1]"


def make_event(
    event_id: str = "usgs1",
    magnitude: float | None = 5.2,
    time: datetime = T,
    place: str = "Near Dhaka",
) -> SeismicEvent:
    return SeismicEvent(
        id=event_id,
        magnitude=magnitude,
        place=place,
        time=time,
        latitude=23.7,
        longitude=90.4,
        depth_km=10.0,
    )


@pytest.fixture
def subscriber():
    """Bangladesh subscriber with the default significant threshold."""
    return Subscriber(
        token=TOKEN,
        region_label="Bangladesh",
        significant_magnitude=4.5,
    )


class TestIsSignificant:
    """Tests for is_significant()."""

    def test_threshold_is_inclusive(self):
        assert is_significant(make_event(magnitude=4.5), 4.5)

    def test_below_threshold(self):
        assert not is_significant(make_event(magnitude=4.4), 4.5)

    def test_missing_magnitude_counts_as_zero(self):
        assert is_significant(make_event(magnitude=None), 0.0)
        assert not is_significant(make_event(magnitude=None), 0.1)


class TestDecide:
    """Tests for decide()."""

    def test_notifies_newest_significant_event(self, subscriber):
        """A new M5.2 event produces a message and advances the watermark."""
        decision = decide(subscriber, [make_event()])

        assert decision.should_notify
        assert decision.message.to == TOKEN
        assert decision.message.title == "Earthquake M5.2"
        assert decision.message.body == "Near Dhaka"
        assert decision.message.data == {"usgsId": "usgs1", "country": "Bangladesh"}
        assert subscriber.last_notified_at == T

    def test_repeat_poll_does_not_notify_again(self, subscriber):
        """The same event seen in the next cycle is suppressed."""
        decide(subscriber, [make_event()])
        decision = decide(subscriber, [make_event()])

        assert not decision.should_notify
        assert decision.skip_reason == SKIP_ALREADY_NOTIFIED
        assert subscriber.last_notified_at == T

    def test_newer_event_after_watermark_notifies(self, subscriber):
        subscriber.last_notified_at = T
        later = T + timedelta(minutes=3)

        decision = decide(subscriber, [make_event("usgs2", 4.8, later)])

        assert decision.should_notify
        assert subscriber.last_notified_at == later

    def test_only_newest_event_is_considered(self, subscriber):
        """A strong older event is ignored when the newest is weak."""
        events = [
            make_event("weak", 2.0, T + timedelta(minutes=1)),
            make_event("strong", 6.5, T),
        ]

        decision = decide(subscriber, events)

        assert not decision.should_notify
        assert decision.event.id == "weak"
        assert decision.skip_reason == SKIP_BELOW_THRESHOLD
        assert subscriber.last_notified_at is None

    def test_below_threshold_leaves_watermark(self, subscriber):
        subscriber.last_notified_at = T - timedelta(days=1)
        decide(subscriber, [make_event(magnitude=3.0)])
        assert subscriber.last_notified_at == T - timedelta(days=1)

    def test_no_events(self, subscriber):
        decision = decide(subscriber, [])
        assert decision.event is None
        assert decision.skip_reason == SKIP_NO_EVENTS

    def test_missing_magnitude_with_zero_threshold(self, subscriber):
        """A magnitude-less event is announced as M0.0 when the threshold allows."""
        subscriber.significant_magnitude = 0.0

        decision = decide(subscriber, [make_event(magnitude=None)])

        assert decision.message.title == "Earthquake M0.0"

    def test_unknown_place_uses_fallback_body(self, subscriber):
        decision = decide(subscriber, [make_event(place="Unknown location")])
        assert decision.message.body == FALLBACK_BODY


class TestEvaluate:
    """Tests for evaluate() and watermark_changed()."""

    def test_returns_message_only(self, subscriber):
        message = evaluate(subscriber, [make_event()])
        assert message is not None
        assert message.title == "Earthquake M5.2"

    def test_returns_none_when_nothing_qualifies(self, subscriber):
        assert evaluate(subscriber, [make_event(magnitude=1.0)]) is None

    def test_watermark_changed(self, subscriber):
        before = subscriber.last_notified_at
        assert not watermark_changed(before, subscriber)

        decide(subscriber, [make_event()])

        assert watermark_changed(before, subscriber)


class TestFeedScenario:
    """End-to-end evaluation of a parsed feed document."""

    FEED = {
        "type": "FeatureCollection",
        "features": [{
            "id": "usgs1",
            "properties": {"mag": 5.2, "place": "10km SE of Town", "time": 1714552200000},
            "geometry": {"coordinates": [90.4, 23.7, 10.0]},
        }],
    }

    def test_first_and_repeat_poll(self, subscriber):
        events = parse_events(self.FEED)

        first = evaluate(subscriber, events)
        second = evaluate(subscriber, parse_events(self.FEED))

        assert first.title == "Earthquake M5.2"
        assert first.body == "10km SE of Town"
        assert first.data["usgsId"] == "usgs1"
        assert subscriber.last_notified_at == T
        assert second is None
        assert subscriber.last_notified_at == T

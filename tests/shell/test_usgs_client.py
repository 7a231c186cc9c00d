"""Tests for the USGS feed client.

Uses the `responses` library to mock HTTP requests.
"""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from shakewatch.core.config import USGS_API_URL
from shakewatch.core.errors import FeedParseError, FeedUnavailable
from shakewatch.core.geo import RegionFilter
from shakewatch.shell.usgs_client import FeedClient, FeedQuery


START = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)

FEATURE = {
    "type": "Feature",
    "id": "us7000test",
    "properties": {
        "mag": 4.9,
        "place": "Off the coast",
        "time": 1704067200000,
    },
    "geometry": {"type": "Point", "coordinates": [91.0, 22.0, 15.0]},
}


def sent_params() -> dict[str, str]:
    """Query parameters of the first recorded request."""
    query = urlparse(responses.calls[0].request.url).query
    return {k: v[0] for k, v in parse_qs(query).items()}


class TestBuildParams:
    """Tests for FeedClient._build_params()."""

    def test_worldwide_query(self):
        client = FeedClient()
        params = client._build_params(FeedQuery(start_time=START, min_magnitude=2.5, limit=10))

        assert params == {
            "format": "geojson",
            "orderby": "time",
            "starttime": "2024-01-01T00:00:00",
            "minmagnitude": "2.5",
            "limit": "10",
        }

    def test_region_and_end_time(self):
        client = FeedClient()
        query = FeedQuery(
            start_time=START,
            end_time=datetime(2024, 1, 2, tzinfo=timezone.utc),
            region=RegionFilter(20.5, 26.7, 88.0, 92.7),
        )

        params = client._build_params(query)

        assert params["endtime"] == "2024-01-02T00:00:00"
        assert params["minlatitude"] == "20.5"
        assert params["maxlatitude"] == "26.7"
        assert params["minlongitude"] == "88.0"
        assert params["maxlongitude"] == "92.7"


class TestFetchEvents:
    """Tests for FeedClient.fetch_events()."""

    @responses.activate
    def test_returns_parsed_events(self):
        responses.add(
            responses.GET,
            USGS_API_URL,
            json={"type": "FeatureCollection", "features": [FEATURE]},
            status=200,
        )

        events = FeedClient().fetch_events(START, min_magnitude=3.0, limit=20)

        assert [e.id for e in events] == ["us7000test"]
        params = sent_params()
        assert params["minmagnitude"] == "3.0"
        assert params["limit"] == "20"
        assert params["orderby"] == "time"

    @responses.activate
    def test_empty_result(self):
        responses.add(responses.GET, USGS_API_URL, json={"features": []}, status=200)
        assert FeedClient().fetch_events(START) == []

    @responses.activate
    def test_non_success_status_raises_unavailable(self):
        responses.add(responses.GET, USGS_API_URL, body="busy", status=503)

        with pytest.raises(FeedUnavailable) as exc_info:
            FeedClient().fetch_events(START)

        assert exc_info.value.status_code == 503

    @responses.activate
    def test_timeout_raises_unavailable(self):
        responses.add(responses.GET, USGS_API_URL, body=requests.Timeout("slow"))

        with pytest.raises(FeedUnavailable) as exc_info:
            FeedClient().fetch_events(START)

        assert exc_info.value.status_code is None

    @responses.activate
    def test_connection_error_raises_unavailable(self):
        responses.add(responses.GET, USGS_API_URL, body=requests.ConnectionError("down"))

        with pytest.raises(FeedUnavailable):
            FeedClient().fetch_events(START)

    @responses.activate
    def test_invalid_json_raises_parse_error(self):
        responses.add(responses.GET, USGS_API_URL, body="<html>oops</html>", status=200)

        with pytest.raises(FeedParseError):
            FeedClient().fetch_events(START)

    @responses.activate
    def test_missing_features_raises_parse_error(self):
        responses.add(responses.GET, USGS_API_URL, json={"type": "Error"}, status=200)

        with pytest.raises(FeedParseError):
            FeedClient().fetch_events(START)

    def test_rejects_negative_magnitude(self):
        with pytest.raises(ValueError):
            FeedClient().fetch_events(START, min_magnitude=-1.0)

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            FeedClient().fetch_events(START, limit=0)


class TestFetchRecent:
    """Tests for FeedClient.fetch_recent()."""

    @responses.activate
    def test_passes_region(self):
        responses.add(responses.GET, USGS_API_URL, json={"features": []}, status=200)

        FeedClient().fetch_recent(region=RegionFilter(20.0, 27.0, 88.0, 93.0), minutes=10)

        params = sent_params()
        assert params["minlatitude"] == "20.0"
        assert params["maxlongitude"] == "93.0"
        assert "starttime" in params

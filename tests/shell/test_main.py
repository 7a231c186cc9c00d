"""Tests for the Cloud Function entry points.

Flask requests are replaced with mocks; the registry is reset per test.
"""

import os
from unittest.mock import Mock, patch

import pytest

from shakewatch import main
from shakewatch.core.config import Config
from shakewatch.orchestrator import CycleResult
from shakewatch.shell.push_client import DispatchResult
from shakewatch.shell.registry import FirestoreSubscriberRegistry, InMemorySubscriberRegistry


@pytest.fixture(autouse=True)
def fresh_registry():
    """Each test starts with no cached registry."""
    main._registry = None
    yield
    main._registry = None


@pytest.fixture
def memory_config():
    with patch("shakewatch.main._get_config", return_value=Config()):
        yield


def make_request(method="POST", body=None):
    request = Mock()
    request.method = method
    request.get_json.return_value = body
    return request


VALID_BODY = {
    "expoPushToken": "ExponentPushToken[abc]",
    "country": "Bangladesh",
    "boundingBox": {
        "minLatitude": 20.5,
        "maxLatitude": 26.7,
        "minLongitude": 88.0,
        "maxLongitude": 92.7,
    },
    "minMagnitude": 0,
    "significantMagnitudeThreshold": 4.5,
}


class TestRegisterDevice:
    """Tests for the register_device HTTP entry point."""

    def test_rejects_non_post(self, memory_config):
        body, status = main.register_device(make_request(method="GET"))
        assert status == 405

    def test_rejects_unparseable_body(self, memory_config):
        body, status = main.register_device(make_request(body=None))
        assert (body, status) == ("Invalid JSON body", 400)

    def test_rejects_invalid_registration(self, memory_config):
        body, status = main.register_device(make_request(body={"minMagnitude": 1}))

        assert status == 400
        assert "expoPushToken is required" in body
        assert "significantMagnitudeThreshold must be a number" in body

    def test_registers_device(self, memory_config):
        body, status = main.register_device(make_request(body=VALID_BODY))

        assert status == 200
        assert body == {"success": True, "registrationsCount": 1}
        assert isinstance(main._registry, InMemorySubscriberRegistry)

    def test_registry_shared_across_requests(self, memory_config):
        main.register_device(make_request(body=VALID_BODY))
        other = {**VALID_BODY, "expoPushToken": "ExponentPushToken[def]"}

        body, status = main.register_device(make_request(body=other))

        assert body["registrationsCount"] == 2


class TestPollFeed:
    """Tests for the poll_feed HTTP entry point."""

    def test_no_registrations(self, memory_config):
        body, status = main.poll_feed(make_request())

        assert status == 200
        assert body == {"success": True, "message": "No registrations to process."}

    def test_reports_cycle_result(self, memory_config):
        result = CycleResult(
            processed_registrations=2,
            dispatch=DispatchResult(success=True, sent=1),
        )
        with patch("shakewatch.main.Orchestrator") as MockOrchestrator:
            MockOrchestrator.return_value.process.return_value = result
            body, status = main.poll_feed(make_request())

        assert status == 200
        assert body == {
            "success": True,
            "processedRegistrations": 2,
            "sentMessages": 1,
        }

    def test_includes_errors(self, memory_config):
        result = CycleResult(
            processed_registrations=1,
            errors=["Feed fetch failed for 1 registrations"],
        )
        with patch("shakewatch.main.Orchestrator") as MockOrchestrator:
            MockOrchestrator.return_value.process.return_value = result
            body, status = main.poll_feed(make_request())

        assert status == 200
        assert body["errors"] == ["Feed fetch failed for 1 registrations"]

    def test_unexpected_error_returns_500(self, memory_config):
        with patch("shakewatch.main.Orchestrator") as MockOrchestrator:
            MockOrchestrator.return_value.process.side_effect = RuntimeError("boom")
            body, status = main.poll_feed(make_request())

        assert status == 500
        assert body == {"success": False, "message": "boom"}


class TestPollFeedPubsub:
    """Tests for the Pub/Sub entry point."""

    def test_runs_cycle(self, memory_config):
        with patch("shakewatch.main.Orchestrator") as MockOrchestrator:
            MockOrchestrator.return_value.process.return_value = CycleResult(0)
            main.poll_feed_pubsub(Mock())

        MockOrchestrator.return_value.process.assert_called_once()

    def test_reraises_errors(self, memory_config):
        with patch("shakewatch.main.Orchestrator") as MockOrchestrator:
            MockOrchestrator.return_value.process.side_effect = RuntimeError("boom")
            with pytest.raises(RuntimeError):
                main.poll_feed_pubsub(Mock())


class TestGetConfig:
    """Tests for configuration and registry selection."""

    def test_uses_config_path(self):
        with patch.dict(os.environ, {"CONFIG_PATH": "/tmp/config.yaml"}), \
             patch("shakewatch.main.load_config", return_value=Config()) as mock_load:
            main._get_config()

        mock_load.assert_called_once_with("/tmp/config.yaml")

    def test_falls_back_to_env(self):
        with patch.dict(os.environ, {}, clear=True), \
             patch("shakewatch.main.load_config_from_env", return_value=Config()) as mock_env:
            main._get_config()

        mock_env.assert_called_once()

    def test_firestore_backend(self):
        registry = main._get_registry(Config(registry_backend="firestore", firestore_collection="devices"))

        assert isinstance(registry, FirestoreSubscriberRegistry)
        assert registry.config.collection == "devices"

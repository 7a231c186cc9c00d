"""Cloud Function Entry Points.

This module provides the entry points for Google Cloud Functions:
device registration and the scheduled alert cycle. They are thin
wrappers that load configuration and invoke the orchestrator.
"""

import json
import logging
import os
from typing import Any

import functions_framework
from flask import Request

from shakewatch.core.config import Config
from shakewatch.core.errors import InvalidRegistration
from shakewatch.orchestrator import Orchestrator, SubscriberLocks
from shakewatch.registration import register_from_payload
from shakewatch.shell.config_loader import load_config, load_config_from_env
from shakewatch.shell.registry import (
    FirestoreRegistryConfig,
    FirestoreSubscriberRegistry,
    InMemorySubscriberRegistry,
    SubscriberRegistry,
)


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Lives as long as the function instance stays warm
_registry: SubscriberRegistry | None = None
_locks = SubscriberLocks()


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    return load_config_from_env()


def _build_registry(config: Config) -> SubscriberRegistry:
    if config.registry_backend == "firestore":
        return FirestoreSubscriberRegistry(
            FirestoreRegistryConfig(
                database=config.firestore_database,
                collection=config.firestore_collection,
            )
        )
    return InMemorySubscriberRegistry()


def _get_registry(config: Config) -> SubscriberRegistry:
    global _registry
    if _registry is None:
        _registry = _build_registry(config)
    return _registry


@functions_framework.http
def register_device(request: Request) -> tuple[Any, int]:
    """HTTP entry point: register a device for alerts.

    Expects a POST with a JSON body containing ``expoPushToken``,
    ``country``, ``boundingBox``, ``minMagnitude`` and
    ``significantMagnitudeThreshold``.

    Returns:
        Tuple of (response body, HTTP status code)
    """
    if request.method != "POST":
        return "Method not allowed", 405

    payload = request.get_json(silent=True)
    if payload is None:
        return "Invalid JSON body", 400

    try:
        config = _get_config()
        result = register_from_payload(payload, _get_registry(config))
    except InvalidRegistration as e:
        logger.warning("Rejected registration: %s", str(e))
        return str(e), 400
    except Exception as e:
        logger.exception("Unexpected error registering device")
        return {"success": False, "message": str(e)}, 500

    return result.to_response(), 200


@functions_framework.http
def poll_feed(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP entry point: run one alert cycle.

    This function is triggered by Cloud Scheduler or direct HTTP requests.

    Args:
        request: Flask request object (not used, but required by framework)

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    logger.info("Starting alert cycle")

    try:
        config = _get_config()
        orchestrator = Orchestrator(config, registry=_get_registry(config), locks=_locks)
        result = orchestrator.process()
    except Exception as e:
        logger.exception("Unexpected error in alert cycle")
        return {
            "success": False,
            "message": str(e),
        }, 500

    if result.processed_registrations == 0:
        return {
            "success": True,
            "message": "No registrations to process.",
        }, 200

    response: dict[str, Any] = {
        "success": True,
        "processedRegistrations": result.processed_registrations,
        "sentMessages": result.sent_messages,
    }

    if result.errors:
        response["errors"] = result.errors

    logger.info("Completed: %s", result.summary)

    return response, 200


@functions_framework.cloud_event
def poll_feed_pubsub(cloud_event: Any) -> None:
    """Pub/Sub entry point.

    Alternative trigger for Cloud Scheduler via Pub/Sub.

    Args:
        cloud_event: CloudEvent from Pub/Sub
    """
    logger.info("Starting alert cycle (Pub/Sub trigger)")

    try:
        config = _get_config()
        orchestrator = Orchestrator(config, registry=_get_registry(config), locks=_locks)
        result = orchestrator.process()

        logger.info("Completed: %s", result.summary)

        for error in result.errors:
            logger.error("Error: %s", error)

    except Exception:
        logger.exception("Unexpected error in alert cycle")
        raise


# For local testing
if __name__ == "__main__":
    print("Running alert cycle locally...")

    class MockRequest:
        method = "POST"

    response, status = poll_feed(MockRequest())
    print(f"\nResponse ({status}):")
    print(json.dumps(response, indent=2))

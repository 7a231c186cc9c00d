"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, PollingConfig) are defined in shakewatch/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from shakewatch.core.config import Config, PollingConfig, validate_config
from shakewatch.shell.secret_manager_client import (
    SecretManagerClient,
    expand_env,
    parse_secret_ref,
)


logger = logging.getLogger(__name__)


def _get_secret_manager_client() -> SecretManagerClient | None:
    """Get a Secret Manager client.

    Returns None if GCP_PROJECT is not set (e.g., local development).
    """
    project_id = os.environ.get("GCP_PROJECT")
    if project_id:
        return SecretManagerClient(project_id=project_id)
    return None


def _resolve_value(value: Any, secret_client: SecretManagerClient | None = None) -> Any:
    """Resolve a value that may contain secret or env var placeholders.

    Args:
        value: Value to resolve (may contain ${...} placeholders)
        secret_client: Client for resolving secrets

    Returns:
        Resolved value
    """
    if not isinstance(value, str):
        return value

    if secret_client:
        return secret_client.resolve(value)

    # Without Secret Manager only environment placeholders can resolve
    if parse_secret_ref(value) is not None:
        logger.warning("Secret placeholder left unresolved: GCP_PROJECT not set")
        return value

    return expand_env(value)


def _parse_polling(data: dict[str, Any]) -> PollingConfig:
    """Parse live feed polling settings from config data."""
    defaults = PollingConfig()
    return PollingConfig(
        interval_seconds=float(data.get("interval_seconds", defaults.interval_seconds)),
        initial_backoff_seconds=float(
            data.get("initial_backoff_seconds", defaults.initial_backoff_seconds)
        ),
        max_backoff_seconds=float(
            data.get("max_backoff_seconds", defaults.max_backoff_seconds)
        ),
        lookback_days=int(data.get("lookback_days", defaults.lookback_days)),
        fetch_limit=int(data.get("fetch_limit", defaults.fetch_limit)),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only placeholder expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    secret_client = _get_secret_manager_client()
    defaults = Config()

    push_access_token = data.get("push_access_token")
    if push_access_token is not None:
        push_access_token = _resolve_value(push_access_token, secret_client)

    return Config(
        usgs_api_url=data.get("usgs_api_url", defaults.usgs_api_url),
        feed_timeout_seconds=int(data.get("feed_timeout_seconds", defaults.feed_timeout_seconds)),
        lookback_minutes=int(data.get("lookback_minutes", defaults.lookback_minutes)),
        fetch_limit=int(data.get("fetch_limit", defaults.fetch_limit)),
        push_gateway_url=_resolve_value(
            data.get("push_gateway_url", defaults.push_gateway_url),
            secret_client,
        ),
        push_access_token=push_access_token,
        push_timeout_seconds=int(data.get("push_timeout_seconds", defaults.push_timeout_seconds)),
        default_min_magnitude=float(
            data.get("default_min_magnitude", defaults.default_min_magnitude)
        ),
        significant_magnitude=float(
            data.get("significant_magnitude", defaults.significant_magnitude)
        ),
        registry_backend=data.get("registry_backend", defaults.registry_backend),
        firestore_database=data.get("firestore_database"),
        firestore_collection=data.get("firestore_collection", defaults.firestore_collection),
        polling=_parse_polling(data.get("polling") or {}),
    )


def _log_validation(config: Config) -> None:
    """Log validation problems without rejecting the config."""
    result = validate_config(config)
    for error in result.errors:
        if error.severity == "error":
            logger.error("Config error in %s: %s", error.field, error.message)
        else:
            logger.warning("Config warning in %s: %s", error.field, error.message)


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)
    _log_validation(config)

    logger.info(
        "Loaded config: registry=%s, lookback=%dmin, significant=M%.1f",
        config.registry_backend,
        config.lookback_minutes,
        config.significant_magnitude,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        USGS_API_URL: Feed query endpoint
        LOOKBACK_MINUTES: Feed window per alert cycle
        FETCH_LIMIT: Maximum events per subscriber fetch
        PUSH_GATEWAY_URL: Push gateway endpoint
        PUSH_ACCESS_TOKEN: Push gateway token (may be a ${secret:...} placeholder)
        SIGNIFICANT_MAGNITUDE: Default notification threshold
        REGISTRY_BACKEND: 'memory' or 'firestore'
        FIRESTORE_DATABASE / FIRESTORE_COLLECTION: Firestore location
        POLL_INTERVAL_SECONDS: Live feed interval
        INITIAL_BACKOFF_SECONDS / MAX_BACKOFF_SECONDS: Retry delays

    Returns:
        Config object from environment
    """
    env = os.environ
    data: dict[str, Any] = {}

    mapping = {
        "USGS_API_URL": "usgs_api_url",
        "LOOKBACK_MINUTES": "lookback_minutes",
        "FETCH_LIMIT": "fetch_limit",
        "PUSH_GATEWAY_URL": "push_gateway_url",
        "PUSH_ACCESS_TOKEN": "push_access_token",
        "SIGNIFICANT_MAGNITUDE": "significant_magnitude",
        "DEFAULT_MIN_MAGNITUDE": "default_min_magnitude",
        "REGISTRY_BACKEND": "registry_backend",
        "FIRESTORE_DATABASE": "firestore_database",
        "FIRESTORE_COLLECTION": "firestore_collection",
    }
    for env_name, key in mapping.items():
        if env.get(env_name):
            data[key] = env[env_name]

    polling_mapping = {
        "POLL_INTERVAL_SECONDS": "interval_seconds",
        "INITIAL_BACKOFF_SECONDS": "initial_backoff_seconds",
        "MAX_BACKOFF_SECONDS": "max_backoff_seconds",
    }
    polling = {
        key: env[env_name]
        for env_name, key in polling_mapping.items()
        if env.get(env_name)
    }
    if polling:
        data["polling"] = polling

    config = load_config_from_dict(data)
    _log_validation(config)
    return config

"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from shakewatch.core.geo import RegionFilter


# USGS FDSN Event Web Service query endpoint
USGS_API_URL = "https://earthquake.usgs.gov/fdsnws/event/1/query"

# Expo push gateway endpoint
PUSH_GATEWAY_URL = "https://exp.host/--/api/v2/push/send"

REGISTRY_BACKENDS = ("memory", "firestore")


@dataclass
class PollingConfig:
    """Cadence and resilience settings for polling loops.

    Attributes:
        interval_seconds: Delay between fetches of the live feed
        initial_backoff_seconds: First retry delay after a failure
        max_backoff_seconds: Backoff ceiling
        lookback_days: How far back the live feed reaches
        fetch_limit: Maximum events per live feed fetch
    """
    interval_seconds: float = 30.0
    initial_backoff_seconds: float = 5.0
    max_backoff_seconds: float = 300.0
    lookback_days: int = 365
    fetch_limit: int = 500


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        usgs_api_url: Feed query endpoint
        feed_timeout_seconds: Timeout for a single feed request
        lookback_minutes: Feed window for each alert cycle
        fetch_limit: Maximum events fetched per subscriber per cycle
        push_gateway_url: Push gateway endpoint
        push_access_token: Optional bearer token for the push gateway
        push_timeout_seconds: Timeout for a push gateway request
        default_min_magnitude: Retrieval threshold used when none is given
        significant_magnitude: Default notification threshold
        registry_backend: 'memory' or 'firestore'
        firestore_database: Firestore database name (None for default)
        firestore_collection: Firestore collection holding subscribers
        polling: Live feed polling configuration
    """
    usgs_api_url: str = USGS_API_URL
    feed_timeout_seconds: int = 30
    lookback_minutes: int = 10
    fetch_limit: int = 50
    push_gateway_url: str = PUSH_GATEWAY_URL
    push_access_token: str | None = None
    push_timeout_seconds: int = 10
    default_min_magnitude: float = 0.0
    significant_magnitude: float = 4.5
    registry_backend: str = "memory"
    firestore_database: str | None = None
    firestore_collection: str = "subscribers"
    polling: PollingConfig = field(default_factory=PollingConfig)


@dataclass
class ValidationError:
    """A validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_coordinates(lat: float, lon: float, field_name: str) -> list[ValidationError]:
    """Validate latitude/longitude coordinates.

    Pure function.

    Args:
        lat: Latitude value
        lon: Longitude value
        field_name: Name of the field for error messages

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not -90 <= lat <= 90:
        errors.append(ValidationError(
            field=field_name,
            message=f"Latitude {lat} out of range [-90, 90]",
        ))

    if not -180 <= lon <= 180:
        errors.append(ValidationError(
            field=field_name,
            message=f"Longitude {lon} out of range [-180, 180]",
        ))

    return errors


def validate_region(region: RegionFilter, field_name: str) -> list[ValidationError]:
    """Validate a region filter.

    Pure function.

    Args:
        region: Region to validate
        field_name: Name of the field for error messages

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    errors.extend(validate_coordinates(
        region.min_latitude, region.min_longitude,
        f"{field_name}.min",
    ))
    errors.extend(validate_coordinates(
        region.max_latitude, region.max_longitude,
        f"{field_name}.max",
    ))

    if region.min_latitude > region.max_latitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_latitude ({region.min_latitude}) > max_latitude ({region.max_latitude})",
        ))

    if region.min_longitude > region.max_longitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_longitude ({region.min_longitude}) > max_longitude ({region.max_longitude})",
        ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if config.lookback_minutes <= 0:
        errors.append(ValidationError(
            field="lookback_minutes",
            message=f"Lookback must be positive, got {config.lookback_minutes}",
        ))

    if config.fetch_limit <= 0:
        errors.append(ValidationError(
            field="fetch_limit",
            message=f"Fetch limit must be positive, got {config.fetch_limit}",
        ))

    if config.default_min_magnitude < 0:
        errors.append(ValidationError(
            field="default_min_magnitude",
            message=f"Minimum magnitude must be >= 0, got {config.default_min_magnitude}",
        ))

    if config.registry_backend not in REGISTRY_BACKENDS:
        errors.append(ValidationError(
            field="registry_backend",
            message=f"Unknown registry backend '{config.registry_backend}'",
        ))

    polling = config.polling
    if polling.interval_seconds <= 0:
        errors.append(ValidationError(
            field="polling.interval_seconds",
            message=f"Interval must be positive, got {polling.interval_seconds}",
        ))

    if polling.initial_backoff_seconds <= 0:
        errors.append(ValidationError(
            field="polling.initial_backoff_seconds",
            message=f"Initial backoff must be positive, got {polling.initial_backoff_seconds}",
        ))

    if polling.max_backoff_seconds < polling.initial_backoff_seconds:
        errors.append(ValidationError(
            field="polling.max_backoff_seconds",
            message=(
                f"Backoff ceiling ({polling.max_backoff_seconds}) is below "
                f"initial backoff ({polling.initial_backoff_seconds})"
            ),
        ))

    # Warn about unresolved placeholders
    if config.push_access_token and config.push_access_token.startswith("${"):
        errors.append(ValidationError(
            field="push_access_token",
            message="Push access token not resolved (still contains placeholder)",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )

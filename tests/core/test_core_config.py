"""Unit tests for configuration validation."""

from shakewatch.core.config import (
    Config,
    PollingConfig,
    validate_config,
    validate_coordinates,
    validate_region,
)
from shakewatch.core.geo import RegionFilter


class TestValidateCoordinates:
    """Tests for validate_coordinates()."""

    def test_valid(self):
        assert validate_coordinates(23.7, 90.4, "point") == []

    def test_out_of_range(self):
        errors = validate_coordinates(91.0, -181.0, "point")
        assert len(errors) == 2
        assert all(e.field == "point" for e in errors)


class TestValidateRegion:
    """Tests for validate_region()."""

    def test_valid(self):
        assert validate_region(RegionFilter(20.0, 27.0, 88.0, 93.0), "region") == []

    def test_inverted_longitudes(self):
        errors = validate_region(RegionFilter(20.0, 27.0, 93.0, 88.0), "region")
        assert len(errors) == 1
        assert "min_longitude" in errors[0].message


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_defaults_are_valid(self):
        result = validate_config(Config())
        assert result.valid
        assert result.errors == []

    def test_unknown_registry_backend(self):
        result = validate_config(Config(registry_backend="redis"))
        assert not result.valid
        assert result.critical_errors[0].field == "registry_backend"

    def test_polling_bounds(self):
        config = Config(polling=PollingConfig(
            interval_seconds=0,
            initial_backoff_seconds=10.0,
            max_backoff_seconds=5.0,
        ))
        fields = [e.field for e in validate_config(config).errors]
        assert "polling.interval_seconds" in fields
        assert "polling.max_backoff_seconds" in fields

    def test_unresolved_token_is_only_a_warning(self):
        result = validate_config(Config(push_access_token="${secret:expo}"))
        assert result.valid
        assert [w.field for w in result.warnings] == ["push_access_token"]

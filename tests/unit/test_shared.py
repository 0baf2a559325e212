"""
Unit tests for the shared configuration, error, logging and metrics helpers.
"""

import pytest

from shared.config import CacheConfig, get_config
from shared.errors import MissingCacheKeyError, ResourceFetchError, TransportError
from shared.logging import add_correlation_context, clear_context, set_cache_key
from shared.metrics import MetricsCollector


class TestConfig:
    """Configuration defaults and overrides."""

    def test_defaults(self, monkeypatch):
        """Test built-in defaults."""
        monkeypatch.delenv("RESOURCE_CACHE_CACHE_GRACE_PERIOD_MS", raising=False)
        config = CacheConfig()

        assert config.cache_grace_period_ms == 150_000
        assert config.prefetch_delay_ms == 50
        assert config.log_level == "info"

    def test_overrides(self, monkeypatch):
        """Test explicit overrides beat the environment."""
        monkeypatch.setenv("RESOURCE_CACHE_PREFETCH_DELAY_MS", "75")

        config = get_config(cache_grace_period_ms=10)

        assert config.cache_grace_period_ms == 10
        assert config.prefetch_delay_ms == 75


class TestErrors:
    """Error hierarchy and responses."""

    def test_missing_key_response(self):
        """Test programming misuse maps to a stable code."""
        response = MissingCacheKeyError().to_response()

        assert response.code == "MISSING_CACHE_KEY"

    def test_fetch_error_carries_resource(self):
        """Test fetch errors expose the resource and status."""
        resource = object()
        error = ResourceFetchError("user", resource, 502)

        assert error.resource is resource
        assert error.status == 502
        assert error.to_response().details == {"key": "user", "status": 502}

    def test_transport_error_status(self):
        """Test transport errors expose status as an attribute."""
        assert TransportError(503).status == 503
        assert TransportError(503).details["status"] == 503


class TestLogging:
    """Correlation context processor."""

    def test_cache_key_added(self):
        """Test the bound cache key is added to log events."""
        set_cache_key("user~userId=zorah")

        event = add_correlation_context(None, "info", {"event": "Resource fetch started"})

        assert event["cache_key"] == "user~userId=zorah"
        clear_context()

    def test_explicit_cache_key_wins(self):
        """Test an explicit cache_key field is not overwritten."""
        set_cache_key("outer")

        event = add_correlation_context(None, "info", {"cache_key": "inner"})

        assert event["cache_key"] == "inner"
        clear_context()


class TestMetrics:
    """Prometheus-backed collector."""

    def test_counters_and_gauges(self):
        """Test samples are readable from the private registry."""
        metrics = MetricsCollector()

        metrics.increment_counter("resource_cache_lookups_total", result="hit")
        metrics.increment_counter("resource_cache_lookups_total", result="hit")
        metrics.set_gauge("resource_cache_entries", 3)
        metrics.observe_histogram("resource_cache_fetch_duration_seconds", 0.2, outcome="success")

        assert metrics.get_sample("resource_cache_lookups_total", result="hit") == 2.0
        assert metrics.get_sample("resource_cache_entries") == 3.0
        assert metrics.get_sample("resource_cache_fetch_duration_seconds_count", outcome="success") == 1.0
        assert b"resource_cache_entries 3.0" in metrics.export()

    def test_independent_registries(self):
        """Test two collectors do not share samples."""
        first, second = MetricsCollector(), MetricsCollector()

        first.increment_counter("resource_cache_removals_total", reason="expired")

        assert second.get_sample("resource_cache_removals_total", reason="expired") is None

    def test_unknown_metric(self):
        """Test recording an unknown metric is a programming error."""
        with pytest.raises(KeyError):
            MetricsCollector().increment_counter("nope")

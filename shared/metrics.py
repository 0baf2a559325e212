"""
Shared metrics configuration for the resource cache.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest


class MetricsCollector:
    """Centralized metrics collector for the cache."""

    def __init__(self, service_name: str = "resource_cache", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # A private registry keeps independent caches (and tests) from colliding
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache metrics."""

        self._metrics["resource_cache_lookups_total"] = Counter(
            "resource_cache_lookups_total",
            "Resource requests by how they were satisfied",
            ["result"],
            registry=self.registry
        )

        self._metrics["resource_cache_fetches_total"] = Counter(
            "resource_cache_fetches_total",
            "Completed resource fetches",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["resource_cache_fetch_duration_seconds"] = Histogram(
            "resource_cache_fetch_duration_seconds",
            "Resource fetch duration in seconds",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["resource_cache_removals_total"] = Counter(
            "resource_cache_removals_total",
            "Cache entries removed",
            ["reason"],
            registry=self.registry
        )

        self._metrics["resource_cache_entries"] = Gauge(
            "resource_cache_entries",
            "Entries currently held in the cache",
            registry=self.registry
        )

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        with self._lock:
            metric = self._metrics[metric_name]
            if labels:
                metric.labels(**labels).inc()
            else:
                metric.inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        with self._lock:
            metric = self._metrics[metric_name]
            if labels:
                metric.labels(**labels).observe(value)
            else:
                metric.observe(value)

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric."""
        with self._lock:
            metric = self._metrics[metric_name]
            if labels:
                metric.labels(**labels).set(value)
            else:
                metric.set(value)

    def get_sample(self, name: str, **labels) -> Optional[float]:
        """Read a single sample value back from the registry."""
        return self.registry.get_sample_value(name, labels or None)

    def export(self) -> bytes:
        """Render all metrics in the Prometheus exposition format."""
        return generate_latest(self.registry)

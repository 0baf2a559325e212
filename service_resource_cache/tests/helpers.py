"""
Test doubles shared by resource cache tests.
"""

import asyncio
from typing import Any, List, Optional


GRACE_PERIOD_MS = 150_000


class FakeResource:
    """Resource whose fetch outcome is controlled by its factory."""

    def __init__(self, factory: "ResourceFactory", **kwargs: Any):
        self.factory = factory
        self.kwargs = kwargs
        self.status: Optional[int] = None
        self.fetch_calls = 0
        self.fetch_options: List[dict] = []
        self.teardown_calls = 0

    async def fetch(self, **options: Any):
        self.fetch_calls += 1
        self.factory.fetch_calls += 1
        self.fetch_options.append(options)

        if self.factory.gate is not None:
            await self.factory.gate.wait()
        if self.factory.fail_with is not None:
            raise self.factory.fail_with
        return self, self.factory.status_code

    def teardown(self) -> None:
        self.teardown_calls += 1


class ShortLivedResource(FakeResource):
    """Resource type with its own eviction grace period."""

    cache_timeout_ms = 1_000


class PlainValue:
    """A cached value with no optional capabilities."""


class ResourceFactory:
    """Callable factory recording every resource it builds."""

    def __init__(self, resource_class=FakeResource):
        self.resource_class = resource_class
        self.instances: List[FakeResource] = []
        self.fetch_calls = 0
        self.status_code = 200
        self.fail_with: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    def __call__(self, **kwargs: Any) -> FakeResource:
        resource = self.resource_class(self, **kwargs)
        self.instances.append(resource)
        return resource


class DummyMetrics:
    """Minimal metrics collector stub."""

    def __init__(self):
        self.counters = []
        self.histograms = []
        self.gauges = []

    def increment_counter(self, metric_name: str, **labels):
        self.counters.append((metric_name, labels))

    def observe_histogram(self, metric_name: str, value: float, **labels):
        self.histograms.append((metric_name, value, labels))

    def set_gauge(self, metric_name: str, value: float, **labels):
        self.gauges.append((metric_name, value, labels))

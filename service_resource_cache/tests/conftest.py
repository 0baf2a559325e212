"""
Shared fixtures for resource cache tests.
"""

import pytest

from service_resource_cache.app.caching.store import ResourceCache
from service_resource_cache.app.fetching.coordinator import FetchCoordinator
from service_resource_cache.app.scheduling.timers import ManualScheduler
from .helpers import GRACE_PERIOD_MS, DummyMetrics, ResourceFactory


@pytest.fixture
def scheduler():
    """Virtual clock scheduler."""
    return ManualScheduler()


@pytest.fixture
def metrics():
    """Recording metrics stub."""
    return DummyMetrics()


@pytest.fixture
def store(scheduler, metrics):
    """ResourceCache on a virtual clock."""
    return ResourceCache(scheduler, grace_period_ms=GRACE_PERIOD_MS, metrics=metrics)


@pytest.fixture
def coordinator(store, metrics):
    """FetchCoordinator over the virtual-clock store."""
    return FetchCoordinator(store, metrics=metrics)


@pytest.fixture
def factory():
    """Factory for controllable fake resources."""
    return ResourceFactory()

"""
Unit tests for opportunistic prefetching.
"""

import asyncio

import pytest

from shared.errors import TransportError
from service_resource_cache.app.fetching.prefetch import Prefetcher, PrefetchRequest


@pytest.fixture
def prefetcher(coordinator, scheduler, factory):
    """Prefetcher for two resources with the default delay."""
    return Prefetcher(
        coordinator,
        scheduler,
        [
            PrefetchRequest("user~userId=zorah", factory, {"user_id": "zorah"}),
            PrefetchRequest("teams", factory),
        ],
    )


class TestPrefetcher:
    """Arming, disarming and firing."""

    @pytest.mark.asyncio
    async def test_fires_after_delay(self, prefetcher, scheduler, coordinator, store):
        """Test requests go out once the hover delay elapses."""
        prefetcher.arm()

        scheduler.advance(49)
        assert coordinator.exists_in_cache("teams") is False

        scheduler.advance(1)
        assert coordinator.is_pending("user~userId=zorah") is True
        assert coordinator.is_pending("teams") is True

        results = await asyncio.gather(*prefetcher.futures)

        assert [status for _, status in results] == [200, 200]
        assert results[0][0].kwargs == {"user_id": "zorah"}
        assert store.is_scheduled("teams") is True

    @pytest.mark.asyncio
    async def test_disarm_before_delay_cancels(self, prefetcher, scheduler, factory):
        """Test a quick pass never reaches the network."""
        prefetcher.arm()
        scheduler.advance(20)
        prefetcher.disarm()
        scheduler.advance(100)

        assert prefetcher.fired is False
        assert factory.instances == []

    @pytest.mark.asyncio
    async def test_fires_only_once(self, prefetcher, scheduler, factory):
        """Test a spent prefetcher ignores later arms."""
        prefetcher.arm()
        scheduler.advance(50)
        await asyncio.gather(*prefetcher.futures)

        prefetcher.arm()
        scheduler.advance(50)

        assert factory.fetch_calls == 2
        assert len(prefetcher.futures) == 2

    @pytest.mark.asyncio
    async def test_failures_are_consumed(self, prefetcher, scheduler, coordinator, factory):
        """Test prefetch failures are logged, not raised, and leave no cache entry."""
        factory.fail_with = TransportError(500)

        prefetcher.arm()
        scheduler.advance(50)
        results = await asyncio.gather(*prefetcher.futures, return_exceptions=True)

        assert all(isinstance(result, Exception) for result in results)
        assert coordinator.exists_in_cache("teams") is False

    @pytest.mark.asyncio
    async def test_later_owner_adopts_prefetched_resource(self, prefetcher, scheduler, coordinator, store, factory):
        """Test a component requesting a prefetched key gets the same instance."""
        prefetcher.arm()
        scheduler.advance(50)

        future = coordinator.request("teams", factory, component="component-1")
        (prefetched, _), (resource, _) = await asyncio.gather(prefetcher.futures[1], future)

        assert resource is prefetched
        assert store.owners_of("teams") == {"component-1"}
        assert store.is_scheduled("teams") is False

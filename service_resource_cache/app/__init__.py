"""
Resource cache and fetch coordinator.

Components check out resources by cache key. Each key is fetched at most once
at a time, the result is shared by every requester, and entries are evicted a
grace period after their last owner lets go.

Structure:
- app.caching: Cache store, key builder and resource capabilities.
- app.fetching: Fetch coordinator and prefetching.
- app.scheduling: Timer sources for deferred eviction.
- app.adapters: Resource implementations for remote sources.
- app.context: Process-wide cache context.
"""

from .caching.keys import KEY_SEPARATOR, build_cache_key, matches_resource, resource_name_from_key
from .caching.store import CacheEntry, ResourceCache
from .context import CacheContext, get_cache_context, reset_cache_context
from .fetching.coordinator import FetchCoordinator, PendingRequest
from .fetching.prefetch import Prefetcher, PrefetchRequest
from .scheduling.timers import AsyncioScheduler, ManualScheduler

__all__ = [
    "AsyncioScheduler",
    "CacheContext",
    "CacheEntry",
    "FetchCoordinator",
    "KEY_SEPARATOR",
    "ManualScheduler",
    "PendingRequest",
    "PrefetchRequest",
    "Prefetcher",
    "ResourceCache",
    "build_cache_key",
    "get_cache_context",
    "matches_resource",
    "reset_cache_context",
    "resource_name_from_key",
]

"""
Caching package for the resource cache.

Holds the reference-counted store, its deferred eviction and the cache key
conventions bulk invalidation relies on.
"""

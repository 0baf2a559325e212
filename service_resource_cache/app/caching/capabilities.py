"""
Optional capabilities a cached resource may implement.

The cache treats values as opaque. It only checks for these capabilities and
never requires a base class.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Evictable(Protocol):
    """Releases subscriptions or listeners when removed from the cache."""

    def teardown(self) -> None:
        ...


def cache_timeout_for(value: Any, default_ms: int) -> int:
    """Resolve the eviction grace period for ``value``.

    A resource type overrides the default by declaring a class-level
    ``cache_timeout_ms``; ``None`` means "use the default".
    """
    override = getattr(type(value), "cache_timeout_ms", None)
    if override is None:
        return default_ms
    return override

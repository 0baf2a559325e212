"""
Reference-counted resource cache with deferred eviction.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional, Set, Union, TYPE_CHECKING

from shared.config import DEFAULT_CACHE_GRACE_PERIOD_MS
from shared.logging import get_logger
from ..scheduling.timers import Scheduler, TimerHandle
from .capabilities import Evictable, cache_timeout_for
from .keys import matches_resource

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass
class CacheEntry:
    """A cached resource and the owners keeping it alive."""
    key: str
    value: Any
    owners: Set[Hashable] = field(default_factory=set)
    eviction_timer: Optional[TimerHandle] = None


class ResourceCache:
    """Key-addressed store of resources shared between owners.

    Owners (usually UI components) register interest in a key. While a key has
    at least one owner it is never evicted. When the last owner leaves, removal
    is scheduled after a grace period so that a quick unmount/remount does not
    throw the resource away. ``remove`` bypasses the grace period.

    None of the operations raise on missing keys or redundant calls.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        grace_period_ms: int = DEFAULT_CACHE_GRACE_PERIOD_MS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.scheduler = scheduler
        self.grace_period_ms = grace_period_ms
        self.metrics = metrics
        self.logger = get_logger("resource_cache.store")

        self.entries: Dict[str, CacheEntry] = {}
        self.owner_manifest: Dict[Hashable, Set[str]] = {}  # owner -> keys

    def put(self, key: str, value: Any, owner: Optional[Hashable] = None) -> None:
        """Store ``value`` at ``key``, keeping any owners already registered."""
        entry = self.entries.get(key)
        if entry is None:
            self.entries[key] = CacheEntry(key=key, value=value)
            self._record_size()
        else:
            entry.value = value

        if owner is not None:
            self.register(key, owner)
        elif not self.entries[key].owners:
            self._schedule_removal(key)

    def get(self, key: str) -> Optional[Any]:
        entry = self.entries.get(key)
        return entry.value if entry is not None else None

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def register(self, key: str, owner: Optional[Hashable]) -> None:
        """Add ``owner`` to ``key`` and cancel any pending eviction."""
        entry = self.entries.get(key)
        if entry is None or owner is None:
            return

        self._cancel_removal(entry)
        entry.owners.add(owner)
        self.owner_manifest.setdefault(owner, set()).add(key)

    def unregister(self, owner: Hashable, *keys: str) -> None:
        """Remove ``owner`` from ``keys``, or from every key it holds.

        Entries left without owners are scheduled for eviction before this
        call returns.
        """
        manifest = self.owner_manifest.get(owner)
        if manifest is None:
            return

        for key in list(keys or manifest):
            if key not in manifest:
                continue

            manifest.discard(key)
            entry = self.entries.get(key)
            if entry is None:
                continue

            entry.owners.discard(owner)
            if not entry.owners:
                self._schedule_removal(key)

        if not manifest:
            del self.owner_manifest[owner]

    def remove(self, key: str) -> None:
        """Remove ``key`` immediately, tearing its value down exactly once."""
        self._remove(key, reason="removed")

    def remove_all_with_model(self, resource_name: str) -> None:
        """Remove ``resource_name`` and every instance key built from it."""
        for key in [key for key in self.entries if matches_resource(key, resource_name)]:
            self._remove(key, reason="invalidated")

    def remove_all_except(self, resource_names: Iterable[str]) -> None:
        """Remove every key that does not belong to one of ``resource_names``."""
        names = list(resource_names)
        doomed = [
            key for key in self.entries
            if not any(matches_resource(key, name) for name in names)
        ]
        for key in doomed:
            self._remove(key, reason="invalidated")

    def remove_all(self) -> None:
        """Clear every entry and timer. Used to reset state between runs."""
        for key in list(self.entries):
            self._remove(key, reason="reset")
        self.owner_manifest.clear()

    def invalidate(self, keys: Union[str, Iterable[str], None] = None, *, except_: bool = False) -> None:
        """Remove each of ``keys``, or with ``except_`` every resource not named.

        Without ``except_`` keys are removed exactly; ``"user"`` leaves
        ``"user~userId=zorah"`` alone. Use ``remove_all_with_model`` to drop
        every instance of a resource.
        """
        if not keys:
            return

        names = [keys] if isinstance(keys, str) else list(keys)
        if except_:
            self.remove_all_except(names)
        else:
            for key in names:
                self.remove(key)

    def keys(self) -> List[str]:
        return list(self.entries)

    def owners_of(self, key: str) -> Set[Hashable]:
        entry = self.entries.get(key)
        return set(entry.owners) if entry is not None else set()

    def keys_for_owner(self, owner: Hashable) -> Set[str]:
        return set(self.owner_manifest.get(owner, ()))

    def is_scheduled(self, key: str) -> bool:
        """True when ``key`` is waiting out its grace period."""
        entry = self.entries.get(key)
        return entry is not None and entry.eviction_timer is not None

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def _schedule_removal(self, key: str) -> None:
        entry = self.entries[key]
        self._cancel_removal(entry)

        timeout_ms = cache_timeout_for(entry.value, self.grace_period_ms)
        entry.eviction_timer = self.scheduler.schedule(timeout_ms, lambda: self._expire(key, entry))
        self.logger.debug("Scheduled cache removal", cache_key=key, timeout_ms=timeout_ms)

    def _cancel_removal(self, entry: CacheEntry) -> None:
        if entry.eviction_timer is not None:
            entry.eviction_timer.cancel()
            entry.eviction_timer = None

    def _expire(self, key: str, entry: CacheEntry) -> None:
        # A stale timer must not evict an entry that replaced the one it was set for
        if self.entries.get(key) is entry:
            self._remove(key, reason="expired")

    def _remove(self, key: str, reason: str) -> None:
        entry = self.entries.pop(key, None)
        if entry is None:
            return

        self._cancel_removal(entry)
        for owner in entry.owners:
            manifest = self.owner_manifest.get(owner)
            if manifest is None:
                continue
            manifest.discard(key)
            if not manifest:
                del self.owner_manifest[owner]

        self.logger.debug("Removed cache entry", cache_key=key, reason=reason)
        self._teardown(key, entry.value)
        self._record_removal(reason)

    def _teardown(self, key: str, value: Any) -> None:
        if not isinstance(value, Evictable):
            return

        try:
            value.teardown()
        except Exception as exc:
            self.logger.error("Resource teardown failed", cache_key=key, error=str(exc), exc_info=True)

    def _record_removal(self, reason: str) -> None:
        if not self.metrics:
            return

        try:
            self.metrics.increment_counter("resource_cache_removals_total", reason=reason)
        except Exception as exc:  # pragma: no cover - metrics failures should never break removal
            self.logger.debug("Failed to record removal metrics", error=str(exc))
        self._record_size()

    def _record_size(self) -> None:
        if not self.metrics:
            return

        try:
            self.metrics.set_gauge("resource_cache_entries", len(self.entries))
        except Exception as exc:  # pragma: no cover
            self.logger.debug("Failed to record cache size", error=str(exc))

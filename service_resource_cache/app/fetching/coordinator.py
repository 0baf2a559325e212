"""
Fetch coordination for cached resources.

``FetchCoordinator.request`` is the single entry point callers use to obtain a
resource. It is a plain function returning an ``asyncio.Future`` rather than a
coroutine: the cache entry and the pending-request record are both in place
before the caller gets control back, so a second caller asking for the same
key in the same event-loop turn shares the first caller's fetch.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple, TYPE_CHECKING

from shared.errors import MissingCacheKeyError, ResourceFetchError
from shared.logging import get_logger, set_cache_key
from ..caching.store import ResourceCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


FetchResult = Tuple[Any, Optional[int]]


@dataclass
class PendingRequest:
    """An outstanding fetch shared by every requester of ``key``."""
    key: str
    future: "asyncio.Future[FetchResult]"
    resource: Any = None
    task: Optional["asyncio.Task[None]"] = None
    started_at: float = field(default_factory=time.perf_counter)


class FetchCoordinator:
    """Deduplicates resource fetches on top of a ``ResourceCache``."""

    def __init__(self, store: ResourceCache, *, metrics: Optional["MetricsCollector"] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("resource_cache.coordinator")
        self.pending: Dict[str, PendingRequest] = {}

    def request(
        self,
        key: str,
        factory: Callable[..., Any],
        *,
        component: Optional[Hashable] = None,
        fetch: bool = True,
        force_fetch: bool = False,
        prefetch: bool = False,
        fetch_options: Optional[Dict[str, Any]] = None,
        **constructor_kwargs: Any,
    ) -> "asyncio.Future[FetchResult]":
        """Resolve ``key`` to a ``(resource, status)`` future.

        Resolution order:

        1. A fetch already in flight for ``key`` is shared as-is.
        2. A cached resource resolves immediately with status ``None``
           (unless ``force_fetch``).
        3. Otherwise the cached resource (forced refetch) or a new
           ``factory(**constructor_kwargs)`` is stored right away and, when
           ``fetch`` is true, loaded with ``await resource.fetch(**fetch_options)``.

        ``component`` becomes an owner of the entry on every path except
        prefetches, which leave the entry eviction-eligible until a real owner
        shows up. A failed fetch removes the entry and rejects the future with
        ``ResourceFetchError``; a cancelled fetch removes it too.
        """
        if not key:
            raise MissingCacheKeyError(details={"factory": getattr(factory, "__name__", repr(factory))})

        loop = asyncio.get_running_loop()
        owner = None if prefetch else component

        pending = self.pending.get(key)
        if pending is not None:
            self.store.register(key, owner)
            self._record_lookup("pending")
            return pending.future

        cached = self.store.get(key)
        if cached is not None and not force_fetch:
            self.store.register(key, owner)
            self._record_lookup("hit")
            return self._resolved(loop, cached)

        self._record_lookup("miss")
        resource = cached if cached is not None else factory(**constructor_kwargs)
        self.store.put(key, resource, owner)

        if not fetch:
            return self._resolved(loop, resource)

        pending = PendingRequest(key=key, future=loop.create_future(), resource=resource)
        self.pending[key] = pending
        pending.task = loop.create_task(self._run_fetch(pending, resource, dict(fetch_options or {})))

        self.logger.debug(
            "Resource fetch started",
            cache_key=key,
            force_fetch=force_fetch,
            prefetch=prefetch,
        )
        return pending.future

    def exists_in_cache(self, key: str) -> bool:
        return self.store.has(key)

    def get_from_cache(self, key: str) -> Optional[Any]:
        return self.store.get(key)

    def is_pending(self, key: str) -> bool:
        return key in self.pending

    def pending_keys(self) -> List[str]:
        return list(self.pending)

    def cancel_all(self) -> None:
        """Cancel every in-flight fetch and drop the unfetched resources."""
        for pending in list(self.pending.values()):
            if pending.task is not None:
                pending.task.cancel()
            if not pending.future.done():
                pending.future.cancel()
            self._discard(pending.key, pending.resource)
        self.pending.clear()

    async def _run_fetch(self, pending: PendingRequest, resource: Any, fetch_options: Dict[str, Any]) -> None:
        key = pending.key
        set_cache_key(key)

        try:
            _, status = await resource.fetch(**fetch_options)
        except asyncio.CancelledError:
            self._settle(pending)
            self._discard(key, resource)
            if not pending.future.done():
                pending.future.cancel()
            raise
        except Exception as exc:
            self._settle(pending)
            status = getattr(exc, "status", None)

            self._discard(key, resource)
            self._attach_status(resource, status)

            self.logger.warning(
                "Resource fetch failed",
                cache_key=key,
                status=status,
                error=str(exc),
            )
            self._record_fetch("failure", pending)

            error = ResourceFetchError(key, resource, status, message=str(exc) or "Resource fetch failed")
            error.__cause__ = exc
            if not pending.future.done():
                pending.future.set_exception(error)
            return

        self._settle(pending)
        self._attach_status(resource, status)

        self.logger.debug("Resource fetch succeeded", cache_key=key, status=status)
        self._record_fetch("success", pending)

        if not pending.future.done():
            pending.future.set_result((resource, status))

    def _settle(self, pending: PendingRequest) -> None:
        # Drop the record before waiters run so none of them can join a finished fetch
        if self.pending.get(pending.key) is pending:
            del self.pending[pending.key]

    def _discard(self, key: str, resource: Any) -> None:
        # Only roll back the value this fetch was loading
        if resource is not None and self.store.get(key) is resource:
            self.store.remove(key)

    def _attach_status(self, resource: Any, status: Optional[int]) -> None:
        try:
            resource.status = status
        except AttributeError:
            self.logger.debug("Resource does not accept a status attribute", resource_type=type(resource).__name__)

    @staticmethod
    def _resolved(loop: asyncio.AbstractEventLoop, resource: Any) -> "asyncio.Future[FetchResult]":
        future = loop.create_future()
        future.set_result((resource, None))
        return future

    def _record_lookup(self, result: str) -> None:
        if not self.metrics:
            return

        try:
            self.metrics.increment_counter("resource_cache_lookups_total", result=result)
        except Exception as exc:  # pragma: no cover - metrics failures should never break requests
            self.logger.debug("Failed to record lookup metrics", error=str(exc))

    def _record_fetch(self, outcome: str, pending: PendingRequest) -> None:
        if not self.metrics:
            return

        try:
            self.metrics.increment_counter("resource_cache_fetches_total", outcome=outcome)
            self.metrics.observe_histogram(
                "resource_cache_fetch_duration_seconds",
                time.perf_counter() - pending.started_at,
                outcome=outcome,
            )
        except Exception as exc:  # pragma: no cover
            self.logger.debug("Failed to record fetch metrics", error=str(exc))

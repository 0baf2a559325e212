"""
Process-wide cache context.

The store, owner manifest and pending-request table live on an explicit
``CacheContext``. Applications normally share the lazily created default from
``get_cache_context``; tests build their own with a ``ManualScheduler`` or call
``reset_for_test`` between cases.
"""

from typing import Iterable, Optional

from shared.config import CacheConfig, get_config
from shared.logging import configure_logging, get_logger
from shared.metrics import MetricsCollector
from .caching.store import ResourceCache
from .fetching.coordinator import FetchCoordinator
from .fetching.prefetch import Prefetcher, PrefetchRequest
from .scheduling.timers import AsyncioScheduler, Scheduler


class CacheContext:
    """Owns one resource cache and the coordinator in front of it."""

    def __init__(
        self,
        config: CacheConfig,
        scheduler: Scheduler,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config
        self.scheduler = scheduler
        self.metrics = metrics
        self.logger = get_logger("resource_cache.context")

        self.store = ResourceCache(
            scheduler,
            grace_period_ms=config.cache_grace_period_ms,
            metrics=metrics,
        )
        self.coordinator = FetchCoordinator(self.store, metrics=metrics)

    @classmethod
    def create(
        cls,
        config: Optional[CacheConfig] = None,
        scheduler: Optional[Scheduler] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "CacheContext":
        config = config or get_config()
        if metrics is None and config.enable_metrics:
            metrics = MetricsCollector()
        return cls(config, scheduler or AsyncioScheduler(), metrics)

    def prefetcher(self, requests: Iterable[PrefetchRequest]) -> Prefetcher:
        """Build a prefetcher using the configured hover delay."""
        return Prefetcher(
            self.coordinator,
            self.scheduler,
            requests,
            delay_ms=self.config.prefetch_delay_ms,
        )

    def reset_for_test(self) -> None:
        """Cancel in-flight fetches and empty the cache."""
        self.coordinator.cancel_all()
        self.store.remove_all()
        self.logger.debug("Cache context reset")


_default_context: Optional[CacheContext] = None


def get_cache_context() -> CacheContext:
    """Get the process-wide cache context, creating it on first use."""
    global _default_context
    if _default_context is None:
        config = get_config()
        configure_logging("resource_cache", config.log_level)
        _default_context = CacheContext.create(config)
    return _default_context


def reset_cache_context() -> None:
    """Reset and discard the process-wide cache context."""
    global _default_context
    if _default_context is not None:
        _default_context.reset_for_test()
    _default_context = None

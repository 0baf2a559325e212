"""
Opportunistic prefetching of resources.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from shared.config import DEFAULT_PREFETCH_DELAY_MS
from shared.logging import get_logger
from ..scheduling.timers import Scheduler, TimerHandle
from .coordinator import FetchCoordinator


@dataclass
class PrefetchRequest:
    """A resource to load ahead of the owner that will need it."""
    key: str
    factory: Callable[..., Any]
    options: Dict[str, Any] = field(default_factory=dict)


class Prefetcher:
    """Issues a batch of requests shortly after being armed.

    ``arm`` is meant to be called when a user shows intent (hovering a link),
    ``disarm`` when that intent goes away. Quick passes that disarm within
    ``delay_ms`` never reach the network. Once fired, a prefetcher stays spent.

    Prefetched entries have no owner, so they follow the normal grace period
    unless a component registers before it elapses.
    """

    def __init__(
        self,
        coordinator: FetchCoordinator,
        scheduler: Scheduler,
        requests: Iterable[PrefetchRequest],
        *,
        delay_ms: int = DEFAULT_PREFETCH_DELAY_MS,
    ):
        self.coordinator = coordinator
        self.scheduler = scheduler
        self.requests: List[PrefetchRequest] = list(requests)
        self.delay_ms = delay_ms
        self.fired = False
        self.futures: List["asyncio.Future[Any]"] = []
        self.logger = get_logger("resource_cache.prefetch")

        self._timer: Optional[TimerHandle] = None

    def arm(self) -> None:
        if self.fired or self._timer is not None:
            return
        self._timer = self.scheduler.schedule(self.delay_ms, self._fire)

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        self.fired = True

        for prefetch in self.requests:
            future = self.coordinator.request(
                prefetch.key,
                prefetch.factory,
                **{**prefetch.options, "prefetch": True},
            )
            future.add_done_callback(self._log_outcome)
            self.futures.append(future)

        self.logger.debug("Prefetch fired", keys=[prefetch.key for prefetch in self.requests])

    def _log_outcome(self, future: "asyncio.Future[Any]") -> None:
        # The owning component requests again and handles the failure itself
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self.logger.debug("Prefetch failed", error=str(exc))

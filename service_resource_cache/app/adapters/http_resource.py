"""
httpx-backed resource for use with the fetch coordinator.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
import httpx

from shared.logging import get_logger
from shared.errors import TransportError


class HttpResource:
    """A JSON resource loaded with a GET request.

    Subclasses set ``base_url``/``path`` (or override ``url``) and may override
    ``parse`` to shape the payload. ``cache_timeout_ms`` overrides the cache's
    default grace period for this type when set.
    """

    base_url: str = ""
    path: str = ""
    cache_timeout_ms: Optional[int] = None
    timeout: float = 10.0

    def __init__(self, data: Any = None, *, client: Optional[httpx.AsyncClient] = None, **path_params: Any):
        self.data = data
        self.path_params = path_params
        self.status: Optional[int] = None
        self.client = client
        self.logger = get_logger("resource_cache.http_resource")
        self._subscribers: List[Callable[["HttpResource"], None]] = []

    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.path.format(**self.path_params)}"

    def parse(self, payload: Any) -> Any:
        return payload

    def subscribe(self, callback: Callable[["HttpResource"], None]) -> None:
        """Call ``callback`` whenever a fetch replaces ``data``."""
        self._subscribers.append(callback)

    def teardown(self) -> None:
        self._subscribers.clear()

    async def fetch(self, params: Optional[Dict[str, Any]] = None, **options: Any) -> Tuple["HttpResource", int]:
        url = self.url()
        try:
            if self.client is not None:
                response = await self.client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            self.logger.error("Resource request failed", url=url, error=str(exc))
            raise TransportError(None, f"Request to {url} failed: {exc}") from exc

        if not response.is_success:
            self.logger.warning("Resource request rejected", url=url, status_code=response.status_code)
            raise TransportError(
                response.status_code,
                f"Request to {url} returned {response.status_code}",
                details={"response": response.text},
            )

        self.data = self.parse(response.json())
        for callback in list(self._subscribers):
            callback(self)

        self.logger.debug("Resource retrieved", url=url, status_code=response.status_code)
        return self, response.status_code

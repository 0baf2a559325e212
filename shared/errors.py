"""
Shared error handling for the resource cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class ResourceCacheException(Exception):
    """Base exception for resource cache errors."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class MissingCacheKeyError(ResourceCacheException):
    """A resource was requested without a cache key."""

    def __init__(self, message: str = "A cache key is required to request a resource", details: Optional[Dict[str, Any]] = None):
        super().__init__("MISSING_CACHE_KEY", message, details)


class TransportError(ResourceCacheException):
    """A resource failed to load from its remote source."""

    def __init__(self, status: Optional[int] = None, message: str = "Transport error", details: Optional[Dict[str, Any]] = None):
        self.status = status
        details = dict(details or {})
        details.setdefault("status", status)
        super().__init__("TRANSPORT_ERROR", message, details)


class ResourceFetchError(ResourceCacheException):
    """Rejection of a coordinated fetch.

    Every waiter on the same key receives this error carrying the same
    ``resource`` instance and the transport ``status`` (``None`` when the
    failure happened before a response existed).
    """

    def __init__(self, key: str, resource: Any, status: Optional[int] = None, message: str = "Resource fetch failed"):
        self.key = key
        self.resource = resource
        self.status = status
        super().__init__("FETCH_ERROR", f"{key}: {message}", {"key": key, "status": status})

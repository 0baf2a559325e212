"""
Resource adapters for remote data sources.
"""

from .http_resource import HttpResource

__all__ = [
    "HttpResource",
]

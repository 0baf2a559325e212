"""
Shared utilities for the resource cache.

This package aggregates common building blocks consumed by the cache
packages:

- config: Cache configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses

Do not import from service_* packages into shared/.
"""

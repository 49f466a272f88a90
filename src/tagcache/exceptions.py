"""Exceptions raised by the tagcache backend.

All errors derive from CacheError so callers can catch the whole family.
Store failures are always surfaced as TransportError, chained to the
underlying redis-py exception.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base exception for tagcache errors."""

    def __init__(self, message: str, cache_identifier: str | None = None):
        self.message = message
        self.cache_identifier = cache_identifier
        super().__init__(message)


class FrozenStoreError(CacheError):
    """A write was attempted while the backend is frozen."""

    def __init__(self, cache_identifier: str, action: str = "add or modify cache entry"):
        super().__init__(
            f'Cannot {action} because the backend of cache "{cache_identifier}" is frozen.',
            cache_identifier=cache_identifier,
        )
        self.action = action


class AlreadyFrozenError(FrozenStoreError):
    """freeze() was called on a backend that is already frozen."""

    def __init__(self, cache_identifier: str):
        super().__init__(cache_identifier, action="freeze cache backend")


class TransportError(CacheError):
    """Network or protocol failure while talking to the store."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class ConfigurationError(CacheError):
    """Invalid backend construction option."""

    def __init__(self, message: str, option: str | None = None):
        super().__init__(message)
        self.option = option

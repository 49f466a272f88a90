"""tagcache: tagged, freezable cache backend on Redis."""

from tagcache.cache import KeyNamespace, RedisBackend
from tagcache.config import BackendOptions
from tagcache.exceptions import (
    AlreadyFrozenError,
    CacheError,
    ConfigurationError,
    FrozenStoreError,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "AlreadyFrozenError",
    "BackendOptions",
    "CacheError",
    "ConfigurationError",
    "FrozenStoreError",
    "KeyNamespace",
    "RedisBackend",
    "TransportError",
]

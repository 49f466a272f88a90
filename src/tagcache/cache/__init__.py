"""Cache layer for tagcache.

Provides the Redis backend with:
- Entry storage with optional gzip compression and TTL
- Tag indices for bulk invalidation
- Freezing, which pins entries and rejects writes until a flush
- Lazy iteration over all entries of a cache
"""

from tagcache.cache.backend import MIN_REDIS_VERSION, BackendStatus, RedisBackend
from tagcache.cache.codec import PayloadCodec
from tagcache.cache.iteration import EntryCursor
from tagcache.cache.keys import KeyNamespace
from tagcache.cache.redis import create_client, create_sentinel

__all__ = [
    # Backend
    "BackendStatus",
    "MIN_REDIS_VERSION",
    "RedisBackend",
    # Building blocks
    "EntryCursor",
    "KeyNamespace",
    "PayloadCodec",
    # Connections
    "create_client",
    "create_sentinel",
]

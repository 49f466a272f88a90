"""Tagged, freezable cache backend on Redis.

Data layout (see tagcache.cache.keys):
- entry:<id> holds the (optionally gzip compressed) payload, with a TTL
- tags:<id> and tag:<tag> are the two directions of the tag index
- entries lists every entry identifier in insertion order
- frozen exists while the backend is frozen

Multi-key writes are made safe against concurrent writers in three ways:
- set() queues everything in one MULTI/EXEC transaction
- remove() and freeze() read an index first, so they WATCH it and retry
  the whole step when another client changed it before EXEC
- flush() and flush_by_tag() run as Lua scripts, which Redis executes
  without interleaving

Example:
    backend = RedisBackend("Flow_Session", {"hostname": "redis", "compressionLevel": 6})
    backend.set("user-42", b"...", tags=["user"], lifetime=300)
    backend.flush_by_tag("user")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from redis.exceptions import WatchError

from tagcache.cache.codec import PayloadCodec
from tagcache.cache.iteration import EntryCursor
from tagcache.cache.keys import KeyNamespace
from tagcache.cache.redis import create_client
from tagcache.cache.scripts import FLUSH_BY_TAG_SCRIPT, FLUSH_SCRIPT
from tagcache.config import BackendOptions
from tagcache.exceptions import AlreadyFrozenError, FrozenStoreError, TransportError
from tagcache.observability.reporter import (
    FailureReporter,
    LoggingThrowableLogger,
    ThrowableLogger,
)

if TYPE_CHECKING:
    from redis import Redis

logger = logging.getLogger(__name__)

MIN_REDIS_VERSION = "2.8.0"

_default_throwable_logger = LoggingThrowableLogger()


def _decode(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = []
    for part in version.split("."):
        digits = "".join(ch for ch in part if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


@dataclass
class BackendStatus:
    """Outcome of a backend status check."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class RedisBackend:
    """Cache backend storing entries and tag indices in Redis.

    Supports tags, iteration and freezing. A frozen backend rejects every
    write and keeps its entries forever; only flush() thaws it.
    """

    def __init__(
        self,
        cache_identifier: str,
        options: BackendOptions | Mapping[str, Any] | None = None,
        *,
        client: Redis | None = None,
        namespace: KeyNamespace | None = None,
        application_identifier: str = "",
        throwable_logger: ThrowableLogger | None = _default_throwable_logger,
    ):
        """Create a backend.

        Args:
            cache_identifier: Identifier of the cache using this backend
            options: Backend options (see BackendOptions)
            client: Pre-built Redis client; built from options if omitted
            namespace: Key namespace; derived from the identifiers if omitted
            application_identifier: Mixed into the derived namespace
            throwable_logger: Receives store failures; None disables logging
        """
        if not isinstance(options, BackendOptions):
            options = BackendOptions.from_mapping(options)

        self.cache_identifier = cache_identifier
        self.options = options
        self.namespace = namespace or KeyNamespace.for_cache(
            cache_identifier, application_identifier
        )
        self.codec = PayloadCodec(options.compression_level)
        self.reporter = FailureReporter(
            throwable_logger,
            cache_identifier=cache_identifier,
            deduplicate=options.deduplicate_errors,
            enabled=options.log_errors,
        )
        self.client = client if client is not None else create_client(options)

        # Cached for the lifetime of this instance, cleared by flush()
        self._frozen: bool | None = None

        self._flush_script = self.client.register_script(FLUSH_SCRIPT)
        self._flush_by_tag_script = self.client.register_script(FLUSH_BY_TAG_SCRIPT)

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def set(
        self,
        entry_identifier: str,
        data: bytes,
        tags: Iterable[str] = (),
        lifetime: int | None = None,
    ) -> None:
        """Store an entry, replacing any previous payload and lifetime.

        Tags are added to the entry's existing tags; tags attached by an
        earlier set() of the same identifier are not detached.

        Args:
            entry_identifier: Identifier of the entry
            data: Payload bytes
            tags: Tags to attach to the entry
            lifetime: Seconds until expiry; None uses the default lifetime,
                0 means unlimited

        Raises:
            FrozenStoreError: If the backend is frozen
            TypeError: If tags is a single string instead of a collection
            TransportError: If Redis is unreachable or rejects the command
        """
        if isinstance(tags, str):
            raise TypeError(f"tags must be a collection of tag names, got the string {tags!r}")

        if self.is_frozen():
            raise FrozenStoreError(self.cache_identifier)

        if lifetime is None:
            lifetime = self.options.default_lifetime

        entry_key = self.namespace.entry(entry_identifier)
        entries_key = self.namespace.entries()
        payload = self.codec.encode(data)

        with self.reporter.guard("set"), self.client.pipeline(transaction=True) as pipe:
            if lifetime > 0:
                pipe.set(entry_key, payload, ex=lifetime)
            else:
                pipe.set(entry_key, payload)

            pipe.lrem(entries_key, 0, entry_identifier)
            pipe.rpush(entries_key, entry_identifier)

            for tag in tags:
                pipe.sadd(self.namespace.tag(tag), entry_identifier)
                pipe.sadd(self.namespace.tags(entry_identifier), tag)

            pipe.execute()

    def get(self, entry_identifier: str) -> bytes | None:
        """Load an entry's payload, or None if there is no such entry."""
        with self.reporter.guard("get"):
            value = self.client.get(self.namespace.entry(entry_identifier))
        return self.codec.decode(value)

    def has(self, entry_identifier: str) -> bool:
        """Check whether an entry exists."""
        with self.reporter.guard("has"):
            return bool(self.client.exists(self.namespace.entry(entry_identifier)))

    def remove(self, entry_identifier: str) -> bool:
        """Remove an entry and detach it from all of its tags.

        Removing an identifier that does not exist succeeds as well.

        Raises:
            FrozenStoreError: If the backend is frozen
            TransportError: If Redis is unreachable or rejects the command
        """
        if self.is_frozen():
            raise FrozenStoreError(self.cache_identifier, action="remove cache entry")

        entry_key = self.namespace.entry(entry_identifier)
        tags_key = self.namespace.tags(entry_identifier)

        with self.reporter.guard("remove"), self.client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(tags_key)
                    tags = pipe.smembers(tags_key)

                    pipe.multi()
                    pipe.delete(entry_key)
                    for tag in tags:
                        pipe.srem(self.namespace.tag(_decode(tag)), entry_identifier)
                    pipe.delete(tags_key)
                    pipe.execute()
                    break
                except WatchError:
                    # Tags changed between read and EXEC, start over
                    logger.debug(f"Retrying removal of {entry_identifier}, tags changed")
                    continue

        return True

    def find_identifiers_by_tag(self, tag: str) -> list[str]:
        """Identifiers of all entries carrying the tag."""
        with self.reporter.guard("find_identifiers_by_tag"):
            members = self.client.smembers(self.namespace.tag(tag))
        return sorted(_decode(member) for member in members)

    def __iter__(self) -> EntryCursor:
        """Cursor over all (entry_identifier, payload) pairs.

        Entries written or removed while iterating may or may not be seen.
        """
        return EntryCursor(self.client, self.namespace, self.codec, self.reporter)

    # -------------------------------------------------------------------------
    # Bulk invalidation
    # -------------------------------------------------------------------------

    def flush(self) -> None:
        """Remove every key of this cache, including the frozen marker.

        This is the only write allowed on a frozen backend.
        """
        with self.reporter.guard("flush"):
            self._flush_script(keys=[self.namespace.frozen()], args=[self.namespace.pattern()])
        self._frozen = None
        logger.info(f"Flushed cache {self.cache_identifier}")

    def flush_by_tag(self, tag: str) -> int:
        """Remove all entries carrying the tag.

        Returns:
            Number of entries that carried the tag

        Raises:
            FrozenStoreError: If the backend is frozen
        """
        if self.is_frozen():
            raise FrozenStoreError(self.cache_identifier, action="flush cache entries by tag")

        with self.reporter.guard("flush_by_tag"):
            count = self._flush_by_tag_script(
                keys=[self.namespace.tag(tag)], args=[self.namespace.base()]
            )

        logger.debug(f"Flushed {count} entries tagged {tag} from cache {self.cache_identifier}")
        return int(count)

    def flush_by_tags(self, tags: Iterable[str]) -> int:
        """Flush each tag in turn.

        Not atomic across tags: a failure or a concurrent write between two
        tags leaves the earlier tags flushed and the later ones untouched.

        Returns:
            Sum of the per-tag counts
        """
        return sum(self.flush_by_tag(tag) for tag in tags)

    def collect_garbage(self) -> None:
        """Nothing to do, Redis expires entries on its own."""

    # -------------------------------------------------------------------------
    # Freezing
    # -------------------------------------------------------------------------

    def freeze(self) -> None:
        """Freeze the backend.

        Strips the expiry of every listed entry and sets the frozen marker in
        one transaction. Afterwards set(), remove(), flush_by_tag() and
        freeze() fail until flush() is called.

        Raises:
            AlreadyFrozenError: If the backend is already frozen
        """
        if self.is_frozen():
            raise AlreadyFrozenError(self.cache_identifier)

        entries_key = self.namespace.entries()

        with self.reporter.guard("freeze"), self.client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(entries_key)
                    entries = pipe.lrange(entries_key, 0, -1)

                    pipe.multi()
                    for entry_identifier in entries:
                        pipe.persist(self.namespace.entry(_decode(entry_identifier)))
                    pipe.set(self.namespace.frozen(), "1")
                    pipe.execute()
                    break
                except WatchError:
                    logger.debug(f"Retrying freeze of cache {self.cache_identifier}")
                    continue

        self._frozen = True
        logger.info(f"Froze cache {self.cache_identifier}")

    def is_frozen(self) -> bool:
        """Tell whether the backend is frozen.

        The answer is cached per instance. A freeze or flush done through
        another instance is not seen until this instance flushes.
        """
        if self._frozen is None:
            with self.reporter.guard("is_frozen"):
                self._frozen = bool(self.client.exists(self.namespace.frozen()))
        return self._frozen

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_status(self) -> BackendStatus:
        """Check that the server is reachable and recent enough."""
        status = BackendStatus()
        try:
            with self.reporter.guard("status"):
                info = self.client.info("server")
            frozen = self.is_frozen()
        except TransportError as e:
            status.errors.append(str(e))
            return status

        version = str(info.get("redis_version", ""))
        if not version:
            status.warnings.append("Could not determine the Redis server version")
        elif _version_tuple(version) < _version_tuple(MIN_REDIS_VERSION):
            status.errors.append(
                f"Redis server version {version} is too old, at least "
                f"{MIN_REDIS_VERSION} is required"
            )
        else:
            status.notices.append(f"Redis server version {version}")

        if frozen:
            status.notices.append(f"Cache {self.cache_identifier} is frozen")
        return status

    def close(self) -> None:
        """Close the connections of the underlying client."""
        self.client.close()

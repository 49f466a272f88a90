"""Lazy enumeration of the entries of a cache namespace.

The cursor walks the keyspace with SCAN over the entry:* pattern of the
namespace. SCAN gives no snapshot: entries created or removed while the
cursor is running may or may not be returned. An entry that expires or is
removed between being scanned and being read is skipped.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from tagcache.cache.codec import PayloadCodec
from tagcache.cache.keys import KeyNamespace
from tagcache.observability.reporter import FailureReporter

if TYPE_CHECKING:
    from redis import Redis

DEFAULT_SCAN_COUNT = 100


class EntryCursor:
    """Iterator of (entry_identifier, payload) pairs.

    Once exhausted it stays exhausted until rewind() is called.
    """

    def __init__(
        self,
        client: Redis,
        namespace: KeyNamespace,
        codec: PayloadCodec,
        reporter: FailureReporter,
        scan_count: int = DEFAULT_SCAN_COUNT,
    ):
        self.client = client
        self.namespace = namespace
        self.codec = codec
        self.reporter = reporter
        self.scan_count = scan_count
        self._keys: Iterator[bytes] | None = None

    def rewind(self) -> None:
        """Restart the scan from the beginning of the keyspace."""
        self._keys = None

    def __iter__(self) -> EntryCursor:
        return self

    def __next__(self) -> tuple[str, bytes]:
        if self._keys is None:
            self._keys = self.client.scan_iter(
                match=self.namespace.entry_pattern(), count=self.scan_count
            )

        while True:
            with self.reporter.guard("iterate"):
                key = next(self._keys, None)
                if key is None:
                    break
                payload = self.codec.decode(self.client.get(key))

            entry_identifier = self.namespace.entry_id(key)
            if entry_identifier is not None and payload is not None:
                return entry_identifier, payload

        raise StopIteration

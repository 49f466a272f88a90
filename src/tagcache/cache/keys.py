"""Cache key schema for tagcache.

Key format: {prefix}:{suffix}

Where suffix is one of:
- entry:<id>   payload of a cache entry
- tags:<id>    set of tags attached to an entry
- tag:<tag>    set of entry identifiers carrying a tag
- entries      insertion-ordered list of entry identifiers
- frozen       marker, present while the backend is frozen

The suffix strings are persisted state; changing them orphans existing data.
Entry identifiers and tags are not escaped, so they must not contain the
delimiter in a way that makes one key a prefix of another.
"""

from __future__ import annotations

import hashlib

DELIMITER = ":"

ENTRY = "entry:"
TAGS = "tags:"
TAG = "tag:"
ENTRIES = "entries"
FROZEN = "frozen"


class KeyNamespace:
    """Key generator for one cache namespace."""

    def __init__(self, prefix: str):
        self.prefix = prefix

    @classmethod
    def for_cache(cls, cache_identifier: str, application_identifier: str = "") -> KeyNamespace:
        """Namespace derived from the cache and application identifiers.

        Two applications sharing a database get distinct namespaces for
        caches with the same identifier.
        """
        digest = hashlib.md5(  # nosec B324 - not used for security
            (cache_identifier + application_identifier).encode("utf-8")
        ).hexdigest()
        return cls(f"tagcache_{digest}")

    def key(self, suffix: str) -> str:
        """Prefixed key for an arbitrary suffix."""
        return f"{self.prefix}{DELIMITER}{suffix}"

    def entry(self, entry_identifier: str) -> str:
        """Key for an entry payload."""
        return self.key(ENTRY + entry_identifier)

    def tags(self, entry_identifier: str) -> str:
        """Key for the set of tags attached to an entry."""
        return self.key(TAGS + entry_identifier)

    def tag(self, tag: str) -> str:
        """Key for the set of entries carrying a tag."""
        return self.key(TAG + tag)

    def entries(self) -> str:
        """Key for the ordered list of entry identifiers."""
        return self.key(ENTRIES)

    def frozen(self) -> str:
        """Key for the frozen marker."""
        return self.key(FROZEN)

    def base(self) -> str:
        """Namespace prefix including the trailing delimiter.

        Server-side scripts concatenate suffixes onto this value.
        """
        return self.key("")

    def pattern(self) -> str:
        """SCAN pattern matching every key of the namespace."""
        return self.key("*")

    def entry_pattern(self) -> str:
        """SCAN pattern matching every entry payload key."""
        return self.key(ENTRY + "*")

    def entry_id(self, key: str | bytes) -> str | None:
        """Recover the entry identifier from an entry payload key.

        Returns None if the key is not an entry key of this namespace.
        """
        if isinstance(key, bytes):
            key = key.decode("utf-8")
        entry_prefix = self.key(ENTRY)
        if not key.startswith(entry_prefix):
            return None
        return key[len(entry_prefix) :]

    def __repr__(self) -> str:
        return f"KeyNamespace({self.prefix!r})"

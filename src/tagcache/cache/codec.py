"""Payload compression for stored cache entries.

Compression is gzip at a fixed level chosen when the backend is built.
Level 0 stores payloads as-is.
"""

from __future__ import annotations

import gzip

MAX_COMPRESSION_LEVEL = 9


class PayloadCodec:
    """Encodes payloads before they are written and decodes them on read."""

    def __init__(self, compression_level: int = 0):
        if not 0 <= compression_level <= MAX_COMPRESSION_LEVEL:
            raise ValueError(
                f"compression_level must be between 0 and {MAX_COMPRESSION_LEVEL}, "
                f"got {compression_level}"
            )
        self.compression_level = compression_level

    @property
    def uses_compression(self) -> bool:
        return self.compression_level > 0

    def encode(self, data: bytes) -> bytes:
        if self.uses_compression:
            return gzip.compress(data, compresslevel=self.compression_level)
        return data

    def decode(self, value: bytes | None) -> bytes | None:
        """Inverse of encode().

        Returns None when nothing is stored. An uncompressed empty payload
        decodes to b"", which is distinct from a missing entry.
        """
        if value is None:
            return None
        if not self.uses_compression:
            return value
        if not value:
            # A gzip stream is never empty
            return None
        return gzip.decompress(value)

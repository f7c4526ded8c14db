"""Process-independent keys for the token index.

Python randomizes ``hash(str)`` per interpreter run (``PYTHONHASHSEED``), so a
value written to disk under ``hash(token)`` cannot be found again by another
process. ``StableKey`` replaces the builtin hash with a fixed algorithm:

    stable_hash(text) = first 8 bytes of MD5(text.encode("utf-8")),
                        read big endian as a signed 64-bit integer

The result fits SQLite's INTEGER column type and is identical for the same
text on every platform and in every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib


_HASH_BYTES = 8


def stable_hash(text: str) -> int:
    """Return the deterministic 64-bit hash of ``text``."""
    digest = hashlib.md5(text.encode("utf-8")).digest()
    return int.from_bytes(digest[:_HASH_BYTES], byteorder="big", signed=True)


@dataclass(frozen=True, slots=True)
class StableKey:
    """Token wrapper whose hash does not depend on the running process.

    Equality is by token text. Two distinct texts may share a ``stable_hash``;
    stores that partition by hash must still compare ``text``.
    """

    text: str
    stable_hash: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stable_hash", stable_hash(self.text))

    def __hash__(self) -> int:
        return self.stable_hash

    def bucket(self, buckets: int) -> int:
        """Map the key onto ``range(buckets)``."""
        if buckets <= 0:
            raise ValueError("buckets must be positive")
        return self.stable_hash % buckets

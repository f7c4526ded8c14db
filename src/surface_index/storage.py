"""Posting stores for the token index.

Two interchangeable backings implement ``PostingStore``:

* ``MemoryPostingStore`` - a plain dict; bounded only by available memory.
* ``DiskPostingStore`` - keeps at most ``memory_budget`` entries in an LRU
  working set and spills the rest to a SQLite file keyed by
  ``StableKey.stable_hash``. Rows also carry the token text, so colliding
  hashes never merge postings of different tokens.

The spill file is private to one store. It is stamped with the run id and a
per-store id and is never reopened as an index: a new store on the same
directory always starts empty. Leftovers from another run are discarded, or
refused with ``CrossRunReloadError``. Indexes are rebuilt from source
documents every run.
"""

from __future__ import annotations

from collections import OrderedDict
import logging
from pathlib import Path
import sqlite3
from types import TracebackType
from typing import Any, Protocol
from uuid import uuid4

import orjson

from surface_index.keys import StableKey
from surface_index.models import PostingMap
from surface_index.observability.context import get_run_id
from surface_index.sqlite_pragmas import apply_spill_pragmas


logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Base class for posting store failures."""


class StorageInitError(StorageError):
    """Raised when the backing directory or spill database cannot be set up."""


class CrossRunReloadError(StorageError):
    """Raised when a spill database written by another run would be reused."""


class PostingStore(Protocol):
    """Mapping from ``StableKey`` to the token's posting map."""

    def get(self, key: StableKey) -> PostingMap | None: ...  # pragma: no cover - interface definition

    def put(self, key: StableKey, postings: PostingMap) -> None: ...  # pragma: no cover - interface definition

    def __contains__(self, key: object) -> bool: ...  # pragma: no cover - interface definition

    def __len__(self) -> int: ...  # pragma: no cover - interface definition

    def stats(self) -> dict[str, Any]: ...  # pragma: no cover - interface definition

    def flush(self) -> None: ...  # pragma: no cover - interface definition

    def close(self) -> None: ...  # pragma: no cover - interface definition


class MemoryPostingStore:
    """Whole index held in process memory."""

    backing = "memory"

    def __init__(self) -> None:
        self._entries: dict[StableKey, PostingMap] = {}

    def get(self, key: StableKey) -> PostingMap | None:
        return self._entries.get(key)

    def put(self, key: StableKey, postings: PostingMap) -> None:
        self._entries[key] = postings

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, Any]:
        return {"backing": self.backing, "keys": len(self._entries)}

    def flush(self) -> None:
        """Nothing to persist."""

    def close(self) -> None:
        """Nothing to release."""


def _encode_postings(postings: PostingMap) -> bytes:
    return orjson.dumps({filename: sorted(ids) for filename, ids in postings.items()})


def _decode_postings(payload: bytes) -> PostingMap:
    return {filename: set(ids) for filename, ids in orjson.loads(payload).items()}


class _WorkingEntry:
    """Working-set slot; ``on_disk`` is True while the row matches the slot."""

    __slots__ = ("on_disk", "postings")

    def __init__(self, postings: PostingMap, *, on_disk: bool) -> None:
        self.postings = postings
        self.on_disk = on_disk


class DiskPostingStore:
    """Bounded in-memory working set backed by a run-scoped SQLite spill file."""

    backing = "disk"
    SPILL_FILENAME = "postings.db"
    DEFAULT_MEMORY_BUDGET = 10_000

    def __init__(
        self,
        directory: str | Path,
        *,
        memory_budget: int = DEFAULT_MEMORY_BUDGET,
        run_id: str | None = None,
        discard_stale: bool = True,
    ) -> None:
        if memory_budget < 1:
            raise ValueError(f"memory_budget must be >= 1, got {memory_budget}")

        self.directory = Path(directory)
        self.memory_budget = memory_budget
        self.run_id = run_id or get_run_id()
        self.store_id = uuid4().hex
        self._working: OrderedDict[StableKey, _WorkingEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._collisions = 0

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageInitError(f"Cannot create spill directory {self.directory}: {exc}") from exc

        self.db_path = self.directory / self.SPILL_FILENAME
        try:
            self._conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StorageInitError(f"Cannot open spill database {self.db_path}: {exc}") from exc

        try:
            apply_spill_pragmas(self._conn)
            self._create_schema()
            self._claim_spill(discard_stale)
        except sqlite3.Error as exc:
            self._conn.close()
            raise StorageInitError(f"Cannot initialize spill database {self.db_path}: {exc}") from exc
        except CrossRunReloadError:
            self._conn.close()
            raise

        logger.info(
            "Disk posting store ready at %s (memory budget %d entries)",
            self.db_path,
            self.memory_budget,
        )

    def _create_schema(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            CREATE TABLE IF NOT EXISTS postings (
                key_hash INTEGER NOT NULL,
                token TEXT NOT NULL,
                postings BLOB NOT NULL,
                PRIMARY KEY (key_hash, token)
            ) WITHOUT ROWID;
        """)

    def _claim_spill(self, discard_stale: bool) -> None:
        """Take ownership of the spill file; whatever a previous store left is dropped."""
        metadata = dict(self._conn.execute("SELECT key, value FROM metadata").fetchall())
        previous_run = metadata.get("run_id")
        has_rows = self._conn.execute("SELECT 1 FROM postings LIMIT 1").fetchone() is not None

        if has_rows or previous_run is not None:
            if previous_run != self.run_id:
                if not discard_stale:
                    raise CrossRunReloadError(
                        f"Spill database {self.db_path} belongs to run {previous_run!r}; "
                        "spilled postings cannot be reused across runs, rebuild the index instead"
                    )
                logger.warning("Discarding stale spill database %s from run %s", self.db_path, previous_run)
            else:
                logger.info(
                    "Clearing spill database %s left by store %s",
                    self.db_path,
                    metadata.get("store_id", "unknown"),
                )
            self._conn.execute("DELETE FROM postings")

        self._conn.executemany(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            [("run_id", self.run_id), ("store_id", self.store_id)],
        )
        self._conn.commit()

    def get(self, key: StableKey) -> PostingMap | None:
        entry = self._working.get(key)
        if entry is not None:
            self._working.move_to_end(key)
            self._hits += 1
            return entry.postings

        self._misses += 1
        postings = self._read(key)
        if postings is None:
            return None
        self._admit(key, _WorkingEntry(postings, on_disk=True))
        return postings

    def put(self, key: StableKey, postings: PostingMap) -> None:
        self._admit(key, _WorkingEntry(postings, on_disk=False))

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, StableKey):
            return False
        if key in self._working:
            return True
        return self._read(key) is not None

    def __len__(self) -> int:
        (on_disk,) = self._conn.execute("SELECT COUNT(*) FROM postings").fetchone()
        pending = 0
        for key, entry in self._working.items():
            if entry.on_disk:
                continue
            if not self._row_exists(key):
                pending += 1
        return int(on_disk) + pending

    def stats(self) -> dict[str, Any]:
        return {
            "backing": self.backing,
            "keys": len(self),
            "resident": len(self._working),
            "memory_budget": self.memory_budget,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hash_collisions": self._collisions,
            "spill_path": str(self.db_path),
        }

    def flush(self) -> None:
        """Write every modified working-set entry to the spill database."""
        for key, entry in self._working.items():
            if not entry.on_disk:
                self._write(key, entry.postings)
                entry.on_disk = True
        self._conn.commit()

    def close(self) -> None:
        try:
            self.flush()
        finally:
            self._conn.close()

    def __enter__(self) -> DiskPostingStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _admit(self, key: StableKey, entry: _WorkingEntry) -> None:
        self._working[key] = entry
        self._working.move_to_end(key)
        while len(self._working) > self.memory_budget:
            evicted_key, evicted = self._working.popitem(last=False)
            self._evictions += 1
            if not evicted.on_disk:
                self._write(evicted_key, evicted.postings)
            logger.debug("Evicted %r (hash %d) from working set", evicted_key.text, evicted_key.stable_hash)

    def _read(self, key: StableKey) -> PostingMap | None:
        rows = self._conn.execute(
            "SELECT token, postings FROM postings WHERE key_hash = ?",
            (key.stable_hash,),
        ).fetchall()
        for token, payload in rows:
            if token == key.text:
                return _decode_postings(payload)
        if rows:
            # Same hash, different token text.
            self._collisions += 1
            logger.debug(
                "Hash collision for %r (hash %d) with %s",
                key.text,
                key.stable_hash,
                [token for token, _ in rows],
            )
        return None

    def _row_exists(self, key: StableKey) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM postings WHERE key_hash = ? AND token = ?",
            (key.stable_hash, key.text),
        ).fetchone()
        return row is not None

    def _write(self, key: StableKey, postings: PostingMap) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO postings (key_hash, token, postings) VALUES (?, ?, ?)",
            (key.stable_hash, key.text, _encode_postings(postings)),
        )

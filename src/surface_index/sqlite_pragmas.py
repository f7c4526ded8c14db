"""SQLite PRAGMA helper for the run-scoped spill database."""

from __future__ import annotations

import sqlite3


def apply_spill_pragmas(
    conn: sqlite3.Connection,
    *,
    cache_size_kb: int = -16384,
    temp_store: str = "MEMORY",
    page_size: int = 4096,
) -> None:
    """Apply write-heavy PRAGMAs.

    The spill file only lives for one run: no journal file and no fsync.
    """
    conn.execute(f"PRAGMA page_size = {page_size}")
    conn.execute("PRAGMA journal_mode = OFF")
    conn.execute("PRAGMA synchronous = OFF")
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")
    conn.execute(f"PRAGMA temp_store = {temp_store}")

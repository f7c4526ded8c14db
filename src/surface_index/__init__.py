"""
Token inverted index for surface-pattern candidate retrieval.

This package provides:
- keys: StableKey, a token wrapper with a process-independent hash
- storage: in-memory and disk-backed (SQLite spill) posting stores
- indexer: insertion of annotated sentences
- query: single-token, union and pattern-derived lookups
- inverted_index: the InvertedIndexByTokens facade
"""

from surface_index.config import IndexSettings
from surface_index.inverted_index import InvertedIndexByTokens
from surface_index.keys import StableKey, stable_hash
from surface_index.models import PatternContext, PostingMap, TokenRecord
from surface_index.query import MissingTokenError, QueryEngine, RelevancePolicy, WordRelevanceFilter
from surface_index.storage import (
    CrossRunReloadError,
    DiskPostingStore,
    MemoryPostingStore,
    PostingStore,
    StorageError,
    StorageInitError,
)


__all__ = [
    "CrossRunReloadError",
    "DiskPostingStore",
    "IndexSettings",
    "InvertedIndexByTokens",
    "MemoryPostingStore",
    "MissingTokenError",
    "PatternContext",
    "PostingMap",
    "PostingStore",
    "QueryEngine",
    "RelevancePolicy",
    "StableKey",
    "StorageError",
    "StorageInitError",
    "TokenRecord",
    "WordRelevanceFilter",
    "stable_hash",
]

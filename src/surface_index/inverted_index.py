"""Inverted index of (word or lemma) => {file => {sentence ids}}.

``InvertedIndexByTokens`` wires a posting store, the indexer and the query
engine together from one ``IndexSettings`` object. The index is built once per
corpus load with repeated ``add`` calls and then queried; queries reflect
whatever has been added up to the call.

With ``disk_backed`` enabled the postings spill to a run-scoped SQLite file.
That file is not a saved index: build the index again in every run.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
from types import TracebackType
from typing import Any

from surface_index.config import IndexSettings
from surface_index.indexer import TokenIndexer
from surface_index.keys import StableKey
from surface_index.models import AnnotatedToken, ContextPattern, PostingMap
from surface_index.query import QueryEngine, RelevancePolicy, WordRelevanceFilter
from surface_index.storage import PostingStore
from surface_index.storage_factory import create_posting_store


logger = logging.getLogger(__name__)


class InvertedIndexByTokens:
    """Token -> file -> sentence id index used to pre-select pattern candidates."""

    def __init__(
        self,
        settings: IndexSettings | None = None,
        *,
        store: PostingStore | None = None,
        run_id: str | None = None,
    ) -> None:
        self.settings = settings or IndexSettings()
        self.normalizer = self.settings.normalizer()
        self.store = store if store is not None else create_posting_store(self.settings, run_id=run_id)
        self.indexer = TokenIndexer(self.store, self.normalizer)
        policy = RelevancePolicy(
            stop_words=self.settings.stop_words,
            special_words=self.settings.special_words,
        )
        self.query = QueryEngine(self.store, WordRelevanceFilter(policy, self.normalizer))
        logger.info(
            "Inverted index created (%s backing, lowercase=%s, %d stopwords, %d special words)",
            getattr(self.store, "backing", type(self.store).__name__),
            self.settings.lowercase,
            len(policy.stop_words),
            len(policy.special_words),
        )

    @classmethod
    def from_options(
        cls,
        *,
        backing_directory: Any = None,
        lowercase: bool = True,
        disk_backed: bool = False,
        stop_words: Iterable[str] | None = None,
        special_words: Iterable[str] | None = None,
        **overrides: Any,
    ) -> InvertedIndexByTokens:
        """Build an index from explicit construction options."""
        settings = IndexSettings(
            backing_directory=backing_directory,
            lowercase=lowercase,
            disk_backed=disk_backed,
            stop_words=frozenset(stop_words or ()),
            special_words=frozenset(special_words or ()),
            **overrides,
        )
        return cls(settings)

    def add(
        self,
        sentences: Mapping[str, Sequence[AnnotatedToken]],
        filename: str,
        use_lemma: bool = False,
    ) -> int:
        return self.indexer.add(sentences, filename, use_lemma)

    def lookup(self, token: str) -> PostingMap | None:
        return self.query.lookup(token)

    def lookup_union(self, tokens: Iterable[str]) -> PostingMap:
        return self.query.lookup_union(tokens)

    def lookup_for_patterns(self, patterns: Iterable[ContextPattern]) -> PostingMap:
        return self.query.lookup_for_patterns(patterns)

    def get_special_words(self) -> frozenset[str]:
        return self.query.get_special_words()

    def stats(self) -> dict[str, Any]:
        return {
            "lowercase": self.settings.lowercase,
            "stop_words": len(self.settings.stop_words),
            "special_words": len(self.settings.special_words),
            **self.store.stats(),
        }

    def flush(self) -> None:
        self.store.flush()

    def close(self) -> None:
        self.store.close()

    def __len__(self) -> int:
        return len(self.store)

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and StableKey(token) in self.store

    def __enter__(self) -> InvertedIndexByTokens:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

"""Query side of the token index.

``QueryEngine`` answers three kinds of lookups, all returning
``file -> sentence ids``:

* ``lookup`` - one token, ``None`` when it was never indexed;
* ``lookup_union`` - union over a token set; an unindexed token is a caller
  error (``MissingTokenError``), not an empty contribution;
* ``lookup_for_patterns`` - derive the relevant context words of surface
  patterns with ``WordRelevanceFilter``, then ``lookup_union``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging

from surface_index.analyzers import TokenNormalizer
from surface_index.keys import StableKey
from surface_index.models import ContextPattern, PostingMap, copy_postings, merge_postings
from surface_index.storage import PostingStore


logger = logging.getLogger(__name__)


class MissingTokenError(KeyError):
    """Raised when a union query names a token the index has never seen."""

    def __init__(self, token: str) -> None:
        super().__init__(token)
        self.token = token

    def __str__(self) -> str:
        return f"Index has no sentences for token {self.token!r}"


@dataclass(frozen=True, slots=True)
class RelevancePolicy:
    """Immutable stopword / special-word configuration for pattern queries."""

    stop_words: frozenset[str] = frozenset()
    special_words: frozenset[str] = frozenset()

    def is_relevant(self, word: str) -> bool:
        return word not in self.stop_words and word not in self.special_words


class WordRelevanceFilter:
    """Chooses which pattern context words are worth looking up."""

    def __init__(self, policy: RelevancePolicy, normalizer: TokenNormalizer | None = None) -> None:
        self.policy = policy
        self.normalizer = normalizer or TokenNormalizer()

    def context_words(self, pattern: ContextPattern) -> set[str]:
        """Normalized, non-empty previous and next context tokens of ``pattern``."""
        words: set[str] = set()
        for context in (pattern.original_next, pattern.original_prev):
            if not context:
                continue
            for raw in context:
                word = self.normalizer.normalize_context(raw)
                if word:
                    words.add(word)
        return words

    def relevant_words(self, patterns: Iterable[ContextPattern]) -> set[str]:
        """Union of the relevant context words over ``patterns``.

        A pattern whose context is nothing but stopwords contributes its whole
        context, otherwise it could never be retrieved. Special words are
        removed at the end regardless of how they got in.
        """
        relevant: set[str] = set()
        for pattern in patterns:
            context = self.context_words(pattern)
            kept = {word for word in context if self.policy.is_relevant(word)}
            if kept:
                relevant |= kept
            else:
                relevant |= context
        relevant -= self.policy.special_words
        return relevant


class QueryEngine:
    """Read-side lookups over a posting store."""

    def __init__(self, store: PostingStore, relevance: WordRelevanceFilter) -> None:
        self.store = store
        self.relevance = relevance

    def lookup(self, token: str) -> PostingMap | None:
        """Return postings for ``token`` exactly as given, or ``None``."""
        postings = self.store.get(StableKey(token))
        if postings is None:
            return None
        return copy_postings(postings)

    def lookup_union(self, tokens: Iterable[str]) -> PostingMap:
        """Union the postings of every token in ``tokens``.

        Raises:
            MissingTokenError: a token has no postings
        """
        result: PostingMap = {}
        for token in tokens:
            postings = self.store.get(StableKey(token))
            if postings is None:
                logger.warning("Union query for unindexed token %r", token)
                raise MissingTokenError(token)
            merge_postings(result, postings)
        return result

    def lookup_for_patterns(self, patterns: Iterable[ContextPattern]) -> PostingMap:
        """Union the postings of the relevant context words of ``patterns``."""
        words = self.relevance.relevant_words(patterns)
        logger.debug("Pattern query resolved to %d relevant words", len(words), extra={"words": words})
        return self.lookup_union(words)

    def get_special_words(self) -> frozenset[str]:
        return self.relevance.policy.special_words

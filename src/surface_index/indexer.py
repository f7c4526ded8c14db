"""Token indexing.

Every token of every sentence becomes indexable: stopword and special-word
filtering is a query-time policy, so nothing is dropped here.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging

from surface_index.analyzers import TokenNormalizer
from surface_index.keys import StableKey
from surface_index.models import AnnotatedToken, PostingMap
from surface_index.storage import PostingStore


logger = logging.getLogger(__name__)


class TokenIndexer:
    """Merges (file, sentence id, token) occurrences into a posting store."""

    def __init__(self, store: PostingStore, normalizer: TokenNormalizer | None = None) -> None:
        self.store = store
        self.normalizer = normalizer or TokenNormalizer()

    def add(
        self,
        sentences: Mapping[str, Sequence[AnnotatedToken]],
        filename: str,
        use_lemma: bool = False,
    ) -> int:
        """Index a batch of sentences from ``filename``.

        Args:
            sentences: sentence id -> ordered annotated tokens
            filename: file identifier recorded in the postings
            use_lemma: index ``token.lemma`` instead of ``token.word``

        Returns:
            Number of token occurrences processed.
        """
        occurrences = 0
        for sentence_id, tokens in sentences.items():
            for token in tokens:
                text = token.lemma if use_lemma else token.word
                key = StableKey(self.normalizer(text))
                postings: PostingMap = self.store.get(key) or {}
                postings.setdefault(filename, set()).add(sentence_id)
                self.store.put(key, postings)
                occurrences += 1

        logger.debug(
            "Indexed %d tokens from %d sentences of %s",
            occurrences,
            len(sentences),
            filename,
            extra={"use_lemma": use_lemma},
        )
        return occurrences

"""Token normalization shared by indexing and querying.

Insertion and lookup must fold case identically, otherwise a token indexed as
``rocket`` is never found through the pattern context ``Rocket``. Both sides
therefore go through one ``TokenNormalizer``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class TokenNormalizer:
    """Applies the index-wide case-folding setting."""

    lowercase: bool = True

    def __call__(self, text: str) -> str:
        if self.lowercase and not text.islower():
            return text.lower()
        return text

    def normalize_context(self, text: str) -> str:
        """Normalize a pattern context entry (also strips whitespace)."""
        return self(text.strip())

    def normalize_words(self, words: Iterable[str]) -> frozenset[str]:
        """Normalize a configured word list, dropping blank entries."""
        normalized = (self.normalize_context(word) for word in words)
        return frozenset(word for word in normalized if word)


def load_word_list(path: str | Path) -> list[str]:
    """Read one word per line, ignoring blank lines and ``#`` comments."""
    words: list[str] = []
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        words.append(entry)
    return words

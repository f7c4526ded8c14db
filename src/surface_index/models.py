"""Data shapes exchanged with the tokenizer and the pattern representation."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeAlias


PostingMap: TypeAlias = dict[str, set[str]]
"""file identifier -> sentence identifiers in which a token occurs."""


class AnnotatedToken(Protocol):
    """Token record produced by the external annotator."""

    @property
    def word(self) -> str: ...  # pragma: no cover - interface definition

    @property
    def lemma(self) -> str: ...  # pragma: no cover - interface definition


class ContextPattern(Protocol):
    """Surface pattern seen only through its context arrays."""

    @property
    def original_prev(self) -> Sequence[str] | None: ...  # pragma: no cover - interface definition

    @property
    def original_next(self) -> Sequence[str] | None: ...  # pragma: no cover - interface definition


@dataclass(frozen=True, slots=True)
class TokenRecord:
    """Minimal annotated token (surface form plus lemma)."""

    word: str
    lemma: str

    @classmethod
    def from_word(cls, word: str) -> TokenRecord:
        return cls(word=word, lemma=word)


@dataclass(frozen=True, slots=True)
class PatternContext:
    """Minimal pattern carrying previous/next context tokens."""

    original_prev: tuple[str, ...] | None = None
    original_next: tuple[str, ...] | None = None


def copy_postings(postings: Mapping[str, Iterable[str]]) -> PostingMap:
    """Return an independent copy of a posting map."""
    return {filename: set(sentence_ids) for filename, sentence_ids in postings.items()}


def merge_postings(target: PostingMap, other: Mapping[str, Iterable[str]]) -> PostingMap:
    """Union ``other`` into ``target`` file by file and return ``target``."""
    for filename, sentence_ids in other.items():
        target.setdefault(filename, set()).update(sentence_ids)
    return target

"""Command-line entry point: build an index from a JSONL corpus and query it.

Each corpus line is one sentence::

    {"file": "doc1", "sentence_id": "s1", "tokens": [{"word": "Rockets", "lemma": "rocket"}, "launched"]}

Tokens may be objects with ``word``/``lemma`` or plain strings (lemma = word).
Configuration comes from ``SURFACE_INDEX_*`` environment variables; the flags
below override them.
"""

from __future__ import annotations

import argparse
from collections import defaultdict
from collections.abc import Iterator, Sequence
import logging
from pathlib import Path
import sys
from typing import Any

import orjson
from pydantic import ValidationError

from surface_index.config import IndexSettings
from surface_index.inverted_index import InvertedIndexByTokens
from surface_index.models import PatternContext, PostingMap, TokenRecord
from surface_index.observability.logging import configure_logging
from surface_index.query import MissingTokenError
from surface_index.storage import StorageError


logger = logging.getLogger(__name__)


def _token_record(raw: Any) -> TokenRecord:
    if isinstance(raw, str):
        return TokenRecord.from_word(raw)
    word = str(raw["word"])
    return TokenRecord(word=word, lemma=str(raw.get("lemma") or word))


def iter_corpus(path: Path) -> Iterator[tuple[str, str, list[TokenRecord]]]:
    """Yield ``(file, sentence_id, tokens)`` from a JSONL corpus."""
    with path.open("rb") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                record = orjson.loads(line)
                yield str(record["file"]), str(record["sentence_id"]), [_token_record(t) for t in record["tokens"]]
            except (orjson.JSONDecodeError, KeyError, TypeError) as exc:
                raise ValueError(f"{path}:{line_number}: malformed corpus line ({exc})") from exc


def build_index(index: InvertedIndexByTokens, corpus: Path, *, use_lemma: bool) -> int:
    """Group corpus sentences by file and add them batch by batch."""
    batches: dict[str, dict[str, list[TokenRecord]]] = defaultdict(dict)
    for filename, sentence_id, tokens in iter_corpus(corpus):
        batches[filename][sentence_id] = tokens
    total = 0
    for filename, sentences in batches.items():
        total += index.add(sentences, filename, use_lemma)
    logger.info("Indexed %d tokens from %d files", total, len(batches))
    return total


def _context(raw: Any) -> tuple[str, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, list) or not all(isinstance(word, str) for word in raw):
        raise TypeError(f"expected a list of strings, got {raw!r}")
    return tuple(raw)


def _load_patterns(path: Path) -> list[PatternContext]:
    """Read a JSON list of ``{"prev": [...], "next": [...]}`` objects."""
    try:
        entries = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        raise ValueError(f"{path}: malformed patterns file ({exc})") from exc
    if not isinstance(entries, list):
        raise ValueError(f"{path}: expected a JSON list of pattern objects")

    patterns: list[PatternContext] = []
    for position, entry in enumerate(entries):
        try:
            if not isinstance(entry, dict):
                raise TypeError(f"expected an object, got {entry!r}")
            patterns.append(
                PatternContext(
                    original_prev=_context(entry.get("prev")),
                    original_next=_context(entry.get("next")),
                )
            )
        except TypeError as exc:
            raise ValueError(f"{path}[{position}]: malformed pattern ({exc})") from exc
    return patterns


def _serialize(postings: PostingMap | None) -> bytes:
    if postings is None:
        return b"null"
    payload = {filename: sorted(ids) for filename, ids in sorted(postings.items())}
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="surface-index", description=__doc__.splitlines()[0])
    parser.add_argument("corpus", type=Path, help="JSONL corpus, one sentence per line")
    parser.add_argument("--lemma", action="store_true", help="Index lemmas instead of surface words")
    parser.add_argument("--disk", type=Path, default=None, help="Spill postings to this run-scoped directory")
    parser.add_argument("--stop-words", default=None, help="Comma-separated stopwords")
    parser.add_argument("--special-words", default=None, help="Comma-separated reserved pattern markers")
    query = parser.add_mutually_exclusive_group(required=True)
    query.add_argument("--token", help="Look up a single token")
    query.add_argument("--union", nargs="+", metavar="TOKEN", help="Union of several tokens")
    query.add_argument("--patterns", type=Path, help='JSON list of {"prev": [...], "next": [...]} objects')
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides: dict[str, Any] = {}
    if args.disk is not None:
        overrides.update(disk_backed=True, backing_directory=args.disk)
    if args.stop_words is not None:
        overrides["stop_words"] = args.stop_words
    if args.special_words is not None:
        overrides["special_words"] = args.special_words

    try:
        settings = IndexSettings(**overrides)
    except ValidationError as exc:
        print(exc, file=sys.stderr)
        return 2

    # stdout carries the query result only.
    configure_logging(settings.log_level, json_output=settings.json_logs, stream=sys.stderr)

    try:
        with InvertedIndexByTokens(settings) as index:
            build_index(index, args.corpus, use_lemma=args.lemma)
            if args.token is not None:
                result = index.lookup(index.normalizer(args.token))
            elif args.union is not None:
                result = index.lookup_union(index.normalizer(token) for token in args.union)
            else:
                result = index.lookup_for_patterns(_load_patterns(args.patterns))
    except MissingTokenError as exc:
        print(exc, file=sys.stderr)
        return 1
    except (StorageError, ValueError, OSError) as exc:
        logger.error("Index build failed: %s", exc)
        return 2

    sys.stdout.write(_serialize(result).decode("utf-8") + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

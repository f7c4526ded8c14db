"""Centralized configuration for surface-index using Pydantic Settings."""

from pathlib import Path
from typing import Annotated

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from surface_index.analyzers import TokenNormalizer, load_word_list


class IndexSettings(BaseSettings):
    """Strictly typed index configuration.

    Values come from keyword arguments, then ``SURFACE_INDEX_*`` environment
    variables, then ``.env``. Word sets accept comma-separated strings.
    Stop and special words are normalized with the same case folding as the
    index, so membership checks at query time compare like with like.
    """

    model_config = SettingsConfigDict(
        env_prefix="SURFACE_INDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
        frozen=True,
    )

    # Normalization (declared first: the word-set validators read it)
    lowercase: bool = Field(default=True, description="Case-fold tokens at insertion and query time")

    # Storage
    disk_backed: bool = Field(default=False, description="Spill postings to a SQLite file instead of memory")
    backing_directory: Path | None = Field(
        default=None, description="Run-scoped spill directory (required when disk_backed is set)"
    )
    memory_budget: int = Field(
        default=10_000, ge=1, description="Working-set size, in entries, of the disk-backed store"
    )
    discard_stale_spill: bool = Field(
        default=True,
        description="Drop a spill file left by another run instead of raising CrossRunReloadError",
    )

    # Relevance policy
    stop_words_file: Path | None = Field(
        default=None, description="Optional file with one stopword per line, merged into stop_words"
    )
    stop_words: Annotated[frozenset[str], NoDecode] = Field(
        default_factory=frozenset, description="Uninformative tokens ignored by pattern queries"
    )
    special_words: Annotated[frozenset[str], NoDecode] = Field(
        default_factory=frozenset, description="Reserved pattern markers that are never query keys"
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    @field_validator("stop_words", "special_words", mode="before")
    @classmethod
    def _split_comma_separated(cls, value: object) -> object:
        if isinstance(value, str):
            return [word.strip() for word in value.split(",") if word.strip()]
        return value

    @field_validator("stop_words", mode="after")
    @classmethod
    def _normalize_stop_words(cls, value: frozenset[str], info: ValidationInfo) -> frozenset[str]:
        words = set(value)
        stop_words_file = info.data.get("stop_words_file")
        if stop_words_file is not None:
            words.update(load_word_list(stop_words_file))
        return TokenNormalizer(lowercase=info.data.get("lowercase", True)).normalize_words(words)

    @field_validator("special_words", mode="after")
    @classmethod
    def _normalize_special_words(cls, value: frozenset[str], info: ValidationInfo) -> frozenset[str]:
        return TokenNormalizer(lowercase=info.data.get("lowercase", True)).normalize_words(value)

    @model_validator(mode="after")
    def _check_consistency(self) -> "IndexSettings":
        if self.disk_backed and self.backing_directory is None:
            raise ValueError(
                "SURFACE_INDEX_BACKING_DIRECTORY must be set when SURFACE_INDEX_DISK_BACKED is enabled"
            )
        overlap = self.stop_words & self.special_words
        if overlap:
            raise ValueError(f"stop_words and special_words must be disjoint, both contain: {sorted(overlap)}")
        return self

    def normalizer(self) -> TokenNormalizer:
        return TokenNormalizer(lowercase=self.lowercase)

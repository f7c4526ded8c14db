"""Unit tests for the config module."""

from pathlib import Path

from pydantic import ValidationError
import pytest

from surface_index.config import IndexSettings
from surface_index.storage import DiskPostingStore, MemoryPostingStore
from surface_index.storage_factory import create_posting_store


pytestmark = pytest.mark.unit


class TestIndexSettings:
    def test_defaults(self):
        settings = IndexSettings()

        assert settings.lowercase is True
        assert settings.disk_backed is False
        assert settings.backing_directory is None
        assert settings.memory_budget == 10_000
        assert settings.discard_stale_spill is True
        assert settings.stop_words == frozenset()
        assert settings.special_words == frozenset()

    def test_environment_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SURFACE_INDEX_DISK_BACKED", "true")
        monkeypatch.setenv("SURFACE_INDEX_BACKING_DIRECTORY", str(tmp_path / "spill"))
        monkeypatch.setenv("SURFACE_INDEX_MEMORY_BUDGET", "25")
        monkeypatch.setenv("SURFACE_INDEX_STOP_WORDS", "The, a ,of")

        settings = IndexSettings()

        assert settings.disk_backed is True
        assert settings.backing_directory == tmp_path / "spill"
        assert settings.memory_budget == 25
        assert settings.stop_words == frozenset({"the", "a", "of"})

    def test_dotenv_file(self, tmp_path):
        # conftest chdirs into tmp_path
        (tmp_path / ".env").write_text("SURFACE_INDEX_SPECIAL_WORDS=<WILD>\n", encoding="utf-8")

        assert IndexSettings().special_words == frozenset({"<wild>"})

    def test_words_kept_verbatim_without_case_folding(self):
        settings = IndexSettings(lowercase=False, stop_words={"The", " of "})
        assert settings.stop_words == frozenset({"The", "of"})

    def test_stop_words_file_is_merged(self, tmp_path):
        words = tmp_path / "stopwords.txt"
        words.write_text("# English function words\nThe\n\nan\n", encoding="utf-8")

        settings = IndexSettings(stop_words_file=words, stop_words={"of"})

        assert settings.stop_words == frozenset({"the", "an", "of"})

    def test_disk_backing_requires_directory(self):
        with pytest.raises(ValidationError, match="BACKING_DIRECTORY"):
            IndexSettings(disk_backed=True)

    def test_memory_budget_must_be_positive(self, tmp_path):
        with pytest.raises(ValidationError):
            IndexSettings(disk_backed=True, backing_directory=tmp_path, memory_budget=0)

    def test_stop_and_special_words_must_be_disjoint(self):
        with pytest.raises(ValidationError, match="disjoint"):
            IndexSettings(stop_words={"the"}, special_words={"THE"})

    def test_settings_are_frozen(self):
        settings = IndexSettings()
        with pytest.raises(ValidationError):
            settings.lowercase = False  # type: ignore[misc]

    def test_normalizer_follows_lowercase(self):
        assert IndexSettings(lowercase=False).normalizer()("Rocket") == "Rocket"
        assert IndexSettings().normalizer()("Rocket") == "rocket"


class TestStorageFactory:
    def test_memory_store(self):
        assert isinstance(create_posting_store(IndexSettings()), MemoryPostingStore)

    def test_disk_store(self, tmp_path):
        settings = IndexSettings(
            disk_backed=True,
            backing_directory=tmp_path / "spill",
            memory_budget=5,
            discard_stale_spill=False,
        )
        store = create_posting_store(settings, run_id="factory-run")
        try:
            assert isinstance(store, DiskPostingStore)
            assert store.memory_budget == 5
            assert store.run_id == "factory-run"
            assert Path(store.db_path).parent == tmp_path / "spill"
        finally:
            store.close()

    def test_disk_store_without_directory_is_rejected(self):
        settings = IndexSettings.model_construct(disk_backed=True, backing_directory=None)

        with pytest.raises(ValueError, match="backing_directory"):
            create_posting_store(settings)

"""Storage factory for choosing between memory and disk-backed posting stores."""

from surface_index.config import IndexSettings
from surface_index.storage import DiskPostingStore, MemoryPostingStore, PostingStore


def create_posting_store(settings: IndexSettings, *, run_id: str | None = None) -> PostingStore:
    """Create the posting store selected by ``settings.disk_backed``."""
    if not settings.disk_backed:
        return MemoryPostingStore()
    if settings.backing_directory is None:
        raise ValueError("disk-backed posting store needs a backing_directory")
    return DiskPostingStore(
        settings.backing_directory,
        memory_budget=settings.memory_budget,
        run_id=run_id,
        discard_stale=settings.discard_stale_spill,
    )

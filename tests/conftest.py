"""Shared test fixtures and configuration."""

from __future__ import annotations

import os
from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from surface_index.observability.context import set_run_context  # noqa: E402


TEST_RUN_ID = "test-run"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Drop SURFACE_INDEX_* variables and run from an empty directory (no stray .env)."""
    for key in list(os.environ):
        if key.upper().startswith("SURFACE_INDEX_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def fixed_run_context():
    """Pin the run id so spill stamps are predictable."""
    set_run_context(TEST_RUN_ID)
    yield
    set_run_context(TEST_RUN_ID)

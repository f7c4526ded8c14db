"""Tests for process-independent token keys."""

import hashlib
import os
from pathlib import Path
import subprocess
import sys

import pytest

from surface_index.keys import StableKey, stable_hash


pytestmark = pytest.mark.unit

SRC_DIR = Path(__file__).resolve().parents[2] / "src"


def _hash_in_fresh_interpreter(text: str, hash_seed: str) -> int:
    env = dict(os.environ)
    env["PYTHONHASHSEED"] = hash_seed
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH", "")]))
    code = f"from surface_index.keys import StableKey; print(StableKey({text!r}).stable_hash)"
    completed = subprocess.run(
        [sys.executable, "-c", code],
        capture_output=True,
        text=True,
        env=env,
        check=True,
        timeout=60,
    )
    return int(completed.stdout.strip())


class TestStableHash:
    def test_matches_documented_algorithm(self):
        digest = hashlib.md5("example".encode("utf-8")).digest()
        expected = int.from_bytes(digest[:8], byteorder="big", signed=True)

        assert stable_hash("example") == expected

    def test_fits_signed_64_bit(self):
        for text in ["", "a", "rocket", "ünïcödé", "x" * 1000]:
            value = stable_hash(text)
            assert -(2**63) <= value < 2**63

    def test_case_sensitive(self):
        assert stable_hash("Rocket") != stable_hash("rocket")

    def test_uses_utf8_bytes(self):
        digest = hashlib.md5("naïve".encode("utf-8")).digest()
        assert stable_hash("naïve") == int.from_bytes(digest[:8], "big", signed=True)


class TestStableKey:
    def test_equal_keys_for_equal_text(self):
        first = StableKey("example")
        second = StableKey("example")

        assert first == second
        assert first.stable_hash == second.stable_hash
        assert hash(first) == hash(second)

    def test_different_text_not_equal(self):
        assert StableKey("rocket") != StableKey("probe")

    def test_python_hash_derives_from_stable_hash(self):
        key = StableKey("rocket")
        assert hash(key) == hash(key.stable_hash)

    def test_usable_as_dict_key(self):
        mapping = {StableKey("rocket"): 1}
        assert mapping[StableKey("rocket")] == 1
        assert StableKey("probe") not in mapping

    def test_equality_ignores_hash_when_texts_differ(self, monkeypatch):
        monkeypatch.setattr("surface_index.keys.stable_hash", lambda text: 7)
        first, second = StableKey("alpha"), StableKey("beta")

        assert first.stable_hash == second.stable_hash == 7
        assert first != second
        assert len({first, second}) == 2

    def test_is_immutable(self):
        key = StableKey("rocket")
        with pytest.raises(AttributeError):
            key.text = "probe"  # type: ignore[misc]

    def test_bucket_is_in_range(self):
        key = StableKey("rocket")
        for buckets in (1, 2, 7, 1024):
            assert 0 <= key.bucket(buckets) < buckets
        assert key.bucket(16) == key.stable_hash % 16

    def test_bucket_rejects_non_positive(self):
        with pytest.raises(ValueError):
            StableKey("rocket").bucket(0)


class TestCrossProcessStability:
    def test_same_hash_in_separate_interpreters(self):
        in_process = StableKey("example").stable_hash

        first = _hash_in_fresh_interpreter("example", hash_seed="1")
        second = _hash_in_fresh_interpreter("example", hash_seed="4242")

        assert first == second == in_process

# tests/conftest.py

import hashlib

import pytest

from ocr_keys.bundle import generate_key_bundle
from ocr_keys.context import TEST_SCRYPT_PARAMS


@pytest.fixture(autouse=True)
def temp_ocr_dir(tmp_path, monkeypatch):
    """
    Point the key database at a fresh temp directory per test and force the
    cheap KDF profile.
    """
    import ocr_keys.config as cfg
    monkeypatch.setattr(cfg, "BASE_DIR", tmp_path / "ocr_data")
    monkeypatch.setattr(cfg, "DB_PATH", tmp_path / "ocr_data" / "keys.db")
    monkeypatch.setattr(cfg, "KDF_PROFILE", "test")
    monkeypatch.setattr(cfg, "SCRYPT_N", 0)
    monkeypatch.setattr(cfg, "SCRYPT_P", 0)
    monkeypatch.setattr(cfg, "OCR_KEY_PASSWORD", "")

    (tmp_path / "ocr_data").mkdir(parents=True, exist_ok=True)

    # Reset DB connection between tests (close old connection first)
    import ocr_keys.database as db_mod
    db_mod.close_db()

    # Nothing unlocked carries over
    import ocr_keys.keyring as keyring
    keyring.forget_all()

    yield tmp_path

    import ocr_keys.workers as workers
    workers.shutdown_pool()
    db_mod.close_db()


@pytest.fixture
def test_kdf():
    return TEST_SCRYPT_PARAMS


@pytest.fixture
def bundle():
    """A fresh key bundle from the system CSPRNG."""
    return generate_key_bundle()


@pytest.fixture
def second_bundle():
    """A second independent bundle."""
    return generate_key_bundle()


class SeededRandom:
    """Deterministic stand-in for a RandomSource: SHA-256 in counter mode."""

    def __init__(self, seed: bytes):
        self._seed = seed
        self._counter = 0

    def __call__(self, size: int) -> bytes:
        out = b""
        while len(out) < size:
            out += hashlib.sha256(self._seed + self._counter.to_bytes(8, "big")).digest()
            self._counter += 1
        return out[:size]


@pytest.fixture
def seeded_random():
    return SeededRandom

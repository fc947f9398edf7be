"""
Shared test fixtures.
"""

import pytest

from keylocker.crypto import KdfParams
from keylocker.storage import FileStore, MemoryStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove env vars that would leak a real vault or password into tests."""
    for key in ["MASTER_PASSWORD", "KEYLOCKER_VAULT", "KEYLOCKER_LOG_LEVEL"]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fast_kdf():
    """Cheap PBKDF2 parameters for tests that don't care about work factor."""
    return KdfParams(iterations=1000)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def vault_path(tmp_path):
    return str(tmp_path / "keys" / "encrypted_keys.json")


@pytest.fixture
def file_store(vault_path):
    return FileStore(vault_path)

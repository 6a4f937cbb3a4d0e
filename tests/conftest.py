"""
Shared pytest fixtures for memcore tests.

Stores live under tmp_path and use a small HashEmbedder, so tests are fast
and fully deterministic.
"""

from pathlib import Path

import pytest

from memcore.providers.embeddings import HashEmbedder
from memcore.store import JsonlMemoryStore


class CountingEmbedder:
    """
    HashEmbedder wrapper that records every call.

    Used to check that the store embeds exactly when it should.
    """

    id = "counting-hash"

    def __init__(self, dims: int = 64):
        self._inner = HashEmbedder(dims)
        self.dims = dims
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return await self._inner.embed(text)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """Record file inside a not-yet-existing subdirectory."""
    return tmp_path / "mem" / "memory.jsonl"


@pytest.fixture
def counting_embedder() -> CountingEmbedder:
    return CountingEmbedder()


@pytest.fixture
def store(store_path: Path, counting_embedder: CountingEmbedder) -> JsonlMemoryStore:
    """A fresh store with the default capacity."""
    return JsonlMemoryStore(store_path, embedder=counting_embedder)


@pytest.fixture(autouse=True)
def isolated_store_env(tmp_path: Path, monkeypatch):
    """Point MEMCORE_STORE_PATH at a temp dir so nothing touches ~/.memcore."""
    monkeypatch.setenv("MEMCORE_STORE_PATH", str(tmp_path / "home-store"))

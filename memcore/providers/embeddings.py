"""
Built-in embedding providers.

HashEmbedder is deterministic, local and dependency-free. It is not
state-of-the-art semantics, but it is stable across runs and processes and
good enough to tell unrelated topics apart.
"""

import re
from typing import Optional

from ..vectors import normalize
from .base import Embedder, get_registry

DEFAULT_DIMS = 256

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def fnv1a32(token: str) -> int:
    """32-bit FNV-1a hash of a string's code points."""
    h = _FNV_OFFSET
    for ch in token:
        h ^= ord(ch)
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return h


def tokenize(text: str) -> list[str]:
    """Lower-case, turn non-alphanumerics into spaces, split on whitespace."""
    return _NON_ALNUM_RE.sub(" ", text.lower()).split()


class HashEmbedder:
    """
    Hash-projection bag-of-words embedder.

    Each token is hashed into bucket ``hash % dims`` with a sign taken from
    the low hash bit; the accumulated vector is L2-normalized. Empty text
    gives the zero vector.
    """

    id = "hash-embedder-v1"

    def __init__(self, dims: int = DEFAULT_DIMS):
        if dims < 1:
            raise ValueError(f"dims must be at least 1, got {dims}")
        self.dims = dims

    async def embed(self, text: str) -> list[float]:
        vec = [0.0] * self.dims
        for token in tokenize(text):
            h = fnv1a32(token)
            vec[h % self.dims] += 1.0 if (h & 1) == 0 else -1.0
        return normalize(vec)

    def __repr__(self) -> str:
        return f"HashEmbedder(dims={self.dims})"


def create_embedder(custom: Optional[Embedder] = None, dims: int = DEFAULT_DIMS) -> Embedder:
    """
    Return an Embedder.

    A supplied ``custom`` embedder wins and is returned as-is (its own
    ``dims`` and ``id`` apply; ``dims`` here is ignored). Otherwise a
    HashEmbedder with ``dims`` dimensions is created.
    """
    if custom is not None:
        return custom
    return HashEmbedder(dims)


get_registry().register_embedder("hash", HashEmbedder)

"""
memcore - embedded JSONL memory store with vector search.

Quick start:
    from pathlib import Path
    from memcore import JsonlMemoryStore, MemoryItem, create_embedder, new_id, utc_now

    store = JsonlMemoryStore(Path.home() / ".memcore" / "memory.jsonl", embedder=create_embedder())
    await store.add(MemoryItem(id=new_id(), kind="fact", text="...", created_at=utc_now()))
    hits = await store.search("what did we decide?")
"""

import uuid

from .codec import decode_record, encode_record
from .errors import InvalidItemError, InvalidKindError, MemoryStoreError, UnsafePathError
from .paths import expand_home, safe_limit, safe_path
from .providers import Embedder, HashEmbedder, create_embedder
from .redaction import DefaultRedactor, RedactionMatch, RedactionResult
from .store import JsonlMemoryStore
from .types import VALID_KINDS, MemoryItem, Record, SearchHit, ttl, utc_now
from .vectors import normalize, similarity


def new_id() -> str:
    """Random UUID4 string for a new item."""
    return str(uuid.uuid4())


__all__ = [
    "JsonlMemoryStore",
    "MemoryItem",
    "Record",
    "SearchHit",
    "VALID_KINDS",
    "Embedder",
    "HashEmbedder",
    "create_embedder",
    "DefaultRedactor",
    "RedactionMatch",
    "RedactionResult",
    "MemoryStoreError",
    "InvalidItemError",
    "InvalidKindError",
    "UnsafePathError",
    "encode_record",
    "decode_record",
    "normalize",
    "similarity",
    "expand_home",
    "safe_path",
    "safe_limit",
    "new_id",
    "ttl",
    "utc_now",
]

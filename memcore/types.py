"""
Data types for the memory store.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional


# Closed set of item kinds. Anything else is rejected at write time.
VALID_KINDS = ("fact", "decision", "doc", "note")

# Field names as they appear on disk, keyed by attribute name
_WIRE_NAMES = {
    "id": "id",
    "kind": "kind",
    "text": "text",
    "created_at": "createdAt",
    "expires_at": "expiresAt",
    "source": "source",
    "tags": "tags",
    "meta": "meta",
}

_OPTIONAL_FIELDS = ("expires_at", "source", "tags", "meta")


def _format_ts(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now() -> str:
    """Current UTC timestamp in canonical format: YYYY-MM-DDTHH:MM:SS.mmmZ.

    Expiry is decided by plain string comparison, so every timestamp the
    store compares must use this fixed-width form.
    """
    return _format_ts(datetime.now(timezone.utc))


def ttl(seconds: float) -> str:
    """Timestamp ``seconds`` from now, in the canonical format.

    Useful for setting ``MemoryItem.expires_at``.
    """
    return _format_ts(datetime.now(timezone.utc) + timedelta(seconds=seconds))


def is_expired(item: "MemoryItem", now: str) -> bool:
    """An item is expired iff expires_at is set and expires_at <= now."""
    return item.expires_at is not None and item.expires_at <= now


@dataclass(frozen=True)
class MemoryItem:
    """
    The logical unit of storage.

    Attributes:
        id: Caller-supplied identifier (not required to be unique)
        kind: One of VALID_KINDS
        text: Content the embedding is computed from
        created_at: Timestamp string, not validated
        expires_at: Optional timestamp; at or before "now" the item is expired
        source: Optional free-form provenance (channel, sender, ...)
        tags: Optional list of tags, filtered with all-of semantics
        meta: Optional free-form metadata, opaque to the store
    """
    id: str
    kind: str
    text: str
    created_at: str
    expires_at: Optional[str] = None
    source: Optional[dict[str, Any]] = None
    tags: Optional[list[str]] = None
    meta: Optional[dict[str, Any]] = None

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(_WIRE_NAMES)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation. Optional fields are omitted when unset."""
        out: dict[str, Any] = {}
        for attr, key in _WIRE_NAMES.items():
            value = getattr(self, attr)
            if value is None and attr in _OPTIONAL_FIELDS:
                continue
            out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryItem":
        """Build from a wire dict. Unknown keys are ignored."""
        return cls(**{
            attr: data[key]
            for attr, key in _WIRE_NAMES.items()
            if key in data
        })


@dataclass
class Record:
    """An item plus its embedding, as stored internally."""
    item: MemoryItem
    embedding: Optional[list[float]] = None


@dataclass
class SearchHit:
    """A search result with its [0, 1] similarity score."""
    item: MemoryItem
    score: float = field(default=0.0)

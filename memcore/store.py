"""
JSONL-backed memory store.

One store owns one file: a sequence of self-contained lines, each holding a
MemoryItem and its embedding. The in-memory cache mirrors the file and is
the source of truth for reads once loaded; it is loaded lazily on first
access.

Write-side operations (add, add_many, update, delete, purge_expired) are
serialized through a single asyncio.Lock per store, so concurrent callers
never read a stale snapshot and overwrite each other. Reads use whatever
the cache holds at the time.

Appends go straight to the end of the file. Anything that changes existing
lines (update, delete, purge, capacity eviction) rewrites the whole file
through a temporary file and an atomic rename.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

from .codec import check_item, decode_lines, encode_record
from .errors import InvalidItemError, check_kind
from .providers.base import Embedder
from .types import MemoryItem, Record, SearchHit, is_expired, utc_now
from .vectors import similarity

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 5000
DEFAULT_SEARCH_LIMIT = 10


def _matches_filter(
    item: MemoryItem,
    kind: Optional[str],
    tags: Optional[list[str]],
) -> bool:
    if kind is not None and item.kind != kind:
        return False
    if tags:
        item_tags = item.tags or []
        if not all(t in item_tags for t in tags):
            return False
    return True


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


# Valid stand-in for checking update() changes before the target is loaded
_BLANK_ITEM = MemoryItem(id="", kind="note", text="", created_at="")


def _check_item(item: MemoryItem) -> None:
    """Reject items the decoder would drop on the next load."""
    check_kind(item.kind)
    reason = check_item(item.to_dict())
    if reason is not None:
        raise InvalidItemError(f"Invalid item: {reason}")


class JsonlMemoryStore:
    """
    File-backed collection of memory items with vector search.

    Args:
        file_path: Path to the JSONL file (created if missing)
        embedder: Embedder used for both stored items and queries
        max_items: Capacity; the oldest records are evicted beyond it
    """

    def __init__(
        self,
        file_path: Path | str,
        embedder: Embedder,
        max_items: int = DEFAULT_MAX_ITEMS,
    ):
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}")
        self._path = Path(file_path)
        self._embedder = embedder
        self._max_items = max_items
        self._cache: Optional[list[Record]] = None
        self._write_lock = asyncio.Lock()

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch(exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def embedder(self) -> Embedder:
        return self._embedder

    @property
    def max_items(self) -> int:
        return self._max_items

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    async def add(self, item: MemoryItem) -> None:
        """
        Add one item.

        Raises:
            InvalidKindError: before any embedding or I/O work
            InvalidItemError: if a field would not survive a reload
        """
        _check_item(item)
        async with self._write_lock:
            embedding = await self._embedder.embed(item.text)
            records = await self._load()
            await self._commit(records, [Record(item, embedding)])

    async def add_many(self, items: Iterable[MemoryItem]) -> None:
        """
        Add several items with a single append (or a single rewrite when the
        batch pushes the store over capacity).

        The whole batch is rejected if any item is invalid; nothing is
        embedded or written in that case.
        """
        items = list(items)
        for item in items:
            _check_item(item)
        if not items:
            return
        async with self._write_lock:
            embeddings = await asyncio.gather(
                *(self._embedder.embed(item.text) for item in items)
            )
            records = await self._load()
            await self._commit(
                records,
                [Record(item, emb) for item, emb in zip(items, embeddings)],
            )

    async def update(self, id: str, /, **changes: Any) -> Optional[MemoryItem]:
        """
        Merge ``changes`` into the first item with this id.

        Expired items are still found, so expiry can be cleared or extended.
        ``id`` in ``changes`` is ignored. Passing an optional field with
        value None clears it (e.g. ``expires_at=None``); required fields
        cannot be cleared. The embedding is recomputed only when the text
        actually changes.

        Returns:
            The merged item, or None if no item has this id

        Raises:
            InvalidKindError: if ``kind`` is given and invalid
            InvalidItemError: if a changed field would not survive a reload
            TypeError: if an unknown field name is given
        """
        changes.pop("id", None)
        unknown = set(changes) - MemoryItem.field_names()
        if unknown:
            raise TypeError(f"Unknown item field(s): {', '.join(sorted(unknown))}")
        _check_item(dataclasses.replace(_BLANK_ITEM, **changes))

        async with self._write_lock:
            records = await self._load()
            index = next(
                (i for i, r in enumerate(records) if r.item.id == id), None
            )
            if index is None:
                return None

            current = records[index]
            merged = dataclasses.replace(current.item, **changes)
            embedding = current.embedding
            if "text" in changes and merged.text != current.item.text:
                embedding = await self._embedder.embed(merged.text)

            updated = list(records)
            updated[index] = Record(merged, embedding)
            await self._rewrite(updated)
            return merged

    async def delete(self, id: str) -> bool:
        """Remove every item with this id. Returns True if any was removed."""
        async with self._write_lock:
            records = await self._load()
            kept = [r for r in records if r.item.id != id]
            if len(kept) == len(records):
                return False
            await self._rewrite(kept)
            return True

    async def purge_expired(self) -> int:
        """Physically remove expired items. Returns the number removed."""
        async with self._write_lock:
            now = utc_now()
            records = await self._load()
            kept = [r for r in records if not is_expired(r.item, now)]
            removed = len(records) - len(kept)
            if removed:
                await self._rewrite(kept)
                logger.info("Purged %d expired item(s) from %s", removed, self._path)
            return removed

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    async def get(self, id: str) -> Optional[MemoryItem]:
        """First non-expired item with this id, or None."""
        now = utc_now()
        for record in await self._load():
            if record.item.id == id and not is_expired(record.item, now):
                return record.item
        return None

    async def list(
        self,
        limit: Optional[int] = None,
        kind: Optional[str] = None,
        tags: Optional[list[str]] = None,
        include_expired: bool = False,
    ) -> list[MemoryItem]:
        """
        Items in insertion order, filtered by kind, tags (all must be
        present) and expiry, truncated to the most recent ``limit``.

        ``limit`` of None returns everything; any other value is raised to
        at least 1.
        """
        now = utc_now()
        items = [
            r.item for r in await self._load()
            if _matches_filter(r.item, kind, tags)
            and (include_expired or not is_expired(r.item, now))
        ]
        if limit is None:
            return items
        return items[-max(1, int(limit)):]

    async def search(
        self,
        query: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        kind: Optional[str] = None,
        tags: Optional[list[str]] = None,
        include_expired: bool = False,
    ) -> list[SearchHit]:
        """
        Rank items by similarity to ``query``.

        Scores are ``(similarity + 1) / 2`` clamped to [0, 1]; that is a
        cosine mapping only when the embedder returns unit vectors. Records
        without an embedding are skipped. ``limit`` is raised to at least 1.
        """
        q = await self._embedder.embed(query)
        now = utc_now()
        hits: list[SearchHit] = []
        for record in await self._load():
            if record.embedding is None:
                continue
            if not _matches_filter(record.item, kind, tags):
                continue
            if not include_expired and is_expired(record.item, now):
                continue
            score = _clamp01((similarity(q, record.embedding) + 1) / 2)
            hits.append(SearchHit(item=record.item, score=score))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:max(1, int(limit))]

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def _load(self) -> list[Record]:
        """Return the cache, reading the file on first access."""
        if self._cache is not None:
            return self._cache
        records = await asyncio.to_thread(self._read_file)
        # A write may have populated the cache while we were reading
        if self._cache is None:
            self._cache = records
            logger.debug("Loaded %d record(s) from %s", len(records), self._path)
        return self._cache

    def _read_file(self) -> list[Record]:
        try:
            # Undecodable bytes must not make the valid lines unreadable
            text = self._path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return []
        return decode_lines(text)

    async def _commit(self, records: list[Record], new: list[Record]) -> None:
        """Append ``new`` after ``records``, evicting the oldest beyond capacity."""
        total = len(records) + len(new)
        if total > self._max_items:
            trimmed = (records + new)[total - self._max_items:]
            logger.info(
                "Evicted %d oldest item(s) from %s (max_items=%d)",
                total - self._max_items, self._path, self._max_items,
            )
            await self._rewrite(trimmed)
            return
        await asyncio.to_thread(self._append_lines, [encode_record(r) for r in new])
        records.extend(new)

    def _append_lines(self, lines: list[str]) -> None:
        with open(self._path, "ab+") as f:
            f.seek(0, os.SEEK_END)
            prefix = b""
            if f.tell() > 0:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    # Torn previous append: start on a fresh line
                    prefix = b"\n"
            f.write(prefix + "".join(line + "\n" for line in lines).encode("utf-8"))

    async def _rewrite(self, records: list[Record]) -> None:
        """Replace the whole file atomically, then replace the cache."""
        content = "".join(encode_record(r) + "\n" for r in records)
        await asyncio.to_thread(self._replace_file, content)
        self._cache = records

    def _replace_file(self, content: str) -> None:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
            tmp_path = None
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

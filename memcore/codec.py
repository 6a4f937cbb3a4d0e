"""
Line codec for the JSONL record file.

One record is one line: ``{"item": {...}, "embedding": [...]}``. Decoding
is a schema check that returns None for lines that don't match, so a file
with corrupt or hand-edited lines still yields every valid record.
"""

import json
import logging
from typing import Any, Optional

from .types import VALID_KINDS, MemoryItem, Record

logger = logging.getLogger(__name__)

_REQUIRED_STRINGS = ("id", "kind", "text", "createdAt")


def encode_record(record: Record) -> str:
    """Serialize a record to one line, without the trailing newline."""
    payload: dict[str, Any] = {"item": record.item.to_dict()}
    if record.embedding is not None:
        payload["embedding"] = record.embedding
    # ASCII escaping keeps newlines, control chars and lone surrogates
    # inside the line and encodable as UTF-8
    return json.dumps(payload, separators=(",", ":"))


def check_item(obj: Any) -> Optional[str]:
    """
    Validate the shape of a decoded item.

    Returns:
        None when valid, otherwise a short reason
    """
    if not isinstance(obj, dict):
        return "item is not an object"
    for key in _REQUIRED_STRINGS:
        if not isinstance(obj.get(key), str):
            return f"{key} is not a string"
    if obj["kind"] not in VALID_KINDS:
        return f"invalid kind {obj['kind']!r}"
    expires_at = obj.get("expiresAt")
    if expires_at is not None and not isinstance(expires_at, str):
        return "expiresAt is not a string"
    tags = obj.get("tags")
    if tags is not None and not (
        isinstance(tags, list) and all(isinstance(t, str) for t in tags)
    ):
        return "tags is not a list of strings"
    return None


def _check_embedding(value: Any) -> Optional[list[float]]:
    if not isinstance(value, list):
        return None
    for x in value:
        if isinstance(x, bool) or not isinstance(x, (int, float)):
            return None
    return [float(x) for x in value]


def decode_record(line: str) -> Optional[Record]:
    """
    Parse one line into a Record.

    Returns None for blank lines, malformed JSON, or a payload that fails
    the item schema. A malformed embedding drops only the embedding; the
    item is kept (it stays listable but is skipped by search).
    """
    line = line.strip()
    if not line:
        return None
    try:
        parsed = json.loads(line)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None
    item = parsed.get("item")
    if check_item(item) is not None:
        return None
    return Record(
        item=MemoryItem.from_dict(item),
        embedding=_check_embedding(parsed.get("embedding")),
    )


def decode_lines(text: str) -> list[Record]:
    """Decode every valid record in file order, skipping the rest."""
    records: list[Record] = []
    skipped = 0
    for line in text.split("\n"):
        record = decode_record(line)
        if record is not None:
            records.append(record)
        elif line.strip():
            skipped += 1
    if skipped:
        logger.debug("Skipped %d invalid line(s)", skipped)
    return records

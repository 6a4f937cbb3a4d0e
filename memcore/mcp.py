"""
MCP stdio server for memcore - memory tools for AI agents.

Exposes store operations as MCP tools so local agents get persistent
memory with semantic search without HTTP infrastructure.

Usage:
    memcore mcp                         # stdio server (via CLI)
    memcore-mcp                         # same, standalone entry point

Writes are serialized inside the store; this module only owns the lazily
created store instance and the redaction step in front of it.
"""

import logging
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .config import StoreConfig, load_or_create_config, open_store
from .errors import InvalidItemError
from .paths import get_default_store_dir, safe_limit
from .redaction import DefaultRedactor
from .store import JsonlMemoryStore
from .types import VALID_KINDS, MemoryItem, ttl, utc_now

logger = logging.getLogger(__name__)

# Upper bound for limits requested by tools
MAX_LIMIT = 100

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "memcore",
    instructions=(
        "Persistent memory with semantic search. "
        "Store facts, decisions, documents and notes. "
        "Search by meaning. Items can expire."
    ),
)

_config: Optional[StoreConfig] = None
_store: Optional[JsonlMemoryStore] = None


def _get_store() -> JsonlMemoryStore:
    """Lazy-init the store from config (respects MEMCORE_STORE_PATH).

    Contains no awaits, so concurrent tool calls cannot race on the global.
    """
    global _config, _store
    if _store is None:
        _config = load_or_create_config(get_default_store_dir())
        _store = open_store(_config)
        logger.info("Opened store %s", _store.path)
    return _store


def _redact(text: str) -> str:
    if _config is not None and not _config.redact:
        return text
    result = DefaultRedactor().redact(text)
    if result.had_secrets:
        logger.info(
            "Redacted secrets before storing: %s",
            ", ".join(f"{m.rule} x{m.count}" for m in result.matches),
        )
    return result.redacted_text


def _format_line(item: MemoryItem, score: Optional[float] = None) -> str:
    head = f"- {item.id}  [{item.kind}]"
    if score is not None:
        head += f"  ({score:.2f})"
    if item.tags:
        head += f"  #{' #'.join(item.tags)}"
    return f"{head}  {item.text}"


# ---------------------------------------------------------------------------
# Tool annotations
# ---------------------------------------------------------------------------

_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
_WRITE = ToolAnnotations(destructiveHint=False, idempotentHint=False)
_DESTRUCTIVE = ToolAnnotations(destructiveHint=True, idempotentHint=False)

_KIND_DESCRIPTION = f"One of: {', '.join(VALID_KINDS)}."


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "Store a fact, decision, document or note in long-term memory. "
        "Secret-looking substrings (API keys, tokens, private keys) are redacted first."
    ),
    annotations=_WRITE,
)
async def memory_add(
    text: Annotated[str, Field(description="Text to store.")],
    kind: Annotated[str, Field(description=_KIND_DESCRIPTION)] = "note",
    id: Annotated[Optional[str], Field(
        description="Custom ID. A random UUID is used if omitted.",
    )] = None,
    tags: Annotated[Optional[list[str]], Field(
        description='Tags to categorize. Example: ["project:myapp", "preferences"]',
    )] = None,
    ttl_seconds: Annotated[Optional[float], Field(
        description="Expire the item after this many seconds.",
    )] = None,
) -> str:
    """Store content in memory."""
    from . import new_id

    store = _get_store()
    item = MemoryItem(
        id=id or new_id(),
        kind=kind,
        text=_redact(text),
        created_at=utc_now(),
        expires_at=ttl(ttl_seconds) if ttl_seconds is not None else None,
        tags=tags or None,
    )
    try:
        await store.add(item)
    except InvalidItemError as e:
        return f"Error: {e}"
    return f"Stored: {item.id}"


@mcp.tool(
    description=(
        "Search long-term memory by natural language query. "
        "Returns matching items ranked by relevance with scores in [0, 1]."
    ),
    annotations=_READ_ONLY,
)
async def memory_search(
    query: Annotated[str, Field(description="Natural language search query.")],
    limit: Annotated[int, Field(description="Max results to return.")] = 10,
    kind: Annotated[Optional[str], Field(description="Only items of this kind.")] = None,
    tags: Annotated[Optional[list[str]], Field(
        description="Only items carrying all of these tags.",
    )] = None,
    include_expired: Annotated[bool, Field(description="Include expired items.")] = False,
) -> str:
    """Search memory."""
    store = _get_store()
    hits = await store.search(
        query,
        limit=safe_limit(limit, 10, MAX_LIMIT),
        kind=kind,
        tags=tags,
        include_expired=include_expired,
    )
    if not hits:
        return "No results found."
    return "\n".join(_format_line(h.item, h.score) for h in hits)


@mcp.tool(
    description="Retrieve a specific item by ID.",
    annotations=_READ_ONLY,
)
async def memory_get(
    id: Annotated[str, Field(description="Item ID to retrieve.")],
) -> str:
    """Retrieve one item."""
    item = await _get_store().get(id)
    if item is None:
        return f"Not found: {id}"
    lines = [f"id: {item.id}", f"kind: {item.kind}", f"created: {item.created_at}"]
    if item.expires_at:
        lines.append(f"expires: {item.expires_at}")
    if item.tags:
        lines.append(f"tags: {', '.join(item.tags)}")
    lines += ["", item.text]
    return "\n".join(lines)


@mcp.tool(
    description="List recent items, optionally filtered by kind and tags.",
    annotations=_READ_ONLY,
)
async def memory_list(
    limit: Annotated[int, Field(description="Max results to return.")] = 10,
    kind: Annotated[Optional[str], Field(description="Only items of this kind.")] = None,
    tags: Annotated[Optional[list[str]], Field(
        description="Only items carrying all of these tags.",
    )] = None,
    include_expired: Annotated[bool, Field(description="Include expired items.")] = False,
) -> str:
    """List recent items."""
    items = await _get_store().list(
        limit=safe_limit(limit, 10, MAX_LIMIT),
        kind=kind,
        tags=tags,
        include_expired=include_expired,
    )
    if not items:
        return "No items found."
    return "\n".join(_format_line(i) for i in items)


@mcp.tool(
    description=(
        "Change text, kind, tags or expiry of an existing item. "
        "Expired items can be restored with clear_expiry=true."
    ),
    annotations=_WRITE,
)
async def memory_update(
    id: Annotated[str, Field(description="Item ID.")],
    text: Annotated[Optional[str], Field(description="New text.")] = None,
    kind: Annotated[Optional[str], Field(description=_KIND_DESCRIPTION)] = None,
    tags: Annotated[Optional[list[str]], Field(description="Replacement tags.")] = None,
    ttl_seconds: Annotated[Optional[float], Field(
        description="Set expiry to this many seconds from now.",
    )] = None,
    clear_expiry: Annotated[bool, Field(description="Remove the expiry.")] = False,
) -> str:
    """Update an existing item."""
    store = _get_store()
    changes: dict = {}
    if text is not None:
        changes["text"] = _redact(text)
    if kind is not None:
        changes["kind"] = kind
    if tags is not None:
        changes["tags"] = tags
    if clear_expiry:
        changes["expires_at"] = None
    elif ttl_seconds is not None:
        changes["expires_at"] = ttl(ttl_seconds)

    try:
        item = await store.update(id, **changes)
    except InvalidItemError as e:
        return f"Error: {e}"
    if item is None:
        return f"Not found: {id}"
    return f"Updated: {item.id}"


@mcp.tool(
    description="Permanently delete every item with this ID.",
    annotations=_DESTRUCTIVE,
)
async def memory_delete(
    id: Annotated[str, Field(description="Item ID to delete.")],
) -> str:
    """Delete an item."""
    deleted = await _get_store().delete(id)
    return f"Deleted: {id}" if deleted else f"Not found: {id}"


@mcp.tool(
    description="Permanently remove all expired items.",
    annotations=_DESTRUCTIVE,
)
async def memory_purge() -> str:
    """Purge expired items."""
    removed = await _get_store().purge_expired()
    return f"Purged {removed} expired item(s)"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP stdio server."""
    import os
    import signal
    from .logging_config import configure_ops_log, configure_quiet_mode

    # anyio's stdin reader shields the blocking readline from cancellation,
    # so the first Ctrl+C would otherwise be swallowed
    signal.signal(signal.SIGINT, lambda *_: os._exit(130))

    configure_quiet_mode(quiet=True)
    configure_ops_log(get_default_store_dir())
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

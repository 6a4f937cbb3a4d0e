"""
CLI interface for the memory store.

Usage:
    memcore add "we deploy on fridays" --kind decision --tag ops
    memcore search "deploy schedule"
    memcore list --kind decision
"""

import asyncio
import json
import os
import shutil
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import StoreConfig, load_or_create_config, open_store
from .errors import InvalidItemError
from .logging_config import configure_quiet_mode, enable_debug_mode
from .paths import get_default_store_dir, safe_limit
from .redaction import DefaultRedactor
from .store import JsonlMemoryStore
from .types import VALID_KINDS, MemoryItem, SearchHit, ttl, utc_now

# Upper bound for --limit on list/search
MAX_LIMIT = 1000


def _output_width() -> int:
    """Terminal width for text truncation. Use generous default when not a TTY."""
    if not sys.stdout.isatty():
        return 200
    return shutil.get_terminal_size((120, 24)).columns


# Configure quiet mode by default
# Set MEMCORE_VERBOSE=1 to enable debug mode via environment
if os.environ.get("MEMCORE_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"memcore {version('memcore')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="memcore",
    help="Embedded memory store with semantic search.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="MEMCORE_STORE_PATH",
        help="Path to the store directory (default: ~/.memcore/)",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Embedded memory store with semantic search."""


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

KindOption = Annotated[
    Optional[str],
    typer.Option(
        "--kind", "-k",
        help=f"Item kind ({', '.join(VALID_KINDS)})"
    )
]

TagOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--tag", "-t",
        help="Tag (repeatable; filters require all tags)"
    )
]

LimitOption = Annotated[
    Optional[int],
    typer.Option(
        "--limit", "-n",
        help="Maximum results to return"
    )
]

AllOption = Annotated[
    bool,
    typer.Option(
        "--all", "-a",
        help="Include expired items"
    )
]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _get_config() -> StoreConfig:
    """Load (or create) the store configuration, exiting cleanly on error."""
    store_dir = _get_store_override() or get_default_store_dir()
    try:
        return load_or_create_config(Path(store_dir).expanduser())
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _get_store() -> tuple[StoreConfig, JsonlMemoryStore]:
    config = _get_config()
    try:
        return config, open_store(config)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _redact(config: StoreConfig, text: str, no_redact: bool) -> str:
    """Strip secret-like substrings unless redaction is off."""
    if no_redact or not config.redact:
        return text
    result = DefaultRedactor().redact(text)
    if result.had_secrets:
        fired = ", ".join(f"{m.rule} x{m.count}" for m in result.matches)
        typer.echo(f"Redacted: {fired}", err=True)
    return result.redacted_text


def _format_item_line(item: MemoryItem, score: Optional[float] = None) -> str:
    """One-line summary: id, kind, date, optional score, truncated text."""
    prefix = f"{item.id}  {item.kind:8s}  {item.created_at[:10]}"
    if score is not None:
        prefix += f"  ({score:.2f})"
    text = " ".join(item.text.split())
    max_text = max(20, _output_width() - len(prefix) - 2)
    if len(text) > max_text:
        text = text[:max_text - 3] + "..."
    return f"{prefix}  {text}"


def _format_items(items: list[MemoryItem]) -> str:
    if _get_json_output():
        return json.dumps([i.to_dict() for i in items], indent=2, ensure_ascii=False)
    if not items:
        return "No items found."
    return "\n".join(_format_item_line(i) for i in items)


def _format_hits(hits: list[SearchHit]) -> str:
    if _get_json_output():
        return json.dumps(
            [{"item": h.item.to_dict(), "score": h.score} for h in hits],
            indent=2, ensure_ascii=False,
        )
    if not hits:
        return "No results found."
    return "\n".join(_format_item_line(h.item, h.score) for h in hits)


def _run(coro):
    """Run a store coroutine, turning validation errors into clean exits."""
    try:
        return asyncio.run(coro)
    except InvalidItemError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def add(
    text: Annotated[str, typer.Argument(help="Text to store")],
    id: Annotated[Optional[str], typer.Option(
        "--id",
        help="Item ID (default: random UUID)"
    )] = None,
    kind: Annotated[str, typer.Option(
        "--kind", "-k",
        help=f"Item kind ({', '.join(VALID_KINDS)})"
    )] = "note",
    tag: TagOption = None,
    ttl_seconds: Annotated[Optional[float], typer.Option(
        "--ttl",
        help="Expire after this many seconds"
    )] = None,
    no_redact: Annotated[bool, typer.Option(
        "--no-redact",
        help="Store text without secret redaction"
    )] = False,
):
    """
    Store a new item.

    \b
    Examples:
        memcore add "prod runs postgres 16" --kind fact --tag infra
        memcore add "standup moved to 10am" --ttl 86400
    """
    from . import new_id

    config, store = _get_store()
    item = MemoryItem(
        id=id or new_id(),
        kind=kind,
        text=_redact(config, text, no_redact),
        created_at=utc_now(),
        expires_at=ttl(ttl_seconds) if ttl_seconds is not None else None,
        tags=list(tag) if tag else None,
    )
    _run(store.add(item))
    if _get_json_output():
        typer.echo(json.dumps(item.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(f"Stored: {item.id}")


@app.command()
def get(
    id: Annotated[str, typer.Argument(help="Item ID")],
):
    """Show one item (expired items are not shown)."""
    _, store = _get_store()
    item = _run(store.get(id))
    if item is None:
        typer.echo(f"Not found: {id}", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps(item.to_dict(), indent=2, ensure_ascii=False))
        return
    typer.echo(f"id: {item.id}")
    typer.echo(f"kind: {item.kind}")
    typer.echo(f"created: {item.created_at}")
    if item.expires_at:
        typer.echo(f"expires: {item.expires_at}")
    if item.tags:
        typer.echo(f"tags: {', '.join(item.tags)}")
    typer.echo("")
    typer.echo(item.text)


@app.command("list")
def list_items(
    kind: KindOption = None,
    tag: TagOption = None,
    limit: LimitOption = None,
    include_expired: AllOption = False,
):
    """List items, most recent last."""
    _, store = _get_store()
    items = _run(store.list(
        limit=min(limit, MAX_LIMIT) if limit is not None else None,
        kind=kind,
        tags=list(tag) if tag else None,
        include_expired=include_expired,
    ))
    typer.echo(_format_items(items))


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search query text")],
    kind: KindOption = None,
    tag: TagOption = None,
    limit: LimitOption = 10,
    include_expired: AllOption = False,
):
    """Rank items by similarity to the query."""
    _, store = _get_store()
    hits = _run(store.search(
        query,
        limit=safe_limit(limit, 10, MAX_LIMIT),
        kind=kind,
        tags=list(tag) if tag else None,
        include_expired=include_expired,
    ))
    typer.echo(_format_hits(hits))


@app.command()
def update(
    id: Annotated[str, typer.Argument(help="Item ID")],
    text: Annotated[Optional[str], typer.Option(
        "--text",
        help="Replace the text"
    )] = None,
    kind: KindOption = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-t",
        help="Replace tags (repeatable)"
    )] = None,
    ttl_seconds: Annotated[Optional[float], typer.Option(
        "--ttl",
        help="Set expiry to this many seconds from now"
    )] = None,
    clear_expiry: Annotated[bool, typer.Option(
        "--clear-expiry",
        help="Remove the expiry (restores an expired item)"
    )] = False,
    no_redact: Annotated[bool, typer.Option(
        "--no-redact",
        help="Store text without secret redaction"
    )] = False,
):
    """Change fields of an existing item (expired items included)."""
    config, store = _get_store()
    changes: dict = {}
    if text is not None:
        changes["text"] = _redact(config, text, no_redact)
    if kind is not None:
        changes["kind"] = kind
    if tag:
        changes["tags"] = list(tag)
    if clear_expiry:
        changes["expires_at"] = None
    elif ttl_seconds is not None:
        changes["expires_at"] = ttl(ttl_seconds)

    item = _run(store.update(id, **changes))
    if item is None:
        typer.echo(f"Not found: {id}", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps(item.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(f"Updated: {item.id}")


@app.command("delete")
def delete(
    id: Annotated[list[str], typer.Argument(help="ID(s) of item(s) to delete")],
):
    """Delete every item with the given ID(s)."""
    _, store = _get_store()
    had_errors = False
    for one_id in id:
        if _run(store.delete(one_id)):
            typer.echo(f"Deleted: {one_id}")
        else:
            typer.echo(f"Not found: {one_id}", err=True)
            had_errors = True
    if had_errors:
        raise typer.Exit(1)


@app.command()
def purge():
    """Physically remove expired items."""
    _, store = _get_store()
    removed = _run(store.purge_expired())
    typer.echo(f"Purged {removed} expired item(s)")


@app.command()
def mcp():
    """Start MCP stdio server for AI agent integration."""
    if _get_store_override() is not None:
        os.environ["MEMCORE_STORE_PATH"] = str(_get_store_override())
    from .mcp import main as mcp_main
    mcp_main()


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="memcore CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()

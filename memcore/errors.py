"""
Exceptions and error logging for memcore.

Validation failures raise; absence is reported as None/False by the store.
The CLI logs full stack traces to a file while showing clean messages.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path

from .types import VALID_KINDS


class MemoryStoreError(Exception):
    """Base class for memcore errors."""


class InvalidItemError(MemoryStoreError, ValueError):
    """Item fields would not survive a round trip through the record file."""


class InvalidKindError(InvalidItemError):
    """Item kind is not one of the valid kinds."""

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(
            f"Invalid kind {kind!r}. Expected one of: {', '.join(VALID_KINDS)}"
        )


class UnsafePathError(MemoryStoreError, ValueError):
    """A configured path resolves outside its allowed root."""


def check_kind(kind: object) -> None:
    """Raise InvalidKindError unless ``kind`` is a valid kind."""
    if not isinstance(kind, str) or kind not in VALID_KINDS:
        raise InvalidKindError(kind)


def _error_log_path() -> Path:
    """Resolve error log path, respecting MEMCORE_STORE_PATH."""
    store = os.environ.get("MEMCORE_STORE_PATH")
    if store:
        return Path(store) / "memcore-errors.log"
    return Path.home() / ".memcore" / "memcore-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}] {type(exc).__name__}")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(exc)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path

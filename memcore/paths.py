"""
Path and input-limit helpers used by the CLI and MCP surfaces.

The store itself trusts the path it is given; config.open_store checks
the configured record file against the store directory here first.
"""

import math
import os
import re
import sys
from pathlib import Path
from typing import Any, Optional

from .errors import UnsafePathError

# Drive-letter absolute paths like C:\ or C:/
_WINDOWS_ABS_RE = re.compile(r"^[A-Za-z]:[/\\]")


def get_default_store_dir() -> Path:
    """Store directory: MEMCORE_STORE_PATH if set, else ~/.memcore."""
    env = os.environ.get("MEMCORE_STORE_PATH")
    if env:
        return Path(expand_home(env))
    return Path.home() / ".memcore"


def expand_home(p: str) -> str:
    """Expand a leading ``~`` (alone, ``~/`` or ``~\\``) to the home directory."""
    if not p:
        return p
    home = str(Path.home())
    if p == "~":
        return home
    if p.startswith(("~/", "~\\")):
        return os.path.join(home, p[2:])
    return p


def safe_path(p: str, label: str = "store_path", root: Optional[Path] = None) -> Path:
    """
    Resolve ``p`` and make sure it stays inside ``root`` (default: home).

    Windows drive paths are rejected on other platforms, where they would
    otherwise resolve as a relative segment under the working directory.
    Comparison is case-insensitive on Windows.

    Raises:
        UnsafePathError: if the resolved path escapes ``root``
    """
    if sys.platform != "win32" and _WINDOWS_ABS_RE.match(p):
        raise UnsafePathError(
            f"{label} must be inside the home directory. Got: {p} "
            f"(Windows-style absolute path on non-Windows platform)"
        )

    resolved = Path(expand_home(p)).resolve()
    base = (root or Path.home()).resolve()

    def norm(s: str) -> str:
        return s.lower() if sys.platform == "win32" else s

    rn, bn = norm(str(resolved)), norm(str(base))
    if rn != bn and not rn.startswith(bn.rstrip(os.sep) + os.sep):
        raise UnsafePathError(f"{label} must be inside {base}. Got: {resolved}")
    return resolved


def safe_limit(val: Any, default: int, maximum: int) -> int:
    """
    Clamp an untrusted limit to [1, maximum].

    Values are truncated toward zero; anything unparseable or below 1 gives
    ``default``; positive infinity gives ``maximum``.
    """
    try:
        n = float(val)
    except (TypeError, ValueError):
        return default
    if math.isnan(n):
        return default
    if math.isinf(n):
        return maximum if n > 0 else default
    n = math.trunc(n)
    if n < 1:
        return default
    return min(n, maximum)

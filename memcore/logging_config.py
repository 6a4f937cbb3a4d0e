"""
Logging configuration for memcore.

The library only creates module loggers; handlers are attached here, by the
CLI and MCP entry points.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_quiet_mode(quiet: bool = True):
    """
    Keep interactive output clean.

    Silences Python warnings and keeps memcore loggers at WARNING unless
    something lowered them already.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logger = logging.getLogger("memcore")
        if logger.level == logging.NOTSET:
            logger.setLevel(logging.WARNING)
        logging.getLogger("mcp").setLevel(logging.ERROR)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("memcore").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a store directory.

    Writes to {store_path}/memcore-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so it can be removed later.
    """
    log_path = Path(store_path) / "memcore-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    memcore_logger = logging.getLogger("memcore")
    memcore_logger.addHandler(handler)
    # Ensure INFO gets through even in quiet mode
    if memcore_logger.level == logging.NOTSET or memcore_logger.level > logging.INFO:
        memcore_logger.setLevel(logging.INFO)

    return handler

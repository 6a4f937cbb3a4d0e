"""
Configuration management for memory stores.

The configuration is stored as a TOML file in the store directory.
It names the record file, the capacity, the embedding provider and its
parameters, and whether text is redacted before it is stored.
"""

import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import tomli_w

from .paths import safe_path
from .providers.base import Embedder, get_registry
from .store import DEFAULT_MAX_ITEMS, JsonlMemoryStore


CONFIG_FILENAME = "memcore.toml"
CONFIG_VERSION = 1
DEFAULT_STORE_FILE = "memory.jsonl"


@dataclass
class ProviderConfig:
    """Configuration for a single provider."""
    name: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    file: str = DEFAULT_STORE_FILE
    max_items: int = DEFAULT_MAX_ITEMS
    redact: bool = True

    embedding: ProviderConfig = field(
        default_factory=lambda: ProviderConfig("hash", {"dims": 256})
    )

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def file_path(self) -> Path:
        """Path to the JSONL record file (relative names live in the store dir).

        open_store() rejects a file that resolves outside the store dir.
        """
        p = Path(self.file).expanduser()
        return p if p.is_absolute() else self.path / p

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    max_items = store.get("max_items", DEFAULT_MAX_ITEMS)
    if not isinstance(max_items, int) or max_items < 1:
        raise ValueError(f"store.max_items must be a positive integer, got {max_items!r}")

    embedding = data.get("embedding", {"name": "hash"})

    return StoreConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        file=store.get("file", DEFAULT_STORE_FILE),
        max_items=max_items,
        redact=bool(data.get("redaction", {}).get("enabled", True)),
        embedding=ProviderConfig(
            name=embedding.get("name", "hash"),
            params={k: v for k, v in embedding.items() if k != "name"},
        ),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    embedding = {"name": config.embedding.name}
    embedding.update(config.embedding.params)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "file": config.file,
            "max_items": config.max_items,
        },
        "embedding": embedding,
        "redaction": {"enabled": config.redact},
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    if (store_path / CONFIG_FILENAME).exists():
        return load_config(store_path)
    config = StoreConfig(path=store_path)
    save_config(config)
    return config


def create_embedder_from_config(config: StoreConfig) -> Embedder:
    """Instantiate the configured embedding provider by registry name."""
    return get_registry().create_embedder(config.embedding.name, config.embedding.params)


def open_store(config: StoreConfig) -> JsonlMemoryStore:
    """
    Build a store from configuration.

    Raises:
        UnsafePathError: if the configured file resolves outside the store
            directory
    """
    safe_path(str(config.file_path), label="store.file", root=config.path)
    return JsonlMemoryStore(
        config.file_path,
        embedder=create_embedder_from_config(config),
        max_items=config.max_items,
    )

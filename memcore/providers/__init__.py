"""
Provider interfaces and implementations.
"""

from .base import Embedder, ProviderRegistry, get_registry
from .embeddings import HashEmbedder, create_embedder

__all__ = [
    "Embedder",
    "ProviderRegistry",
    "get_registry",
    "HashEmbedder",
    "create_embedder",
]

"""
Base provider protocols.

These define the interfaces that concrete providers must implement.
Using Protocol for structural subtyping - no explicit inheritance required.
"""

from typing import Protocol, runtime_checkable


# -----------------------------------------------------------------------------
# Embedding Generation
# -----------------------------------------------------------------------------

@runtime_checkable
class Embedder(Protocol):
    """
    Generates vector embeddings from text.

    The same embedder instance must be used for both storing and querying
    so that vectors are comparable. Search scores assume the embedder
    returns unit-length vectors; unnormalized output still ranks, but the
    [0, 1] score mapping is only meaningful for normalized vectors.

    Example implementation:
        class OpenAIEmbedder:
            id = "openai-text-embedding-3-small"
            dims = 1536

            def __init__(self, client):
                self._client = client

            async def embed(self, text: str) -> list[float]:
                resp = await self._client.embeddings.create(
                    model="text-embedding-3-small", input=text,
                )
                return resp.data[0].embedding
    """

    id: str
    """Unique identifier for this embedder implementation."""

    dims: int
    """
    The dimensionality of the embedding vectors.

    This must be consistent across all calls.
    """

    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding vector for the given text.

        Must be deterministic: the same text always yields the same vector.

        Args:
            text: The text to embed

        Returns:
            A list of ``dims`` floats
        """
        ...


# -----------------------------------------------------------------------------
# Provider Registry
# -----------------------------------------------------------------------------

class ProviderRegistry:
    """
    Registry for discovering and instantiating embedders.

    Embedders are registered by name so the store configuration (TOML) can
    name a provider rather than requiring code changes.

    Example:
        registry = ProviderRegistry()
        registry.register_embedder("hash", HashEmbedder)

        # Later, from config:
        embedder = registry.create_embedder("hash", {"dims": 128})
    """

    def __init__(self):
        self._embedders: dict[str, type] = {}
        self._lazy_loaded = False

    def _ensure_providers_loaded(self) -> None:
        """Lazily import the built-in embedder module."""
        if self._lazy_loaded:
            return
        self._lazy_loaded = True
        # Importing registers the built-in providers
        from . import embeddings  # noqa: F401

    def register_embedder(self, name: str, provider_class: type) -> None:
        """Register an embedder class (or any callable returning an Embedder)."""
        self._embedders[name] = provider_class

    def create_embedder(self, name: str, params: dict | None = None) -> Embedder:
        """Create an embedder instance by registered name."""
        self._ensure_providers_loaded()
        if name not in self._embedders:
            available = ", ".join(self._embedders.keys()) or "none"
            raise ValueError(
                f"Unknown embedding provider: '{name}'. "
                f"Available providers: {available}."
            )
        try:
            return self._embedders[name](**(params or {}))
        except TypeError as e:
            raise ValueError(
                f"Invalid parameters for embedding provider '{name}': {e}"
            ) from e

    def list_embedders(self) -> list[str]:
        """List registered embedder names."""
        self._ensure_providers_loaded()
        return list(self._embedders.keys())


# Global registry instance
# Concrete providers register themselves on import
_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    """Get the global provider registry."""
    return _registry

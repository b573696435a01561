"""Abstract base class for text-embedding service providers.

Implementations may wrap OpenAI ``text-embedding-3-small``, Nomic
``nomic-embed-text`` (local via Ollama), or any other backend.  The vector
store only ever calls :meth:`IEmbeddingProvider.embed_single`: one request
per chunk, no batch endpoint is assumed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (voxpipe/providers/embedding/):
#   OpenAIEmbeddingProvider  -- text-embedding-3-small (requires API key)
#   NomicEmbeddingProvider   -- nomic-embed-text via Ollama (local)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the knowledge store."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*, each of length
            :meth:`get_dimension`.

        Raises
        ------
        voxpipe.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``),
        ``768`` (Nomic ``nomic-embed-text``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""

"""Embedding provider implementations.

    1. OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims), API key required.
    2. NomicEmbeddingProvider  -- nomic-embed-text via Ollama (768 dims), local.
"""

from voxpipe.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from voxpipe.providers.embedding.openai_embedding_provider import (
    OpenAICompatibleEmbeddingProvider,
    OpenAIEmbeddingProvider,
)

__all__ = ["NomicEmbeddingProvider", "OpenAICompatibleEmbeddingProvider", "OpenAIEmbeddingProvider"]

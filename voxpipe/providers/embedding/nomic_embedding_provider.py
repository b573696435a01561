"""Nomic embedding provider adapter (local via Ollama).

Talks to Ollama's OpenAI-compatible endpoint using ``nomic-embed-text``
(768 dimensions).  No API key is required.
"""

from __future__ import annotations

import httpx
import openai

from voxpipe.config.settings import Settings
from voxpipe.providers.embedding.openai_embedding_provider import (
    OpenAICompatibleEmbeddingProvider,
)


class NomicEmbeddingProvider(OpenAICompatibleEmbeddingProvider):
    """Embedding provider backed by ``nomic-embed-text`` served via Ollama."""

    _batch_limit = 512

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        super().__init__(
            client=openai.AsyncOpenAI(
                base_url=f"{self._base_url}/v1",
                api_key="ollama",  # ignored by Ollama
            ),
            model="nomic-embed-text",
            dimension=768,
            provider_label="nomic_embedding",
        )

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server answers."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

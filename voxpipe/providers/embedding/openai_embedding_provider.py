"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Works against real OpenAI or any OpenAI-compatible endpoint via a custom
``base_url``.  :class:`NomicEmbeddingProvider` reuses the request path with
Ollama's ``/v1`` endpoint.
"""

from __future__ import annotations

import openai
import structlog

from voxpipe.config.settings import Settings
from voxpipe.interfaces.embedding_provider import IEmbeddingProvider
from voxpipe.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAICompatibleEmbeddingProvider(IEmbeddingProvider):
    """Shared request logic for endpoints speaking the OpenAI embeddings API."""

    _batch_limit = _OPENAI_BATCH_LIMIT

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        model: str,
        dimension: int,
        provider_label: str,
    ) -> None:
        self._client = client
        self._model = model
        self._dimension = dimension
        self._provider_label = provider_label

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors, splitting into per-call batches."""
        if not texts:
            return []

        try:
            vectors: list[list[float]] = []
            for start in range(0, len(texts), self._batch_limit):
                batch = texts[start : start + self._batch_limit]
                response = await self._client.embeddings.create(input=batch, model=self._model)
                vectors.extend(item.embedding for item in response.data)
                logger.debug(
                    "embedding_batch",
                    provider=self._provider_label,
                    model=self._model,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(vectors) != len(texts):
            raise EmbeddingError(
                message=f"Expected {len(texts)} embeddings, received {len(vectors)}",
                provider_name=self.get_provider_name(),
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        return True


class OpenAIEmbeddingProvider(OpenAICompatibleEmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) unless
    ``openai_embedding_model`` overrides it.
    """

    def __init__(self, settings: Settings) -> None:
        client_kwargs: dict = {"api_key": settings.openai_api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        model = settings.openai_embedding_model or "text-embedding-3-small"
        super().__init__(
            client=openai.AsyncOpenAI(**client_kwargs),
            model=model,
            dimension=_MODEL_DIMENSIONS.get(model, 1536),
            provider_label=(
                "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
            ),
        )
        self._api_key = settings.openai_api_key

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

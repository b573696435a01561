"""Unit tests for the OpenAI-compatible embedding providers."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from voxpipe.config.settings import Settings
from voxpipe.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from voxpipe.providers.embedding.openai_embedding_provider import (
    OpenAICompatibleEmbeddingProvider,
    OpenAIEmbeddingProvider,
)
from voxpipe.utils.errors import EmbeddingError


def _response(vectors: list[list[float]]) -> SimpleNamespace:
    return SimpleNamespace(
        data=[SimpleNamespace(embedding=v) for v in vectors],
        usage=SimpleNamespace(total_tokens=len(vectors)),
    )


def _provider(create: AsyncMock) -> OpenAICompatibleEmbeddingProvider:
    client = MagicMock()
    client.embeddings.create = create
    return OpenAICompatibleEmbeddingProvider(
        client=client, model="test-model", dimension=2, provider_label="test_embedding"
    )


class TestOpenAICompatibleEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_embed_returns_vectors(self) -> None:
        create = AsyncMock(return_value=_response([[0.1, 0.2], [0.3, 0.4]]))
        provider = _provider(create)

        vectors = await provider.embed(["a", "b"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        create.assert_awaited_once_with(input=["a", "b"], model="test-model")

    @pytest.mark.asyncio
    async def test_embed_empty_skips_call(self) -> None:
        create = AsyncMock()
        assert await _provider(create).embed([]) == []
        create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embed_batches_large_inputs(self) -> None:
        create = AsyncMock(side_effect=lambda input, model: _response([[1.0, 0.0]] * len(input)))
        provider = _provider(create)
        provider._batch_limit = 2

        vectors = await provider.embed(["a", "b", "c", "d", "e"])

        assert len(vectors) == 5
        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_embed_single(self) -> None:
        provider = _provider(AsyncMock(return_value=_response([[0.5, 0.5]])))
        assert await provider.embed_single("hello") == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self) -> None:
        error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.test"))
        provider = _provider(AsyncMock(side_effect=error))

        with pytest.raises(EmbeddingError) as exc_info:
            await provider.embed(["a"])

        assert exc_info.value.provider_name == "test_embedding"

    @pytest.mark.asyncio
    async def test_count_mismatch_raises(self) -> None:
        provider = _provider(AsyncMock(return_value=_response([[0.1, 0.2]])))

        with pytest.raises(EmbeddingError):
            await provider.embed(["a", "b"])


class TestOpenAIEmbeddingProvider:
    def test_defaults(self) -> None:
        provider = OpenAIEmbeddingProvider(Settings(_env_file=None, openai_api_key="sk-test"))

        assert provider.get_dimension() == 1536
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.is_available()

    def test_custom_base_url_label(self) -> None:
        provider = OpenAIEmbeddingProvider(
            Settings(
                _env_file=None,
                openai_api_key="sk-test",
                openai_base_url="http://localhost:9999/v1",
                openai_embedding_model="text-embedding-3-large",
            )
        )

        assert provider.get_dimension() == 3072
        assert provider.get_provider_name() == "openai-compatible_embedding"


class TestNomicEmbeddingProvider:
    def test_dimension_and_name(self) -> None:
        provider = NomicEmbeddingProvider(Settings(_env_file=None))
        assert provider.get_dimension() == 768
        assert provider.get_provider_name() == "nomic_embedding"

    def test_available_when_ollama_answers(self) -> None:
        provider = NomicEmbeddingProvider(Settings(_env_file=None))
        with patch(
            "voxpipe.providers.embedding.nomic_embedding_provider.httpx.get",
            return_value=httpx.Response(200),
        ):
            assert provider.is_available()

    def test_unavailable_on_connection_error(self) -> None:
        provider = NomicEmbeddingProvider(Settings(_env_file=None))
        with patch(
            "voxpipe.providers.embedding.nomic_embedding_provider.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            assert not provider.is_available()

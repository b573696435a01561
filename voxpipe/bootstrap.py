"""Component assembly shared by the API app and the CLI tools.

Every provider is built from :class:`~voxpipe.config.settings.Settings`
plus the merged YAML config so that the CLI and the deployed app agree on
the embedding model (and therefore on the vector dimension of an existing
Chroma collection).
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from voxpipe.config.settings import Settings
from voxpipe.interfaces.embedding_provider import IEmbeddingProvider
from voxpipe.interfaces.voice_api_client import IVoiceApiClient
from voxpipe.models.storage import Credential
from voxpipe.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from voxpipe.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from voxpipe.providers.storage.sqlite_storage_provider import SQLiteStorageProvider
from voxpipe.providers.vector_store.chromadb_provider import ChromaDBProvider
from voxpipe.providers.voice.elevenlabs_client import ElevenLabsClient
from voxpipe.services.ingestion.chunker import TextChunker
from voxpipe.services.ingestion.extractor import DocumentExtractor
from voxpipe.services.ingestion.knowledge_service import KnowledgeService
from voxpipe.services.sync.conversation_sync_service import ConversationSyncService

logger = structlog.get_logger(logger_name=__name__)


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Pick the embedding backend.

    Priority: OpenAI (API key set) -> Nomic via Ollama.  Ollama is returned
    even when unreachable so that startup succeeds; embedding calls then
    fail with EmbeddingError.
    """
    if app_settings.openai_api_key:
        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    provider = NomicEmbeddingProvider(settings=app_settings)
    if not provider.is_available():
        logger.warning(
            "embedding_provider_unreachable",
            provider=provider.get_provider_name(),
            base_url=app_settings.ollama_base_url,
        )
    return provider


def build_components(
    app_settings: Settings,
    app_config: dict[str, Any],
    embedding_provider: IEmbeddingProvider | None = None,
) -> dict[str, Any]:
    """Construct every provider and service.

    Returns a flat dict of named components; the API stores each one on
    ``app.state``.  Nothing is opened here; see :func:`start_components`.
    """
    chunking = app_config.get("chunking", {})
    search = app_config.get("search", {})
    sync = app_config.get("sync", {})
    cost = app_config.get("cost", {})

    http_client = httpx.AsyncClient(timeout=app_settings.voice_api_timeout)
    embedding = embedding_provider or build_embedding_provider(app_settings)
    chunker = TextChunker(
        chunk_size=int(chunking.get("chunk_size", 1000)),
        overlap=int(chunking.get("overlap", 200)),
    )
    vector_store = ChromaDBProvider(
        embedding_provider=embedding,
        chunker=chunker,
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        overfetch_factor=int(search.get("overfetch_factor", 3)),
    )
    storage = SQLiteStorageProvider(db_path=app_settings.storage_db_path)

    def _voice_client_factory(credential: Credential) -> IVoiceApiClient:
        # Each organization brings its own key; the connection pool is shared.
        return ElevenLabsClient(
            api_key=credential.api_key,
            http_client=http_client,
            base_url=app_settings.elevenlabs_base_url,
            max_retries=app_settings.voice_api_max_retries,
            retry_delay=app_settings.voice_api_retry_delay,
            timeout=app_settings.voice_api_timeout,
        )

    knowledge_service = KnowledgeService(
        vector_store=vector_store,
        storage=storage,
        extractor=DocumentExtractor(),
    )
    sync_service = ConversationSyncService(
        storage=storage,
        client_factory=_voice_client_factory,
        batch_size=int(sync.get("batch_size", 10)),
        page_size=int(sync.get("page_size", 100)),
        rate_per_minute=float(cost.get("rate_per_minute", 0.30)),
    )

    return {
        "http_client": http_client,
        "embedding_provider": embedding,
        "chunker": chunker,
        "vector_store": vector_store,
        "storage": storage,
        "knowledge_service": knowledge_service,
        "sync_service": sync_service,
        "sync_timeout_seconds": app_settings.sync_timeout_seconds,
    }


async def start_components(components: dict[str, Any]) -> None:
    await components["storage"].initialize()
    await components["vector_store"].initialize()


async def stop_components(components: dict[str, Any]) -> None:
    await components["vector_store"].close()
    await components["storage"].close()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()

"""Orchestrator for knowledge-document ingestion and retrieval.

Ingestion stages: **extract -> chunk -> embed -> store**.

:class:`KnowledgeService` coordinates the extractor, the vector store (which
chunks and embeds internally) and the relational storage record for each
document.  All collaborators are injected.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from voxpipe.models.rag import DocumentSummary, IngestionResult, SearchHit, VectorStoreStats
from voxpipe.models.storage import StoredDocument
from voxpipe.services.ingestion.extractor import DocumentExtractor
from voxpipe.utils.errors import ExtractionError

if TYPE_CHECKING:
    from voxpipe.interfaces.storage_provider import IStorageProvider
    from voxpipe.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


class KnowledgeService:
    """Single entry point for uploading, searching and managing documents.

    Parameters
    ----------
    vector_store:
        Chunk store; owns chunking and embedding of document content.
    storage:
        Relational store for the per-document record.
    extractor:
        Converts uploaded bytes to text.  A default instance is created when
        omitted.
    """

    def __init__(
        self,
        vector_store: IVectorStoreProvider,
        storage: IStorageProvider,
        extractor: DocumentExtractor | None = None,
    ) -> None:
        self._vector_store = vector_store
        self._storage = storage
        self._extractor = extractor or DocumentExtractor()

    async def ingest(
        self,
        data: bytes,
        filename: str,
        organization_id: str,
        agent_ids: list[str],
        mime_type: str | None = None,
        document_id: str | None = None,
    ) -> IngestionResult:
        """Ingest one uploaded file and return its new document id.

        Extraction runs in a worker thread because the PDF and Word readers
        are synchronous.  Pass *document_id* to re-run an ingestion that
        failed part-way; chunks are overwritten by id.

        Raises
        ------
        ExtractionError
            If the file cannot be converted to text or contains none.
        EmbeddingError
            If embedding fails; earlier chunks of the document stay written.
        """
        start = time.monotonic()
        document_id = document_id or uuid.uuid4().hex

        extracted = await asyncio.to_thread(self._extractor.process, data, filename, mime_type)
        name = extracted.metadata.file_name
        if not extracted.content.strip():
            logger.warning("document_has_no_text", name=name, organization_id=organization_id)
            raise ExtractionError(
                message=f"No text could be extracted from {name}",
                file_type=extracted.metadata.file_type,
            )

        try:
            chunk_count = await self._vector_store.add_document(
                document_id=document_id,
                name=name,
                content=extracted.content,
                agent_ids=agent_ids,
                organization_id=organization_id,
            )
        except Exception:
            logger.error(
                "document_ingestion_incomplete",
                document_id=document_id,
                name=name,
                organization_id=organization_id,
            )
            raise

        existing = await self._storage.get_document(document_id, organization_id)
        if existing is None:
            await self._storage.create_document(
                StoredDocument(
                    id=document_id,
                    organization_id=organization_id,
                    name=name,
                    file_type=extracted.metadata.file_type,
                    agent_ids=agent_ids,
                    character_count=extracted.metadata.character_count,
                    chunk_count=chunk_count,
                    created_at=datetime.now(timezone.utc),
                )
            )

        elapsed = time.monotonic() - start
        logger.info(
            "document_ingested",
            document_id=document_id,
            name=name,
            organization_id=organization_id,
            chunks=chunk_count,
            elapsed_s=round(elapsed, 3),
        )
        return IngestionResult(
            document_id=document_id,
            name=name,
            chunks_created=chunk_count,
            file_type=extracted.metadata.file_type,
            ingestion_time=elapsed,
        )

    async def search(
        self,
        query: str,
        agent_id: str,
        organization_id: str,
        limit: int = 5,
    ) -> list[SearchHit]:
        return await self._vector_store.search(query, agent_id, organization_id, limit)

    async def list_documents(self, organization_id: str) -> list[DocumentSummary]:
        return await self._vector_store.get_documents(organization_id)

    async def get_document_content(self, document_id: str, organization_id: str) -> str:
        return await self._vector_store.get_document_content(document_id, organization_id)

    async def delete_document(self, document_id: str, organization_id: str) -> bool:
        """Delete a document's chunks, then its storage record.

        Returns ``False`` when neither chunks nor a record existed.
        """
        deleted_chunks = await self._vector_store.delete_document(document_id, organization_id)
        deleted_record = await self._storage.delete_document(document_id, organization_id)
        logger.info(
            "document_deleted",
            document_id=document_id,
            organization_id=organization_id,
            chunks=deleted_chunks,
            record=deleted_record,
        )
        return deleted_chunks > 0 or deleted_record

    async def update_document_agents(
        self,
        document_id: str,
        organization_id: str,
        agent_ids: list[str],
    ) -> bool:
        """Change which agents can retrieve a document."""
        updated_chunks = await self._vector_store.update_document_agents(
            document_id, organization_id, agent_ids
        )
        updated_record = await self._storage.update_document_agents(
            document_id, organization_id, agent_ids
        )
        return updated_chunks > 0 or updated_record

    async def get_stats(self, organization_id: str) -> VectorStoreStats:
        return await self._vector_store.get_stats(organization_id)

    @staticmethod
    def supported_file_types() -> list[str]:
        return DocumentExtractor.supported_file_types()

    @staticmethod
    def is_supported(filename: str) -> bool:
        return DocumentExtractor.is_supported(filename)

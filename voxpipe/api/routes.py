"""FastAPI routes for the voxpipe pipelines.

Endpoint                                    Method  Description
--------------------------------------------------------------------------
/api/v1/health                              GET     Health + provider status
/api/v1/knowledge/documents                 POST    Upload files -> ingest
/api/v1/knowledge/documents                 GET     List an organization's documents
/api/v1/knowledge/documents/{id}/content    GET     Reassembled document text
/api/v1/knowledge/documents/{id}/agents     PATCH   Change agent visibility
/api/v1/knowledge/documents/{id}            DELETE  Delete document + chunks
/api/v1/knowledge/search                    POST    Similarity search
/api/v1/knowledge/stats                     GET     Chunk/document counts
/api/v1/sync                                POST    Sync remote conversations

Services are resolved from ``app.state`` (populated by ``main.py``) via
``Annotated[..., Depends(...)]`` aliases.
"""

from __future__ import annotations

import asyncio
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from voxpipe import __version__
from voxpipe.api.schemas import (
    DeleteDocumentResponse,
    DocumentContentResponse,
    DocumentItem,
    DocumentListResponse,
    ErrorResponse,
    HealthResponse,
    KnowledgeStatsResponse,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    SyncRequest,
    SyncResponse,
    UpdateAgentsRequest,
    UploadResponse,
    UploadResult,
)
from voxpipe.services.ingestion.knowledge_service import KnowledgeService
from voxpipe.services.sync.conversation_sync_service import ConversationSyncService
from voxpipe.utils.errors import VoxpipeError
from voxpipe.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB per file
_MAX_FILES = 10


def _get_knowledge_service(request: Request) -> KnowledgeService:
    return request.app.state.knowledge_service


def _get_sync_service(request: Request) -> ConversationSyncService:
    return request.app.state.sync_service


def _get_sync_timeout(request: Request) -> float:
    return request.app.state.sync_timeout_seconds


KnowledgeDep = Annotated[KnowledgeService, Depends(_get_knowledge_service)]
SyncDep = Annotated[ConversationSyncService, Depends(_get_sync_service)]
SyncTimeoutDep = Annotated[float, Depends(_get_sync_timeout)]


def _parse_agent_ids(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request) -> HealthResponse:
    providers: dict[str, Any] = {}
    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is not None:
        providers["vector_store"] = {
            "name": vector_store.get_provider_name(),
            "available": vector_store.is_available(),
        }
    embedding = getattr(request.app.state, "embedding_provider", None)
    if embedding is not None:
        providers["embedding"] = {"name": embedding.get_provider_name()}
    return HealthResponse(status="healthy", version=__version__, providers=providers)


# ---------------------------------------------------------------------------
# Knowledge documents
# ---------------------------------------------------------------------------


@router.post(
    "/knowledge/documents",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Upload and ingest documents",
)
async def upload_documents(
    knowledge: KnowledgeDep,
    organization_id: Annotated[str, Form(min_length=1)],
    files: Annotated[list[UploadFile], File()],
    agent_ids: Annotated[str, Form()] = "",
) -> UploadResponse:
    """Ingest each file independently; one file's failure does not stop the rest."""
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(files) > _MAX_FILES:
        raise HTTPException(status_code=400, detail=f"At most {_MAX_FILES} files per upload")

    agents = _parse_agent_ids(agent_ids)
    results: list[UploadResult] = []
    for upload in files:
        file_name = upload.filename or "upload"
        if not knowledge.is_supported(file_name):
            supported = ", ".join(knowledge.supported_file_types())
            results.append(
                UploadResult(
                    file_name=file_name,
                    success=False,
                    error=f"File type not supported. Supported types: {supported}",
                )
            )
            continue

        # Reads at most one byte past the limit when the size is not declared.
        too_large = upload.size is not None and upload.size > _MAX_FILE_SIZE
        data = b"" if too_large else await upload.read(_MAX_FILE_SIZE + 1)
        if too_large or len(data) > _MAX_FILE_SIZE:
            results.append(
                UploadResult(file_name=file_name, success=False, error="File exceeds 10 MB limit")
            )
            continue

        try:
            ingested = await knowledge.ingest(
                data=data,
                filename=file_name,
                organization_id=organization_id,
                agent_ids=agents,
                mime_type=upload.content_type,
            )
        except VoxpipeError as exc:
            _logger.warning("document_upload_failed", file_name=file_name, error=str(exc))
            results.append(UploadResult(file_name=file_name, success=False, error=exc.message))
            continue

        results.append(
            UploadResult(
                file_name=file_name,
                success=True,
                document_id=ingested.document_id,
                chunks_created=ingested.chunks_created,
                file_type=ingested.file_type,
            )
        )
    return UploadResponse(results=results)


@router.get("/knowledge/documents", response_model=DocumentListResponse)
async def list_documents(
    knowledge: KnowledgeDep,
    organization_id: Annotated[str, Query(min_length=1)],
) -> DocumentListResponse:
    summaries = await knowledge.list_documents(organization_id)
    documents = [DocumentItem(**summary.model_dump()) for summary in summaries]
    return DocumentListResponse(documents=documents, total=len(documents))


@router.get(
    "/knowledge/documents/{document_id}/content",
    response_model=DocumentContentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_document_content(
    document_id: str,
    knowledge: KnowledgeDep,
    organization_id: Annotated[str, Query(min_length=1)],
) -> DocumentContentResponse:
    content = await knowledge.get_document_content(document_id, organization_id)
    if not content:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return DocumentContentResponse(document_id=document_id, content=content)


@router.patch(
    "/knowledge/documents/{document_id}/agents",
    response_model=DocumentItem,
    responses={404: {"model": ErrorResponse}},
)
async def update_document_agents(
    document_id: str,
    body: UpdateAgentsRequest,
    knowledge: KnowledgeDep,
) -> DocumentItem:
    updated = await knowledge.update_document_agents(
        document_id, body.organization_id, body.agent_ids
    )
    if not updated:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    for summary in await knowledge.list_documents(body.organization_id):
        if summary.document_id == document_id:
            return DocumentItem(**summary.model_dump())
    return DocumentItem(document_id=document_id, name="", agent_ids=body.agent_ids)


@router.delete(
    "/knowledge/documents/{document_id}",
    response_model=DeleteDocumentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_document(
    document_id: str,
    knowledge: KnowledgeDep,
    organization_id: Annotated[str, Query(min_length=1)],
) -> DeleteDocumentResponse:
    deleted = await knowledge.delete_document(document_id, organization_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return DeleteDocumentResponse(document_id=document_id, deleted=True)


@router.post("/knowledge/search", response_model=SearchResponse)
async def search_knowledge(body: SearchRequest, knowledge: KnowledgeDep) -> SearchResponse:
    hits = await knowledge.search(body.query, body.agent_id, body.organization_id, body.limit)
    results = [SearchResultItem(**hit.model_dump()) for hit in hits]
    return SearchResponse(query=body.query, results=results, total=len(results))


@router.get("/knowledge/stats", response_model=KnowledgeStatsResponse)
async def knowledge_stats(
    knowledge: KnowledgeDep,
    organization_id: Annotated[str, Query(min_length=1)],
) -> KnowledgeStatsResponse:
    stats = await knowledge.get_stats(organization_id)
    return KnowledgeStatsResponse(**stats.model_dump())


# ---------------------------------------------------------------------------
# Conversation sync
# ---------------------------------------------------------------------------


@router.post(
    "/sync",
    response_model=SyncResponse,
    responses={400: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
    summary="Sync remote conversations for an organization",
)
async def sync_conversations(
    body: SyncRequest,
    sync_service: SyncDep,
    timeout_seconds: SyncTimeoutDep,
) -> SyncResponse:
    """Run one sync under the configured deadline.

    On timeout in-flight remote calls are abandoned; records already
    written stay written.
    """
    try:
        result = await asyncio.wait_for(
            sync_service.sync(body.organization_id),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        _logger.warning(
            "sync_timed_out",
            organization_id=body.organization_id,
            timeout_s=timeout_seconds,
        )
        raise HTTPException(status_code=504, detail="Sync timed out") from exc

    return SyncResponse(
        message=result.message,
        total_synced=result.total_synced,
        total_errors=result.total_errors,
        total_skipped=result.total_skipped,
        failed_agents=result.failed_agents,
        elapsed_ms=result.elapsed_ms,
    )

"""Pydantic request/response schemas for the voxpipe API.

Request schemas end with ``Request``, response schemas with ``Response``.
FastAPI validates incoming bodies against them (422 on mismatch) and
serializes responses through them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


# ---------------------------------------------------------------------------
# Knowledge documents
# ---------------------------------------------------------------------------


class UploadResult(BaseModel):
    """Outcome of ingesting one uploaded file."""

    file_name: str
    success: bool
    document_id: str | None = None
    chunks_created: int = 0
    file_type: str | None = None
    error: str | None = None


class UploadResponse(BaseModel):
    results: list[UploadResult]


class DocumentItem(BaseModel):
    document_id: str
    name: str
    agent_ids: list[str] = Field(default_factory=list)
    chunk_count: int = 0
    created_at: datetime | None = None


class DocumentListResponse(BaseModel):
    documents: list[DocumentItem]
    total: int


class DocumentContentResponse(BaseModel):
    document_id: str
    content: str


class UpdateAgentsRequest(BaseModel):
    organization_id: str = Field(..., min_length=1)
    agent_ids: list[str] = Field(default_factory=list)


class DeleteDocumentResponse(BaseModel):
    document_id: str
    deleted: bool


class SearchRequest(BaseModel):
    """Similarity search scoped to one organization and agent."""

    query: str = Field(..., min_length=1, max_length=2000)
    agent_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    limit: int = Field(default=5, ge=1, le=50)


class SearchResultItem(BaseModel):
    content: str
    document_name: str
    document_id: str = ""
    distance: float
    chunk_index: int
    total_chunks: int


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResultItem]
    total: int


class KnowledgeStatsResponse(BaseModel):
    total_chunks: int
    total_documents: int
    chunks_by_document: dict[str, int]


# ---------------------------------------------------------------------------
# Conversation sync
# ---------------------------------------------------------------------------


class SyncRequest(BaseModel):
    organization_id: str = Field(..., min_length=1)


class SyncResponse(BaseModel):
    """Aggregate counts of a sync run."""

    success: bool = True
    message: str
    total_synced: int
    total_errors: int
    total_skipped: int
    failed_agents: int
    elapsed_ms: int

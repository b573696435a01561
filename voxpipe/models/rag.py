"""Knowledge-store data models.

Pydantic v2 models for document chunks, search hits, per-document
summaries, extraction output and ingestion results.  All models are frozen.

Pipeline overview:

    1. EXTRACTION: uploaded bytes are converted to plain text
       (services/ingestion/extractor.py).
    2. CHUNKING: text is split into overlapping, boundary-aware windows
       (services/ingestion/chunker.py).
    3. EMBEDDING: each chunk is turned into a vector by an
       IEmbeddingProvider.
    4. STORAGE: chunk text, vector and denormalized document metadata are
       written to the vector store (providers/vector_store/).
    5. RETRIEVAL: a query is embedded and the nearest chunks visible to the
       requesting organization and agent are returned.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# DocumentChunk -- one stored row of the knowledge store.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A chunk of a document as persisted in the vector store.

    The document's name, organization and agent visibility set are copied
    onto every chunk so that search can filter without a join.  Chunk
    indices of one document run ``0..total_chunks-1``.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description='Row id, "{document_id}_chunk_{chunk_index}".')
    document_id: str = Field(description="Identifier of the owning document.")
    text: str = Field(description="The chunk's textual content.")
    document_name: str = Field(description="Display name of the owning document.")
    organization_id: str = Field(description="Owning organization.")
    agent_ids: list[str] = Field(
        default_factory=list,
        description="Agents the owning document is visible to.",
    )
    chunk_index: int = Field(ge=0, description="Position of this chunk within its document.")
    total_chunks: int = Field(ge=1, description="Chunk count of the document at creation time.")
    created_at: datetime | None = Field(default=None, description="When the chunk was written.")

    @staticmethod
    def make_id(document_id: str, chunk_index: int) -> str:
        return f"{document_id}_chunk_{chunk_index}"


# ---------------------------------------------------------------------------
# SearchHit -- a similarity-search result.
# ---------------------------------------------------------------------------
class SearchHit(BaseModel):
    """A chunk returned from a similarity search, with its distance.

    Lower ``distance`` means more similar; hits are returned in ascending
    distance order.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="The chunk text.")
    document_name: str = Field(description="Display name of the owning document.")
    distance: float = Field(description="Vector distance between the query and this chunk.")
    chunk_index: int = Field(ge=0)
    total_chunks: int = Field(ge=1)
    document_id: str = Field(default="", description="Identifier of the owning document.")


class DocumentSummary(BaseModel):
    """One document as listed from the vector store, grouped from its chunks."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    name: str
    agent_ids: list[str] = Field(default_factory=list)
    chunk_count: int = Field(default=0, ge=0)
    created_at: datetime | None = None


class VectorStoreStats(BaseModel):
    """Aggregate counts for one organization's slice of the knowledge store."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0)
    total_documents: int = Field(default=0, ge=0)
    chunks_by_document: dict[str, int] = Field(
        default_factory=dict,
        description="Chunk count keyed by document name.",
    )


# ---------------------------------------------------------------------------
# Extraction output
# ---------------------------------------------------------------------------
class DocumentMetadata(BaseModel):
    """Facts gathered while extracting an uploaded file."""

    model_config = ConfigDict(frozen=True)

    file_type: str = Field(description='Normalized extension, e.g. "pdf", "docx", "txt".')
    file_name: str
    page_count: int | None = Field(default=None, description="Only known for PDF input.")
    word_count: int = Field(default=0, ge=0)
    character_count: int = Field(default=0, ge=0)


class ExtractedDocument(BaseModel):
    """Plain text of an uploaded file plus its metadata."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: DocumentMetadata


class IngestionResult(BaseModel):
    """Summary of a single document ingestion run."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(description="Identifier assigned to the ingested document.")
    name: str = Field(description="Display name of the ingested document.")
    chunks_created: int = Field(default=0, ge=0)
    file_type: str = Field(default="unknown")
    ingestion_time: float = Field(
        default=0.0,
        ge=0.0,
        description="Wall-clock time in seconds for the ingestion run.",
    )

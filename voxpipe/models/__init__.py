"""voxpipe domain models -- re-exports all public model classes.

    - conversation.py -- transcript shapes, synced records, sync results
    - rag.py          -- knowledge-store chunks, hits and ingestion results
    - storage.py      -- agents, users, credentials, document records
"""

from __future__ import annotations

from voxpipe.models.conversation import (
    ApiResult,
    ConversationRecord,
    FlatTranscript,
    SyncResult,
    Transcript,
    TranscriptTurn,
    TurnsTranscript,
    WrappedTranscript,
)
from voxpipe.models.rag import (
    DocumentChunk,
    DocumentMetadata,
    DocumentSummary,
    ExtractedDocument,
    IngestionResult,
    SearchHit,
    VectorStoreStats,
)
from voxpipe.models.storage import Agent, Credential, StoredDocument, User

__all__ = [
    "Agent",
    "ApiResult",
    "ConversationRecord",
    "Credential",
    "DocumentChunk",
    "DocumentMetadata",
    "DocumentSummary",
    "ExtractedDocument",
    "FlatTranscript",
    "IngestionResult",
    "SearchHit",
    "StoredDocument",
    "SyncResult",
    "Transcript",
    "TranscriptTurn",
    "TurnsTranscript",
    "User",
    "VectorStoreStats",
    "WrappedTranscript",
]

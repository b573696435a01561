"""Document ingestion pipeline for the knowledge store.

Pipeline stages: **extract -> chunk -> embed -> store**.

1. **Extract** (extractor.py / DocumentExtractor) -- uploaded bytes to text.
2. **Chunk** (chunker.py / TextChunker) -- overlapping, sentence-aware
   character windows.
3. **Embed / Store** -- performed by the injected IVectorStoreProvider using
   its IEmbeddingProvider.

KnowledgeService ties the stages to the relational document record.
"""

from voxpipe.services.ingestion.chunker import TextChunker
from voxpipe.services.ingestion.extractor import DocumentExtractor
from voxpipe.services.ingestion.knowledge_service import KnowledgeService

__all__ = [
    "DocumentExtractor",
    "KnowledgeService",
    "TextChunker",
]

"""Abstract base class for vector-store service providers.

A vector store owns persistent chunk rows (text, vector, denormalized
document metadata) and supports insertion, filtered similarity search,
listing, content reassembly and deletion.  Instances are explicitly
constructed and passed to their users; the owner drives the
``initialize``/``close`` lifecycle.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from voxpipe.models.rag import DocumentSummary, SearchHit, VectorStoreStats


# Concrete implementation: ChromaDBProvider (voxpipe/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for the chunked, embedded knowledge store.

    Callers must not run :meth:`add_document` concurrently with
    :meth:`delete_document` for the same document without serializing them.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Open the underlying store handle.  Safe to call more than once."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying store handle."""

    @abstractmethod
    async def add_document(
        self,
        document_id: str,
        name: str,
        content: str,
        agent_ids: list[str],
        organization_id: str,
    ) -> int:
        """Chunk, embed and persist a document.

        Chunks are embedded one at a time and written in ascending index
        order.  If embedding fails part-way, chunks already written stay
        written and the error propagates: the document is partially
        ingested and ingestion should be re-run.

        Returns
        -------
        int
            Number of chunks written.

        Raises
        ------
        voxpipe.utils.errors.EmbeddingError
            If the embedding provider fails.
        voxpipe.utils.errors.VectorStoreError
            If a chunk cannot be written.
        """

    @abstractmethod
    async def search(
        self,
        query_text: str,
        agent_id: str,
        organization_id: str,
        limit: int = 5,
    ) -> list[SearchHit]:
        """Return up to *limit* chunks nearest to *query_text*.

        Only chunks of *organization_id* that are visible to *agent_id* are
        returned, ordered by ascending distance.  Filtering happens after
        an over-fetched nearest-neighbour query, so sparse tenants may get
        fewer than *limit* hits even when more matches exist.
        """

    @abstractmethod
    async def get_documents(self, organization_id: str) -> list[DocumentSummary]:
        """List one summary per document of *organization_id*."""

    @abstractmethod
    async def delete_document(self, document_id: str, organization_id: str) -> int:
        """Delete every chunk of a document, one chunk at a time.

        Returns the number of chunks deleted.  Not atomic: an interruption
        can leave a partially deleted document.
        """

    @abstractmethod
    async def get_document_content(self, document_id: str, organization_id: str) -> str:
        """Reassemble a document's text from its chunks in index order."""

    @abstractmethod
    async def update_document_agents(
        self,
        document_id: str,
        organization_id: str,
        agent_ids: list[str],
    ) -> int:
        """Replace the agent-visibility set on every chunk of a document."""

    @abstractmethod
    async def get_stats(self, organization_id: str) -> VectorStoreStats:
        """Return chunk and document counts for *organization_id*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store can currently be used."""

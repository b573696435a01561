"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`
for the multi-tenant knowledge store.  Every chunk row carries denormalized
copies of its document's name, organization and agent-visibility set so that
search results can be filtered without a join.

Lifecycle is owned by the caller: construct, ``await initialize()``, use,
``await close()``.  The collection itself is created lazily on the first
``add_document``; reads against a store that has never been written to
return empty results.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Iterator

# ChromaDB's bundled PostHog telemetry breaks with some posthog releases, so
# it is switched off through the env var, the SDK flag and client Settings.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from voxpipe.interfaces.embedding_provider import IEmbeddingProvider
from voxpipe.interfaces.vector_store_provider import IVectorStoreProvider
from voxpipe.models.rag import DocumentChunk, DocumentSummary, SearchHit, VectorStoreStats
from voxpipe.services.ingestion.chunker import TextChunker
from voxpipe.utils.errors import EmbeddingError, VectorStoreError, VoxpipeError

logger = structlog.get_logger(logger_name=__name__)

# Rows fetched per .get() page; keeps each query under SQLite's bind limit.
_PAGE_SIZE = 5000


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function that is never called.

    All vectors come from the injected :class:`IEmbeddingProvider`; passing
    this stops ChromaDB from loading its default ONNX model.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError("voxpipe passes pre-computed embeddings to ChromaDB")

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Knowledge store backed by ChromaDB with local persistence.

    Parameters
    ----------
    embedding_provider:
        Embeds chunk text at insert time and query text at search time.
    chunker:
        Splits document content into chunks before embedding.
    persist_directory:
        Directory for ChromaDB's on-disk files.
    collection_name:
        Name of the chunk collection (the "table").
    overfetch_factor:
        Search asks ChromaDB for ``limit * overfetch_factor`` neighbours
        before tenant filtering.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        chunker: TextChunker,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "knowledge_documents",
        overfetch_factor: int = 3,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._chunker = chunker
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._overfetch_factor = max(1, overfetch_factor)
        self._client: Any = None
        self._collection: Any = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        if self._client is not None:
            return
        try:
            self._client = chromadb.PersistentClient(
                path=self._persist_directory,
                settings=chromadb.config.Settings(anonymized_telemetry=False),
            )
            if self._collection_exists():
                self._collection = self._open_collection()
                self._validate_embedding_dimensions()
        except VoxpipeError:
            raise
        except Exception as exc:
            self._client = None
            raise VectorStoreError(
                message=f"ChromaDB initialization failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "chromadb_initialized",
            persist_directory=self._persist_directory,
            collection=self._collection_name,
            collection_exists=self._collection is not None,
        )

    async def close(self) -> None:
        self._collection = None
        self._client = None
        logger.info("chromadb_closed", collection=self._collection_name)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def add_document(
        self,
        document_id: str,
        name: str,
        content: str,
        agent_ids: list[str],
        organization_id: str,
    ) -> int:
        """Chunk, embed and write a document one chunk at a time.

        Chunks are upserted by id, so re-running ingestion for a partially
        written document completes it without duplicating rows.
        """
        chunks = self._chunker.chunk(content)
        if not chunks:
            logger.warning("chromadb_add_document_empty", document_id=document_id, name=name)
            return 0

        collection = self._ensure_collection()
        created_at = datetime.now(timezone.utc).isoformat()
        agents = json.dumps(list(agent_ids))
        total = len(chunks)

        for index, text in enumerate(chunks):
            vector = await self._embed(text)
            metadata: dict[str, str | int] = {
                "document_id": document_id,
                "document_name": name,
                "organization_id": organization_id,
                "agent_ids": agents,
                "chunk_index": index,
                "total_chunks": total,
                "created_at": created_at,
            }
            try:
                collection.upsert(
                    ids=[DocumentChunk.make_id(document_id, index)],
                    embeddings=[vector],
                    documents=[text],
                    metadatas=[metadata],
                )
            except Exception as exc:
                raise VectorStoreError(
                    message=f"ChromaDB write of chunk {index} of {document_id} failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

        logger.info(
            "chromadb_add_document",
            document_id=document_id,
            organization_id=organization_id,
            chunks=total,
        )
        return total

    async def search(
        self,
        query_text: str,
        agent_id: str,
        organization_id: str,
        limit: int = 5,
    ) -> list[SearchHit]:
        """Over-fetch nearest neighbours, then keep the tenant's visible chunks.

        ChromaDB is asked for ``limit * overfetch_factor`` results with no
        tenant filter; organization and agent filtering happen afterwards.
        When a tenant's chunks are sparse in the collection, fewer than
        *limit* hits can come back even though more matches exist.
        """
        collection = self._existing_collection()
        if limit <= 0 or collection is None:
            return []

        try:
            count = collection.count()
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if count == 0:
            return []

        query_vector = await self._embed(query_text)
        n_results = min(limit * self._overfetch_factor, count)
        try:
            results = collection.query(
                query_embeddings=[query_vector],
                n_results=n_results,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        documents = (results.get("documents") or [[]])[0] or []
        metadatas = (results.get("metadatas") or [[]])[0] or [{}] * len(documents)
        distances = (results.get("distances") or [[]])[0] or [0.0] * len(documents)

        hits: list[SearchHit] = []
        for text, meta, distance in zip(documents, metadatas, distances):
            meta = meta or {}
            if meta.get("organization_id") != organization_id:
                continue
            if agent_id not in self._parse_agent_ids(meta.get("agent_ids")):
                continue
            hits.append(
                SearchHit(
                    content=text or "",
                    document_name=str(meta.get("document_name", "")),
                    distance=float(distance),
                    chunk_index=int(meta.get("chunk_index", 0)),
                    total_chunks=int(meta.get("total_chunks", 1)),
                    document_id=str(meta.get("document_id", "")),
                )
            )

        hits.sort(key=lambda hit: hit.distance)
        hits = hits[:limit]
        logger.info(
            "chromadb_search",
            organization_id=organization_id,
            agent_id=agent_id,
            fetched=len(documents),
            returned=len(hits),
        )
        return hits

    async def get_documents(self, organization_id: str) -> list[DocumentSummary]:
        grouped: dict[str, dict[str, Any]] = {}
        for _, _, meta in self._scan({"organization_id": organization_id}):
            document_id = str(meta.get("document_id", ""))
            entry = grouped.setdefault(
                document_id,
                {
                    "name": str(meta.get("document_name", "")),
                    "agent_ids": self._parse_agent_ids(meta.get("agent_ids")),
                    "chunk_count": 0,
                    "created_at": self._parse_timestamp(meta.get("created_at")),
                },
            )
            entry["chunk_count"] += 1

        summaries = [
            DocumentSummary(document_id=document_id, **entry)
            for document_id, entry in grouped.items()
        ]
        summaries.sort(key=lambda s: (s.name.lower(), s.document_id))
        return summaries

    async def delete_document(self, document_id: str, organization_id: str) -> int:
        """Delete a document's chunks individually; not atomic across chunks."""
        chunk_ids = [
            chunk_id for chunk_id, _, _ in self._scan(self._document_filter(document_id, organization_id))
        ]
        for chunk_id in chunk_ids:
            try:
                self._collection.delete(ids=[chunk_id])
            except Exception as exc:
                raise VectorStoreError(
                    message=f"ChromaDB delete of {chunk_id} failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

        logger.info(
            "chromadb_delete_document",
            document_id=document_id,
            organization_id=organization_id,
            deleted_count=len(chunk_ids),
        )
        return len(chunk_ids)

    async def get_document_content(self, document_id: str, organization_id: str) -> str:
        rows = list(self._scan(self._document_filter(document_id, organization_id)))
        rows.sort(key=lambda row: int(row[2].get("chunk_index", 0)))
        return "\n\n".join(text for _, text, _ in rows)

    async def update_document_agents(
        self,
        document_id: str,
        organization_id: str,
        agent_ids: list[str],
    ) -> int:
        """Rewrite the denormalized agent set on every chunk without re-embedding."""
        rows = list(self._scan(self._document_filter(document_id, organization_id)))
        if not rows:
            return 0

        agents = json.dumps(list(agent_ids))
        try:
            self._collection.update(
                ids=[chunk_id for chunk_id, _, _ in rows],
                metadatas=[{**meta, "agent_ids": agents} for _, _, meta in rows],
            )
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB agent update for {document_id} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "chromadb_update_document_agents",
            document_id=document_id,
            chunks=len(rows),
            agents=len(agent_ids),
        )
        return len(rows)

    async def get_stats(self, organization_id: str) -> VectorStoreStats:
        chunks_by_document: dict[str, int] = {}
        document_ids: set[str] = set()
        total = 0
        for _, _, meta in self._scan({"organization_id": organization_id}):
            total += 1
            document_ids.add(str(meta.get("document_id", "")))
            name = str(meta.get("document_name", ""))
            chunks_by_document[name] = chunks_by_document.get(name, 0) + 1
        return VectorStoreStats(
            total_chunks=total,
            total_documents=len(document_ids),
            chunks_by_document=chunks_by_document,
        )

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` once the client is open."""
        if self._client is None:
            return False
        try:
            self._client.heartbeat()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_client(self) -> Any:
        if self._client is None:
            raise VectorStoreError(
                message="ChromaDB provider used before initialize()",
                provider_name=self.get_provider_name(),
            )
        return self._client

    def _collection_exists(self) -> bool:
        # list_collections() returns names on chromadb >= 0.6, objects before.
        names = {getattr(c, "name", c) for c in self._require_client().list_collections()}
        return self._collection_name in names

    def _open_collection(self) -> Any:
        client = self._require_client()
        # Collections persisted with a different embedding function reject
        # ours; ChromaDB then keeps whatever it stored, which is never used.
        try:
            return client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    def _ensure_collection(self) -> Any:
        if self._collection is None:
            try:
                self._collection = self._open_collection()
            except VoxpipeError:
                raise
            except Exception as exc:
                raise VectorStoreError(
                    message=f"ChromaDB collection creation failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            logger.info("chromadb_collection_created", collection=self._collection_name)
        return self._collection

    def _existing_collection(self) -> Any:
        """Return the collection if it exists, without creating it.

        Another handle (the ingest CLI, a second worker) may have created
        the collection after this one initialized, so reads look again.
        """
        if self._collection is not None or self._client is None:
            return self._collection
        try:
            if not self._collection_exists():
                return None
            self._collection = self._open_collection()
        except VoxpipeError:
            raise
        except Exception as exc:
            raise VectorStoreError(
                message=f"ChromaDB collection lookup failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        try:
            self._validate_embedding_dimensions()
        except VectorStoreError:
            self._collection = None
            raise
        logger.info("chromadb_collection_opened", collection=self._collection_name)
        return self._collection

    def _validate_embedding_dimensions(self) -> None:
        """Fail fast when stored vectors do not match the provider's dimension."""
        if self._collection is None or self._collection.count() == 0:
            return
        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return

        stored_dim = len(embeddings[0])
        expected_dim = self._embedding_provider.get_dimension()
        if stored_dim != expected_dim:
            raise VectorStoreError(
                message=(
                    f"Embedding dimension mismatch: collection has {stored_dim}-dim vectors "
                    f"but provider '{self._embedding_provider.get_provider_name()}' "
                    f"produces {expected_dim}-dim vectors"
                ),
                provider_name=self.get_provider_name(),
            )

    async def _embed(self, text: str) -> list[float]:
        try:
            return await self._embedding_provider.embed_single(text)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(
                message=f"Embedding failed: {exc}",
                provider_name=self._embedding_provider.get_provider_name(),
            ) from exc

    def _scan(self, where: dict[str, Any]) -> Iterator[tuple[str, str, dict[str, Any]]]:
        """Yield ``(id, text, metadata)`` for matching rows, page by page."""
        collection = self._existing_collection()
        if collection is None:
            return
        offset = 0
        while True:
            try:
                page = collection.get(
                    where=where,
                    include=["documents", "metadatas"],
                    limit=_PAGE_SIZE,
                    offset=offset,
                )
            except Exception as exc:
                raise VectorStoreError(
                    message=f"ChromaDB scan failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            ids = page.get("ids") or []
            documents = page.get("documents") or [""] * len(ids)
            metadatas = page.get("metadatas") or [{}] * len(ids)
            for chunk_id, text, meta in zip(ids, documents, metadatas):
                yield chunk_id, text or "", meta or {}
            if len(ids) < _PAGE_SIZE:
                break
            offset += _PAGE_SIZE

    @staticmethod
    def _document_filter(document_id: str, organization_id: str) -> dict[str, Any]:
        return {
            "$and": [
                {"document_id": document_id},
                {"organization_id": organization_id},
            ]
        }

    @staticmethod
    def _parse_agent_ids(value: str | Any) -> list[str]:
        """Decode the JSON array of agent ids stored in chunk metadata."""
        if not value or not isinstance(value, str):
            return []
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        if not isinstance(parsed, list):
            return []
        return [str(item) for item in parsed]

    @staticmethod
    def _parse_timestamp(value: Any) -> datetime | None:
        if not value or not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None

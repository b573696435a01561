"""Unit tests for the ChromaDB vector store provider.

These run against a real ``chromadb.PersistentClient`` in ``tmp_path`` with
the deterministic hash-based embedding provider from ``conftest.py``.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from voxpipe.providers.vector_store.chromadb_provider import ChromaDBProvider
from voxpipe.services.ingestion.chunker import TextChunker
from tests.conftest import MockEmbeddingProvider
from voxpipe.utils.errors import EmbeddingError, VectorStoreError


class _FlakyEmbeddingProvider(MockEmbeddingProvider):
    """Fails every call after the first *succeed* calls."""

    def __init__(self, succeed: int) -> None:
        super().__init__()
        self._remaining = succeed

    async def embed_single(self, text: str) -> list[float]:
        if self._remaining <= 0:
            raise EmbeddingError(message="embedding service down", provider_name="flaky")
        self._remaining -= 1
        return await super().embed_single(text)


class _WrongDimensionProvider(MockEmbeddingProvider):
    def get_dimension(self) -> int:
        return 64


async def _open(
    persist_dir: str,
    embedding: MockEmbeddingProvider,
    chunker: TextChunker,
) -> ChromaDBProvider:
    provider = ChromaDBProvider(
        embedding_provider=embedding,
        chunker=chunker,
        persist_directory=persist_dir,
        collection_name="test_knowledge",
    )
    await provider.initialize()
    return provider


@pytest_asyncio.fixture
async def store(tmp_chroma_dir, mock_embedding_provider, small_chunker) -> ChromaDBProvider:
    provider = await _open(tmp_chroma_dir, mock_embedding_provider, small_chunker)
    yield provider
    await provider.close()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_fresh_store_reads_are_empty(self, store: ChromaDBProvider) -> None:
        assert await store.search("anything", "agent_a", "org_1") == []
        assert await store.get_documents("org_1") == []
        assert await store.get_document_content("doc", "org_1") == ""
        stats = await store.get_stats("org_1")
        assert (stats.total_chunks, stats.total_documents) == (0, 0)

    @pytest.mark.asyncio
    async def test_is_available_after_initialize(self, store: ChromaDBProvider) -> None:
        assert store.is_available()
        assert store.get_provider_name() == "chromadb"

    @pytest.mark.asyncio
    async def test_not_available_before_initialize(
        self, tmp_chroma_dir, mock_embedding_provider, small_chunker
    ) -> None:
        provider = ChromaDBProvider(
            embedding_provider=mock_embedding_provider,
            chunker=small_chunker,
            persist_directory=tmp_chroma_dir,
        )
        assert not provider.is_available()

    @pytest.mark.asyncio
    async def test_data_survives_reopen(
        self, tmp_chroma_dir, mock_embedding_provider, small_chunker
    ) -> None:
        first = await _open(tmp_chroma_dir, mock_embedding_provider, small_chunker)
        await first.add_document("doc1", "Hours", "We open at nine.", ["agent_a"], "org_1")
        await first.close()

        second = await _open(tmp_chroma_dir, mock_embedding_provider, small_chunker)
        docs = await second.get_documents("org_1")

        assert [d.document_id for d in docs] == ["doc1"]

    @pytest.mark.asyncio
    async def test_reader_sees_collection_created_by_another_handle(
        self, tmp_chroma_dir, mock_embedding_provider, small_chunker
    ) -> None:
        reader = await _open(tmp_chroma_dir, mock_embedding_provider, small_chunker)
        writer = await _open(tmp_chroma_dir, mock_embedding_provider, small_chunker)
        assert await reader.get_documents("org_1") == []

        await writer.add_document("doc1", "Hours", "We open at nine.", ["agent_a"], "org_1")

        hits = await reader.search("We open at nine.", "agent_a", "org_1")
        docs = await reader.get_documents("org_1")
        assert [hit.document_id for hit in hits] == ["doc1"]
        assert [(d.document_id, d.chunk_count) for d in docs] == [("doc1", 1)]
        assert await reader.get_document_content("doc1", "org_1") == "We open at nine."
        await writer.close()
        await reader.close()

    @pytest.mark.asyncio
    async def test_dimension_mismatch_rejected(
        self, tmp_chroma_dir, mock_embedding_provider, small_chunker
    ) -> None:
        first = await _open(tmp_chroma_dir, mock_embedding_provider, small_chunker)
        await first.add_document("doc1", "Hours", "We open at nine.", ["agent_a"], "org_1")
        await first.close()

        with pytest.raises(VectorStoreError, match="dimension mismatch"):
            await _open(tmp_chroma_dir, _WrongDimensionProvider(), small_chunker)


class TestAddDocument:
    @pytest.mark.asyncio
    async def test_short_document_is_one_chunk(self, store: ChromaDBProvider) -> None:
        count = await store.add_document("doc1", "FAQ", "Short answer.", ["agent_a"], "org_1")

        assert count == 1
        docs = await store.get_documents("org_1")
        assert docs[0].chunk_count == 1
        assert docs[0].agent_ids == ["agent_a"]
        assert docs[0].created_at is not None

    @pytest.mark.asyncio
    async def test_empty_content_writes_nothing(self, store: ChromaDBProvider) -> None:
        assert await store.add_document("doc1", "Empty", "   ", ["agent_a"], "org_1") == 0
        assert await store.get_documents("org_1") == []

    @pytest.mark.asyncio
    async def test_content_reassembled_in_chunk_order(
        self, store: ChromaDBProvider, small_chunker: TextChunker, sample_text: str
    ) -> None:
        count = await store.add_document("doc1", "Clinic", sample_text, ["agent_a"], "org_1")

        expected = small_chunker.chunk(sample_text)
        assert count == len(expected) > 1
        assert await store.get_document_content("doc1", "org_1") == "\n\n".join(expected)

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_written_chunks(
        self, tmp_chroma_dir, small_chunker: TextChunker, sample_text: str
    ) -> None:
        flaky = await _open(tmp_chroma_dir, _FlakyEmbeddingProvider(succeed=2), small_chunker)

        with pytest.raises(EmbeddingError):
            await flaky.add_document("doc1", "Clinic", sample_text, ["agent_a"], "org_1")

        stats = await flaky.get_stats("org_1")
        assert stats.total_chunks == 2
        await flaky.close()

        # Re-running with the same document id completes it without duplicates.
        healthy = await _open(tmp_chroma_dir, MockEmbeddingProvider(), small_chunker)
        total = await healthy.add_document("doc1", "Clinic", sample_text, ["agent_a"], "org_1")
        stats = await healthy.get_stats("org_1")
        assert stats.total_chunks == total
        await healthy.close()


class TestSearch:
    @pytest.mark.asyncio
    async def test_filters_by_organization_and_agent(self, store: ChromaDBProvider) -> None:
        await store.add_document("doc1", "Org one", "Parking is free.", ["agent_a"], "org_1")
        await store.add_document("doc2", "Org two", "Parking is free.", ["agent_a"], "org_2")
        await store.add_document("doc3", "Private", "Parking is free.", ["agent_b"], "org_1")

        hits = await store.search("Parking is free.", "agent_a", "org_1", limit=5)

        assert [h.document_id for h in hits] == ["doc1"]
        assert hits[0].document_name == "Org one"

    @pytest.mark.asyncio
    async def test_results_sorted_and_limited(
        self, store: ChromaDBProvider, sample_text: str
    ) -> None:
        await store.add_document("doc1", "Clinic", sample_text, ["agent_a"], "org_1")

        hits = await store.search("Parking is available", "agent_a", "org_1", limit=2)

        assert len(hits) == 2
        assert hits[0].distance <= hits[1].distance

    @pytest.mark.asyncio
    async def test_exact_chunk_text_ranks_first(self, store: ChromaDBProvider) -> None:
        await store.add_document("doc1", "A", "Apples are red.", ["agent_a"], "org_1")
        await store.add_document("doc2", "B", "Bananas are yellow.", ["agent_a"], "org_1")

        hits = await store.search("Bananas are yellow.", "agent_a", "org_1", limit=2)

        assert hits[0].document_id == "doc2"
        assert hits[0].distance == pytest.approx(0.0, abs=1e-4)

    @pytest.mark.asyncio
    async def test_non_positive_limit(self, store: ChromaDBProvider) -> None:
        await store.add_document("doc1", "A", "Apples are red.", ["agent_a"], "org_1")
        assert await store.search("Apples", "agent_a", "org_1", limit=0) == []

    @pytest.mark.asyncio
    async def test_agent_ids_containing_commas(self, store: ChromaDBProvider) -> None:
        await store.add_document(
            "doc1", "Parking", "Parking is free.", ["front,desk", "agent_b"], "org_1"
        )

        visible = await store.search("Parking is free.", "front,desk", "org_1")
        partial = await store.search("Parking is free.", "front", "org_1")
        docs = await store.get_documents("org_1")

        assert [hit.document_id for hit in visible] == ["doc1"]
        assert partial == []
        assert docs[0].agent_ids == ["front,desk", "agent_b"]


class TestDocumentManagement:
    @pytest.mark.asyncio
    async def test_delete_document(self, store: ChromaDBProvider, sample_text: str) -> None:
        written = await store.add_document("doc1", "Clinic", sample_text, ["agent_a"], "org_1")
        await store.add_document("doc2", "Other", "Keep me.", ["agent_a"], "org_1")

        assert await store.delete_document("doc1", "org_1") == written
        assert await store.get_document_content("doc1", "org_1") == ""
        assert [d.document_id for d in await store.get_documents("org_1")] == ["doc2"]

    @pytest.mark.asyncio
    async def test_delete_scoped_to_organization(self, store: ChromaDBProvider) -> None:
        await store.add_document("doc1", "A", "Apples are red.", ["agent_a"], "org_1")

        assert await store.delete_document("doc1", "org_2") == 0
        assert len(await store.get_documents("org_1")) == 1

    @pytest.mark.asyncio
    async def test_update_document_agents(self, store: ChromaDBProvider, sample_text: str) -> None:
        written = await store.add_document("doc1", "Clinic", sample_text, ["agent_a"], "org_1")

        updated = await store.update_document_agents("doc1", "org_1", ["agent_b", "agent_c"])

        assert updated == written
        assert await store.search("Parking", "agent_a", "org_1") == []
        assert await store.search("Parking", "agent_b", "org_1")
        docs = await store.get_documents("org_1")
        assert docs[0].agent_ids == ["agent_b", "agent_c"]

    @pytest.mark.asyncio
    async def test_update_unknown_document(self, store: ChromaDBProvider) -> None:
        assert await store.update_document_agents("missing", "org_1", ["agent_a"]) == 0

    @pytest.mark.asyncio
    async def test_documents_sorted_by_name(self, store: ChromaDBProvider) -> None:
        await store.add_document("d2", "beta", "Second.", [], "org_1")
        await store.add_document("d1", "Alpha", "First.", [], "org_1")

        docs = await store.get_documents("org_1")

        assert [d.name for d in docs] == ["Alpha", "beta"]

    @pytest.mark.asyncio
    async def test_stats(self, store: ChromaDBProvider, sample_text: str) -> None:
        written = await store.add_document("doc1", "Clinic", sample_text, ["agent_a"], "org_1")
        await store.add_document("doc2", "Hours", "Open at nine.", ["agent_a"], "org_1")

        stats = await store.get_stats("org_1")

        assert stats.total_documents == 2
        assert stats.total_chunks == written + 1
        assert stats.chunks_by_document == {"Clinic": written, "Hours": 1}

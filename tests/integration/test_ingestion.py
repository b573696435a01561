"""End-to-end ingestion tests: real ChromaDB + SQLite in ``tmp_path``.

Uses the deterministic hash-based embedding provider so no network is
needed.
"""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest
import pytest_asyncio
from docx import Document

from tests.conftest import MockEmbeddingProvider
from voxpipe.providers.storage.sqlite_storage_provider import SQLiteStorageProvider
from voxpipe.providers.vector_store.chromadb_provider import ChromaDBProvider
from voxpipe.services.ingestion.chunker import TextChunker
from voxpipe.services.ingestion.knowledge_service import KnowledgeService
from voxpipe.utils.errors import ExtractionError


@pytest_asyncio.fixture
async def knowledge(tmp_path: Path) -> KnowledgeService:
    vector_store = ChromaDBProvider(
        embedding_provider=MockEmbeddingProvider(),
        chunker=TextChunker(chunk_size=200, overlap=40),
        persist_directory=str(tmp_path / "chroma"),
        collection_name="knowledge_documents",
    )
    storage = SQLiteStorageProvider(db_path=tmp_path / "voxpipe.db")
    await storage.initialize()
    await vector_store.initialize()
    service = KnowledgeService(vector_store=vector_store, storage=storage)
    yield service
    await vector_store.close()
    await storage.close()


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class TestIngestAndRetrieve:
    @pytest.mark.asyncio
    async def test_text_document_round_trip(
        self, knowledge: KnowledgeService, sample_text: str
    ) -> None:
        result = await knowledge.ingest(
            sample_text.encode("utf-8"), "clinic.txt", "org_1", ["agent_a"]
        )

        assert result.chunks_created > 1
        docs = await knowledge.list_documents("org_1")
        assert [(d.document_id, d.chunk_count) for d in docs] == [
            (result.document_id, result.chunks_created)
        ]
        content = await knowledge.get_document_content(result.document_id, "org_1")
        assert "Parking is available behind the building" in content

        hits = await knowledge.search("Parking is available", "agent_a", "org_1", limit=3)
        assert 0 < len(hits) <= 3
        assert all(h.document_name == "clinic.txt" for h in hits)

    @pytest.mark.asyncio
    async def test_tenant_isolation(self, knowledge: KnowledgeService) -> None:
        await knowledge.ingest(b"Org one secret menu.", "one.txt", "org_1", ["agent_a"])
        await knowledge.ingest(b"Org two secret menu.", "two.txt", "org_2", ["agent_a"])

        hits = await knowledge.search("secret menu", "agent_a", "org_2", limit=5)

        assert [h.document_name for h in hits] == ["two.txt"]
        assert [d.name for d in await knowledge.list_documents("org_1")] == ["one.txt"]

    @pytest.mark.asyncio
    async def test_agent_visibility_update(self, knowledge: KnowledgeService) -> None:
        result = await knowledge.ingest(
            b"Refund policy: 30 days.", "refunds.txt", "org_1", ["agent_a"]
        )

        assert await knowledge.search("Refund policy", "agent_b", "org_1") == []
        assert await knowledge.update_document_agents(result.document_id, "org_1", ["agent_b"])
        assert await knowledge.search("Refund policy", "agent_b", "org_1")

    @pytest.mark.asyncio
    async def test_json_and_docx_documents(self, knowledge: KnowledgeService) -> None:
        payload = json.dumps({"hours": {"saturday": "9-1"}}).encode("utf-8")
        json_result = await knowledge.ingest(payload, "hours.json", "org_1", ["agent_a"])
        docx_result = await knowledge.ingest(
            _docx_bytes("Holiday closures", "Closed on Christmas Day."),
            "holidays.docx",
            "org_1",
            ["agent_a"],
        )

        json_content = await knowledge.get_document_content(json_result.document_id, "org_1")
        docx_content = await knowledge.get_document_content(docx_result.document_id, "org_1")
        assert '"saturday": "9-1"' in json_content
        assert "Closed on Christmas Day." in docx_content
        stats = await knowledge.get_stats("org_1")
        assert stats.total_documents == 2

    @pytest.mark.asyncio
    async def test_delete_removes_chunks_and_record(self, knowledge: KnowledgeService) -> None:
        result = await knowledge.ingest(b"Temporary notice.", "notice.txt", "org_1", ["agent_a"])

        assert await knowledge.delete_document(result.document_id, "org_1")
        assert await knowledge.list_documents("org_1") == []
        assert await knowledge.search("Temporary notice", "agent_a", "org_1") == []
        assert not await knowledge.delete_document(result.document_id, "org_1")

    @pytest.mark.asyncio
    async def test_corrupt_upload_leaves_no_trace(self, knowledge: KnowledgeService) -> None:
        with pytest.raises(ExtractionError):
            await knowledge.ingest(b"not a docx", "broken.docx", "org_1", ["agent_a"])

        assert await knowledge.list_documents("org_1") == []

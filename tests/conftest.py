"""Shared pytest fixtures for the voxpipe test suite."""

from __future__ import annotations

import hashlib
import struct
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from voxpipe.interfaces.embedding_provider import IEmbeddingProvider
from voxpipe.interfaces.storage_provider import IStorageProvider
from voxpipe.models.storage import Agent, Credential
from voxpipe.services.ingestion.chunker import TextChunker

# ---------------------------------------------------------------------------
# Embedding fixtures
# ---------------------------------------------------------------------------

_EMBEDDING_DIM = 128


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Deterministic unit-length vector derived from the SHA-256 of *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    # Unpack as unsigned ints so no NaN/inf patterns can appear.
    values = [v / 0xFFFFFFFF - 0.5 for v in struct.unpack(f"<{dim}I", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.extend(texts)
        return [_hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def small_chunker() -> TextChunker:
    """Chunker small enough that short test texts span several chunks."""
    return TextChunker(chunk_size=100, overlap=20)


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "voxpipe_test.db"


@pytest.fixture
def tmp_chroma_dir(tmp_path: Path) -> str:
    return str(tmp_path / "chromadb_test")


@pytest.fixture
def mock_storage() -> MagicMock:
    """IStorageProvider mock with one active credential and two agents."""
    storage = MagicMock(spec=IStorageProvider)
    storage.get_integration = AsyncMock(
        return_value=Credential(organization_id="org_1", provider="elevenlabs", api_key="xi-test")
    )
    storage.get_agents = AsyncMock(
        return_value=[
            Agent(id="agent_a", organization_id="org_1", name="Reception", external_agent_id="ext_a"),
            Agent(id="agent_b", organization_id="org_1", name="Sales", external_agent_id="ext_b"),
        ]
    )
    storage.get_call_log_by_external_id = AsyncMock(return_value=None)
    storage.create_call_log = AsyncMock(return_value=None)
    storage.get_document = AsyncMock(return_value=None)
    storage.create_document = AsyncMock(return_value=None)
    storage.delete_document = AsyncMock(return_value=True)
    storage.update_document_agents = AsyncMock(return_value=True)
    return storage


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_text() -> str:
    """A few paragraphs of plain prose with clear sentence boundaries."""
    return (
        "Our clinic opens at eight in the morning on weekdays. "
        "Saturday hours run from nine until one in the afternoon. "
        "We are closed on Sundays and public holidays. "
        "New patients should arrive fifteen minutes early to complete paperwork. "
        "Parking is available behind the building at no charge. "
        "Please bring a photo ID and your insurance card to every visit. "
        "Prescription refills can be requested through the patient portal. "
        "Emergency questions outside business hours go to the on-call nurse line."
    )


def _make_conversation_detail(
    conversation_id: str,
    transcript: Any = None,
    duration: float = 90,
    **extra: Any,
) -> dict[str, Any]:
    """Build a remote conversation detail payload."""
    detail: dict[str, Any] = {
        "conversation_id": conversation_id,
        "status": "done",
        "transcript": transcript
        if transcript is not None
        else [
            {"role": "agent", "message": "Hello, how can I help?", "time_in_call_secs": 0},
            {"role": "user", "message": "What time do you open?", "time_in_call_secs": 3},
        ],
        "metadata": {
            "call_duration_secs": duration,
            "start_time_unix_secs": int(datetime(2026, 3, 1, tzinfo=timezone.utc).timestamp()),
        },
    }
    detail.update(extra)
    return detail


@pytest.fixture
def make_detail():
    """Factory fixture for remote conversation detail payloads."""
    return _make_conversation_detail

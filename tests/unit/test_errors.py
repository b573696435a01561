"""Unit tests for the voxpipe exception hierarchy."""

from __future__ import annotations

import pytest

from voxpipe.utils.errors import (
    ConfigurationError,
    DuplicateRecordError,
    EmbeddingError,
    ExtractionError,
    IntegrationNotConfiguredError,
    MalformedInputError,
    RemoteFetchError,
    StorageError,
    VectorStoreError,
    VoxpipeError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_type",
        [
            ExtractionError,
            MalformedInputError,
            EmbeddingError,
            VectorStoreError,
            IntegrationNotConfiguredError,
            RemoteFetchError,
            StorageError,
            DuplicateRecordError,
            ConfigurationError,
        ],
    )
    def test_all_inherit_from_base(self, error_type: type[VoxpipeError]) -> None:
        assert issubclass(error_type, VoxpipeError)

    def test_specializations(self) -> None:
        assert issubclass(MalformedInputError, ExtractionError)
        assert issubclass(DuplicateRecordError, StorageError)


class TestAttributes:
    def test_str_includes_provider(self) -> None:
        error = EmbeddingError(message="timed out", provider_name="openai")
        assert str(error) == "[openai] timed out"
        assert error.message == "timed out"

    def test_str_without_provider(self) -> None:
        assert str(StorageError(message="disk full")) == "disk full"

    def test_extraction_error_fields(self) -> None:
        cause = ValueError("bad header")
        error = ExtractionError(message="failed", file_type="pdf", cause=cause)
        assert error.file_type == "pdf"
        assert error.cause is cause

    def test_malformed_defaults_to_json(self) -> None:
        assert MalformedInputError().file_type == "json"

    def test_remote_fetch_status_code(self) -> None:
        error = RemoteFetchError(message="boom", provider_name="elevenlabs", status_code=503)
        assert error.status_code == 503

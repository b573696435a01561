"""Custom exception hierarchy for voxpipe.

All application exceptions inherit from :class:`VoxpipeError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "openai", "chromadb", "elevenlabs", "sqlite") caused the
failure.

The hierarchy follows the two pipelines:

    VoxpipeError  (base -- catch-all for any voxpipe error)
    +-- ExtractionError                (file bytes could not become text)
    |   +-- MalformedInputError        (structured content failed to parse)
    +-- EmbeddingError                 (embedding provider failed)
    +-- VectorStoreError               (chunk persistence / query failed)
    +-- IntegrationNotConfiguredError  (no active voice-API credential)
    +-- RemoteFetchError               (voice-API call failed)
    +-- StorageError                   (relational storage failed)
    |   +-- DuplicateRecordError       (uniqueness constraint rejected a write)
    +-- ConfigurationError             (startup / missing config)

Ingestion errors are fatal to the single document being ingested.  Sync
errors below the setup level are counted, not propagated.
"""

from __future__ import annotations


class VoxpipeError(Exception):
    """Base exception for all voxpipe errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets,
    e.g. ``[openai] Embedding request failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class ExtractionError(VoxpipeError):
    """Raised when an uploaded file cannot be converted to plain text.

    ``file_type`` is the normalized extension (``"pdf"``, ``"docx"``...) and
    ``cause`` the underlying collaborator exception, when there was one.
    """

    def __init__(
        self,
        message: str = "Text extraction failed",
        file_type: str = "unknown",
        cause: BaseException | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._file_type = file_type
        self._cause = cause

    @property
    def file_type(self) -> str:
        return self._file_type

    @property
    def cause(self) -> BaseException | None:
        return self._cause


class MalformedInputError(ExtractionError):
    """Raised when structured content (JSON) fails to parse."""

    def __init__(
        self,
        message: str = "Malformed input",
        file_type: str = "json",
        cause: BaseException | None = None,
        provider_name: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            file_type=file_type,
            cause=cause,
            provider_name=provider_name,
        )


class EmbeddingError(VoxpipeError):
    """Raised when the embedding provider is unreachable or rejects input."""

    def __init__(
        self,
        message: str = "Embedding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(VoxpipeError):
    """Raised when the vector store cannot persist or query chunks."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Sync errors
# ---------------------------------------------------------------------------

class IntegrationNotConfiguredError(VoxpipeError):
    """Raised when an organization has no active voice-API credential."""

    def __init__(
        self,
        message: str = "Voice integration is not configured",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RemoteFetchError(VoxpipeError):
    """Raised when a voice-API request fails after retries."""

    def __init__(
        self,
        message: str = "Remote fetch failed",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


# ---------------------------------------------------------------------------
# Storage / startup errors
# ---------------------------------------------------------------------------

class StorageError(VoxpipeError):
    """Raised when the relational storage layer fails."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DuplicateRecordError(StorageError):
    """Raised when a write is rejected by a uniqueness constraint."""

    def __init__(
        self,
        message: str = "Record already exists",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(VoxpipeError):
    """Raised when required configuration is missing or invalid at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)

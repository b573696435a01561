"""Utility modules for voxpipe.

- **errors** -- Domain exception hierarchy rooted at VoxpipeError.
- **concurrency** -- settle-all fan-out and sequential batching helpers.
- **logging** -- structlog setup: console output in development, JSON in
  production.
"""

from voxpipe.utils.concurrency import Outcome, run_in_batches, settle_all
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
from voxpipe.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "DuplicateRecordError",
    "EmbeddingError",
    "ExtractionError",
    "IntegrationNotConfiguredError",
    "MalformedInputError",
    "Outcome",
    "RemoteFetchError",
    "StorageError",
    "VectorStoreError",
    "VoxpipeError",
    "configure_logging",
    "get_logger",
    "run_in_batches",
    "settle_all",
]

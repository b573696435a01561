"""Vector store provider implementations."""

from voxpipe.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]

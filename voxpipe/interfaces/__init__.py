"""Abstract provider contracts.

- **IEmbeddingProvider** -- text to vector.
- **IVectorStoreProvider** -- chunked, embedded, searchable document store.
- **IStorageProvider** -- relational records shared by both pipelines.
- **IVoiceApiClient** -- remote voice-AI conversation listing and detail.
"""

from voxpipe.interfaces.embedding_provider import IEmbeddingProvider
from voxpipe.interfaces.storage_provider import IStorageProvider
from voxpipe.interfaces.vector_store_provider import IVectorStoreProvider
from voxpipe.interfaces.voice_api_client import IVoiceApiClient

__all__ = [
    "IEmbeddingProvider",
    "IStorageProvider",
    "IVectorStoreProvider",
    "IVoiceApiClient",
]

"""Relational storage provider implementations."""

from voxpipe.providers.storage.sqlite_storage_provider import SQLiteStorageProvider

__all__ = ["SQLiteStorageProvider"]

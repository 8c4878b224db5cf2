"""Exception hierarchy shared by the ingestion and query pipelines.

    WraithError
    ├── ValidationError          malformed input, raised before any I/O
    ├── EmbeddingError           embedding port failure
    ├── GenerationError          generation port failure
    ├── StorageError             vector store connectivity / transaction failure
    │   ├── StorageEncodingError     text the store cannot encode
    │   └── StorageUnavailableError  no pooled connection within the timeout
    └── IngestionError           no file of an ingestion run succeeded
"""

from __future__ import annotations


class WraithError(Exception):
    """Base class for all wraith errors."""


class ValidationError(WraithError, ValueError):
    """Invalid input: bad embedding dimension, chunk size, path or file type."""


class EmbeddingError(WraithError):
    """The embedding port failed to produce a vector."""


class GenerationError(WraithError):
    """The generation port failed to produce a completion."""


class StorageError(WraithError):
    """A vector store operation failed; nothing from that call was persisted."""


class StorageEncodingError(StorageError):
    """The store rejected text because of invalid characters."""


class StorageUnavailableError(StorageError):
    """No database connection became available in time. Transient."""


class IngestionError(WraithError):
    """Raised after an ingestion run in which no file succeeded."""

    def __init__(self, message: str, skipped_files: int = 0) -> None:
        super().__init__(message)
        self.skipped_files = skipped_files

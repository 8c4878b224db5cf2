"""wraith storage layer."""

from wraith.db.cache import BoundedCache
from wraith.db.connection import ConnectionPool, Database
from wraith.db.models import DocumentChunk, SearchResult
from wraith.db.schema import initialize
from wraith.db.store import SqliteVecStore
from wraith.db.vectors import ensure_vec_table, fingerprint

__all__ = [
    "BoundedCache",
    "ConnectionPool",
    "Database",
    "DocumentChunk",
    "SearchResult",
    "SqliteVecStore",
    "initialize",
    "ensure_vec_table",
    "fingerprint",
]

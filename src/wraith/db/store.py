"""sqlite-vec backed vector store with batched writes and cached search.

Writes: every ``insert_documents`` call is one transaction. Rows go to the
database in batches of ``batch_size`` purely for throughput; a failure in any
batch rolls back all of them.

Reads: ``search_similar`` results are cached per (full-vector fingerprint,
limit) in a FIFO-bounded cache owned by the store. The cache is dropped on
every successful insert and on close, so it can only ever save a round-trip.
"""

from __future__ import annotations

import copy
import json
import math
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

import structlog

from wraith.db.cache import BoundedCache
from wraith.db.connection import ConnectionPool, Database
from wraith.db.models import DocumentChunk, SearchResult, validate_metadata
from wraith.db.schema import initialize, vec_dimensions
from wraith.db.vectors import distance_to_similarity, fingerprint, to_vec_param
from wraith.exceptions import (
    StorageEncodingError,
    StorageError,
    ValidationError,
)
from wraith.ports import VectorStore

logger = structlog.get_logger()

DEFAULT_DIMENSIONS = 384


class SqliteVecStore(VectorStore):
    """Vector store on a single SQLite file with the sqlite-vec extension.

    Args:
        db_path: Database file (created if missing).
        dimensions: Embedding width every stored and query vector must have.
        batch_size: Rows per ``executemany`` round within one insert transaction.
        cache_max_size: Maximum number of cached search results.
        embedding_cache_size: Maximum number of cached text embeddings
            (see ``wraith.rag.llm_client.CachingEmbedder``).
        pool_size: Maximum concurrent connections.
        pool_timeout: Seconds to wait for a free connection before failing.
        pool_recycle: Seconds after which a pooled connection is reopened.
    """

    def __init__(
        self,
        db_path: Path | str,
        dimensions: int = DEFAULT_DIMENSIONS,
        batch_size: int = 100,
        cache_max_size: int = 100,
        embedding_cache_size: int = 256,
        pool_size: int = 20,
        pool_timeout: float = 2.0,
        pool_recycle: float = 30.0,
    ) -> None:
        if dimensions < 1:
            raise ValidationError(f"dimensions must be >= 1, got {dimensions}")
        if batch_size < 1:
            raise ValidationError(f"batch_size must be >= 1, got {batch_size}")

        self.dimensions = dimensions
        self.batch_size = batch_size
        self.result_cache: BoundedCache[str, tuple[SearchResult, ...]] = BoundedCache(
            cache_max_size
        )
        self.embedding_cache: BoundedCache[str, list[float]] = BoundedCache(
            embedding_cache_size
        )
        self._pool = ConnectionPool(
            Database(db_path), size=pool_size, timeout=pool_timeout, recycle=pool_recycle
        )

        with self._connection() as conn:
            existing = vec_dimensions(conn)
            if existing is not None and existing != dimensions:
                self._pool.dispose()
                raise StorageError(
                    f"Database '{db_path}' stores {existing}-dimensional embeddings "
                    f"but {dimensions} were configured"
                )
            self._vec_table = initialize(conn, dimensions)

        logger.debug(
            "vector_store_opened",
            db_path=str(db_path),
            dimensions=dimensions,
            pool_size=pool_size,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_documents(self, chunks: Sequence[DocumentChunk]) -> None:
        chunks = list(chunks)
        if not chunks:
            return
        for position, chunk in enumerate(chunks):
            self._validate_chunk(chunk, position)

        with self._connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                first_id = conn.execute(
                    "SELECT COALESCE(MAX(id), 0) + 1 FROM documents"
                ).fetchone()[0]
                for start in range(0, len(chunks), self.batch_size):
                    self._write_batch(
                        conn, first_id + start, chunks[start : start + self.batch_size]
                    )
                conn.commit()
            except UnicodeEncodeError as exc:
                conn.rollback()
                raise StorageEncodingError(
                    f"Chunk text contains characters that cannot be stored: {exc.reason}"
                ) from exc
            except sqlite3.Error as exc:
                conn.rollback()
                # Some interpreters wrap the bind-time encode failure.
                if isinstance(exc.__context__, UnicodeEncodeError):
                    raise StorageEncodingError(
                        "Chunk text contains characters that cannot be stored: "
                        f"{exc.__context__.reason}"
                    ) from exc
                raise StorageError(f"Insert of {len(chunks)} chunks failed: {exc}") from exc

        self.result_cache.clear()
        logger.debug(
            "documents_inserted",
            count=len(chunks),
            batches=math.ceil(len(chunks) / self.batch_size),
        )

    def _write_batch(
        self, conn: sqlite3.Connection, first_id: int, batch: list[DocumentChunk]
    ) -> None:
        ids = range(first_id, first_id + len(batch))
        conn.executemany(
            """
            INSERT INTO documents (id, content, metadata, source, chunk_index)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    row_id,
                    chunk.content,
                    json.dumps(chunk.metadata, ensure_ascii=False),
                    chunk.source,
                    chunk.chunk_index,
                )
                for row_id, chunk in zip(ids, batch)
            ],
        )
        conn.executemany(
            f"INSERT INTO {self._vec_table}(rowid, embedding) VALUES (?, ?)",
            [(row_id, to_vec_param(chunk.embedding)) for row_id, chunk in zip(ids, batch)],
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def search_similar(
        self, query_embedding: Sequence[float], limit: int = 5
    ) -> list[SearchResult]:
        vector = self._validate_embedding(query_embedding, "query embedding")
        if limit < 1:
            raise ValidationError(f"limit must be >= 1, got {limit}")
        if self._pool.closed:
            raise StorageError("Vector store is closed")

        key = f"{fingerprint(vector)}:{limit}"
        cached = self.result_cache.get(key)
        if cached is not None:
            logger.debug("search_cache_hit", limit=limit)
            return _detached(cached)

        results = self._query_nearest(vector, limit)
        self.result_cache.put(key, tuple(_detached(results)))
        logger.debug("search_completed", limit=limit, hits=len(results))
        return results

    def _query_nearest(self, vector: list[float], limit: int) -> list[SearchResult]:
        """KNN query ordered by cosine distance, nearest first."""
        with self._connection() as conn:
            try:
                rows = conn.execute(
                    f"""
                    WITH knn AS (
                        SELECT rowid, distance FROM {self._vec_table}
                        WHERE embedding MATCH ? AND k = ?
                    )
                    SELECT d.id, d.content, d.metadata, d.source, knn.distance
                    FROM knn JOIN documents AS d ON d.id = knn.rowid
                    ORDER BY knn.distance
                    """,
                    (to_vec_param(vector), limit),
                ).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"Similarity search failed: {exc}") from exc

        return [
            SearchResult(
                id=row["id"],
                content=row["content"],
                metadata=json.loads(row["metadata"]),
                source=row["source"],
                similarity=distance_to_similarity(row["distance"]),
            )
            for row in rows
        ]

    def count(self) -> int:
        """Number of stored chunks."""
        with self._connection() as conn:
            try:
                return conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
            except sqlite3.Error as exc:
                raise StorageError(f"Counting documents failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._pool.dispose()
        self.result_cache.clear()
        self.embedding_cache.clear()

    def __enter__(self) -> SqliteVecStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        if self._pool.closed:
            raise StorageError("Vector store is closed")
        with self._pool.connection() as conn:
            yield conn

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_embedding(self, embedding: Sequence[float], what: str) -> list[float]:
        if len(embedding) != self.dimensions:
            raise ValidationError(
                f"Invalid {what} dimension: expected {self.dimensions}, got {len(embedding)}"
            )
        try:
            return [float(x) for x in embedding]
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid {what}: {exc}") from exc

    def _validate_chunk(self, chunk: DocumentChunk, position: int) -> None:
        label = f"chunk {position} of '{chunk.source}'"
        self._validate_embedding(chunk.embedding, f"embedding for {label}")
        if not isinstance(chunk.chunk_index, int) or chunk.chunk_index < 0:
            raise ValidationError(f"{label}: chunk_index must be a non-negative int")
        if not isinstance(chunk.content, str) or not isinstance(chunk.source, str):
            raise ValidationError(f"{label}: content and source must be strings")
        try:
            validate_metadata(chunk.metadata)
        except TypeError as exc:
            raise ValidationError(f"{label}: {exc}") from exc


def _detached(results: Sequence[SearchResult]) -> list[SearchResult]:
    """Copies of *results* whose metadata shares no dicts with the originals."""
    return [replace(r, metadata=copy.deepcopy(r.metadata)) for r in results]

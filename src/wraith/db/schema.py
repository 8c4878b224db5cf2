"""Database schema DDL and initialization."""

from __future__ import annotations

import sqlite3

from wraith.db.vectors import VEC_TABLE, ensure_vec_table

# One row per stored chunk; vec_documents.rowid == documents.id.
_CREATE_DOCUMENTS = """
CREATE TABLE IF NOT EXISTS documents (
    id              INTEGER PRIMARY KEY,
    content         TEXT NOT NULL,
    metadata        TEXT NOT NULL DEFAULT '{}',
    source          TEXT NOT NULL,
    chunk_index     INTEGER NOT NULL CHECK (chunk_index >= 0),
    created_at      DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_CREATE_SOURCE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_documents_source ON documents (source, chunk_index)
"""


def initialize(conn: sqlite3.Connection, dimensions: int) -> str:
    """Create the documents table and its vec table (idempotent).

    Returns:
        Name of the vec table holding the embeddings.
    """
    conn.execute(_CREATE_DOCUMENTS)
    conn.execute(_CREATE_SOURCE_INDEX)
    conn.commit()
    return ensure_vec_table(conn, dimensions, VEC_TABLE)


def vec_dimensions(conn: sqlite3.Connection, table: str = VEC_TABLE) -> int | None:
    """Return the declared embedding width of *table*, or None if it is missing."""
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    if row is None:
        return None
    sql = row[0]
    start = sql.index("float[") + len("float[")
    return int(sql[start : sql.index("]", start)])

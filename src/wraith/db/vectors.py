"""sqlite-vec virtual table management and vector helpers."""

from __future__ import annotations

import hashlib
import json
import re
import sqlite3
from collections.abc import Sequence

import sqlite_vec

VEC_TABLE = "vec_documents"


def ensure_vec_table(
    conn: sqlite3.Connection, dimensions: int, table: str = VEC_TABLE
) -> str:
    """Create the cosine-distance vec0 table if it doesn't already exist.

    Args:
        conn: Active database connection (sqlite-vec must be loaded).
        dimensions: Embedding vector dimensions (384 for all-MiniLM-L6-v2).
        table: Table name; lowercase letters, digits and underscores only.

    Returns:
        The table name.
    """
    if not re.fullmatch(r"[a-z0-9_]+", table):
        raise ValueError(f"Invalid vec table name '{table}'")
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    existing = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()

    if existing is None:
        conn.execute(
            f"CREATE VIRTUAL TABLE {table} USING vec0("
            f"embedding float[{dimensions}] distance_metric=cosine)"
        )
        conn.commit()

    return table


def to_vec_param(embedding: Sequence[float]) -> str:
    """Encode *embedding* as the JSON text form accepted by vec0 columns."""
    return json.dumps([float(x) for x in embedding])


def distance_to_similarity(distance: float) -> float:
    """Map cosine distance (0 = same direction, 2 = opposite) onto [0, 1]."""
    return min(1.0, max(0.0, 1.0 - float(distance)))


def fingerprint(embedding: Sequence[float]) -> str:
    """SHA-256 over the full float32 serialization of *embedding*.

    Two vectors that are equal at float32 precision (the precision vec0
    stores) share a fingerprint; any other difference changes it.
    """
    return hashlib.sha256(sqlite_vec.serialize_float32(list(embedding))).hexdigest()

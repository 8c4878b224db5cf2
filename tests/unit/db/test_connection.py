"""Tests for the Database connection layer and ConnectionPool."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from wraith.db.connection import ConnectionPool, Database
from wraith.exceptions import StorageError, StorageUnavailableError


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / "wraith.db"
    db = Database(db_path)
    conn = db.connect()
    conn.close()
    assert db_path.exists()


def test_sqlite_vec_loads(tmp_path):
    db = Database(tmp_path / "wraith.db")
    conn = db.connect()
    version = conn.execute("SELECT vec_version()").fetchone()[0]
    conn.close()
    assert version.startswith("v")


def test_foreign_keys_enabled(tmp_path):
    db = Database(tmp_path / "wraith.db")
    conn = db.connect()
    result = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    conn.close()
    assert result == 1


def test_wal_journal_mode(tmp_path):
    db = Database(tmp_path / "wraith.db")
    conn = db.connect()
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    conn.close()
    assert mode == "wal"


def test_row_factory_set(tmp_path):
    db = Database(tmp_path / "wraith.db")
    conn = db.connect()
    conn.execute("CREATE TABLE t (x INTEGER)")
    conn.execute("INSERT INTO t VALUES (42)")
    row = conn.execute("SELECT x FROM t").fetchone()
    conn.close()
    assert row["x"] == 42


def test_context_manager_closes_connection(tmp_path):
    db = Database(tmp_path / "wraith.db")
    with db as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
    with pytest.raises(Exception):
        conn.execute("SELECT 1")


def test_context_manager_accepts_path_str(tmp_path):
    db = Database(str(tmp_path / "wraith.db"))
    assert isinstance(db.db_path, Path)
    with db as conn:
        result = conn.execute("SELECT 1").fetchone()[0]
    assert result == 1


# ------------------------------------------------------------------
# ConnectionPool
# ------------------------------------------------------------------


def test_pool_yields_working_connection(tmp_path):
    pool = ConnectionPool(Database(tmp_path / "wraith.db"), size=2)
    with pool.connection() as conn:
        assert conn.execute("SELECT vec_version()").fetchone()[0].startswith("v")
    pool.dispose()


def test_pool_reuses_returned_connection(tmp_path):
    pool = ConnectionPool(Database(tmp_path / "wraith.db"), size=1, timeout=0.1)
    with pool.connection() as first:
        first_id = id(first)
    with pool.connection() as second:
        assert id(second) == first_id
    pool.dispose()


def test_pool_rejects_size_below_one(tmp_path):
    with pytest.raises(ValueError, match="pool size"):
        ConnectionPool(Database(tmp_path / "wraith.db"), size=0)


def test_pool_exhausted_raises_unavailable(tmp_path):
    pool = ConnectionPool(Database(tmp_path / "wraith.db"), size=1, timeout=0.1)
    with pool.connection():
        with pytest.raises(StorageUnavailableError):
            with pool.connection():
                pass
    pool.dispose()


def test_pool_connection_returned_after_error(tmp_path):
    pool = ConnectionPool(Database(tmp_path / "wraith.db"), size=1, timeout=0.1)
    with pytest.raises(RuntimeError):
        with pool.connection():
            raise RuntimeError("boom")
    # The single connection must be back in the pool
    with pool.connection() as conn:
        assert conn.execute("SELECT 1").fetchone()[0] == 1
    pool.dispose()


def test_pool_serves_waiting_thread_when_released(tmp_path):
    pool = ConnectionPool(Database(tmp_path / "wraith.db"), size=1, timeout=5.0)
    results: list[int] = []
    release = threading.Event()

    def worker() -> None:
        release.wait()
        with pool.connection() as conn:
            results.append(conn.execute("SELECT 7").fetchone()[0])

    thread = threading.Thread(target=worker)
    with pool.connection():
        thread.start()
        release.set()
    thread.join(timeout=5)

    assert results == [7]
    pool.dispose()


def test_pool_dispose_is_idempotent(tmp_path):
    pool = ConnectionPool(Database(tmp_path / "wraith.db"))
    pool.dispose()
    pool.dispose()
    assert pool.closed


def test_pool_closed_rejects_checkout(tmp_path):
    pool = ConnectionPool(Database(tmp_path / "wraith.db"))
    pool.dispose()
    with pytest.raises(StorageError, match="closed"):
        with pool.connection():
            pass

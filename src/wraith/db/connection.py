"""SQLite connection layer with sqlite-vec extension and a bounded pool."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import sqlite_vec
from sqlalchemy import exc as sa_exc
from sqlalchemy.pool import QueuePool

from wraith.exceptions import StorageError, StorageUnavailableError


class Database:
    """SQLite database file with sqlite-vec vector search support."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open a connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection.

        Connections may be handed between threads by the pool, so the
        same-thread check is disabled; the pool guarantees exclusive use.
        """
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None


class ConnectionPool:
    """Bounded pool of sqlite-vec connections backed by SQLAlchemy's QueuePool.

    ``size`` connections at most, no overflow. A checkout that cannot be served
    within ``timeout`` seconds raises StorageUnavailableError instead of
    queueing indefinitely. Connections older than ``recycle`` seconds are
    closed and reopened on their next checkout.
    """

    def __init__(
        self,
        database: Database,
        size: int = 20,
        timeout: float = 2.0,
        recycle: float = 30.0,
    ) -> None:
        if size < 1:
            raise ValueError(f"pool size must be >= 1, got {size}")
        self.database = database
        self._pool = QueuePool(
            database.connect,
            pool_size=size,
            max_overflow=0,
            timeout=timeout,
            recycle=int(recycle) if recycle > 0 else -1,
            reset_on_return="rollback",
        )
        self._disposed = False

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Check out a connection for exclusive use; always returned on exit."""
        if self._disposed:
            raise StorageError("Connection pool is closed")
        try:
            fairy = self._pool.connect()
        except sa_exc.TimeoutError as exc:
            raise StorageUnavailableError(
                f"No database connection available for '{self.database.db_path}' "
                "within the pool timeout"
            ) from exc
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database '{self.database.db_path}': {exc}") from exc
        try:
            yield fairy.dbapi_connection
        finally:
            fairy.close()

    def dispose(self) -> None:
        """Close every pooled connection. Safe to call more than once."""
        if not self._disposed:
            self._pool.dispose()
            self._disposed = True

    @property
    def closed(self) -> bool:
        return self._disposed

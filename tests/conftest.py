"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

import pytest

from wraith.db.connection import Database
from wraith.db.schema import initialize
from wraith.db.store import SqliteVecStore
from wraith.exceptions import EmbeddingError, GenerationError
from wraith.ports import LLM, Embedder, GenerationOptions, Message

DIMS = 4


class FakeEmbedder(Embedder):
    """Deterministic DIMS-wide vectors derived from a hash of the text.

    Texts containing any of *fail_on* raise EmbeddingError; *fixed* maps exact
    texts to chosen vectors.
    """

    def __init__(
        self,
        fail_on: Sequence[str] = (),
        fixed: dict[str, list[float]] | None = None,
        dims: int = DIMS,
    ) -> None:
        self.fail_on = tuple(fail_on)
        self.fixed = fixed or {}
        self.dims = dims
        self.calls: list[str] = []

    def get_embeddings(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise EmbeddingError("embedding service unavailable")
        if text in self.fixed:
            return list(self.fixed[text])
        digest = hashlib.sha256(text.encode()).digest()
        return [0.1 + digest[i] / 255 for i in range(self.dims)]


class FakeLLM(LLM):
    """Records prompts and returns a canned answer (or raises)."""

    def __init__(self, answer: str = "42", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[list[Message], GenerationOptions | None]] = []

    def generate_completion(self, messages, options=None) -> str:
        self.calls.append((list(messages), options))
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "wraith.db")
    conn = db.connect()
    initialize(conn, DIMS)
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_path):
    """DIMS-wide SqliteVecStore with a small pool, closed after test."""
    s = SqliteVecStore(tmp_path / "wraith.db", dimensions=DIMS, pool_size=2, pool_timeout=0.5)
    yield s
    s.close()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def make_embedder():
    """Factory for FakeEmbedder with custom failure markers or fixed vectors."""
    return FakeEmbedder


@pytest.fixture
def make_llm():
    return FakeLLM


@pytest.fixture
def llm():
    return FakeLLM(answer="The answer is 42.")


@pytest.fixture
def failing_llm():
    return FakeLLM(error=GenerationError("model offline"))

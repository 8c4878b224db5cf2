"""Capability interfaces the pipelines depend on.

Any provider (local model, remote API, other vector engine) plugs in by
implementing one of these; pipeline code never imports a concrete adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wraith.db.models import DocumentChunk, SearchResult


@dataclass(frozen=True)
class Message:
    role: str  # system | user | assistant
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationOptions:
    temperature: float = 0.7
    max_tokens: int = 1000


class Embedder(ABC):
    @abstractmethod
    def get_embeddings(self, text: str) -> list[float]:
        """Return the embedding of *text*.

        Raises:
            EmbeddingError: If the model call fails.
        """


class LLM(ABC):
    @abstractmethod
    def generate_completion(
        self,
        messages: Sequence[Message],
        options: GenerationOptions | None = None,
    ) -> str:
        """Return the model's reply to *messages*.

        Raises:
            GenerationError: If the model call fails.
        """


class VectorStore(ABC):
    @abstractmethod
    def insert_documents(self, chunks: Sequence[DocumentChunk]) -> None:
        """Persist *chunks* atomically: all of them or none.

        Raises:
            ValidationError: If any chunk is malformed (checked before writing).
            StorageError: On any write or connectivity failure.
        """

    @abstractmethod
    def search_similar(
        self, query_embedding: Sequence[float], limit: int = 5
    ) -> list[SearchResult]:
        """Return up to *limit* stored chunks, most similar first."""

    @abstractmethod
    def close(self) -> None:
        """Release connections and caches. Idempotent."""


class DocumentSource(ABC):
    """Turns a document file into plain text."""

    #: Lowercase file suffixes (with dot) this source can read.
    extensions: frozenset[str] = frozenset()

    @abstractmethod
    def extract(self, path: Path) -> str:
        """Return the text of *path*; an empty string when nothing can be read."""

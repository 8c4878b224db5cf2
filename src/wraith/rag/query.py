"""Query pipeline: question → embedding → top-k chunks → grounded answer.

Steps:
  1. Embed the question with the same embedder used at ingest.
  2. Retrieve the ``top_k`` most similar chunks (default 5).
  3. Join their text, nearest first, with blank lines as the context.
  4. Ask the LLM with a fixed system instruction and a context + question
     user message.
  5. Return the answer with the retrieved sources, deduplicated in rank order.

Nothing is retried here; port errors propagate to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from wraith.db.models import SearchResult
from wraith.exceptions import ValidationError
from wraith.ports import LLM, Embedder, GenerationOptions, Message, VectorStore

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on the provided "
    "context. If the context does not contain enough information to answer the "
    "question, say so clearly."
)


@dataclass
class QueryResult:
    answer: str
    sources: list[str] = field(default_factory=list)
    results: list[SearchResult] = field(default_factory=list)


class QueryPipeline:
    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        llm: LLM,
        top_k: int = 5,
        options: GenerationOptions | None = None,
    ) -> None:
        if top_k < 1:
            raise ValidationError(f"top_k must be >= 1, got {top_k}")
        self.store = store
        self.embedder = embedder
        self.llm = llm
        self.top_k = top_k
        self.options = options

    def run(self, question: str) -> QueryResult:
        """Answer *question* from the stored chunks.

        Raises:
            ValidationError: If *question* is blank.
            EmbeddingError, StorageError, GenerationError: From the ports.
        """
        if not question.strip():
            raise ValidationError("Question must not be empty")

        query_embedding = self.embedder.get_embeddings(question)
        results = self.store.search_similar(query_embedding, self.top_k)
        logger.info("chunks_retrieved", count=len(results), top_k=self.top_k)

        answer = self.llm.generate_completion(
            build_messages(question, results), self.options
        )
        return QueryResult(
            answer=answer,
            sources=unique_sources(results),
            results=results,
        )


def build_messages(question: str, results: list[SearchResult]) -> list[Message]:
    """Two-message prompt: fixed system instruction, then context + question."""
    context = "\n\n".join(r.content for r in results)
    return [
        Message(role="system", content=SYSTEM_PROMPT),
        Message(role="user", content=f"Context:\n{context}\n\nQuestion: {question}"),
    ]


def unique_sources(results: list[SearchResult]) -> list[str]:
    """Sources of *results* without duplicates, in first-seen order."""
    return list(dict.fromkeys(r.source for r in results))

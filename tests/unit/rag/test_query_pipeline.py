"""Tests for the query pipeline."""

from __future__ import annotations

import pytest

from wraith.db.models import DocumentChunk, SearchResult
from wraith.exceptions import EmbeddingError, GenerationError, ValidationError
from wraith.ports import GenerationOptions, VectorStore
from wraith.rag.query import (
    SYSTEM_PROMPT,
    QueryPipeline,
    build_messages,
    unique_sources,
)


def _result(i: int, source: str, content: str | None = None) -> SearchResult:
    return SearchResult(
        id=i,
        content=content or f"text {i}",
        metadata={},
        source=source,
        similarity=1.0 - i / 10,
    )


class _StubStore(VectorStore):
    def __init__(self, results: list[SearchResult]) -> None:
        self.results = results
        self.calls: list[tuple[list[float], int]] = []

    def insert_documents(self, chunks):
        raise AssertionError("query must not write")

    def search_similar(self, query_embedding, limit=5):
        self.calls.append((list(query_embedding), limit))
        return self.results[:limit]

    def close(self):
        pass


# ------------------------------------------------------------------
# run
# ------------------------------------------------------------------


def test_run_returns_answer_and_deduplicated_sources(embedder, llm):
    store = _StubStore([_result(1, "A"), _result(2, "B"), _result(3, "A")])
    result = QueryPipeline(store, embedder, llm).run("What is it?")
    assert result.answer == "The answer is 42."
    assert result.sources == ["A", "B"]
    assert [r.id for r in result.results] == [1, 2, 3]


def test_run_embeds_question_and_passes_top_k(embedder, llm):
    store = _StubStore([])
    QueryPipeline(store, embedder, llm, top_k=3).run("Where?")
    assert embedder.calls == ["Where?"]
    assert store.calls == [(embedder.get_embeddings("Where?"), 3)]


def test_run_with_no_hits_still_asks_llm(embedder, llm):
    result = QueryPipeline(_StubStore([]), embedder, llm).run("Anything?")
    assert result.sources == []
    messages, _ = llm.calls[0]
    assert messages[1].content == "Context:\n\n\nQuestion: Anything?"


def test_run_forwards_generation_options(embedder, llm):
    options = GenerationOptions(temperature=0.0, max_tokens=50)
    QueryPipeline(_StubStore([]), embedder, llm, options=options).run("Q?")
    assert llm.calls[0][1] == options


@pytest.mark.parametrize("question", ["", "   ", "\n\t"])
def test_blank_question_rejected_before_any_call(embedder, llm, question):
    store = _StubStore([])
    with pytest.raises(ValidationError):
        QueryPipeline(store, embedder, llm).run(question)
    assert embedder.calls == []
    assert store.calls == []
    assert llm.calls == []


def test_generation_error_propagates(embedder, failing_llm):
    with pytest.raises(GenerationError, match="model offline"):
        QueryPipeline(_StubStore([_result(1, "A")]), embedder, failing_llm).run("Q?")


def test_embedding_error_propagates(make_embedder, llm):
    embedder = make_embedder(fail_on=["Q"])
    with pytest.raises(EmbeddingError):
        QueryPipeline(_StubStore([]), embedder, llm).run("Q?")
    assert llm.calls == []


def test_rejects_top_k_below_one(embedder, llm):
    with pytest.raises(ValidationError, match="top_k"):
        QueryPipeline(_StubStore([]), embedder, llm, top_k=0)


def test_end_to_end_with_real_store(store, make_embedder, llm):
    near, far = [1.0, 0.0, 0.0, 0.0], [0.0, 1.0, 0.0, 0.0]
    embedder = make_embedder(fixed={"Which way is east?": near})
    store.insert_documents([
        DocumentChunk("East is right.", near, "compass.txt", 0),
        DocumentChunk("North is up.", far, "map.txt", 0),
    ])
    result = QueryPipeline(store, embedder, llm, top_k=1).run("Which way is east?")
    assert result.sources == ["compass.txt"]
    assert "East is right." in llm.calls[0][0][1].content


# ------------------------------------------------------------------
# Prompt assembly
# ------------------------------------------------------------------


def test_build_messages_structure():
    results = [_result(1, "A", "first"), _result(2, "B", "second")]
    system, user = build_messages("Why?", results)
    assert system.role == "system"
    assert system.content == SYSTEM_PROMPT
    assert user.role == "user"
    assert user.content == "Context:\nfirst\n\nsecond\n\nQuestion: Why?"


def test_unique_sources_keeps_rank_order():
    results = [_result(1, "B"), _result(2, "A"), _result(3, "B"), _result(4, "C")]
    assert unique_sources(results) == ["B", "A", "C"]

"""Tests for the LiteLLM embedding and generation adapters."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from wraith.db.cache import BoundedCache
from wraith.exceptions import EmbeddingError, GenerationError
from wraith.ports import GenerationOptions, Message
from wraith.rag.llm_client import (
    CachingEmbedder,
    LiteLLMEmbedder,
    LiteLLMGenerator,
    api_key_env,
    provider_of,
    validate_api_key,
)


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o-mini")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o-mini")  # should not raise


def test_validate_api_key_anthropic(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="ANTHROPIC_API_KEY"):
        validate_api_key("anthropic/claude-3-5-haiku-20241022")


def test_validate_api_key_ollama_no_key_required():
    # Ollama is local — no env var needed, should never raise
    validate_api_key("ollama/all-minilm")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError):
        validate_api_key("gpt-4o-mini")


@pytest.mark.parametrize("model,expected", [
    ("openai/gpt-4o-mini", "openai"),
    ("Ollama/all-minilm", "ollama"),
    ("gpt-4o-mini", "openai"),
    ("huggingface/sentence-transformers/all-MiniLM-L6-v2", "huggingface"),
])
def test_provider_of(model, expected):
    assert provider_of(model) == expected


@pytest.mark.parametrize("provider,expected", [
    ("together_ai", "TOGETHERAI_API_KEY"),
    ("GROQ", "GROQ_API_KEY"),
    ("ollama", None),
    ("acme", "ACME_API_KEY"),
])
def test_api_key_env(provider, expected):
    assert api_key_env(provider) == expected


# ------------------------------------------------------------------
# LiteLLMGenerator
# ------------------------------------------------------------------


def test_generate_returns_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "Hello, world!"

    with patch("wraith.rag.llm_client.litellm.completion", return_value=mock_response):
        result = LiteLLMGenerator().generate_completion([Message("user", "Hi")])

    assert result == "Hello, world!"


def test_generate_returns_empty_string_on_none_content():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = None

    with patch("wraith.rag.llm_client.litellm.completion", return_value=mock_response):
        result = LiteLLMGenerator().generate_completion([Message("user", "Hi")])

    assert result == ""


def test_generate_passes_params_to_litellm():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "ok"
    gen = LiteLLMGenerator("openai/gpt-4o-mini", num_retries=2, timeout=30.0)

    with patch("wraith.rag.llm_client.litellm.completion", return_value=mock_response) as mock_c:
        gen.generate_completion(
            [Message("system", "be brief"), Message("user", "test")],
            GenerationOptions(temperature=0.5, max_tokens=512),
        )

    call_kwargs = mock_c.call_args.kwargs
    assert call_kwargs["model"] == "openai/gpt-4o-mini"
    assert call_kwargs["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "test"},
    ]
    assert call_kwargs["max_tokens"] == 512
    assert call_kwargs["temperature"] == 0.5
    assert call_kwargs["num_retries"] == 2
    assert call_kwargs["timeout"] == 30.0


def test_generate_uses_defaults_without_options():
    mock_response = MagicMock()
    mock_response.choices[0].message.content = "ok"

    with patch("wraith.rag.llm_client.litellm.completion", return_value=mock_response) as mock_c:
        LiteLLMGenerator().generate_completion([Message("user", "test")])

    assert mock_c.call_args.kwargs["temperature"] == 0.7
    assert mock_c.call_args.kwargs["max_tokens"] == 1000


def test_generate_wraps_provider_errors():
    with patch(
        "wraith.rag.llm_client.litellm.completion", side_effect=Exception("rate limited")
    ):
        with pytest.raises(GenerationError, match="rate limited"):
            LiteLLMGenerator().generate_completion([Message("user", "Hi")])


# ------------------------------------------------------------------
# LiteLLMEmbedder
# ------------------------------------------------------------------


def test_embed_returns_vector():
    mock_response = MagicMock()
    mock_response.data = [{"embedding": [0.1, 0.2, 0.3]}]

    with patch("wraith.rag.llm_client.litellm.embedding", return_value=mock_response):
        result = LiteLLMEmbedder().get_embeddings("hello")

    assert result == [0.1, 0.2, 0.3]


def test_embed_passes_text_as_list():
    mock_response = MagicMock()
    mock_response.data = [{"embedding": [0.0]}]

    with patch("wraith.rag.llm_client.litellm.embedding", return_value=mock_response) as mock_e:
        LiteLLMEmbedder("ollama/all-minilm", num_retries=1).get_embeddings("test text")

    assert mock_e.call_args.kwargs["input"] == ["test text"]
    assert mock_e.call_args.kwargs["model"] == "ollama/all-minilm"
    assert mock_e.call_args.kwargs["num_retries"] == 1


def test_embed_wraps_provider_errors():
    with patch(
        "wraith.rag.llm_client.litellm.embedding", side_effect=ConnectionError("refused")
    ):
        with pytest.raises(EmbeddingError, match="refused"):
            LiteLLMEmbedder().get_embeddings("hello")


# ------------------------------------------------------------------
# CachingEmbedder
# ------------------------------------------------------------------


def test_caching_embedder_calls_inner_once_per_text(make_embedder):
    inner = make_embedder()
    cached = CachingEmbedder(inner, BoundedCache(10))
    first = cached.get_embeddings("same")
    second = cached.get_embeddings("same")
    cached.get_embeddings("other")
    assert first == second
    assert inner.calls == ["same", "other"]


def test_caching_embedder_respects_bound(make_embedder):
    cache: BoundedCache[str, list[float]] = BoundedCache(2)
    cached = CachingEmbedder(make_embedder(), cache)
    for text in ("a", "b", "c"):
        cached.get_embeddings(text)
    assert len(cache) == 2


def test_caching_embedder_does_not_cache_failures(make_embedder):
    inner = make_embedder(fail_on=["boom"])
    cached = CachingEmbedder(inner, BoundedCache(10))
    for _ in range(2):
        with pytest.raises(EmbeddingError):
            cached.get_embeddings("boom")
    assert inner.calls == ["boom", "boom"]


def test_caching_embedder_accepts_lone_surrogates(make_embedder):
    cached = CachingEmbedder(make_embedder(fixed={"\ud800": [1.0, 0.0, 0.0, 0.0]}), BoundedCache(4))
    assert cached.get_embeddings("\ud800") == [1.0, 0.0, 0.0, 0.0]

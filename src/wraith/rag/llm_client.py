"""LiteLLM adapters for the embedding and generation ports.

All model calls route through this module. LiteLLM's built-in retry
(``num_retries``, exponential backoff) and request ``timeout`` are the only
resilience knobs; callers above the ports never retry. Provider failures are
re-raised as EmbeddingError / GenerationError with the original attached.
API key presence can be checked up front with ``validate_api_key``.
"""

from __future__ import annotations

import hashlib
import os
from collections.abc import Sequence

import litellm

from wraith.db.cache import BoundedCache
from wraith.exceptions import EmbeddingError, GenerationError
from wraith.ports import LLM, Embedder, GenerationOptions, Message

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
    "huggingface": None,
}


def api_key_env(provider: str) -> str | None:
    """Env var holding the API key for *provider*; None when no key is needed."""
    return _PROVIDER_ENV.get(provider.lower(), f"{provider.upper()}_API_KEY")


def provider_of(model: str) -> str:
    """Return the LiteLLM provider prefix of *model* ('openai' when absent)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return  # No key required (e.g. ollama) or provider unknown

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


# ------------------------------------------------------------------
# Embedding port
# ------------------------------------------------------------------


class LiteLLMEmbedder(Embedder):
    """Embed text with ``litellm.embedding()``.

    The default ``ollama/all-minilm`` serves all-MiniLM-L6-v2 locally and
    returns 384-dimensional vectors.
    """

    def __init__(
        self,
        model: str = "ollama/all-minilm",
        num_retries: int = 3,
        timeout: float | None = 60.0,
    ) -> None:
        self.model = model
        self.num_retries = num_retries
        self.timeout = timeout

    def get_embeddings(self, text: str) -> list[float]:
        try:
            response = litellm.embedding(
                model=self.model,
                input=[text],
                num_retries=self.num_retries,
                timeout=self.timeout,
            )
            return list(response.data[0]["embedding"])
        except Exception as exc:
            raise EmbeddingError(f"Embedding with '{self.model}' failed: {exc}") from exc


class CachingEmbedder(Embedder):
    """Memoize another embedder's vectors in a bounded, FIFO-evicted cache.

    Pass the store's ``embedding_cache`` so that closing the store also drops
    the memoized vectors.
    """

    def __init__(self, inner: Embedder, cache: BoundedCache[str, list[float]]) -> None:
        self.inner = inner
        self.cache = cache

    def get_embeddings(self, text: str) -> list[float]:
        key = hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)
        embedding = self.inner.get_embeddings(text)
        self.cache.put(key, list(embedding))
        return embedding


# ------------------------------------------------------------------
# Generation port
# ------------------------------------------------------------------


class LiteLLMGenerator(LLM):
    """Chat completions through ``litellm.completion()``."""

    def __init__(
        self,
        model: str = "openai/gpt-4o-mini",
        defaults: GenerationOptions | None = None,
        num_retries: int = 3,
        timeout: float | None = 120.0,
    ) -> None:
        self.model = model
        self.defaults = defaults or GenerationOptions()
        self.num_retries = num_retries
        self.timeout = timeout

    def generate_completion(
        self,
        messages: Sequence[Message],
        options: GenerationOptions | None = None,
    ) -> str:
        opts = options or self.defaults
        try:
            response = litellm.completion(
                model=self.model,
                messages=[m.as_dict() for m in messages],
                temperature=opts.temperature,
                max_tokens=opts.max_tokens,
                num_retries=self.num_retries,
                timeout=self.timeout,
            )
        except Exception as exc:
            raise GenerationError(f"Completion with '{self.model}' failed: {exc}") from exc
        return response.choices[0].message.content or ""

"""Wiring shared by the CLI commands: config → store, embedder, LLM."""

from __future__ import annotations

from pathlib import Path

from wraith.config import ConfigError, WraithConfig, load_config
from wraith.db.store import SqliteVecStore
from wraith.log import configure_logging
from wraith.ports import LLM, Embedder, GenerationOptions
from wraith.rag.llm_client import CachingEmbedder, LiteLLMEmbedder, LiteLLMGenerator


def load_runtime_config(db: Path | None = None, log_level: str | None = None) -> WraithConfig:
    """Load layered config, apply CLI flag overrides and configure logging."""
    cfg = load_config()
    if db is not None:
        cfg.store.path = str(db)
    if log_level is not None:
        cfg.logging.level = log_level.upper()
    try:
        configure_logging(cfg.logging.level, json_output=cfg.logging.json)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    return cfg


def open_store(cfg: WraithConfig) -> SqliteVecStore:
    return SqliteVecStore(
        cfg.store.path,
        dimensions=cfg.embedding.dimensions,
        batch_size=cfg.store.batch_size,
        cache_max_size=cfg.store.cache_max_size,
        embedding_cache_size=cfg.embedding.cache_size,
        pool_size=cfg.store.pool_size,
        pool_timeout=cfg.store.pool_timeout,
        pool_recycle=cfg.store.pool_recycle,
    )


def make_embedder(cfg: WraithConfig, store: SqliteVecStore) -> Embedder:
    """LiteLLM embedder memoized in the store's embedding cache."""
    inner = LiteLLMEmbedder(
        model=cfg.embedding.model,
        num_retries=cfg.embedding.num_retries,
        timeout=cfg.embedding.timeout,
    )
    return CachingEmbedder(inner, store.embedding_cache)


def make_llm(cfg: WraithConfig) -> LLM:
    return LiteLLMGenerator(
        model=cfg.generation.model,
        defaults=generation_options(cfg),
        num_retries=cfg.generation.num_retries,
        timeout=cfg.generation.timeout,
    )


def generation_options(cfg: WraithConfig) -> GenerationOptions:
    return GenerationOptions(
        temperature=cfg.generation.temperature,
        max_tokens=cfg.generation.max_tokens,
    )

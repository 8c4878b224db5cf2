"""wraith configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (WRAITH_EMBEDDING_MODEL, WRAITH_GENERATION_MODEL,
                             WRAITH_DB, WRAITH_LOG_LEVEL)
  3. Per-project wraith.yaml  (current directory)
  4. Global ~/.wraith/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".wraith"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "wraith.yaml"

# Fields that suggest an API key — forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token"
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret"
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["embedding", "generation", "store", "ingest", "retrieval", "logging"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (wraith.yaml: embedding:)."""

    model: str = "ollama/all-minilm"
    dimensions: int = 384
    num_retries: int = 3
    timeout: float = 60.0
    cache_size: int = 256


@dataclass
class GenerationCfg:
    """LLM generation configuration (wraith.yaml: generation:)."""

    model: str = "openai/gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 1000
    num_retries: int = 3
    timeout: float = 120.0


@dataclass
class StoreCfg:
    """Vector store configuration (wraith.yaml: store:).

    Attributes:
        path: SQLite database file.
        batch_size: Rows per write round inside one insert transaction.
        cache_max_size: Maximum cached search results.
        pool_size: Maximum concurrent connections.
        pool_timeout: Seconds to wait for a connection before failing.
        pool_recycle: Seconds after which a pooled connection is reopened.
    """

    path: str = ".wraith.db"
    batch_size: int = 100
    cache_max_size: int = 100
    pool_size: int = 20
    pool_timeout: float = 2.0
    pool_recycle: float = 30.0


@dataclass
class IngestCfg:
    """Chunking configuration (wraith.yaml: ingest:)."""

    chunk_size: int = 1000
    overlap: float = 0.10


@dataclass
class RetrievalCfg:
    """Retrieval configuration (wraith.yaml: retrieval:)."""

    top_k: int = 5


@dataclass
class LoggingCfg:
    """Structured log output (wraith.yaml: logging:)."""

    level: str = "WARNING"
    json: bool = False


@dataclass
class WraithConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    store: StoreCfg = field(default_factory=StoreCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: WraithConfig) -> None:
    """Raise ConfigError for values no component could run with."""
    checks = [
        (cfg.embedding.dimensions >= 1, "embedding.dimensions must be >= 1"),
        (cfg.embedding.cache_size >= 1, "embedding.cache_size must be >= 1"),
        (cfg.generation.max_tokens >= 1, "generation.max_tokens must be >= 1"),
        (cfg.store.batch_size >= 1, "store.batch_size must be >= 1"),
        (cfg.store.cache_max_size >= 1, "store.cache_max_size must be >= 1"),
        (cfg.store.pool_size >= 1, "store.pool_size must be >= 1"),
        (cfg.store.pool_timeout > 0, "store.pool_timeout must be > 0"),
        (cfg.ingest.chunk_size >= 1, "ingest.chunk_size must be >= 1"),
        (0.0 <= cfg.ingest.overlap < 1.0, "ingest.overlap must be in [0.0, 1.0)"),
        (cfg.retrieval.top_k >= 1, "retrieval.top_k must be >= 1"),
    ]
    for ok, message in checks:
        if not ok:
            raise ConfigError(message)


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> WraithConfig:
    """Build a *WraithConfig* from a merged raw YAML dict."""
    cfg = WraithConfig()

    try:
        if "embedding" in data:
            e = data["embedding"] or {}
            cfg.embedding = EmbeddingCfg(
                model=str(e.get("model", cfg.embedding.model)),
                dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
                num_retries=int(e.get("num_retries", cfg.embedding.num_retries)),
                timeout=float(e.get("timeout", cfg.embedding.timeout)),
                cache_size=int(e.get("cache_size", cfg.embedding.cache_size)),
            )

        if "generation" in data:
            g = data["generation"] or {}
            cfg.generation = GenerationCfg(
                model=str(g.get("model", cfg.generation.model)),
                temperature=float(g.get("temperature", cfg.generation.temperature)),
                max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
                num_retries=int(g.get("num_retries", cfg.generation.num_retries)),
                timeout=float(g.get("timeout", cfg.generation.timeout)),
            )

        if "store" in data:
            s = data["store"] or {}
            cfg.store = StoreCfg(
                path=str(s.get("path", cfg.store.path)),
                batch_size=int(s.get("batch_size", cfg.store.batch_size)),
                cache_max_size=int(s.get("cache_max_size", cfg.store.cache_max_size)),
                pool_size=int(s.get("pool_size", cfg.store.pool_size)),
                pool_timeout=float(s.get("pool_timeout", cfg.store.pool_timeout)),
                pool_recycle=float(s.get("pool_recycle", cfg.store.pool_recycle)),
            )

        if "ingest" in data:
            i = data["ingest"] or {}
            cfg.ingest = IngestCfg(
                chunk_size=int(i.get("chunk_size", cfg.ingest.chunk_size)),
                overlap=float(i.get("overlap", cfg.ingest.overlap)),
            )

        if "retrieval" in data:
            r = data["retrieval"] or {}
            cfg.retrieval = RetrievalCfg(top_k=int(r.get("top_k", cfg.retrieval.top_k)))

        if "logging" in data:
            lg = data["logging"] or {}
            cfg.logging = LoggingCfg(
                level=str(lg.get("level", cfg.logging.level)).upper(),
                json=bool(lg.get("json", cfg.logging.json)),
            )
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: WraithConfig) -> WraithConfig:
    """Apply WRAITH_* environment variable overrides."""
    if model := os.environ.get("WRAITH_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("WRAITH_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db := os.environ.get("WRAITH_DB"):
        cfg.store.path = db
    if level := os.environ.get("WRAITH_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> WraithConfig:
    """Load and return a merged *WraithConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *wraith.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields or a value
            is malformed or out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _check_no_api_keys(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"'{path}' must contain a mapping at the top level")
    return data


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.wraith/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# wraith global configuration — model defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: ollama/all-minilm\n"
            "  dimensions: 384\n"
            "\n"
            "generation:\n"
            "  model: openai/gpt-4o-mini\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target

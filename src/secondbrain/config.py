"""SecondBrain configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (SECONDBRAIN_SUMMARY_MODEL, SECONDBRAIN_OCR_MODEL,
     SECONDBRAIN_EMBEDDING_MODEL, SECONDBRAIN_VECTOR_DIMENSION)
  3. Per-project secondbrain.yaml
  4. Global ~/.secondbrain/config.yaml  (model defaults only — no API keys)
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".secondbrain"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "secondbrain.yaml"

# Fields that suggest an API key: forbidden in global config.
# Does NOT match legitimate config keys like max_input_chars or num_retries.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # access_token, auth_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["ai", "embedding", "ingest", "search", "storage", "logging"]
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
class AiCfg:
    """Chat-completion configuration (secondbrain.yaml: ai:).

    Attributes:
        summary_model: LiteLLM model used for structured insight generation.
        ocr_model: Vision-capable LiteLLM model used for image OCR.
        temperature: Sampling temperature for insight generation.
        max_input_chars: Extracted text is truncated to this many characters
            before it is sent to the model.
        num_retries: LiteLLM retry count for transient errors.
    """

    summary_model: str = "openai/gpt-4o-mini"
    ocr_model: str = "openai/gpt-4o-mini"
    temperature: float = 0.3
    max_input_chars: int = 8_000
    num_retries: int = 3


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (secondbrain.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536


@dataclass
class IngestCfg:
    """Ingest pipeline configuration (secondbrain.yaml: ingest:)."""

    stale_after_minutes: int = 60
    user_agent: str = "SecondBrainBot/0.1"
    fetch_timeout: float = 30.0
    max_fetch_bytes: int = 5 * 1024 * 1024


@dataclass
class SearchCfg:
    """Retrieval configuration (secondbrain.yaml: search:)."""

    limit: int = 20
    related_limit: int = 6


@dataclass
class StorageCfg:
    """Blob storage configuration (secondbrain.yaml: storage:)."""

    root: str = ".secondbrain/blobs"
    bucket: str = "uploads"


@dataclass
class LoggingCfg:
    """Logging configuration (secondbrain.yaml: logging:)."""

    level: str = "INFO"
    json: bool = False


@dataclass
class SecondBrainConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    ai: AiCfg = field(default_factory=AiCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)
    search: SearchCfg = field(default_factory=SearchCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
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
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
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


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if number < 1:
        raise ConfigError(f"{name} must be >= 1, got {number}")
    return number


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


def _cfg_from_dict(data: dict[str, Any]) -> SecondBrainConfig:
    """Build a *SecondBrainConfig* from a merged raw YAML dict."""
    cfg = SecondBrainConfig()

    if "ai" in data:
        a = data["ai"] or {}
        cfg.ai = AiCfg(
            summary_model=str(a.get("summary_model", cfg.ai.summary_model)),
            ocr_model=str(a.get("ocr_model", cfg.ai.ocr_model)),
            temperature=float(a.get("temperature", cfg.ai.temperature)),
            max_input_chars=_positive_int(
                a.get("max_input_chars", cfg.ai.max_input_chars), "ai.max_input_chars"
            ),
            num_retries=int(a.get("num_retries", cfg.ai.num_retries)),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=_positive_int(
                e.get("dimensions", cfg.embedding.dimensions), "embedding.dimensions"
            ),
        )

    if "ingest" in data:
        i = data["ingest"] or {}
        cfg.ingest = IngestCfg(
            stale_after_minutes=_positive_int(
                i.get("stale_after_minutes", cfg.ingest.stale_after_minutes),
                "ingest.stale_after_minutes",
            ),
            user_agent=str(i.get("user_agent", cfg.ingest.user_agent)),
            fetch_timeout=float(i.get("fetch_timeout", cfg.ingest.fetch_timeout)),
            max_fetch_bytes=_positive_int(
                i.get("max_fetch_bytes", cfg.ingest.max_fetch_bytes), "ingest.max_fetch_bytes"
            ),
        )

    if "search" in data:
        s = data["search"] or {}
        cfg.search = SearchCfg(
            limit=_positive_int(s.get("limit", cfg.search.limit), "search.limit"),
            related_limit=_positive_int(
                s.get("related_limit", cfg.search.related_limit), "search.related_limit"
            ),
        )

    if "storage" in data:
        st = data["storage"] or {}
        cfg.storage = StorageCfg(
            root=str(st.get("root", cfg.storage.root)),
            bucket=str(st.get("bucket", cfg.storage.bucket)),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)).upper(),
            json=bool(lg.get("json", cfg.logging.json)),
        )

    return cfg


def _apply_env_overrides(cfg: SecondBrainConfig) -> SecondBrainConfig:
    """Apply SECONDBRAIN_* environment variable overrides (layer 2)."""
    if model := os.environ.get("SECONDBRAIN_SUMMARY_MODEL"):
        cfg.ai.summary_model = model
    if model := os.environ.get("SECONDBRAIN_OCR_MODEL"):
        cfg.ai.ocr_model = model
    if model := os.environ.get("SECONDBRAIN_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if dims := os.environ.get("SECONDBRAIN_VECTOR_DIMENSION"):
        cfg.embedding.dimensions = _positive_int(dims, "SECONDBRAIN_VECTOR_DIMENSION")
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> SecondBrainConfig:
    """Load and return a merged *SecondBrainConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *secondbrain.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *SecondBrainConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields or a
            numeric setting is invalid.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    return cfg


def write_project_config(project_dir: Path, cfg: SecondBrainConfig | None = None) -> Path:
    """Write a starter *secondbrain.yaml* into *project_dir* unless one exists.

    Returns:
        Path to the project config file.
    """
    cfg = cfg or SecondBrainConfig()
    target = project_dir / _PROJECT_CONFIG_NAME
    if target.exists():
        return target

    content = {
        "ai": {"summary_model": cfg.ai.summary_model, "ocr_model": cfg.ai.ocr_model},
        "embedding": {"model": cfg.embedding.model, "dimensions": cfg.embedding.dimensions},
        "ingest": {"stale_after_minutes": cfg.ingest.stale_after_minutes},
        "search": {"limit": cfg.search.limit, "related_limit": cfg.search.related_limit},
        "storage": {"root": cfg.storage.root, "bucket": cfg.storage.bucket},
    }
    header = (
        "# SecondBrain project configuration.\n"
        "# NEVER store API keys here; use environment variables instead:\n"
        "#   export OPENAI_API_KEY=sk-...\n\n"
    )
    target.write_text(header + yaml.safe_dump(content, sort_keys=False), encoding="utf-8")
    return target

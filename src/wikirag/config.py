"""Configuration management for wikirag."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError


DEFAULT_SEEDS = [
    "/index.php?title=Main_Page",
    "/index.php?title=Blocks",
    "/index.php?title=Items",
    "/index.php?title=Crafting",
    "/index.php?title=Getting_Started",
    "/index.php?title=Knapping",
    "/index.php?title=Clay_forming",
]

DEFAULT_CONFIG = {
    "data_dir": "~/.wikirag",
    "storage_backend": "chromadb",
    "collection": "wiki_chunks",
    "ollama": {
        "url": "http://localhost:11434",
        "model": "phi3:mini",
        "embedding_model": "nomic-embed-text",
        "embed_timeout": 30,
        "generate_timeout": 60,
    },
    "embedding": {
        "dimension": 768,
        "remote_embeddings": True,
        "batch_size": 10,
        "min_chunk_chars": 50,
    },
    "chunking": {"chunk_size": 512, "overlap": 50},
    "wiki": {
        "base_url": "https://wiki.vintagestory.at",
        "max_depth": 3,
        "max_links_per_page": 5,
        "link_delay": 0.2,
        "seed_delay": 0.5,
        "request_timeout": 30,
        "user_agent": "wikirag/0.1 (Educational)",
        "seeds": DEFAULT_SEEDS,
    },
    "chat": {"max_context_chunks": 5, "history_turns": 6},
}

ENV_OVERRIDES = {
    "WIKIRAG_OLLAMA_URL": ("ollama", "url"),
    "WIKIRAG_MODEL": ("ollama", "model"),
    "WIKIRAG_DATA_DIR": ("data_dir",),
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".wikirag" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars.

    Raises:
        ConfigError: if the merged configuration is invalid.
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            try:
                file_cfg = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(file_cfg, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        _deep_merge(cfg, file_cfg)

    # Env overrides
    for var, keys in ENV_OVERRIDES.items():
        if value := os.environ.get(var):
            target = cfg
            for k in keys[:-1]:
                target = target.setdefault(k, {})
            target[keys[-1]] = value

    # Expand paths
    cfg["data_dir"] = str(Path(cfg["data_dir"]).expanduser().resolve())

    validate_config(cfg)
    return cfg


def validate_config(cfg: dict[str, Any]) -> None:
    """Fail fast on settings that would break chunking, crawling or embedding."""
    chunking = cfg.get("chunking", {})
    chunk_size = chunking.get("chunk_size", 0)
    overlap = chunking.get("overlap", 0)
    if not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ConfigError(f"chunking.chunk_size must be a positive integer, got {chunk_size!r}")
    if not isinstance(overlap, int) or overlap < 0:
        raise ConfigError(f"chunking.overlap must be a non-negative integer, got {overlap!r}")
    if overlap >= chunk_size:
        raise ConfigError(
            f"chunking.overlap ({overlap}) must be smaller than chunking.chunk_size ({chunk_size})"
        )

    embedding = cfg.get("embedding", {})
    for key in ("dimension", "batch_size"):
        value = embedding.get(key, 0)
        if not isinstance(value, int) or value <= 0:
            raise ConfigError(f"embedding.{key} must be a positive integer, got {value!r}")

    wiki = cfg.get("wiki", {})
    if wiki.get("max_depth", 0) < 0:
        raise ConfigError("wiki.max_depth cannot be negative")
    if wiki.get("max_links_per_page", 0) < 0:
        raise ConfigError("wiki.max_links_per_page cannot be negative")

    backend = cfg.get("storage_backend", "chromadb")
    if backend not in ("chromadb", "memory"):
        raise ConfigError(f"Unknown storage_backend: {backend}")


def vector_db_path(cfg: dict[str, Any]) -> Path:
    """On-disk location of the durable vector store."""
    return Path(cfg["data_dir"]) / "vector_db"


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v

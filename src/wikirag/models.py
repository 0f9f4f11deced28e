"""Data models used throughout wikirag."""

import hashlib
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .errors import ConfigError


def sanitize_title(title: str) -> str:
    """Turn a page title into an id prefix: alphanumerics only, underscores, lowercase."""
    kept = "".join(c for c in title if c.isalnum() or c.isspace())
    return re.sub(r"\s", "_", kept).lower()


def chunk_id_prefix(title: str, url: str) -> str:
    """Id prefix for a page's chunks: the sanitized title plus a short hash of the URL.

    Titles that sanitize alike ("Iron (metal)", "Iron metal") still get distinct ids.
    """
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]
    return f"{sanitize_title(title) or 'page'}_{digest}"


@dataclass
class ChunkingConfig:
    """Sliding-window chunk sizes, in words."""
    chunk_size_words: int = 512
    overlap_words: int = 50

    def __post_init__(self):
        if self.chunk_size_words <= 0:
            raise ConfigError(f"chunk size must be positive, got {self.chunk_size_words}")
        if self.overlap_words < 0:
            raise ConfigError(f"overlap cannot be negative, got {self.overlap_words}")
        if self.overlap_words >= self.chunk_size_words:
            raise ConfigError(
                f"overlap ({self.overlap_words}) must be smaller than chunk size ({self.chunk_size_words})"
            )


@dataclass
class TextChunk:
    """A chunk of page text, optionally carrying its embedding."""
    id: str
    content: str
    source_url: str
    source_title: str
    embedding: list[float] | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class VectorRecord:
    """Persisted form of an embedded chunk."""
    id: str
    content: str
    source_url: str
    source_title: str
    embedding: list[float]
    metadata: str = "{}"

    @classmethod
    def from_chunk(cls, chunk: TextChunk) -> "VectorRecord":
        if chunk.embedding is None:
            raise ValueError(f"Chunk {chunk.id} has no embedding")
        return cls(
            id=chunk.id,
            content=chunk.content,
            source_url=chunk.source_url,
            source_title=chunk.source_title,
            embedding=list(chunk.embedding),
            metadata=json.dumps(chunk.metadata, sort_keys=True),
        )

    def metadata_dict(self) -> dict[str, str]:
        try:
            data = json.loads(self.metadata)
        except (TypeError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def to_chunk(self, include_embedding: bool = False) -> TextChunk:
        return TextChunk(
            id=self.id,
            content=self.content,
            source_url=self.source_url,
            source_title=self.source_title,
            embedding=list(self.embedding) if include_embedding else None,
            metadata=self.metadata_dict(),
        )


@dataclass
class SimilarityResult:
    """A chunk paired with its cosine similarity to a query."""
    chunk: TextChunk
    score: float


@dataclass
class WikiPage:
    """A parsed wiki page."""
    title: str
    url: str
    content: str
    links: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)


@dataclass
class CrawlState:
    """Progress of the current (or last) crawl run."""
    visited: set[str] = field(default_factory=set)
    pages_scraped: int = 0
    errors_encountered: int = 0
    is_updating: bool = False
    last_update: datetime | None = None
    total_pages: int = 0

    def snapshot(self) -> dict[str, Any]:
        return {
            "last_update": self.last_update.isoformat() if self.last_update else None,
            "total_pages": self.total_pages,
            "is_updating": self.is_updating,
            "pages_scraped": self.pages_scraped,
            "errors_encountered": self.errors_encountered,
            "visited": len(self.visited),
        }

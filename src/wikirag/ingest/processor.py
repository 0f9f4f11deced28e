"""Ingestion pipeline - the heart of ingestion.

A page is chunked, every chunk is embedded, chunks are kept in a process-local
cache and each finished batch is written to the vector store. The cache doubles
as a search target when the store has nothing to offer.
"""

import logging
import threading
from typing import Any

from ..embeddings.embedder import Embedder
from ..errors import StorageError
from ..models import ChunkingConfig, TextChunk, VectorRecord, WikiPage, chunk_id_prefix
from ..storage.base import VectorStoreBase
from .chunker import chunk_text
from .parsers.html import EMPTY_PAGE_PLACEHOLDER

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Chunk, embed and store page content."""

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStoreBase,
        chunking: ChunkingConfig | None = None,
        batch_size: int = 10,
        min_chunk_chars: int = 50,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.embedder = embedder
        self.store = store
        self.chunking = chunking or ChunkingConfig()
        self.batch_size = batch_size
        self.min_chunk_chars = min_chunk_chars
        self.chunk_cache: list[TextChunk] = []
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: dict[str, Any], embedder: Embedder, store: VectorStoreBase) -> "IngestionPipeline":
        chunk_cfg = config.get("chunking", {})
        emb_cfg = config.get("embedding", {})
        return cls(
            embedder=embedder,
            store=store,
            chunking=ChunkingConfig(
                chunk_size_words=chunk_cfg.get("chunk_size", 512),
                overlap_words=chunk_cfg.get("overlap", 50),
            ),
            batch_size=emb_cfg.get("batch_size", 10),
            min_chunk_chars=emb_cfg.get("min_chunk_chars", 50),
        )

    @property
    def cache_size(self) -> int:
        return len(self.chunk_cache)

    def cached_chunks(self) -> list[TextChunk]:
        with self._lock:
            return list(self.chunk_cache)

    def chunks_for_source(self, source_url: str) -> list[TextChunk]:
        with self._lock:
            return [c for c in self.chunk_cache if c.source_url == source_url]

    def ingest_page(self, page: WikiPage) -> int:
        return self.ingest(page.title, page.url, page.content, source_type="wiki")

    def ingest(self, title: str, url: str, content: str, source_type: str = "wiki") -> int:
        """Chunk, embed and store one document, replacing anything stored for url.

        Returns the number of chunks embedded.
        """
        logger.info(f"Processing page for embeddings: {title} ({len(content)} chars)")
        texts = chunk_text(content, self.chunking.chunk_size_words, self.chunking.overlap_words)

        # Keep the original ordinal so ids stay stable across re-ingestion
        kept = [(i, t) for i, t in enumerate(texts) if self._keep(t)]
        if len(kept) < len(texts):
            logger.debug(f"Dropped {len(texts) - len(kept)} short chunk(s) from {title}")

        self._forget_source(url)

        prefix = chunk_id_prefix(title, url)
        processed = 0
        for start in range(0, len(kept), self.batch_size):
            batch = kept[start:start + self.batch_size]
            chunks = [
                TextChunk(
                    id=f"{prefix}_{index}",
                    content=text,
                    source_url=url,
                    source_title=title,
                    embedding=self.embedder.embed(text),
                    metadata={"source_type": source_type, "chunk_index": str(index)},
                )
                for index, text in batch
            ]
            with self._lock:
                self.chunk_cache.extend(chunks)
            processed += len(chunks)

            try:
                self.store.insert_batch([VectorRecord.from_chunk(c) for c in chunks])
            except StorageError as e:
                logger.error(f"Failed to save chunks for {title} to vector store: {e}")

            logger.info(f"Processed {processed}/{len(kept)} chunks for page: {title}")

        logger.info(f"Created {processed} embeddings from {len(texts)} chunks for page: {title}")
        return processed

    def _keep(self, text: str) -> bool:
        # Empty pages are still recorded through their placeholder chunk
        return text.strip() == EMPTY_PAGE_PLACEHOLDER or len(text.strip()) >= self.min_chunk_chars

    def _forget_source(self, url: str) -> None:
        with self._lock:
            self.chunk_cache = [c for c in self.chunk_cache if c.source_url != url]
        try:
            removed = self.store.delete_by_source(url)
        except StorageError as e:
            logger.error(f"Failed to remove previous chunks for {url}: {e}")
            return
        if removed:
            logger.info(f"Replacing {removed} stored chunk(s) for {url}")


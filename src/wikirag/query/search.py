"""Semantic search over the vector store, with the ingestion cache as fallback."""

import logging
from typing import Callable

from ..embeddings.embedder import Embedder
from ..embeddings.similarity import rank_by_similarity
from ..errors import StorageError
from ..ingest.processor import IngestionPipeline
from ..models import SimilarityResult
from ..storage.base import VectorStoreBase

logger = logging.getLogger(__name__)

SearchStrategy = tuple[str, Callable[[list[float], int], list[SimilarityResult]]]


class Retriever:
    """Embeds a query and returns the closest chunks.

    The store is searched first. If it comes back empty, or fails, the chunks
    cached by the ingestion pipeline during this session are ranked instead.
    """

    def __init__(self, embedder: Embedder, store: VectorStoreBase, pipeline: IngestionPipeline | None = None):
        self.embedder = embedder
        self.store = store
        self.pipeline = pipeline

    @property
    def strategies(self) -> list[SearchStrategy]:
        chain: list[SearchStrategy] = [("store", self._search_store)]
        if self.pipeline is not None:
            chain.append(("cache", self._search_cache))
        return chain

    def _search_store(self, query_vector: list[float], k: int) -> list[SimilarityResult]:
        try:
            hits = self.store.search(query_vector, k)
        except StorageError as e:
            logger.error(f"Vector store search failed: {e}")
            return []
        return [SimilarityResult(chunk=record.to_chunk(), score=score) for record, score in hits]

    def _search_cache(self, query_vector: list[float], k: int) -> list[SimilarityResult]:
        cached = [c for c in self.pipeline.cached_chunks() if c.embedding is not None]
        if not cached:
            return []
        logger.warning("No results from vector store, falling back to in-memory search")
        ranked = rank_by_similarity(query_vector, ((c, c.embedding) for c in cached), k)
        return [SimilarityResult(chunk=chunk, score=score) for chunk, score in ranked]

    def retrieve(self, query: str, k: int = 5) -> list[SimilarityResult]:
        """Top-k chunks for query, best first."""
        if k <= 0:
            return []
        query_vector = self.embedder.embed(query)
        for name, strategy in self.strategies:
            results = strategy(query_vector, k)
            if results:
                logger.debug(f"Retrieved {len(results)} result(s) from {name}")
                return results
        return []

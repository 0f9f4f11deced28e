"""Plain in-process vector store, the last rung of the fallback chain."""

import copy

from ..embeddings.similarity import rank_by_similarity
from ..models import VectorRecord
from .base import VectorStoreBase


class MemoryVectorStore(VectorStoreBase):
    """Dict-backed store. Nothing survives the process."""

    mode = "memory"

    def __init__(self):
        super().__init__()
        self._records: dict[str, VectorRecord] = {}

    def insert_batch(self, records: list[VectorRecord]) -> None:
        if not records:
            return
        staged = {r.id: copy.deepcopy(r) for r in records}
        with self._lock:
            self._records.update(staged)

    def search(self, query_vector: list[float], limit: int = 5) -> list[tuple[VectorRecord, float]]:
        with self._lock:
            records = list(self._records.values())
        return rank_by_similarity(query_vector, ((r, r.embedding) for r in records), limit)

    def delete_by_source(self, source_url: str) -> int:
        with self._lock:
            ids = [k for k, r in self._records.items() if r.source_url == source_url]
            for k in ids:
                del self._records[k]
        return len(ids)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

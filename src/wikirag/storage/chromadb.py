"""ChromaDB vector store backend, persistent or in-memory."""

import json
import logging
import uuid
from pathlib import Path
from typing import Any

import chromadb

from ..embeddings.similarity import rank_by_similarity
from ..errors import StorageError
from ..models import VectorRecord
from .base import VectorStoreBase

logger = logging.getLogger(__name__)


def _to_list(embedding: Any) -> list[float]:
    """Chroma hands back numpy arrays or lists depending on version."""
    return embedding.tolist() if hasattr(embedding, "tolist") else list(embedding)


class ChromaVectorStore(VectorStoreBase):
    """ChromaDB-backed vector store.

    Chroma is only used as a keyed record store here; similarity search is a
    full linear scan so results are exact cosine scores.
    """

    def __init__(self, client: Any, collection_name: str, mode: str):
        super().__init__()
        self.client = client
        self.mode = mode
        self.collection = client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    @classmethod
    def persistent(cls, path: str | Path, collection_name: str = "wiki_chunks") -> "ChromaVectorStore":
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Opening vector store at: {path}")
        return cls(chromadb.PersistentClient(path=str(path)), collection_name, mode="durable")

    @classmethod
    def ephemeral(cls, collection_name: str = "wiki_chunks") -> "ChromaVectorStore":
        # In-memory clients share state within a process; a unique name isolates this one
        name = f"{collection_name}_{uuid.uuid4().hex[:8]}"
        return cls(chromadb.EphemeralClient(), name, mode="ephemeral")

    def insert_batch(self, records: list[VectorRecord]) -> None:
        if not records:
            return
        ids = [r.id for r in records]
        embeddings = [list(r.embedding) for r in records]
        documents = [r.content for r in records]
        metadatas = [
            {"source_url": r.source_url, "source_title": r.source_title, "metadata": r.metadata}
            for r in records
        ]
        with self._lock:
            try:
                self.collection.upsert(
                    ids=ids,
                    embeddings=embeddings,
                    documents=documents,
                    metadatas=metadatas,
                )
            except Exception as e:
                raise StorageError(f"Failed to insert batch: {e}") from e
        logger.info(f"Inserted {len(records)} records into vector store")

    def _all_records(self) -> list[VectorRecord]:
        try:
            data = self.collection.get(include=["embeddings", "documents", "metadatas"])
        except Exception as e:
            raise StorageError(f"Failed to read vector store: {e}") from e

        ids = data.get("ids") or []
        embeddings = data.get("embeddings")
        if embeddings is None:
            embeddings = []
        documents = data.get("documents")
        if documents is None:
            documents = []
        metadatas = data.get("metadatas")
        if metadatas is None:
            metadatas = []

        records = []
        for i, record_id in enumerate(ids):
            if i >= len(embeddings) or embeddings[i] is None:
                logger.error(f"Record {record_id} has no embedding, skipping")
                continue
            meta = (metadatas[i] if i < len(metadatas) else None) or {}
            records.append(VectorRecord(
                id=record_id,
                content=documents[i] if i < len(documents) else "",
                source_url=meta.get("source_url", ""),
                source_title=meta.get("source_title", ""),
                embedding=_to_list(embeddings[i]),
                metadata=meta.get("metadata", json.dumps({})),
            ))
        return records

    def search(self, query_vector: list[float], limit: int = 5) -> list[tuple[VectorRecord, float]]:
        if limit <= 0:
            return []
        records = self._all_records()
        return rank_by_similarity(query_vector, ((r, r.embedding) for r in records), limit)

    def delete_by_source(self, source_url: str) -> int:
        with self._lock:
            try:
                matches = self.collection.get(where={"source_url": source_url}, include=["metadatas"])
                ids = matches.get("ids") or []
                if ids:
                    self.collection.delete(ids=ids)
            except Exception as e:
                raise StorageError(f"Failed to delete documents for {source_url}: {e}") from e
        logger.info(f"Deleted {len(ids)} records from source: {source_url}")
        return len(ids)

    def count(self) -> int:
        try:
            return self.collection.count()
        except Exception as e:
            raise StorageError(f"Failed to count records: {e}") from e

"""Abstract base class for vector stores and the store-opening fallback chain."""

import logging
import shutil
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable

from ..config import vector_db_path
from ..errors import StorageError
from ..models import VectorRecord

logger = logging.getLogger(__name__)


class VectorStoreBase(ABC):
    """Common interface for vector storage backends.

    Writes go through ``self._lock`` so a single handle can be shared by the
    ingestion and retrieval sides.
    """

    mode: str = "unknown"

    def __init__(self):
        self._lock = threading.Lock()

    @abstractmethod
    def insert_batch(self, records: list[VectorRecord]) -> None:
        """Upsert all records at once. Empty batches are a no-op."""

    @abstractmethod
    def search(self, query_vector: list[float], limit: int = 5) -> list[tuple[VectorRecord, float]]:
        """Linear-scan cosine search, best first, at most ``limit`` results."""

    @abstractmethod
    def delete_by_source(self, source_url: str) -> int:
        """Delete every record whose source_url matches. Returns the number deleted."""

    @abstractmethod
    def count(self) -> int:
        """Count stored records."""

    def close(self) -> None:
        """Release backend resources."""


def is_lock_error(error: BaseException) -> bool:
    message = str(error).lower()
    return "lock" in message


def _open_durable(path: Path, collection: str) -> VectorStoreBase:
    from .chromadb import ChromaVectorStore
    return ChromaVectorStore.persistent(path, collection)


def _heal_and_open_durable(path: Path, collection: str) -> VectorStoreBase:
    logger.warning(f"Vector store at {path} appears to be locked, recreating it")
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)
    return _open_durable(path, collection)


def _open_ephemeral(collection: str) -> VectorStoreBase:
    from .chromadb import ChromaVectorStore
    return ChromaVectorStore.ephemeral(collection)


def _open_memory() -> VectorStoreBase:
    from .memory import MemoryVectorStore
    return MemoryVectorStore()


def open_vector_store(config: dict[str, Any]) -> VectorStoreBase:
    """Open the best available store: durable, healed durable, ephemeral, in-process.

    Never raises for backend trouble; the caller always gets a usable store
    and can check ``store.mode`` to see how degraded it is.
    """
    collection = config.get("collection", "wiki_chunks")
    if config.get("storage_backend", "chromadb") == "memory":
        return _open_memory()

    path = vector_db_path(config)
    strategies: list[tuple[str, Callable[[], VectorStoreBase]]] = [
        ("durable", lambda: _open_durable(path, collection)),
        ("durable-after-cleanup", lambda: _heal_and_open_durable(path, collection)),
        ("ephemeral", lambda: _open_ephemeral(collection)),
        ("memory", _open_memory),
    ]

    last_error: BaseException | None = None
    for name, opener in strategies:
        if name == "durable-after-cleanup" and not (last_error and is_lock_error(last_error)):
            continue
        try:
            store = opener()
        except Exception as e:
            logger.error(f"Failed to open {name} vector store: {e}")
            last_error = e
            continue
        if name != "durable":
            logger.warning(f"Running with {store.mode} vector store ({name})")
        return store

    raise StorageError(f"No vector store could be opened: {last_error}")

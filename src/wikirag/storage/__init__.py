"""Storage abstraction for vector backends."""

from .base import VectorStoreBase, open_vector_store

__all__ = ["VectorStoreBase", "open_vector_store"]

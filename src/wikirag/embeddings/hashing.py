"""Deterministic hash-based embeddings used when no embedding model is reachable."""

import numpy as np

MAX_HASHED_WORDS = 100


def rolling_hash(word: str) -> int:
    """Polynomial rolling hash (base 31) over UTF-8 bytes, wrapped to 32 bits."""
    h = 0
    for byte in word.encode("utf-8"):
        h = (h * 31 + byte) & 0xFFFFFFFF
    return h


def hash_embedding(text: str, dimension: int = 768) -> list[float]:
    """Bag-of-hashed-words vector plus a few text statistics, L2-normalized."""
    if dimension <= 0:
        raise ValueError(f"dimension must be positive, got {dimension}")

    vec = np.zeros(dimension, dtype=np.float64)
    words = text.split()
    word_count = len(words)

    if word_count:
        weight = 1.0 / word_count
        for word in words[:MAX_HASHED_WORDS]:
            vec[rolling_hash(word) % dimension] += weight

    # Text statistics overwrite the first three slots
    if dimension > 10:
        vec[0] = len(text.encode("utf-8")) / 1000.0
        vec[1] = word_count / 100.0
        vec[2] = text.count(".") / 10.0

    magnitude = float(np.linalg.norm(vec))
    if magnitude > 0:
        vec /= magnitude
    return vec.tolist()

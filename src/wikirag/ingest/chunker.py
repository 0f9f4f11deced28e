"""Sliding-window text chunking over whitespace-separated words."""

from ..errors import ConfigError


def chunk_text(text: str, chunk_size: int = 512, overlap: int = 50) -> list[str]:
    """Split text into overlapping windows of ``chunk_size`` words.

    Args:
        text: The text to chunk.
        chunk_size: Maximum words per chunk.
        overlap: Words shared between consecutive chunks.

    Returns:
        List of text chunks. Text that fits in one window comes back as a
        single stripped chunk; blank text yields no chunks.
    """
    if chunk_size <= 0 or overlap < 0 or overlap >= chunk_size:
        raise ConfigError(f"Invalid chunking: chunk_size={chunk_size}, overlap={overlap}")

    words = text.split()
    if len(words) <= chunk_size:
        return [text.strip()] if text.strip() else []

    step = chunk_size - overlap
    chunks: list[str] = []
    start = 0
    while start < len(words):
        end = min(start + chunk_size, len(words))
        chunk = " ".join(words[start:end])
        if chunk.strip():
            chunks.append(chunk)
        if end >= len(words):
            break
        start += step

    return chunks

"""Text embedding with an ordered chain of providers.

The remote Ollama model is tried first. When it is disabled, unreachable or
returns garbage, the deterministic hash embedding takes over, so ``embed``
always produces a vector of length ``dimension``.
"""

import logging
from typing import Any, Callable

from ..errors import ParseError, ProviderUnavailable
from ..providers.ollama import OllamaClient
from .hashing import hash_embedding

logger = logging.getLogger(__name__)

EmbeddingStrategy = tuple[str, Callable[[str], list[float]]]


class Embedder:
    """Turns text into vectors, degrading to hash embeddings offline."""

    def __init__(
        self,
        client: OllamaClient | None = None,
        dimension: int = 768,
        use_remote: bool = True,
    ):
        self.client = client
        self.dimension = dimension
        self.use_remote = use_remote and client is not None
        self.fallback_count = 0

    @classmethod
    def from_config(cls, config: dict[str, Any], client: OllamaClient | None = None) -> "Embedder":
        emb_cfg = config.get("embedding", {})
        return cls(
            client=client or OllamaClient.from_config(config),
            dimension=emb_cfg.get("dimension", 768),
            use_remote=emb_cfg.get("remote_embeddings", True),
        )

    @property
    def strategies(self) -> list[EmbeddingStrategy]:
        chain: list[EmbeddingStrategy] = []
        if self.use_remote:
            chain.append(("ollama", self._remote))
        chain.append(("hash", self._hash))
        return chain

    def _remote(self, text: str) -> list[float]:
        vector = self.client.embed(text)
        # Every vector in one store must share a length
        if len(vector) != self.dimension:
            raise ParseError(
                f"Ollama model returned {len(vector)} values, expected {self.dimension}; "
                "set embedding.dimension to match the embedding model"
            )
        return vector

    def _hash(self, text: str) -> list[float]:
        return hash_embedding(text, self.dimension)

    def embed(self, text: str) -> list[float]:
        """Embed text with the first provider that succeeds."""
        for name, strategy in self.strategies:
            try:
                vector = strategy(text)
            except ProviderUnavailable as e:
                logger.warning(f"Embedding provider '{name}' failed: {e}")
                continue
            if name != "ollama" and self.use_remote:
                self.fallback_count += 1
                logger.debug("Using hash embedding (Ollama not available)")
            return vector
        # The hash strategy never raises ProviderUnavailable
        raise RuntimeError("No embedding strategy produced a vector")

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(t) for t in texts]

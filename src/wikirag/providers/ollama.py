"""HTTP client for a local Ollama inference server."""

import logging
from typing import Any

import requests

from ..errors import GenerationError, ParseError, ProviderUnavailable

logger = logging.getLogger(__name__)


class OllamaClient:
    """Thin wrapper over Ollama's /api/embeddings and /api/generate endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "phi3:mini",
        embedding_model: str = "nomic-embed-text",
        embed_timeout: float = 30,
        generate_timeout: float = 60,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.embedding_model = embedding_model
        self.embed_timeout = embed_timeout
        self.generate_timeout = generate_timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: dict[str, Any], session: requests.Session | None = None) -> "OllamaClient":
        ollama_cfg = config.get("ollama", {})
        return cls(
            base_url=ollama_cfg.get("url", "http://localhost:11434"),
            model=ollama_cfg.get("model", "phi3:mini"),
            embedding_model=ollama_cfg.get("embedding_model", "nomic-embed-text"),
            embed_timeout=ollama_cfg.get("embed_timeout", 30),
            generate_timeout=ollama_cfg.get("generate_timeout", 60),
            session=session,
        )

    def _post(self, path: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=timeout)
        except requests.RequestException as e:
            raise ProviderUnavailable(f"Failed to reach Ollama at {url}: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ProviderUnavailable(f"Ollama API error ({response.status_code}): {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as e:
            raise ParseError(f"Failed to parse Ollama response from {url}: {e}") from e
        if not isinstance(body, dict):
            raise ParseError(f"Unexpected Ollama response type from {url}: {type(body).__name__}")
        return body

    def embed(self, text: str) -> list[float]:
        """Return the remote embedding for text.

        Raises:
            ProviderUnavailable: network failure, timeout or non-2xx status.
            ParseError: the body has no usable ``embedding`` array.
        """
        body = self._post(
            "/api/embeddings",
            {"model": self.embedding_model, "prompt": text},
            self.embed_timeout,
        )
        embedding = body.get("embedding")
        if not isinstance(embedding, list) or not embedding:
            raise ParseError("Ollama returned no embedding")
        try:
            return [float(v) for v in embedding]
        except (TypeError, ValueError) as e:
            raise ParseError(f"Non-numeric value in Ollama embedding: {e}") from e

    def generate(self, prompt: str, model: str | None = None) -> str:
        """Generate a completion for prompt.

        Raises:
            ProviderUnavailable: network failure, timeout or non-2xx status.
            ParseError: the body is not JSON.
            GenerationError: Ollama reported an error or returned nothing.
        """
        model = model or self.model
        logger.info(f"Generating response with model: {model}")
        body = self._post(
            "/api/generate",
            {"model": model, "prompt": prompt, "stream": False},
            self.generate_timeout,
        )
        if error := body.get("error"):
            raise GenerationError(f"Ollama returned error: {error}")

        text = body.get("response")
        if not isinstance(text, str) or not text.strip():
            logger.warning(f"Empty response from Ollama: {body}")
            raise GenerationError("Ollama returned empty response")

        logger.info(f"Generated response ({len(text)} chars)")
        return text

"""Caller-facing operations.

Every operation returns a ServiceResult. Internal errors are logged with
context and reduced to a message string here; no wikirag exception type
escapes this module.
"""

import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from .config import load_config
from .crawl.crawler import WikiCrawler
from .embeddings.embedder import Embedder
from .errors import ConfigError, GenerationError, ProviderUnavailable, WikiRagError
from .ingest.processor import IngestionPipeline
from .providers.ollama import OllamaClient
from .qa import ChatMessage, ask_question
from .query.search import Retriever
from .storage.base import VectorStoreBase, open_vector_store

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 10_000
MODEL_NAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9:._-]{0,98}[A-Za-z0-9])?$")


@dataclass
class ServiceResult:
    """Outcome of a service call: a value on success, a message on failure."""
    ok: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def success(cls, value: Any = None) -> "ServiceResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, message: str) -> "ServiceResult":
        return cls(ok=False, error=message)


def validate_message(content: str) -> None:
    if not content.strip():
        raise ConfigError("Message cannot be empty or contain only whitespace")
    if len(content) > MAX_MESSAGE_CHARS:
        raise ConfigError(f"Message too long (maximum {MAX_MESSAGE_CHARS:,} characters)")


def validate_model_name(name: str) -> None:
    if not name:
        raise ConfigError("Model name cannot be empty")
    if len(name) > 100:
        raise ConfigError("Model name too long (maximum 100 characters)")
    if not MODEL_NAME_RE.match(name):
        raise ConfigError(
            "Model name may only contain letters, numbers, colons, hyphens, underscores and dots, "
            "and must start and end with a letter or number"
        )


class AssistantService:
    """Wires store, embedder, ingestion, retrieval, crawler and generation together."""

    def __init__(
        self,
        config: dict[str, Any],
        store: VectorStoreBase | None = None,
        client: OllamaClient | None = None,
        http_session: requests.Session | None = None,
        sleep=None,
    ):
        self.config = config
        self.store = store or open_vector_store(config)
        self.client = client or OllamaClient.from_config(config)
        self.embedder = Embedder.from_config(config, client=self.client)
        self.pipeline = IngestionPipeline.from_config(config, self.embedder, self.store)
        self.retriever = Retriever(self.embedder, self.store, self.pipeline)

        crawler_kwargs = {"session": http_session}
        if sleep is not None:
            crawler_kwargs["sleep"] = sleep
        self.crawler = WikiCrawler.from_config(config, on_page=self.pipeline.ingest_page, **crawler_kwargs)

        self.history: list[ChatMessage] = []
        self._crawl_lock = threading.Lock()

    @classmethod
    def from_config_file(cls, config_path: str | Path | None = None) -> "AssistantService":
        return cls(load_config(config_path))

    def get_status(self) -> ServiceResult:
        status = self.crawler.status()
        try:
            status["stored_chunks"] = self.store.count()
        except WikiRagError as e:
            logger.error(f"Failed to count stored chunks: {e}")
            status["stored_chunks"] = None
        status["cached_chunks"] = self.pipeline.cache_size
        status["store_mode"] = self.store.mode
        status["hash_embeddings_used"] = self.embedder.fallback_count
        return ServiceResult.success(status)

    def update_content(self, seeds: list[str] | None = None) -> ServiceResult:
        """Run one crawl over the configured (or given) seeds."""
        if not self._crawl_lock.acquire(blocking=False):
            return ServiceResult.failure("A wiki update is already running")
        try:
            seeds = seeds or self.config.get("wiki", {}).get("seeds", [])
            state = self.crawler.crawl(seeds)
            return ServiceResult.success(state.snapshot())
        except Exception as e:
            logger.exception(f"Wiki update failed: {e}")
            return ServiceResult.failure(f"Wiki update failed: {e}")
        finally:
            self._crawl_lock.release()

    def ingest(self, title: str, url: str, content: str) -> ServiceResult:
        try:
            count = self.pipeline.ingest(title, url, content)
        except WikiRagError as e:
            logger.error(f"Failed to ingest {url}: {e}")
            return ServiceResult.failure(f"Failed to ingest {title}: {e}")
        return ServiceResult.success(count)

    def search_similar(self, query: str, limit: int = 5) -> ServiceResult:
        try:
            validate_message(query)
            results = self.retriever.retrieve(query, k=limit)
        except WikiRagError as e:
            logger.error(f"Search failed for '{query[:50]}': {e}")
            return ServiceResult.failure(str(e))
        return ServiceResult.success(results)

    def generate(self, prompt: str, model: str | None = None) -> ServiceResult:
        try:
            validate_message(prompt)
            if model is not None:
                validate_model_name(model)
            text = self.client.generate(prompt, model=model)
        except ConfigError as e:
            return ServiceResult.failure(str(e))
        except (ProviderUnavailable, GenerationError) as e:
            logger.error(f"Generation failed: {e}")
            return ServiceResult.failure(f"Generation failed: {e}")
        return ServiceResult.success(text)

    def ask(self, question: str, model: str | None = None, n_chunks: int | None = None) -> ServiceResult:
        """Answer question with retrieved wiki context and record the exchange."""
        try:
            validate_message(question)
            if model is not None:
                validate_model_name(model)
        except ConfigError as e:
            return ServiceResult.failure(str(e))

        chat_cfg = self.config.get("chat", {})
        try:
            result = ask_question(
                question,
                self.retriever,
                self.client,
                history=list(self.history),
                n_chunks=n_chunks or chat_cfg.get("max_context_chunks", 5),
                history_turns=chat_cfg.get("history_turns", 6),
                model=model,
            )
        except WikiRagError as e:
            logger.error(f"Failed to answer question: {e}")
            return ServiceResult.failure(f"Failed to answer question: {e}")

        self.history.append(ChatMessage(content=question, role="user"))
        self.history.append(ChatMessage(content=result["answer"], role="assistant"))
        return ServiceResult.success(result)

    def clear_history(self) -> None:
        self.history.clear()

    def close(self) -> None:
        self.store.close()

"""RAG-based Q&A over the crawled wiki."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import GenerationError, ProviderUnavailable
from .models import SimilarityResult
from .providers.ollama import OllamaClient
from .query.search import Retriever

logger = logging.getLogger(__name__)

SYSTEM_PREAMBLE = (
    "You are a helpful assistant specializing in the game Vintage Story. You provide accurate, "
    "detailed information based on the game's wiki and mechanics.\n\n"
)
CLOSING_INSTRUCTION = (
    "Assistant: Please provide a helpful and accurate response. If you have relevant context "
    "from the wiki, use it to give specific information. If you don't have specific information, "
    "provide general guidance about Vintage Story."
)
FALLBACK_RESPONSES = [
    "I'm experiencing some technical difficulties connecting to the AI service. Could you please try again in a moment?",
    "I apologize, but I'm having trouble processing your request right now. Please try again shortly.",
    "The AI service is temporarily unavailable. In the meantime, you might want to check the Vintage Story wiki directly.",
]


@dataclass
class ChatMessage:
    """One turn of the conversation."""
    content: str
    role: str  # "user" or "assistant"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def format_context(results: list[SimilarityResult]) -> list[str]:
    return [f"Source: {r.chunk.source_title}\n{r.chunk.content}" for r in results]


def format_sources(results: list[SimilarityResult]) -> list[str]:
    return [f"{r.chunk.source_title} (score: {r.score:.2f})" for r in results]


def build_prompt(question: str, context: list[str], history: list[ChatMessage] | None = None,
                 history_turns: int = 6) -> str:
    """Assemble the generation prompt from retrieved context and recent conversation."""
    parts = [SYSTEM_PREAMBLE]

    if context:
        parts.append("Here is relevant information from the Vintage Story wiki:\n\n")
        for i, ctx in enumerate(context, 1):
            parts.append(f"Context {i}:\n{ctx}\n\n")
        parts.append("Based on the above context, ")

    if history:
        parts.append("Previous conversation:\n")
        for msg in history[-history_turns:]:
            parts.append(f"{msg.role}: {msg.content}\n")
        parts.append("\n")

    parts.append(f"User question: {question}\n\n")
    parts.append(CLOSING_INSTRUCTION)
    return "".join(parts)


def fallback_response(question: str) -> str:
    """Canned reply used when generation fails; stable for a given question."""
    return FALLBACK_RESPONSES[len(question) % len(FALLBACK_RESPONSES)]


def ask_question(
    question: str,
    retriever: Retriever,
    client: OllamaClient,
    history: list[ChatMessage] | None = None,
    n_chunks: int = 5,
    history_turns: int = 6,
    model: str | None = None,
) -> dict:
    """Answer a question using RAG over the wiki.

    Returns dict with 'answer', 'sources' (titles with scores) and 'fallback'
    (True when the canned reply was used because generation failed).
    """
    results = retriever.retrieve(question, k=n_chunks)
    prompt = build_prompt(question, format_context(results), history, history_turns)

    try:
        answer = client.generate(prompt, model=model)
        used_fallback = False
    except (ProviderUnavailable, GenerationError) as e:
        logger.error(f"Failed to generate LLM response: {e}")
        answer = fallback_response(question)
        used_fallback = True

    return {
        "answer": answer,
        "sources": format_sources(results),
        "fallback": used_fallback,
    }

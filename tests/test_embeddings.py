"""Tests for hash embeddings, cosine ranking, the Ollama client and the embedder chain."""

import math
from unittest.mock import MagicMock

import pytest
import requests

from conftest import FakeResponse, FakeSession
from wikirag.embeddings.embedder import Embedder
from wikirag.embeddings.hashing import hash_embedding, rolling_hash
from wikirag.embeddings.similarity import cosine_similarity, rank_by_similarity
from wikirag.errors import GenerationError, ParseError, ProviderUnavailable
from wikirag.providers.ollama import OllamaClient


def test_rolling_hash_known_values():
    assert rolling_hash("") == 0
    assert rolling_hash("a") == 97
    assert rolling_hash("ab") == 97 * 31 + 98


def test_rolling_hash_wraps_to_32_bits():
    assert 0 <= rolling_hash("x" * 200) <= 0xFFFFFFFF


def test_hash_embedding_deterministic_and_normalized():
    text = "Copper tools are crafted on an anvil. Smith them carefully."
    a = hash_embedding(text, 384)
    b = hash_embedding(text, 384)

    assert a == b
    assert len(a) == 384
    assert math.isclose(math.sqrt(sum(v * v for v in a)), 1.0, rel_tol=1e-9)


def test_hash_embedding_differs_for_different_text():
    assert hash_embedding("clay pottery kiln") != hash_embedding("iron bloomery smelting")


def test_hash_embedding_empty_text_is_zero_vector():
    vec = hash_embedding("", 384)
    assert len(vec) == 384
    assert all(v == 0.0 for v in vec)


def test_hash_embedding_small_dimension_skips_statistics():
    vec = hash_embedding("one two three", 8)
    assert len(vec) == 8
    assert all(v >= 0 for v in vec)
    assert math.isclose(math.sqrt(sum(v * v for v in vec)), 1.0, rel_tol=1e-9)


def test_cosine_similarity_properties():
    assert cosine_similarity([1, 0, 0], [1, 0, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)
    assert cosine_similarity([2, 4], [1, 2]) == pytest.approx(1.0)


@pytest.mark.parametrize("a,b", [([1, 2, 3], [1, 2]), ([], []), ([0, 0], [1, 1])])
def test_cosine_similarity_degenerate_inputs(a, b):
    assert cosine_similarity(a, b) == 0.0


def test_rank_by_similarity_orders_and_truncates():
    candidates = [("a", [1, 0, 0]), ("b", [0, 1, 0]), ("c", [0.9, 0.1, 0])]
    ranked = rank_by_similarity([1, 0, 0], candidates, limit=2)

    assert [item for item, _ in ranked] == ["a", "c"]
    assert ranked[0][1] >= ranked[1][1]


def test_rank_by_similarity_is_stable_on_ties():
    candidates = [("first", [1, 0]), ("second", [1, 0]), ("third", [2, 0])]
    ranked = rank_by_similarity([1, 0], candidates, limit=3)
    assert [item for item, _ in ranked] == ["first", "second", "third"]


def test_rank_by_similarity_non_positive_limit():
    assert rank_by_similarity([1, 0], [("a", [1, 0])], limit=0) == []


def test_ollama_embed_success():
    session = FakeSession(posts=[FakeResponse(payload={"embedding": [0.1, 0.2, 0.3]})])
    client = OllamaClient(base_url="http://ollama:11434/", embedding_model="nomic-embed-text", session=session)

    assert client.embed("hello") == [0.1, 0.2, 0.3]
    call = session.post_calls[0]
    assert call["url"] == "http://ollama:11434/api/embeddings"
    assert call["json"] == {"model": "nomic-embed-text", "prompt": "hello"}


@pytest.mark.parametrize("payload", [{"embedding": []}, {"embedding": ["x"]}, {"other": 1}])
def test_ollama_embed_bad_payload(payload):
    client = OllamaClient(session=FakeSession(posts=[FakeResponse(payload=payload)]))
    with pytest.raises(ParseError):
        client.embed("hello")


def test_ollama_non_2xx_is_unavailable():
    client = OllamaClient(session=FakeSession(posts=[FakeResponse(500, "boom")]))
    with pytest.raises(ProviderUnavailable):
        client.embed("hello")


def test_ollama_network_error_is_unavailable():
    client = OllamaClient(session=FakeSession(posts=[requests.ConnectionError("refused")]))
    with pytest.raises(ProviderUnavailable):
        client.generate("hello")


def test_ollama_invalid_json_is_parse_error():
    client = OllamaClient(session=FakeSession(posts=[FakeResponse(200, "not json")]))
    with pytest.raises(ParseError):
        client.generate("hello")


def test_ollama_generate_success():
    session = FakeSession(posts=[FakeResponse(payload={"response": "Use a firepit."})])
    client = OllamaClient(model="phi3:mini", session=session)

    assert client.generate("How do I cook?") == "Use a firepit."
    assert session.post_calls[0]["json"] == {"model": "phi3:mini", "prompt": "How do I cook?", "stream": False}


def test_ollama_generate_model_override():
    session = FakeSession(posts=[FakeResponse(payload={"response": "ok"})])
    OllamaClient(session=session).generate("hi", model="llama3:8b")
    assert session.post_calls[0]["json"]["model"] == "llama3:8b"


@pytest.mark.parametrize("payload", [{"error": "model not found"}, {"response": "   "}, {}])
def test_ollama_generate_errors(payload):
    client = OllamaClient(session=FakeSession(posts=[FakeResponse(payload=payload)]))
    with pytest.raises(GenerationError):
        client.generate("hello")


def test_embedder_uses_remote_when_available():
    session = FakeSession(posts=[FakeResponse(payload={"embedding": [1.0, 0.0]})])
    embedder = Embedder(client=OllamaClient(session=session), dimension=2)

    assert embedder.embed("text") == [1.0, 0.0]
    assert embedder.fallback_count == 0


def test_embedder_falls_back_to_hash():
    session = FakeSession(posts=[FakeResponse(500, "down"), FakeResponse(payload={"embedding": []})])
    embedder = Embedder(client=OllamaClient(session=session), dimension=64)

    first = embedder.embed("smithing an iron pickaxe")
    second = embedder.embed("smithing an iron pickaxe")

    assert first == hash_embedding("smithing an iron pickaxe", 64)
    assert first == second
    assert embedder.fallback_count == 2


def test_embedder_hash_only_never_calls_client():
    client = MagicMock()
    embedder = Embedder(client=client, dimension=32, use_remote=False)

    vectors = embedder.embed_many(["a b c", "d e f"])

    assert [len(v) for v in vectors] == [32, 32]
    client.embed.assert_not_called()
    assert embedder.fallback_count == 0


def test_embedder_from_config(make_config):
    cfg = make_config(embedding={"dimension": 128, "remote_embeddings": False})
    embedder = Embedder.from_config(cfg)
    assert embedder.dimension == 128
    assert [name for name, _ in embedder.strategies] == ["hash"]


def test_embedder_rejects_remote_vector_of_wrong_length():
    session = FakeSession(posts=[FakeResponse(payload={"embedding": [0.1] * 8})])
    embedder = Embedder(client=OllamaClient(session=session), dimension=16)

    vector = embedder.embed("hello world")

    assert len(vector) == 16
    assert vector == hash_embedding("hello world", 16)
    assert embedder.fallback_count == 1

"""Tests for the embedding gateway, using httpx's mock transport."""
import json

import httpx
import numpy as np
import pytest

from ruborag import config
from ruborag.embedding_client import (
    GeminiEmbeddingClient,
    OllamaEmbeddingClient,
    get_embedding_client,
)
from ruborag.errors import (
    ConfigurationError,
    EmbeddingUnavailable,
    EmptyInput,
    InvalidArgument,
    ModelError,
)


def gemini_client(handler, **kwargs):
    return GeminiEmbeddingClient(
        api_key="test-key",
        base_url="https://gemini.test/v1beta",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def gemini_ok(values):
    def handler(request):
        return httpx.Response(200, json={"embedding": {"values": values}})
    return handler


def test_gemini_request_shape():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3]}})

    client = gemini_client(handler, model="gemini-embedding-001")
    vector = client.embed("Hello embeddings!")

    assert seen["url"] == "https://gemini.test/v1beta/models/gemini-embedding-001:embedContent"
    assert seen["key"] == "test-key"
    assert seen["body"] == {
        "model": "models/gemini-embedding-001",
        "content": {"parts": [{"text": "Hello embeddings!"}]},
    }
    assert vector.dtype == np.float32
    assert np.array_equal(vector, np.array([0.1, 0.2, 0.3], dtype=np.float32))


def test_dimension_discovered_from_first_response():
    client = gemini_client(gemini_ok([0.0] * 8))
    assert client.dimension is None

    client.embed("text")

    assert client.dimension == 8


def test_dimension_change_is_model_error():
    responses = iter([[1.0, 2.0, 3.0], [1.0, 2.0]])

    def handler(request):
        return httpx.Response(200, json={"embedding": {"values": next(responses)}})

    client = gemini_client(handler)
    client.embed("first")
    with pytest.raises(ModelError):
        client.embed("second")


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_input_makes_no_request(text):
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(EmptyInput):
        gemini_client(handler).embed(text)


@pytest.mark.parametrize("status", [401, 403, 429, 500, 503])
def test_auth_rate_limit_and_server_errors_are_unavailable(status):
    def handler(request):
        return httpx.Response(status, json={"error": {"message": "nope"}})

    with pytest.raises(EmbeddingUnavailable):
        gemini_client(handler).embed("text")


def test_bad_request_is_model_error():
    def handler(request):
        return httpx.Response(
            400, json={"error": {"message": "input exceeds the token limit"}}
        )

    with pytest.raises(ModelError, match="token limit"):
        gemini_client(handler).embed("text")


def test_connection_failure_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(EmbeddingUnavailable):
        gemini_client(handler).embed("text")


def test_timeout_is_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(EmbeddingUnavailable, match="timed out"):
        gemini_client(handler, timeout=0.5).embed("text")


def test_undecodable_body_is_unavailable():
    def handler(request):
        raise httpx.DecodingError("bad gzip stream", request=request)

    with pytest.raises(EmbeddingUnavailable, match="bad gzip stream"):
        gemini_client(handler).embed("text")


@pytest.mark.parametrize(
    "payload",
    [
        {"embedding": {"values": []}},
        {"embedding": {}},
        {"unexpected": True},
        {"embedding": {"values": ["a", "b"]}},
    ],
)
def test_unusable_response_is_model_error(payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    with pytest.raises(ModelError):
        gemini_client(handler).embed("text")


def test_non_json_response_is_model_error():
    def handler(request):
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(ModelError):
        gemini_client(handler).embed("text")


def test_missing_api_key_fails_at_construction(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", None)

    with pytest.raises(ConfigurationError):
        GeminiEmbeddingClient()


def test_ollama_request_shape():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": [1.0, 0.5]})

    client = OllamaEmbeddingClient(
        model="mxbai-embed-large:latest",
        base_url="http://ollama.test",
        transport=httpx.MockTransport(handler),
    )
    vector = client.embed("hello")

    assert seen["url"] == "http://ollama.test/api/embeddings"
    assert seen["body"] == {"model": "mxbai-embed-large:latest", "prompt": "hello"}
    assert vector.tolist() == [1.0, 0.5]


def test_factory_selects_provider(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", "key")

    assert isinstance(get_embedding_client("gemini"), GeminiEmbeddingClient)
    assert isinstance(get_embedding_client("OLLAMA"), OllamaEmbeddingClient)


def test_factory_rejects_unknown_provider():
    with pytest.raises(InvalidArgument):
        get_embedding_client("word2vec")

# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-13
# Description: test_embedding_client.py
# -----------------------------------------------------------------------------
import asyncio
import json

import httpx
import pytest

from config.Config import Config
from embedding.EmbeddingErrors import BatchDispatchError, ResponseShapeError
from embedding.EmbeddingResult import EmbeddingFailure, EmbeddingSuccess
from embedding.KBEmbeddingClient import KBEmbeddingClient, build_provider, clean_text
from embedding.RemoteEmbeddingProvider import RemoteEmbeddingProvider

ENDPOINT = "http://embed.test/v1/embeddings"


def _remote_client(handler, **cfg_overrides) -> KBEmbeddingClient:
    cfg = Config(provider="remote", endpoint=ENDPOINT, model="test-model", **cfg_overrides)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return KBEmbeddingClient(cfg, provider=RemoteEmbeddingProvider(cfg, client=http))


def _ok_handler(seen):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append((request, body))
        return httpx.Response(200, json={"data": [{"embedding": [float(i), 0.5]} for i, _ in enumerate(body["input"])]})
    return handler


def test_remote_provider_posts_model_and_input():
    seen = []
    client = _remote_client(_ok_handler(seen), api_key="secret")

    result = asyncio.run(client.embed_batch(["first\nline", "second"]))

    assert isinstance(result, EmbeddingSuccess)
    assert result.vectors == [[0.0, 0.5], [1.0, 0.5]]
    request, body = seen[0]
    assert str(request.url) == ENDPOINT
    assert body == {"model": "test-model", "input": ["first line", "second"]}
    assert request.headers["Authorization"] == "Bearer secret"
    assert client.calls == 1


def test_no_auth_header_without_key():
    seen = []
    client = _remote_client(_ok_handler(seen))
    asyncio.run(client.embed_batch(["x"]))
    assert "Authorization" not in seen[0][0].headers


def test_empty_batch_makes_no_call():
    seen = []
    client = _remote_client(_ok_handler(seen))
    result = asyncio.run(client.embed_batch([]))
    assert result == EmbeddingSuccess(vectors=[])
    assert seen == []
    assert client.calls == 0


def test_http_error_status_is_reported():
    client = _remote_client(lambda request: httpx.Response(503, text="model loading"))
    result = asyncio.run(client.embed_batch(["a"]))

    assert isinstance(result, EmbeddingFailure)
    assert result.kind == "http_status"
    assert result.status_code == 503
    assert result.message == "API Error 503: model loading"
    with pytest.raises(BatchDispatchError):
        result.raise_for_failure()


def test_missing_data_is_a_shape_error():
    client = _remote_client(lambda request: httpx.Response(200, json={"embeddings": []}))
    result = asyncio.run(client.embed_batch(["a"]))

    assert result.kind == "response_shape"
    with pytest.raises(ResponseShapeError):
        result.raise_for_failure()


def test_non_json_body_is_a_shape_error():
    client = _remote_client(lambda request: httpx.Response(200, text="<html>oops</html>"))
    result = asyncio.run(client.embed_batch(["a"]))
    assert result.kind == "response_shape"


def test_vector_count_mismatch_fails_the_batch():
    client = _remote_client(lambda request: httpx.Response(200, json={"data": [{"embedding": [1.0]}]}))
    result = asyncio.run(client.embed_batch(["a", "b", "c"]))

    assert result.kind == "response_shape"
    assert "expected 3 vectors, got 1" in result.message


def test_invalid_vector_fails_the_batch():
    client = _remote_client(lambda request: httpx.Response(200, json={"data": [{"embedding": ["x", "y"]}]}))
    result = asyncio.run(client.embed_batch(["a"]))
    assert result.kind == "response_shape"


def test_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = asyncio.run(_remote_client(handler).embed_batch(["a"]))
    assert result.kind == "transport"


def test_call_is_bounded_by_timeout(make_client):
    class SlowProvider:
        name = "slow"

        async def embed(self, texts):
            await asyncio.sleep(5)
            return [[1.0] for _ in texts]

        async def aclose(self):
            return None

    client = make_client(SlowProvider(), request_timeout_s=0.05)
    result = asyncio.run(client.embed_batch(["a"]))
    assert result.kind == "timeout"


def test_unexpected_provider_exception_becomes_failure(make_client):
    class BrokenProvider:
        name = "broken"

        async def embed(self, texts):
            raise KeyError("boom")

        async def aclose(self):
            return None

    result = asyncio.run(make_client(BrokenProvider()).embed_batch(["a"]))
    assert result.kind == "provider"
    assert "KeyError" in result.message


def test_embed_texts_raises(stub_provider, make_client):
    stub_provider.fail_on_call = 1
    client = make_client(stub_provider)
    with pytest.raises(BatchDispatchError) as excinfo:
        asyncio.run(client.embed_texts(["a"]))
    assert excinfo.value.status_code == 500


def test_clean_text_replaces_every_newline_style():
    assert clean_text("a\r\nb\rc\nd") == "a b c d"
    assert clean_text("no newline") == "no newline"


def test_build_provider_selects_strategy():
    assert isinstance(build_provider(Config(provider="remote")), RemoteEmbeddingProvider)
    assert build_provider(Config(provider="local")).name == "local"

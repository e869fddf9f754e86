# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-14
# Description: test_openai_provider.py
# -----------------------------------------------------------------------------
import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from config.Config import Config
from embedding.EmbeddingErrors import BatchDispatchError, ResponseShapeError
from embedding.OpenAIEmbeddingProvider import OpenAIEmbeddingProvider

REQUEST = httpx.Request("POST", "https://api.openai.test/v1/embeddings")


class FakeEmbeddings:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


class FakeOpenAI:
    def __init__(self, **kw):
        self.embeddings = FakeEmbeddings(**kw)
        self.closed = False

    async def close(self):
        self.closed = True


def _provider(**kw):
    cfg = Config(provider="openai", model="text-embedding-3-small", api_key="sk-test")
    fake = FakeOpenAI(**kw)
    return OpenAIEmbeddingProvider(cfg, client=fake), fake


def _item(index, vector):
    return SimpleNamespace(index=index, embedding=vector)


def test_vectors_follow_reported_index():
    response = SimpleNamespace(data=[_item(1, [0.0, 1.0]), _item(0, [1.0, 0.0])])
    provider, fake = _provider(response=response)

    vectors = asyncio.run(provider.embed(["first", "second"]))

    assert vectors == [[1.0, 0.0], [0.0, 1.0]]
    assert fake.embeddings.kwargs == {"model": "text-embedding-3-small", "input": ["first", "second"]}


def test_missing_embedding_is_shape_error():
    provider, _ = _provider(response=SimpleNamespace(data=[_item(0, None)]))
    with pytest.raises(ResponseShapeError):
        asyncio.run(provider.embed(["x"]))


@pytest.mark.parametrize(
    "error, kind",
    [
        (openai.APITimeoutError(request=REQUEST), "timeout"),
        (openai.APIConnectionError(request=REQUEST), "transport"),
        (
            openai.APIStatusError("Rate limit reached", response=httpx.Response(429, request=REQUEST), body=None),
            "http_status",
        ),
    ],
)
def test_sdk_errors_are_mapped(error, kind):
    provider, _ = _provider(error=error)
    with pytest.raises(BatchDispatchError) as excinfo:
        asyncio.run(provider.embed(["x"]))
    assert excinfo.value.kind == kind
    if kind == "http_status":
        assert excinfo.value.status_code == 429
        assert excinfo.value.message.startswith("API Error 429")


def test_aclose_closes_sdk_client():
    provider, fake = _provider(response=SimpleNamespace(data=[]))
    asyncio.run(provider.aclose())
    assert fake.closed

# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2025-11-12
# Description: conftest.py
# -----------------------------------------------------------------------------

import sys
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

# add project root to sys.path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config.Config import Config  # noqa: E402
from embedding.EmbeddingErrors import BatchDispatchError  # noqa: E402
from embedding.KBEmbeddingClient import KBEmbeddingClient  # noqa: E402


class StubProvider:
    """
    In-memory provider. Vectors depend only on the text, so two runs over the
    same input produce identical output.
    """

    name = "stub"

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.fail_on_call: Optional[int] = None
        self.closed = False

    @staticmethod
    def vector_for(text: str) -> List[float]:
        return [float(len(text)), float(sum(map(ord, text)) % 97), 1.0]

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise BatchDispatchError("http_status", "API Error 500: upstream exploded", status_code=500)
        return [self.vector_for(t) for t in texts]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def make_client():
    def _make(embedding_provider, **cfg_overrides) -> KBEmbeddingClient:
        cfg = Config(**cfg_overrides)
        return KBEmbeddingClient(cfg, provider=embedding_provider)
    return _make


@pytest.fixture
def stub_client(stub_provider, make_client) -> KBEmbeddingClient:
    return make_client(stub_provider, batch_size=8)

# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-05
# Description: OpenAIEmbeddingProvider
# -----------------------------------------------------------------------------
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from config.Config import Config
from embedding.EmbeddingErrors import BatchDispatchError, ResponseShapeError
from utility.logging_utils import get_class_logger


class OpenAIEmbeddingProvider:
    """
    Embeddings through the OpenAI SDK (api.openai.com, or any base_url that
    speaks the same API). Same contract as RemoteEmbeddingProvider: one call
    per batch, no retries at this layer.
    """

    name = "openai"

    def __init__(
        self,
        cfg: Config,
        *,
        client: Optional[AsyncOpenAI] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.model = cfg.model
        self.logger = logger or get_class_logger(self.__class__)

        # SDK retries are disabled: retry policy belongs to the caller
        self.client = client or AsyncOpenAI(
            api_key=cfg.api_key or None,
            base_url=cfg.openai_base_url or None,
            timeout=cfg.request_timeout_s,
            max_retries=0,
        )
        self.logger.info("OpenAI embedder initialised model='%s' base_url='%s'", self.model, cfg.openai_base_url or "default")

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        try:
            resp = await self.client.embeddings.create(model=self.model, input=list(texts))
        except openai.APITimeoutError as e:
            raise BatchDispatchError("timeout", f"Embedding request timed out: {e}") from e
        except openai.APIStatusError as e:
            raise BatchDispatchError("http_status", f"API Error {e.status_code}: {e.message}", status_code=e.status_code) from e
        except openai.APIConnectionError as e:
            raise BatchDispatchError("transport", f"Embedding request failed: {e}") from e

        data = getattr(resp, "data", None)
        if not isinstance(data, list):
            raise ResponseShapeError("Unexpected response format: 'data' must be a list")

        # The API reports each item's position; do not rely on list order
        ordered = sorted(data, key=lambda d: getattr(d, "index", 0))
        vectors: List[List[float]] = []
        for d in ordered:
            embedding = getattr(d, "embedding", None)
            if not isinstance(embedding, list):
                raise ResponseShapeError(f"Unexpected response format: item {getattr(d, 'index', '?')} has no embedding list")
            vectors.append(embedding)
        return vectors

    async def aclose(self) -> None:
        await self.client.close()

    def describe(self) -> Dict[str, Any]:
        return {"provider": self.name, "model": self.model, "base_url": self.cfg.openai_base_url}

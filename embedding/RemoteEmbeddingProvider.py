# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: RemoteEmbeddingProvider
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx

from config.Config import Config
from embedding.EmbeddingErrors import BatchDispatchError, ResponseShapeError
from utility.logging_utils import get_class_logger

_BODY_EXCERPT_CHARS = 500


class RemoteEmbeddingProvider:
    """
    OpenAI-compatible HTTP embeddings endpoint (llama.cpp, Ollama, vLLM, TEI, ...).

    One POST per batch:
        {"model": <model>, "input": [text, ...]}
    Expected response:
        {"data": [{"embedding": [...]}, ...]}
    """

    name = "remote"

    def __init__(
        self,
        cfg: Config,
        *,
        client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.endpoint = cfg.endpoint
        self.model = cfg.model
        self.logger = logger or get_class_logger(self.__class__)

        headers = {"Content-Type": "application/json"}
        if cfg.api_key:
            headers["Authorization"] = f"Bearer {cfg.api_key}"
        self._headers = headers

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=cfg.request_timeout_s)

        self.logger.info("Remote embedder initialised endpoint='%s' model='%s'", self.endpoint, self.model)

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        payload = {"model": self.model, "input": list(texts)}
        start = time.time()

        try:
            resp = await self.client.post(self.endpoint, json=payload, headers=self._headers)
        except httpx.TimeoutException as e:
            raise BatchDispatchError("timeout", f"Embedding request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise BatchDispatchError("transport", f"Embedding request failed: {e}") from e

        elapsed = (time.time() - start) * 1000.0

        if not resp.is_success:
            body = resp.text[:_BODY_EXCERPT_CHARS]
            message = f"API Error {resp.status_code}" + (f": {body}" if body else "")
            raise BatchDispatchError("http_status", message, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ResponseShapeError(f"Embedding response is not JSON: {e}") from e

        vectors = self._vectors_from_response(data)
        self.logger.debug("Embedded %d text(s) in %.1f ms", len(vectors), elapsed)
        return vectors

    @staticmethod
    def _vectors_from_response(data: Any) -> List[List[float]]:
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ResponseShapeError("Unexpected response format: 'data' must be a list")

        vectors: List[List[float]] = []
        for i, item in enumerate(items):
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(embedding, list):
                raise ResponseShapeError(f"Unexpected response format: data[{i}] has no 'embedding' list")
            vectors.append(embedding)
        return vectors

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def describe(self) -> Dict[str, Any]:
        return {"provider": self.name, "endpoint": self.endpoint, "model": self.model}

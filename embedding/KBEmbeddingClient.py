# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-05
# Description: KBEmbeddingClient
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import logging
import numbers
import re
import time
from typing import List, Optional, Sequence

from config.Config import Config
from embedding.EmbeddingErrors import BatchDispatchError
from embedding.EmbeddingResult import EmbeddingFailure, EmbeddingResult, EmbeddingSuccess
from embedding.KBEmbeddingProvider import KBEmbeddingProvider
from utility.logging_utils import get_class_logger

_NEWLINES = re.compile(r"\r\n|\r|\n")


def build_provider(cfg: Config) -> KBEmbeddingProvider:
    """Pick the provider strategy named by ``cfg.provider``."""
    if cfg.provider == "remote":
        from embedding.RemoteEmbeddingProvider import RemoteEmbeddingProvider
        return RemoteEmbeddingProvider(cfg)
    if cfg.provider == "local":
        from embedding.LocalEmbeddingProvider import LocalEmbeddingProvider
        return LocalEmbeddingProvider(cfg)
    if cfg.provider == "openai":
        from embedding.OpenAIEmbeddingProvider import OpenAIEmbeddingProvider
        return OpenAIEmbeddingProvider(cfg)
    raise ValueError(f"Unknown embedding provider: {cfg.provider!r}")


def clean_text(text: str) -> str:
    # Providers are line-oriented
    return _NEWLINES.sub(" ", text)


def _is_vector(value: object) -> bool:
    if not isinstance(value, list) or not value:
        return False
    return all(isinstance(x, numbers.Real) and not isinstance(x, bool) for x in value)


class KBEmbeddingClient:
    """
    Wraps one provider behind ``embed_batch(texts) -> EmbeddingSuccess | EmbeddingFailure``.

    - newlines in each text are replaced with a single space
    - the provider call is bounded by ``request_timeout_s``
    - returned vectors are checked: same count as texts, each a non-empty list of numbers
    - no retries; calling again with the same texts is safe
    """

    def __init__(
        self,
        cfg: Config,
        *,
        provider: Optional[KBEmbeddingProvider] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.provider = provider or build_provider(cfg)
        self.timeout_s = cfg.request_timeout_s
        self.logger = logger or get_class_logger(self.__class__)
        self.calls = 0

        self.logger.info(
            "Embedding client initialised provider='%s' batch_size=%d timeout=%.1fs",
            getattr(self.provider, "name", type(self.provider).__name__),
            cfg.batch_size,
            self.timeout_s,
        )

    async def embed_batch(self, texts: Sequence[str]) -> EmbeddingResult:
        if not texts:
            return EmbeddingSuccess(vectors=[])

        clean = [clean_text(t) for t in texts]
        self.calls += 1
        start = time.time()

        try:
            vectors = await asyncio.wait_for(self.provider.embed(clean), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            return self._failure(EmbeddingFailure(kind="timeout", message=f"Embedding call timed out after {self.timeout_s:.1f}s"))
        except BatchDispatchError as e:
            return self._failure(EmbeddingFailure.from_error(e))
        except Exception as e:
            self.logger.exception("Provider raised an unexpected error")
            return self._failure(EmbeddingFailure(kind="provider", message=f"{type(e).__name__}: {e}"))

        if not isinstance(vectors, list) or len(vectors) != len(clean):
            got = len(vectors) if isinstance(vectors, list) else type(vectors).__name__
            return self._failure(
                EmbeddingFailure(
                    kind="response_shape",
                    message=f"Embedding service returned an unexpected payload: expected {len(clean)} vectors, got {got}",
                )
            )

        for i, vec in enumerate(vectors):
            if not _is_vector(vec):
                return self._failure(
                    EmbeddingFailure(kind="response_shape", message=f"Embedding service returned an invalid vector at index {i}")
                )

        elapsed = (time.time() - start) * 1000.0
        self.logger.debug("embed_batch: %d text(s) -> dim=%d in %.1f ms", len(clean), len(vectors[0]), elapsed)
        return EmbeddingSuccess(vectors=vectors)

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Raising variant of ``embed_batch``."""
        return (await self.embed_batch(texts)).raise_for_failure()

    def _failure(self, failure: EmbeddingFailure) -> EmbeddingFailure:
        self.logger.error("Embedding batch failed (%s): %s", failure.kind, failure.message)
        return failure

    async def aclose(self) -> None:
        await self.provider.aclose()

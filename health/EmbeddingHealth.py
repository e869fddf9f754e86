# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-10
# Description: EmbeddingHealth
# -----------------------------------------------------------------------------
import asyncio
import time
import logging
from dataclasses import dataclass
from typing import Optional

from config.Config import Config
from embedding.KBEmbeddingClient import KBEmbeddingClient
from utility.logging_utils import get_logger


@dataclass(frozen=True)
class EmbeddingHealthResult:
    ok: bool
    provider: str
    dimension: Optional[int] = None
    elapsed_ms: Optional[float] = None
    error: Optional[str] = None


class EmbeddingHealth:
    """
    Smoke test for the configured embedding provider.

    Verifies:
      - The embedding call completes successfully
      - The response contains a valid vector
      - The vector dimension matches the expected dimension (if provided)
    """

    PROBE_TEXT = "Embedding provider healthcheck"

    def __init__(
        self,
        client: KBEmbeddingClient,
        expected_dim: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.expected_dim = expected_dim
        self.logger = logger or get_logger(__name__)
        self.provider_name = getattr(client.provider, "name", type(client.provider).__name__)

        self.logger.info("Initialising EmbeddingHealth for provider: %s", self.provider_name)

    async def run(self) -> EmbeddingHealthResult:
        """
        Run the embedding smoke test.

        Returns:
            EmbeddingHealthResult with ok=True if the call succeeds and (optionally) the dimension matches.
        """
        self.logger.info("Running embedding healthcheck using provider: %s", self.provider_name)

        start = time.time()
        result = await self.client.embed_batch([self.PROBE_TEXT])
        elapsed_ms = (time.time() - start) * 1000.0

        if not result.ok:
            self.logger.error("Embedding healthcheck FAILED: %s", result.message)
            return EmbeddingHealthResult(ok=False, provider=self.provider_name, elapsed_ms=elapsed_ms, error=result.message)

        dim = len(result.vectors[0])
        self.logger.info("Embedding call succeeded in %.1f ms. Returned dimension: %d", elapsed_ms, dim)

        # Optional dimension validation
        if self.expected_dim is not None and dim != self.expected_dim:
            message = f"Dimension mismatch: expected {self.expected_dim}, got {dim}"
            self.logger.warning(message)
            return EmbeddingHealthResult(ok=False, provider=self.provider_name, dimension=dim, elapsed_ms=elapsed_ms, error=message)

        self.logger.info("Embedding healthcheck PASSED.")
        return EmbeddingHealthResult(ok=True, provider=self.provider_name, dimension=dim, elapsed_ms=elapsed_ms)


if __name__ == "__main__":
    cfg = Config.from_env()

    async def _main() -> bool:
        client = KBEmbeddingClient(cfg)
        try:
            return (await EmbeddingHealth(client).run()).ok
        finally:
            await client.aclose()

    ok = asyncio.run(_main())
    get_logger(__name__).info("EmbeddingHealth result: %s", "PASS" if ok else "FAIL")

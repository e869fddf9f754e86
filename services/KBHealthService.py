# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-10
# Description: KBHealthService.py
# -----------------------------------------------------------------------------
from dataclasses import dataclass

from api.schemas.health import DeepHealthResponse, ProviderCheck
from health.EmbeddingHealth import EmbeddingHealth


@dataclass
class KBHealthService:
    """
    Wraps EmbeddingHealth, which probes the configured
    embedding provider. Returns DeepHealthResponse for API layer
    """

    embedding_health: EmbeddingHealth

    async def deep_health(self) -> DeepHealthResponse:
        result = await self.embedding_health.run()

        check = ProviderCheck(
            provider=result.provider,
            ok=result.ok,
            dimension=result.dimension,
            elapsed_ms=result.elapsed_ms,
            error=result.error,
        )

        return DeepHealthResponse(
            status="ok" if result.ok else "error",
            results={"embedding_health": result.ok},
            embedding=check,
        )

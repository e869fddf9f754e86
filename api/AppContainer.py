# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Description: AppContainer.py
# -----------------------------------------------------------------------------
from pathlib import Path

import settings
from config.Config import Config
from embedding.KBEmbeddingClient import KBEmbeddingClient
from health.EmbeddingHealth import EmbeddingHealth
from services.KBEmbedJobService import KBEmbedJobService
from services.KBHealthService import KBHealthService
from utility.logging_utils import get_logger


class AppContainer:
    """
    Owns heavy object instantiation and application wiring.
    Singleton instances are provided via FastAPI dependencies.
    """

    def __init__(self) -> None:
        self.logger = get_logger(__name__)

        # Configuration
        self.cfg = Config.from_env()
        self.logger.info("Config: %s", self.cfg.summary())

        # Core infrastructure: one provider/client shared by every run
        self.embedding_client = KBEmbeddingClient(cfg=self.cfg)

        # Smoke tests / health
        self.embedding_health = EmbeddingHealth(self.embedding_client)
        self.health_service = KBHealthService(embedding_health=self.embedding_health)

        # Return a singleton KBEmbedJobService instance
        self.job_service = KBEmbedJobService(
            client=self.embedding_client,
            batch_size=self.cfg.batch_size,
            output_dir=Path(settings.WORK_DIR) / "outputs",
        )

    async def aclose(self) -> None:
        self.job_service.cancel_all()
        await self.embedding_client.aclose()


# Singleton container instance
app_container = AppContainer()

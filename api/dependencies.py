# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Description: dependencies.py
# -----------------------------------------------------------------------------
from api.AppContainer import app_container
from services.KBEmbedJobService import KBEmbedJobService
from services.KBHealthService import KBHealthService


def get_health_service() -> KBHealthService:
    # use the singleton service from the container
    return app_container.health_service


def get_job_service() -> KBEmbedJobService:
    # use the singleton service from the container
    return app_container.job_service

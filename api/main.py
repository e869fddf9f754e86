# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Description: main.py
# -----------------------------------------------------------------------------
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.AppContainer import app_container
from api.routers import health, jobs

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app_container.aclose()


app = FastAPI(title="KB Embedder API", lifespan=lifespan)
app.include_router(health.router)
app.include_router(jobs.router)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=os.getenv("KB_API_HOST", "127.0.0.1"),
        port=int(os.getenv("KB_API_PORT", "8000")),
        log_level="info",
        reload=False,
    )

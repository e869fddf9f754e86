# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-10
# Description: health.py
# -----------------------------------------------------------------------------
from typing import Dict, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    message: str


class ProviderCheck(BaseModel):
    provider: str
    ok: bool
    dimension: Optional[int] = None
    elapsed_ms: Optional[float] = None
    error: Optional[str] = None


class DeepHealthResponse(BaseModel):
    status: str
    results: Dict[str, bool]
    embedding: ProviderCheck

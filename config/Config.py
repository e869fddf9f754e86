# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Description: Config
# -----------------------------------------------------------------------------

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict

from dotenv import load_dotenv, find_dotenv

# Load .env once globally
load_dotenv(find_dotenv(usecwd=True), override=True)

PROVIDERS = ("remote", "local", "openai")

DEFAULT_ENDPOINT = "http://127.0.0.1:9989/v1/embeddings"
DEFAULT_MODEL = "Qwen3-Embedding-4B-GGUF"
DEFAULT_LOCAL_MODEL_ID = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_BATCH_SIZE = 8
DEFAULT_TIMEOUT_S = 120.0


@dataclass(frozen=True)
class Config:
    # Provider selection: remote (OpenAI-compatible HTTP), local (in-process), openai (SDK)
    provider: str = "remote"

    # Remote / OpenAI-compatible endpoint
    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    api_key: str = ""
    openai_base_url: str = ""

    # In-process model
    local_model_id: str = DEFAULT_LOCAL_MODEL_ID

    # Pipeline
    batch_size: int = DEFAULT_BATCH_SIZE
    request_timeout_s: float = DEFAULT_TIMEOUT_S

    # ---- Single source of truth: field_name -> ENV VAR NAME ----
    ENV_VARS = {
        "provider": "EMBEDDING_PROVIDER",
        "endpoint": "EMBEDDING_API_URL",
        "model": "EMBEDDING_MODEL",
        "api_key": "EMBEDDING_API_KEY",
        "openai_base_url": "OPENAI_BASE_URL",
        "local_model_id": "EMBEDDING_LOCAL_MODEL_ID",
        "batch_size": "EMBEDDING_BATCH_SIZE",
        "request_timeout_s": "EMBEDDING_TIMEOUT_S",
    }

    @staticmethod
    def from_env() -> "Config":
        """Build Config object from environment variables; unset vars keep defaults."""
        kwargs: Dict[str, Any] = {}
        for f in fields(Config):
            env_name = Config.ENV_VARS[f.name]
            raw = (os.getenv(env_name) or "").strip()
            if raw == "":
                continue
            kwargs[f.name] = Config._coerce(f.name, env_name, raw)
        return Config(**kwargs)

    @staticmethod
    def _coerce(field_name: str, env_name: str, raw: str) -> Any:
        if field_name == "batch_size":
            try:
                return int(raw)
            except ValueError as e:
                raise ValueError(f"Env var {env_name} must be an int, got {raw!r}") from e
        if field_name == "request_timeout_s":
            try:
                return float(raw)
            except ValueError as e:
                raise ValueError(f"Env var {env_name} must be a float, got {raw!r}") from e
        if field_name == "provider":
            return raw.lower()
        return raw

    def __post_init__(self):
        """
        Fail fast on a configuration the pipeline cannot run with.
        Only the fields the selected provider actually needs are required.
        """
        if self.provider not in PROVIDERS:
            raise ValueError(
                f"Unknown embedding provider {self.provider!r} "
                f"({self.ENV_VARS['provider']}); expected one of {list(PROVIDERS)}"
            )
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.request_timeout_s <= 0:
            raise ValueError(f"request_timeout_s must be > 0, got {self.request_timeout_s}")

        missing_fields = []
        if self.provider == "remote" and not self.endpoint:
            missing_fields.append("endpoint")
        if self.provider in ("remote", "openai") and not self.model:
            missing_fields.append("model")
        if self.provider == "local" and not self.local_model_id:
            missing_fields.append("local_model_id")

        if missing_fields:
            missing_env_vars = [self.ENV_VARS[f] for f in missing_fields]
            raise ValueError(f"Missing required environment variables: {missing_env_vars}")

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with non-None overrides applied (CLI flags, API params)."""
        clean = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **clean) if clean else self

    def summary(self) -> dict:
        """Return a safe, non-sensitive summary for logging."""
        return {
            "provider": self.provider,
            "endpoint": self.endpoint,
            "model": self.model,
            "openai_base_url": self.openai_base_url,
            "local_model_id": self.local_model_id,
            "batch_size": self.batch_size,
            "request_timeout_s": self.request_timeout_s,
            "api_key_set": bool(self.api_key),
        }

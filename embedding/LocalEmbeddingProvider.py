# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-05
# Description: LocalEmbeddingProvider
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from config.Config import Config
from embedding.EmbeddingErrors import BatchDispatchError
from utility.logging_utils import get_class_logger, get_logger

_WHITESPACE = re.compile(r"\s+")

# Process-wide: one loaded model per model id, kept until exit
_MODEL_CACHE: Dict[str, "LoadedModel"] = {}
_MODEL_CACHE_LOCK = threading.Lock()

_log = get_logger(__name__)


@dataclass
class LoadedModel:
    model_id: str
    tokenizer: Any
    model: Any
    device: str
    max_length: int = 512
    # Shared model; forward passes are serialised per model
    lock: threading.Lock = field(default_factory=threading.Lock)

    def token_embeddings(self, text: str):
        """Run the model on one text; returns (last_hidden_state[L, H], attention_mask[L]) as numpy."""
        import torch  # type: ignore

        with self.lock, torch.no_grad():
            enc = self.tokenizer(
                text,
                padding=False,
                truncation=True,
                max_length=self.max_length,
                return_tensors="pt",
            )
            enc = {k: v.to(self.device) for k, v in enc.items()}
            out = self.model(**enc)
            hidden = out.last_hidden_state[0].detach().cpu().float().numpy()
            attn = enc.get("attention_mask")
            mask = attn[0].detach().cpu().numpy() if attn is not None else np.ones(hidden.shape[0])
        return hidden, mask


def _load_transformers_model(model_id: str) -> LoadedModel:
    try:
        import torch  # type: ignore
        from transformers import AutoModel, AutoTokenizer  # type: ignore
    except ImportError as exc:
        raise RuntimeError(
            "transformers and torch are required for the local provider: pip install '.[local]'"
        ) from exc

    start = time.time()
    tokenizer = AutoTokenizer.from_pretrained(model_id)
    model = AutoModel.from_pretrained(model_id)
    device = "cuda" if torch.cuda.is_available() else "cpu"
    model.to(device)
    model.eval()

    max_length = getattr(tokenizer, "model_max_length", 512) or 512
    # Some tokenizers report a huge sentinel when unset
    max_length = min(int(max_length), 8192)

    _log.info("Loaded local model '%s' on %s in %.1f s", model_id, device, time.time() - start)
    return LoadedModel(model_id=model_id, tokenizer=tokenizer, model=model, device=device, max_length=max_length)


def get_cached_model(model_id: str, loader: Callable[[str], LoadedModel] = _load_transformers_model) -> LoadedModel:
    """Load ``model_id`` once per process; concurrent callers wait for the first load."""
    cached = _MODEL_CACHE.get(model_id)
    if cached is not None:
        return cached
    with _MODEL_CACHE_LOCK:
        cached = _MODEL_CACHE.get(model_id)
        if cached is None:
            cached = loader(model_id)
            _MODEL_CACHE[model_id] = cached
        return cached


def clear_model_cache() -> None:
    with _MODEL_CACHE_LOCK:
        _MODEL_CACHE.clear()


def mean_pool_normalize(hidden: np.ndarray, mask: np.ndarray) -> List[float]:
    """Attention-masked mean over tokens, then L2 normalisation."""
    hidden = np.asarray(hidden, dtype=np.float32)
    weights = np.asarray(mask, dtype=np.float32).reshape(-1, 1)
    summed = (hidden * weights).sum(axis=0)
    denom = max(float(weights.sum()), 1e-6)
    pooled = summed / denom
    norm = float(np.linalg.norm(pooled))
    pooled = pooled / max(norm, 1e-12)
    return [float(x) for x in pooled.tolist()]


class LocalEmbeddingProvider:
    """
    In-process embedding model (HuggingFace transformers).

    Texts are embedded one at a time, not batched at the model level. Any single
    text failing fails the whole call, same all-or-nothing contract as the
    remote provider.
    """

    name = "local"

    def __init__(
        self,
        cfg: Config,
        *,
        model_loader: Optional[Callable[[str], LoadedModel]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self.model_id = cfg.local_model_id
        self._model_loader = model_loader or _load_transformers_model
        self.logger = logger or get_class_logger(self.__class__)
        self.logger.info("Local embedder configured model_id='%s'", self.model_id)

    def _embed_sync(self, texts: Sequence[str]) -> List[List[float]]:
        loaded = get_cached_model(self.model_id, self._model_loader)
        vectors: List[List[float]] = []
        for i, text in enumerate(texts):
            clean = _WHITESPACE.sub(" ", text).strip()
            try:
                hidden, mask = loaded.token_embeddings(clean)
            except Exception as e:
                raise BatchDispatchError("provider", f"Local model failed on text {i} of {len(texts)}: {e}") from e
            vectors.append(mean_pool_normalize(hidden, mask))
        return vectors

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._embed_sync, list(texts))
        except BatchDispatchError:
            raise
        except Exception as e:
            # Model load failures (missing weights, missing extras) land here
            raise BatchDispatchError("provider", f"Local model '{self.model_id}' unavailable: {e}") from e

    async def aclose(self) -> None:
        # Model stays resident for the process lifetime
        return None

    def describe(self) -> Dict[str, Any]:
        return {"provider": self.name, "model": self.model_id}

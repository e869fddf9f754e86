# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: EmbeddingResult
# -----------------------------------------------------------------------------
from dataclasses import dataclass
from typing import List, Optional, Union

from embedding.EmbeddingErrors import BatchDispatchError, FailureKind, ResponseShapeError


@dataclass(frozen=True)
class EmbeddingSuccess:
    """Vectors in the same order as the submitted texts."""
    vectors: List[List[float]]

    ok = True

    def raise_for_failure(self) -> List[List[float]]:
        return self.vectors


@dataclass(frozen=True)
class EmbeddingFailure:
    kind: FailureKind
    message: str
    status_code: Optional[int] = None

    ok = False

    def raise_for_failure(self) -> List[List[float]]:
        if self.kind == "response_shape":
            raise ResponseShapeError(self.message)
        raise BatchDispatchError(self.kind, self.message, status_code=self.status_code)

    @classmethod
    def from_error(cls, err: BatchDispatchError) -> "EmbeddingFailure":
        return cls(kind=err.kind, message=err.message, status_code=err.status_code)


EmbeddingResult = Union[EmbeddingSuccess, EmbeddingFailure]

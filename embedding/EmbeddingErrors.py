# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: EmbeddingErrors
# -----------------------------------------------------------------------------
from typing import Literal, Optional

FailureKind = Literal["http_status", "transport", "response_shape", "timeout", "provider"]


class BatchDispatchError(RuntimeError):
    """A provider call for one batch failed. Fatal for the file's run; never retried here."""

    def __init__(self, kind: FailureKind, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code


class ResponseShapeError(BatchDispatchError):
    """Response arrived but is missing fields or has the wrong number of vectors."""

    def __init__(self, message: str) -> None:
        super().__init__("response_shape", message)

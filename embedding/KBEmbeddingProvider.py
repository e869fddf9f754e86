# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: KBEmbeddingProvider
# -----------------------------------------------------------------------------

from typing import List, Protocol, Sequence, runtime_checkable


@runtime_checkable
class KBEmbeddingProvider(Protocol):
    """
    Anything that turns texts into vectors, same length and order as the input.
    Implementations raise BatchDispatchError / ResponseShapeError on failure.
    """

    name: str

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        ...

    async def aclose(self) -> None:
        ...

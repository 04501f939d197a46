"""
Embedder contract.

The matching engine treats the embedding model as a black box: text in,
fixed-width vector out, plus an availability check for health reporting.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass
class EmbeddingStatus:
    """Availability snapshot for one embedding provider."""
    provider: str
    model: str
    dimensions: int
    available: bool


class Embedder(ABC):
    """Produces fixed-width, normalized vectors from text."""

    provider: str = "unknown"

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts."""

    async def embed_single(self, text: str) -> List[float]:
        vectors = await self.embed([text])
        return vectors[0]

    @abstractmethod
    def get_model(self) -> str:
        """Model identifier."""

    @abstractmethod
    def get_dimensions(self) -> int:
        """Declared output width."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the embedder can currently serve requests."""

    async def get_status(self) -> EmbeddingStatus:
        return EmbeddingStatus(
            provider=self.provider,
            model=self.get_model(),
            dimensions=self.get_dimensions(),
            available=await self.is_available(),
        )

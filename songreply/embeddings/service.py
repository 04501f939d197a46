"""
Embedding Service

Wraps a primary embedder and an optional fallback. The pipeline and the
semantic searcher only ever talk to this service.
"""

from typing import Any, Dict, List, Optional

import structlog

from ..errors import EmbeddingError
from .base import Embedder

logger = structlog.get_logger(__name__)


class EmbeddingService:
    """
    Primary/fallback embedding front door.

    The primary is tried first when it reports itself available; on any
    embedding failure the fallback is tried. If neither produces vectors an
    EmbeddingError is raised.
    """

    def __init__(self, primary: Embedder, fallback: Optional[Embedder] = None):
        self.primary = primary
        self.fallback = fallback
        self.logger = logger.bind(component="EmbeddingService")
        self.logger.info(
            "Embedding service initialized",
            primary=primary.provider,
            fallback=fallback.provider if fallback else None,
        )

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        for role, embedder in (("primary", self.primary), ("fallback", self.fallback)):
            if embedder is None:
                continue
            try:
                if not await embedder.is_available():
                    self.logger.warning("Embedder unavailable", role=role, provider=embedder.provider)
                    continue
                self.logger.debug("Using embedder", role=role, provider=embedder.provider, texts=len(texts))
                return await embedder.embed(texts)
            except EmbeddingError as e:
                self.logger.warning(
                    "Embedder failed",
                    role=role,
                    provider=embedder.provider,
                    error=str(e),
                    texts=len(texts),
                )

        raise EmbeddingError("All embedding providers failed", provider=self.primary.provider)

    async def embed_single(self, text: str) -> List[float]:
        vectors = await self.embed([text])
        return vectors[0]

    def get_active_model(self) -> str:
        return self.primary.get_model()

    def get_active_dimensions(self) -> int:
        return self.primary.get_dimensions()

    async def get_status(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {"primary": await self.primary.get_status()}
        if self.fallback is not None:
            status["fallback"] = await self.fallback.get_status()
        return status

    async def is_available(self) -> bool:
        """True when the primary embedder reports itself available."""
        return await self.primary.is_available()

"""
Local Embedder

Runs a sentence-transformers model in-process. The model is loaded lazily
on first use and encoding runs in a worker thread so the event loop is
never blocked. Requires the `local` extra.
"""

import asyncio
from typing import List, Optional

import structlog

from ..errors import EmbeddingError
from .base import Embedder

logger = structlog.get_logger(__name__)

DEFAULT_LOCAL_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class LocalEmbedder(Embedder):
    """all-MiniLM-L6-v2 by default: 384-d, mean pooled, L2-normalized."""

    provider = "local"

    def __init__(self, model: str = DEFAULT_LOCAL_MODEL, dimensions: int = 384, batch_size: int = 32):
        self.model = model
        self.dimensions = dimensions
        self.batch_size = batch_size
        self._model = None
        self._load_lock = asyncio.Lock()
        self.logger = logger.bind(component="LocalEmbedder", model=model)

    def _load(self):
        if self._model is not None:
            return
        self.logger.info("Initializing local embedder")
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise EmbeddingError(
                "LocalEmbedder requires sentence-transformers (install the 'local' extra)",
                provider=self.provider,
                cause=e,
            ) from e

        try:
            self._model = SentenceTransformer(self.model)
        except Exception as e:
            self.logger.error("Failed to initialize local embedder", error=str(e))
            raise EmbeddingError(
                f"Failed to initialize local embedder: {e}",
                provider=self.provider,
                cause=e,
            ) from e

        loaded_dim = self._model.get_sentence_embedding_dimension()
        if loaded_dim:
            self.dimensions = int(loaded_dim)
        self.logger.info("Local embedder initialized", dimensions=self.dimensions)

    def _encode(self, texts: List[str]) -> List[List[float]]:
        vectors = self._model.encode(
            texts,
            batch_size=self.batch_size,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return [vec.astype(float).tolist() for vec in vectors]

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        async with self._load_lock:
            await asyncio.to_thread(self._load)

        try:
            vectors = await asyncio.to_thread(self._encode, texts)
        except Exception as e:
            self.logger.error("Local embedding failed", error=str(e), texts=len(texts))
            raise EmbeddingError(f"Local embedding failed: {e}", provider=self.provider, cause=e) from e

        self.logger.debug("Generated local embeddings", texts=len(texts))
        return vectors

    def get_model(self) -> str:
        return self.model

    def get_dimensions(self) -> int:
        return self.dimensions

    async def is_available(self) -> bool:
        try:
            async with self._load_lock:
                await asyncio.to_thread(self._load)
            return True
        except EmbeddingError as e:
            self.logger.warning("Local embedder unavailable", error=str(e))
            return False

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def unload(self, reason: Optional[str] = None):
        """Drop the in-memory model; it is reloaded on next use."""
        self._model = None
        self.logger.info("Local embedder unloaded", reason=reason)

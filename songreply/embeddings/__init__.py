"""
Embedding providers for query and catalog text.
"""

from .base import Embedder, EmbeddingStatus
from .http_embedder import HttpEmbedder
from .local_embedder import LocalEmbedder
from .service import EmbeddingService
from .utils import cosine_distance, cosine_similarity, normalize, to_vector_literal

__all__ = [
    "Embedder",
    "EmbeddingStatus",
    "HttpEmbedder",
    "LocalEmbedder",
    "EmbeddingService",
    "cosine_similarity",
    "cosine_distance",
    "normalize",
    "to_vector_literal",
]

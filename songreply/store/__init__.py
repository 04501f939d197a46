"""
Catalog stores: contracts plus pgvector and in-memory adapters.
"""

from .base import (
    ABOUTNESS_VECTOR_COLUMN,
    EMOTIONS_VECTOR_COLUMN,
    MOMENTS_VECTOR_COLUMN,
    AboutnessRow,
    EmbeddingStats,
    NearestNeighborSearch,
    SongCatalog,
    SongRow,
    VectorSearchSession,
)
from .memory_store import InMemoryCatalog, InMemorySession
from .pgvector_store import PgVectorSession, PgVectorStore

__all__ = [
    "ABOUTNESS_VECTOR_COLUMN",
    "EMOTIONS_VECTOR_COLUMN",
    "MOMENTS_VECTOR_COLUMN",
    "AboutnessRow",
    "EmbeddingStats",
    "NearestNeighborSearch",
    "SongCatalog",
    "SongRow",
    "VectorSearchSession",
    "InMemoryCatalog",
    "InMemorySession",
    "PgVectorSession",
    "PgVectorStore",
]

"""
Store contracts.

Two read-only views of the catalog are used by the engine:

- `SongCatalog` for lexical lookups (phrase lists, popularity).
- `NearestNeighborSearch` for vector legs. Each request opens one
  `VectorSearchSession`; the query vector is prepared once per session so a
  backend can materialize it however its planner requires before any
  nearest-neighbor query runs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, Dict, List, Optional, Sequence

from ..models.catalog_models import Song

SONG_VECTOR_COLUMN = "embedding_vector"
ABOUTNESS_VECTOR_COLUMN = "aboutness_vector"
EMOTIONS_VECTOR_COLUMN = "emotions_vector"
MOMENTS_VECTOR_COLUMN = "moments_vector"

# Aboutness columns that carry an approximate-nearest-neighbor index
INDEXED_ABOUTNESS_COLUMNS = (ABOUTNESS_VECTOR_COLUMN, EMOTIONS_VECTOR_COLUMN)


@dataclass
class SongRow:
    """One metadata-leg hit: song fields plus cosine distance to the query."""
    id: str
    title: str
    artist: str
    distance: float
    tags: List[str] = field(default_factory=list)
    year: Optional[int] = None
    popularity: int = 0


@dataclass
class AboutnessRow:
    """
    One aboutness-leg hit.

    Song fields are joined in so a song found only through this leg can
    still be returned with its title and tags.
    """
    song_id: str
    distance: float
    title: str = ""
    artist: str = ""
    tags: List[str] = field(default_factory=list)
    year: Optional[int] = None
    popularity: int = 0
    aboutness_json: Optional[Dict[str, Any]] = None
    emotions_text: Optional[str] = None
    emotions_confidence: Optional[str] = None
    moments_text: Optional[str] = None
    moments_confidence: Optional[str] = None


@dataclass
class EmbeddingStats:
    total_songs: int
    songs_with_embeddings: int
    dimensions: int
    coverage: float


class VectorSearchSession(ABC):
    """
    A request-scoped handle on the vector store.

    `prepare_query_vector` must be called before any nearest-neighbor query.
    """

    @abstractmethod
    async def prepare_query_vector(self, vector: Sequence[float]) -> None:
        """Make the query vector available to subsequent queries."""

    @abstractmethod
    async def set_search_breadth(self, breadth: int) -> None:
        """Set the index exploration factor for subsequent queries."""

    @abstractmethod
    async def count_eligible(self) -> int:
        """Songs that are not placeholders and have a metadata vector."""

    @abstractmethod
    async def nearest_songs(self, limit: int) -> List[SongRow]:
        """Nearest eligible songs on the metadata vector, closest first."""

    @abstractmethod
    async def nearest_aboutness(self, column: str, limit: int) -> List[AboutnessRow]:
        """
        Nearest aboutness records on an indexed aboutness column.

        Args:
            column: One of INDEXED_ABOUTNESS_COLUMNS
            limit: Maximum rows
        """

    @abstractmethod
    async def moment_distances(self, song_ids: Sequence[str]) -> Dict[str, float]:
        """Moment-vector distance for the given songs only; songs without one are omitted."""


class NearestNeighborSearch(ABC):
    """Factory for vector search sessions plus catalog-wide vector stats."""

    @abstractmethod
    def session(self) -> AsyncContextManager[VectorSearchSession]:
        """Open a request-scoped session."""

    @abstractmethod
    async def embedding_stats(self) -> EmbeddingStats:
        """Counts of songs and embedded songs, and the stored vector width."""


class SongCatalog(ABC):
    """Lexical and popularity views of the song catalog."""

    @abstractmethod
    async def songs_with_phrase(self, phrase: str) -> List[Song]:
        """Songs whose curated phrase list contains `phrase` (case-insensitive)."""

    @abstractmethod
    async def popular_songs(self, limit: int) -> List[Song]:
        """Non-placeholder songs by popularity, most popular first."""


def validate_aboutness_column(column: str) -> str:
    if column not in INDEXED_ABOUTNESS_COLUMNS:
        raise ValueError(f"Unsupported aboutness column: {column}")
    return column

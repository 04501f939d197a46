"""
In-memory catalog.

Brute-force cosine search with numpy over songs and aboutness records held
in process. Used for tests, fixtures and small offline catalogs.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence

import numpy as np
import structlog

from ..embeddings.utils import cosine_distance
from ..models.catalog_models import AboutnessRecord, Song
from .base import (
    ABOUTNESS_VECTOR_COLUMN,
    AboutnessRow,
    EmbeddingStats,
    NearestNeighborSearch,
    SongCatalog,
    SongRow,
    VectorSearchSession,
    validate_aboutness_column,
)

logger = structlog.get_logger(__name__)


class InMemorySession(VectorSearchSession):
    """Session over an InMemoryCatalog snapshot."""

    def __init__(self, catalog: "InMemoryCatalog"):
        self.catalog = catalog
        self.query_vector: Optional[np.ndarray] = None
        self.search_breadth: Optional[int] = None

    async def prepare_query_vector(self, vector: Sequence[float]) -> None:
        self.query_vector = np.asarray(vector, dtype=np.float32)

    async def set_search_breadth(self, breadth: int) -> None:
        # Exact search; breadth is recorded for diagnostics only
        self.search_breadth = int(breadth)

    async def count_eligible(self) -> int:
        return sum(1 for song in self.catalog.songs.values() if song.is_eligible)

    def _query(self) -> np.ndarray:
        if self.query_vector is None:
            raise RuntimeError("prepare_query_vector() must be called before nearest-neighbor queries")
        return self.query_vector

    async def nearest_songs(self, limit: int) -> List[SongRow]:
        query = self._query()
        rows = [
            SongRow(
                id=song.id,
                title=song.title,
                artist=song.artist,
                distance=cosine_distance(song.embedding, query),
                tags=list(song.tags),
                year=song.year,
                popularity=song.popularity,
            )
            for song in self.catalog.songs.values()
            if song.is_eligible
        ]
        rows.sort(key=lambda r: (r.distance, r.id))
        return rows[:limit]

    async def nearest_aboutness(self, column: str, limit: int) -> List[AboutnessRow]:
        query = self._query()
        column = validate_aboutness_column(column)

        rows = []
        for record in self.catalog.aboutness.values():
            vector = getattr(record, column)
            song = self.catalog.songs.get(record.song_id)
            if vector is None or song is None or song.is_placeholder:
                continue
            row = AboutnessRow(
                song_id=record.song_id,
                distance=cosine_distance(vector, query),
                title=song.title,
                artist=song.artist,
                tags=list(song.tags),
                year=song.year,
                popularity=song.popularity,
            )
            if column == ABOUTNESS_VECTOR_COLUMN:
                row.aboutness_json = record.aboutness_json
            else:
                row.emotions_text = record.emotions_text
                row.moments_text = record.moments_text
                row.emotions_confidence = record.emotions_confidence.value if record.emotions_confidence else None
                row.moments_confidence = record.moments_confidence.value if record.moments_confidence else None
            rows.append(row)

        rows.sort(key=lambda r: (r.distance, r.song_id))
        return rows[:limit]

    async def moment_distances(self, song_ids: Sequence[str]) -> Dict[str, float]:
        query = self._query()
        distances = {}
        for song_id in song_ids:
            record = self.catalog.aboutness.get(song_id)
            if record is not None and record.moments_vector is not None:
                distances[song_id] = cosine_distance(record.moments_vector, query)
        return distances


class InMemoryCatalog(NearestNeighborSearch, SongCatalog):
    """Songs and aboutness records keyed by song id."""

    def __init__(self, songs: Iterable[Song] = (), aboutness: Iterable[AboutnessRecord] = ()):
        self.songs: Dict[str, Song] = {}
        self.aboutness: Dict[str, AboutnessRecord] = {}
        for song in songs:
            self.add_song(song)
        for record in aboutness:
            self.add_aboutness(record)

    def add_song(self, song: Song):
        self.songs[song.id] = song

    def add_aboutness(self, record: AboutnessRecord):
        self.aboutness[record.song_id] = record

    @asynccontextmanager
    async def session(self) -> AsyncIterator[InMemorySession]:
        yield InMemorySession(self)

    async def embedding_stats(self) -> EmbeddingStats:
        embedded = [song for song in self.songs.values() if song.embedding is not None]
        total = len(self.songs)
        return EmbeddingStats(
            total_songs=total,
            songs_with_embeddings=len(embedded),
            dimensions=max((len(song.embedding) for song in embedded), default=0),
            coverage=len(embedded) / total if total else 0.0,
        )

    async def songs_with_phrase(self, phrase: str) -> List[Song]:
        needle = phrase.lower()
        return [
            song for song in self.songs.values()
            if any(p.lower() == needle for p in song.phrases)
        ]

    async def popular_songs(self, limit: int) -> List[Song]:
        songs = [song for song in self.songs.values() if not song.is_placeholder]
        songs.sort(key=lambda s: (-s.popularity, s.id))
        return songs[:limit]

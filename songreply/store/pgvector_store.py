"""
PostgreSQL + pgvector adapter.

Inlining the query vector as a literal in the statement that orders by
`<=>` can make the planner skip the HNSW index and return zero rows even
when eligible rows exist. Each session therefore writes the query vector
into a session-scoped temp table first and every leg joins against it.
All statements of one request run inside a single transaction so that
`SET LOCAL hnsw.ef_search` applies to them.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence

import structlog
from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..config.settings import database_url
from ..embeddings.utils import to_vector_literal
from ..errors import ConfigurationError
from ..models.catalog_models import Song
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

SONG_COLUMNS = "s.id, s.title, s.artist, s.tags, s.year, s.popularity"


def _song_row(row: Mapping[str, Any]) -> SongRow:
    return SongRow(
        id=str(row["id"]),
        title=row["title"] or "",
        artist=row["artist"] or "",
        distance=float(row["distance"]),
        tags=list(row["tags"] or []),
        year=row["year"],
        popularity=int(row["popularity"] or 0),
    )


def _aboutness_row(row: Mapping[str, Any]) -> AboutnessRow:
    return AboutnessRow(
        song_id=str(row["song_id"]),
        distance=float(row["distance"]),
        title=row["title"] or "",
        artist=row["artist"] or "",
        tags=list(row["tags"] or []),
        year=row["year"],
        popularity=int(row["popularity"] or 0),
        aboutness_json=row.get("aboutness_json"),
        emotions_text=row.get("emotions_text"),
        emotions_confidence=row.get("emotions_confidence"),
        moments_text=row.get("moments_text"),
        moments_confidence=row.get("moments_confidence"),
    )


def _song(row: Mapping[str, Any]) -> Song:
    return Song(
        id=str(row["id"]),
        title=row["title"],
        artist=row["artist"],
        tags=list(row["tags"] or []),
        phrases=list(row.get("phrases") or []),
        year=row["year"],
        popularity=row["popularity"],
        is_placeholder=bool(row.get("is_placeholder", False)),
    )


class PgVectorSession(VectorSearchSession):
    """Vector legs over one transaction-bound connection."""

    def __init__(self, conn: AsyncConnection, dimensions: int = 384):
        self.conn = conn
        self.dimensions = int(dimensions)
        self._prepared = False
        self.logger = logger.bind(component="PgVectorSession")

    async def prepare_query_vector(self, vector: Sequence[float]) -> None:
        await self.conn.execute(text(
            f"CREATE TEMP TABLE IF NOT EXISTS query_vec_temp (vec vector({self.dimensions}))"
        ))
        await self.conn.execute(text("DELETE FROM query_vec_temp"))
        await self.conn.execute(
            text(
                "INSERT INTO query_vec_temp (vec) "
                f"VALUES (CAST(CAST(:vec AS text) AS vector({self.dimensions})))"
            ),
            {"vec": to_vector_literal(vector)},
        )
        self._prepared = True

    async def set_search_breadth(self, breadth: int) -> None:
        # SET does not accept bind parameters
        await self.conn.execute(text(f"SET LOCAL hnsw.ef_search = {int(breadth)}"))

    async def count_eligible(self) -> int:
        result = await self.conn.execute(text(
            "SELECT COUNT(*) FROM songs "
            "WHERE embedding_vector IS NOT NULL AND is_placeholder = false"
        ))
        return int(result.scalar_one() or 0)

    def _require_prepared(self):
        if not self._prepared:
            raise RuntimeError("prepare_query_vector() must be called before nearest-neighbor queries")

    async def nearest_songs(self, limit: int) -> List[SongRow]:
        self._require_prepared()
        result = await self.conn.execute(
            text(
                f"SELECT {SONG_COLUMNS}, (s.embedding_vector <=> q.vec) AS distance "
                "FROM songs s "
                "CROSS JOIN query_vec_temp q "
                "WHERE s.embedding_vector IS NOT NULL "
                "AND s.is_placeholder = false "
                "ORDER BY s.embedding_vector <=> q.vec "
                "LIMIT :limit"
            ),
            {"limit": int(limit)},
        )
        return [_song_row(row) for row in result.mappings().all()]

    async def nearest_aboutness(self, column: str, limit: int) -> List[AboutnessRow]:
        self._require_prepared()
        column = validate_aboutness_column(column)
        if column == ABOUTNESS_VECTOR_COLUMN:
            extra = "sa.aboutness_json"
        else:
            extra = (
                "sa.emotions_text, sa.emotions_confidence, "
                "sa.moments_text, sa.moments_confidence"
            )
        result = await self.conn.execute(
            text(
                f"SELECT sa.song_id, (sa.{column} <=> q.vec) AS distance, {extra}, "
                "s.title, s.artist, s.tags, s.year, s.popularity "
                "FROM song_aboutness sa "
                "JOIN songs s ON s.id = sa.song_id "
                "CROSS JOIN query_vec_temp q "
                f"WHERE sa.{column} IS NOT NULL "
                "AND s.is_placeholder = false "
                f"ORDER BY sa.{column} <=> q.vec "
                "LIMIT :limit"
            ),
            {"limit": int(limit)},
        )
        return [_aboutness_row(row) for row in result.mappings().all()]

    async def moment_distances(self, song_ids: Sequence[str]) -> Dict[str, float]:
        self._require_prepared()
        if not song_ids:
            return {}
        # moments_vector has no index; only the candidate set is compared
        stmt = text(
            "SELECT sa.song_id, (sa.moments_vector <=> q.vec) AS distance "
            "FROM song_aboutness sa "
            "CROSS JOIN query_vec_temp q "
            "WHERE CAST(sa.song_id AS text) IN :ids "
            "AND sa.moments_vector IS NOT NULL"
        ).bindparams(bindparam("ids", expanding=True))
        result = await self.conn.execute(stmt, {"ids": [str(i) for i in song_ids]})
        return {str(row["song_id"]): float(row["distance"]) for row in result.mappings().all()}


class PgVectorStore(NearestNeighborSearch, SongCatalog):
    """
    Catalog store on PostgreSQL with the pgvector extension.

    Args:
        engine: SQLAlchemy async engine (asyncpg driver)
        dimensions: Stored vector width
    """

    def __init__(self, engine: AsyncEngine, dimensions: int = 384):
        self.engine = engine
        self.dimensions = dimensions
        self.logger = logger.bind(component="PgVectorStore")

    @classmethod
    def from_url(cls, url: str, dimensions: int = 384, **engine_kwargs) -> "PgVectorStore":
        if url.startswith("postgresql://"):
            url = "postgresql+asyncpg://" + url[len("postgresql://"):]
        engine = create_async_engine(url, pool_pre_ping=True, **engine_kwargs)
        return cls(engine, dimensions=dimensions)

    @classmethod
    def from_env(cls, dimensions: int = 384, **engine_kwargs) -> "PgVectorStore":
        """
        Build the store from DATABASE_URL (environment or .env file).

        Raises:
            ConfigurationError: If DATABASE_URL is not set
        """
        url = database_url()
        if not url:
            raise ConfigurationError("DATABASE_URL is not set")
        return cls.from_url(url, dimensions=dimensions, **engine_kwargs)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[PgVectorSession]:
        async with self.engine.connect() as conn:
            async with conn.begin():
                yield PgVectorSession(conn, self.dimensions)

    async def embedding_stats(self) -> EmbeddingStats:
        async with self.engine.connect() as conn:
            total = (await conn.execute(text("SELECT COUNT(*) FROM songs"))).scalar_one()
            row = (await conn.execute(text(
                "SELECT COUNT(*) AS count, MAX(vector_dims(embedding_vector)) AS dimensions "
                "FROM songs WHERE embedding_vector IS NOT NULL"
            ))).mappings().one()

        total = int(total or 0)
        embedded = int(row["count"] or 0)
        return EmbeddingStats(
            total_songs=total,
            songs_with_embeddings=embedded,
            dimensions=int(row["dimensions"] or 0),
            coverage=embedded / total if total else 0.0,
        )

    async def songs_with_phrase(self, phrase: str) -> List[Song]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                text(
                    f"SELECT {SONG_COLUMNS}, s.phrases, s.is_placeholder FROM songs s "
                    "WHERE EXISTS (SELECT 1 FROM unnest(s.phrases) AS p WHERE lower(p) = :phrase)"
                ),
                {"phrase": phrase.lower()},
            )
            return [_song(row) for row in result.mappings().all()]

    async def popular_songs(self, limit: int) -> List[Song]:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                text(
                    f"SELECT {SONG_COLUMNS}, s.phrases, s.is_placeholder FROM songs s "
                    "WHERE s.is_placeholder = false "
                    "ORDER BY s.popularity DESC, s.id ASC "
                    "LIMIT :limit"
                ),
                {"limit": int(limit)},
            )
            return [_song(row) for row in result.mappings().all()]

    async def dispose(self, reason: Optional[str] = None):
        await self.engine.dispose()
        self.logger.info("Database engine disposed", reason=reason)

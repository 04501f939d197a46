"""
Semantic KNN Searcher

Embeds the message and runs approximate nearest-neighbor legs against the
catalog's metadata vector and, for the aboutness-enabled strategies,
against the auxiliary aboutness vectors.

Fatal conditions (propagated, never degraded):
- the embedder returns a vector of the wrong width
- a nearest-neighbor query errors outright
- a nearest-neighbor query returns zero rows while eligible songs exist

An auxiliary leg failing is logged and the search continues without it.
"""

import time
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import structlog

from ...config.settings import AboutnessConfig, SemanticConfig
from ...embeddings.base import Embedder
from ...embeddings.service import EmbeddingService
from ...errors import EmbeddingDimensionError, UnexpectedEmptyResultError, VectorSearchError
from ...models.candidate_models import SearchContext
from ...models.match_models import AboutnessMatch, AboutnessV2Match, SemanticMatch
from ...store.base import (
    ABOUTNESS_VECTOR_COLUMN,
    EMOTIONS_VECTOR_COLUMN,
    AboutnessRow,
    EmbeddingStats,
    NearestNeighborSearch,
    SongRow,
    VectorSearchSession,
)

logger = structlog.get_logger(__name__)

QueryEmbedder = Union[Embedder, EmbeddingService]


def _preview(message: str, length: int = 80) -> str:
    return (message or "")[:length]


class SemanticSearcher:
    """
    Embedding-based nearest-neighbor search over a NearestNeighborSearch store.

    Args:
        store: Vector store adapter
        embedder: Query embedder (an Embedder or an EmbeddingService)
        config: Search settings (k, threshold, expected width)
        aboutness: Union + rerank settings for the aboutness legs
    """

    def __init__(
        self,
        store: NearestNeighborSearch,
        embedder: QueryEmbedder,
        config: Optional[SemanticConfig] = None,
        aboutness: Optional[AboutnessConfig] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.config = config or SemanticConfig()
        self.aboutness = aboutness or AboutnessConfig()
        self.logger = logger.bind(component="SemanticSearcher")

    # ------------------------------------------------------------------
    # Query embedding
    # ------------------------------------------------------------------

    async def embed_query(self, message: str) -> List[float]:
        """
        Embed `message` and validate its width.

        Raises:
            EmbeddingDimensionError: If the width differs from the catalog's
        """
        vector = await self.embedder.embed_single(message)
        expected = self.config.expected_dimensions

        if len(vector) != expected:
            self.logger.error(
                "FATAL: Embedding dimension mismatch",
                got=len(vector),
                expected=expected,
                message=_preview(message),
            )
            raise EmbeddingDimensionError(got=len(vector), expected=expected)

        if self.config.debug_matching:
            arr = np.asarray(vector, dtype=np.float32)
            self.logger.info(
                "[DEBUG_MATCHING] Embedding generated",
                message=_preview(message),
                dimensions=len(vector),
                first5=[round(float(x), 6) for x in arr[:5]],
                l2_norm=round(float(np.linalg.norm(arr)), 6),
                sum_abs=round(float(np.abs(arr).sum()), 6),
                is_all_zeros=not bool(arr.any()),
            )
        return vector

    # ------------------------------------------------------------------
    # Baseline meta-only search
    # ------------------------------------------------------------------

    async def _count_eligible(self, session: VectorSearchSession, message: str) -> int:
        """
        Eligible song count, or 0 when the count itself fails.

        A failed count leaves eligibility unknown, so the semantic signal is
        skipped rather than failing the request.
        """
        try:
            eligible = await session.count_eligible()
        except Exception as e:
            self.logger.warning(
                "Eligible song count failed - skipping semantic search",
                error=str(e),
                error_type=type(e).__name__,
                message=_preview(message),
            )
            return 0

        if self.config.debug_matching:
            self.logger.info(
                "[DEBUG_MATCHING] Eligible songs count before KNN query",
                eligible_songs=eligible,
                message=_preview(message),
            )
        return eligible

    async def _prepare(self, session: VectorSearchSession, vector: List[float], breadth: int, eligible: int):
        try:
            await session.prepare_query_vector(vector)
            await session.set_search_breadth(max(breadth, self.config.min_search_breadth))
        except Exception as e:
            self.logger.error("Query vector preparation failed", error=str(e), eligible_songs=eligible)
            raise VectorSearchError(
                f"Query vector preparation failed: {e}", eligible_count=eligible, cause=e
            ) from e

    async def _meta_leg(self, session: VectorSearchSession, limit: int, eligible: int, message: str) -> List[SongRow]:
        try:
            rows = await session.nearest_songs(limit)
        except Exception as e:
            self.logger.error(
                "KNN query FAILED",
                error=str(e),
                message=_preview(message),
                limit=limit,
                eligible_songs=eligible,
            )
            raise VectorSearchError(f"KNN query failed: {e}", eligible_count=eligible, cause=e) from e

        if not rows:
            self.logger.error(
                "KNN_QUERY_RETURNED_ZERO_UNEXPECTED: eligible songs exist but query returned 0 rows",
                message=_preview(message),
                limit=limit,
                eligible_songs=eligible,
            )
            raise UnexpectedEmptyResultError(
                f"KNN query returned 0 rows with {eligible} eligible songs",
                eligible_count=eligible,
            )
        return rows

    async def find_similar(self, message: str, k: Optional[int] = None) -> List[SemanticMatch]:
        """
        Nearest eligible songs to `message` on the metadata vector.

        Over-fetches 2k neighbors, drops those under the similarity
        threshold and returns at most k.

        Args:
            message: Raw chat message
            k: Result count (defaults to knn_size)

        Returns:
            SemanticMatch list, most similar first; empty when the catalog
            has no eligible songs
        """
        start_time = time.time()
        k = k or self.config.knn_size
        limit = k * 2

        vector = await self.embed_query(message)

        async with self.store.session() as session:
            eligible = await self._count_eligible(session, message)
            if eligible == 0:
                self.logger.warning("No eligible songs (non-placeholder with metadata vector)")
                return []

            await self._prepare(session, vector, limit, eligible)
            rows = await self._meta_leg(session, limit, eligible, message)

        threshold = self.config.similarity_threshold
        matches = []
        for row in rows:
            similarity = 1.0 - row.distance
            if similarity < threshold:
                if self.config.debug_matching:
                    self.logger.debug(
                        "[DEBUG_MATCHING] Filtered out by threshold",
                        title=row.title,
                        similarity=similarity,
                        threshold=threshold,
                    )
                continue
            matches.append(SemanticMatch(
                song_id=row.id,
                title=row.title,
                artist=row.artist,
                similarity=similarity,
                distance=row.distance,
                tags=list(row.tags),
                year=row.year,
                popularity=row.popularity,
            ))

        matches = matches[:k]
        self.logger.debug(
            "Semantic search completed",
            total_results=len(rows),
            filtered_matches=len(matches),
            top_similarity=matches[0].similarity if matches else 0.0,
            threshold=threshold,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return matches

    async def find_similar_with_context(
        self,
        message: str,
        context: SearchContext,
        k: Optional[int] = None,
    ) -> List[SemanticMatch]:
        """
        find_similar with caller filters and tag boosts.

        Over-fetches 2k, drops excluded ids, songs outside the year range and
        songs under the popularity floor, then boosts similarity by 10% per
        preferred tag the song carries (at most 50%, capped at 1.0) and
        re-sorts.
        """
        k = k or self.config.knn_size
        matches = await self.find_similar(message, k * 2)

        if context.excluded_song_ids:
            excluded = set(context.excluded_song_ids)
            matches = [m for m in matches if m.song_id not in excluded]

        if context.year_range is not None:
            low, high = context.year_range.min, context.year_range.max
            matches = [m for m in matches if m.year is not None and low <= m.year <= high]

        if context.min_popularity:
            matches = [m for m in matches if m.popularity >= context.min_popularity]

        if context.preferred_tags:
            preferred = {tag.lower() for tag in context.preferred_tags}
            for match in matches:
                overlap = sum(1 for tag in match.tags if tag.lower() in preferred)
                if overlap:
                    boost = min(overlap * 0.1, 0.5)
                    match.similarity = min(1.0, match.similarity * (1 + boost))
            matches.sort(key=lambda m: (-m.similarity, m.song_id))

        return matches[:k]

    async def batch_find_similar(self, messages: Iterable[str], k: Optional[int] = None) -> List[List[SemanticMatch]]:
        return [await self.find_similar(message, k) for message in messages]

    # ------------------------------------------------------------------
    # Union + rerank
    # ------------------------------------------------------------------

    async def _aboutness_leg(
        self,
        session: VectorSearchSession,
        column: str,
        limit: int,
        label: str,
    ) -> List[AboutnessRow]:
        try:
            return await session.nearest_aboutness(column, limit)
        except Exception as e:
            self.logger.warning(f"{label} leg failed - falling back to meta-only", error=str(e))
            return []

    @staticmethod
    def _base_fields(song_id: str, meta: Optional[SongRow], aux: Optional[AboutnessRow]) -> dict:
        if meta is not None:
            return dict(title=meta.title, artist=meta.artist, tags=list(meta.tags),
                        year=meta.year, popularity=meta.popularity)
        if aux is not None:
            return dict(title=aux.title, artist=aux.artist, tags=list(aux.tags),
                        year=aux.year, popularity=aux.popularity)
        return dict(title="", artist="", tags=[], year=None, popularity=0)

    async def find_similar_union_rerank(
        self,
        message: str,
        k: int = 10,
        config: Optional[AboutnessConfig] = None,
    ) -> List[AboutnessMatch]:
        """
        V1 union + rerank over the metadata leg and the aboutness leg.

        Each leg fetches top_n; a song found by only one leg scores 0 for
        the other. Score = meta_weight * sim_meta + aboutness_weight * sim_about.

        Returns:
            Up to 2k AboutnessMatch, best first
        """
        start_time = time.time()
        opts = config or self.aboutness
        top_n = opts.top_n

        vector = await self.embed_query(message)

        async with self.store.session() as session:
            eligible = await self._count_eligible(session, message)
            if eligible == 0:
                self.logger.warning("No eligible songs (non-placeholder with metadata vector)")
                return []

            await self._prepare(session, vector, top_n * 2, eligible)
            meta_rows = await self._meta_leg(session, top_n, eligible, message)
            about_rows = await self._aboutness_leg(session, ABOUTNESS_VECTOR_COLUMN, top_n, "Aboutness")

        meta_map = {row.id: row for row in meta_rows}
        about_map = {row.song_id: row for row in about_rows}
        union_ids = list(dict.fromkeys([row.id for row in meta_rows] + [row.song_id for row in about_rows]))

        candidates = []
        for song_id in union_ids:
            meta = meta_map.get(song_id)
            about = about_map.get(song_id)
            dist_meta = meta.distance if meta else None
            dist_about = about.distance if about else None
            sim_meta = 1.0 - dist_meta if dist_meta is not None else 0.0
            sim_about = 1.0 - dist_about if dist_about is not None else 0.0
            score = opts.meta_weight * sim_meta + opts.aboutness_weight * sim_about

            candidates.append(AboutnessMatch(
                song_id=song_id,
                similarity=score,
                distance=1.0 - score,
                dist_meta=dist_meta,
                dist_about=dist_about,
                about_score=score,
                aboutness_json=about.aboutness_json if about else None,
                **self._base_fields(song_id, meta, about),
            ))

        candidates.sort(key=lambda c: (-c.about_score, c.song_id))
        top = candidates[:k * 2]

        self.logger.debug(
            "Aboutness union+rerank completed",
            meta_candidates=len(meta_rows),
            about_candidates=len(about_rows),
            union_size=len(union_ids),
            top_k=len(top),
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return top

    async def find_similar_union_rerank_v2(
        self,
        message: str,
        k: int = 10,
        config: Optional[AboutnessConfig] = None,
    ) -> List[AboutnessV2Match]:
        """
        V2 three-signal union + rerank.

        The metadata and emotions legs are indexed nearest-neighbor queries;
        the moments vector has no index, so its distance is computed only for
        the union of those two legs. Any missing leg contributes 0.

        Returns:
            Up to 2k AboutnessV2Match, best first
        """
        start_time = time.time()
        opts = config or self.aboutness

        vector = await self.embed_query(message)

        async with self.store.session() as session:
            eligible = await self._count_eligible(session, message)
            if eligible == 0:
                self.logger.warning("No eligible songs (non-placeholder with metadata vector)")
                return []

            breadth = max(opts.top_n_meta, opts.top_n_emotion) * 2
            await self._prepare(session, vector, breadth, eligible)
            meta_rows = await self._meta_leg(session, opts.top_n_meta, eligible, message)
            emotion_rows = await self._aboutness_leg(session, EMOTIONS_VECTOR_COLUMN, opts.top_n_emotion, "V2 emotions")

            union_ids = list(dict.fromkeys([row.id for row in meta_rows] + [row.song_id for row in emotion_rows]))

            moment_map: Dict[str, float] = {}
            if union_ids:
                try:
                    moment_map = await session.moment_distances(union_ids)
                except Exception as e:
                    self.logger.warning("V2 moments similarity failed - using 0", error=str(e))

        meta_map = {row.id: row for row in meta_rows}
        emotion_map = {row.song_id: row for row in emotion_rows}

        candidates = []
        for song_id in union_ids:
            meta = meta_map.get(song_id)
            emotion = emotion_map.get(song_id)
            dist_meta = meta.distance if meta else None
            dist_emotion = emotion.distance if emotion else None
            dist_moment = moment_map.get(song_id)

            sim_meta = 1.0 - dist_meta if dist_meta is not None else 0.0
            sim_emotion = 1.0 - dist_emotion if dist_emotion is not None else 0.0
            sim_moment = 1.0 - dist_moment if dist_moment is not None else 0.0
            score = (
                opts.v2_meta_weight * sim_meta
                + opts.emotion_weight * sim_emotion
                + opts.moment_weight * sim_moment
            )

            candidates.append(AboutnessV2Match(
                song_id=song_id,
                similarity=score,
                distance=1.0 - score,
                dist_meta=dist_meta,
                dist_emotion=dist_emotion,
                dist_moment=dist_moment,
                about_score=score,
                emotions_text=emotion.emotions_text if emotion else None,
                moments_text=emotion.moments_text if emotion else None,
                emotions_confidence=emotion.emotions_confidence if emotion else None,
                moments_confidence=emotion.moments_confidence if emotion else None,
                **self._base_fields(song_id, meta, emotion),
            ))

        candidates.sort(key=lambda c: (-c.about_score, c.song_id))
        top = candidates[:k * 2]

        self.logger.debug(
            "V2 aboutness union+rerank completed",
            meta_candidates=len(meta_rows),
            emotion_candidates=len(emotion_rows),
            moment_candidates=len(moment_map),
            union_size=len(union_ids),
            top_k=len(top),
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return top

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def get_embedding_stats(self) -> EmbeddingStats:
        return await self.store.embedding_stats()

    async def is_healthy(self) -> bool:
        """Embedder available and at least one song has a metadata vector."""
        try:
            if not await self.embedder.is_available():
                return False
            stats = await self.get_embedding_stats()
            return stats.songs_with_embeddings > 0
        except Exception as e:
            self.logger.warning("Semantic search health check failed", error=str(e))
            return False

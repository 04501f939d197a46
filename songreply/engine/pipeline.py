"""
Message -> Song Candidate Pipeline

Orchestrates candidate generation for one chat message:

1. Keyword/idiom matching       \
2. Semantic ranking strategy     } concurrent fan-out
3. Mood classification           |
4. Entity extraction            /
5. Combine into one candidate per song
6. Content filtering (rooms that disallow explicit content)
7. Weighted reranking with repetition penalties

Only FatalPipelineError subclasses escape; every other stage failure
degrades that stage to an empty signal.
"""

import asyncio
import time
import uuid
from typing import Any, Dict, List, Optional

import structlog
from structlog.contextvars import bound_contextvars

from ..config.settings import PipelineConfig
from ..errors import FatalPipelineError
from ..models.candidate_models import Candidate, RankingContext, RecommendationRequest, RoomConfig
from ..models.match_models import ExtractedEntities, KeywordMatch, MoodAnalysis, SemanticMatch
from ..store.base import NearestNeighborSearch, SongCatalog
from ..utils.logging_config import log_error, log_performance
from .clarity import ClarityPrior
from .combiner import CandidateCombiner
from .content_filter import ContentFilter, WordlistContentFilter, apply_content_filter
from .matchers.entities import EntityExtractor
from .matchers.keyword import KeywordMatcher
from .matchers.mood import MoodClassifier, SentimentAnalyzer
from .matchers.semantic import QueryEmbedder, SemanticSearcher
from .reranker import SongReranker
from .strategies import RankingStrategy, create_strategy

logger = structlog.get_logger(__name__)


class SongRecommendationPipeline:
    """
    Multi-signal candidate generation and reranking.

    Args:
        catalog: Lexical/popularity view of the catalog
        store: Vector store for the semantic legs
        embedder: Query embedder
        config: Frozen pipeline configuration
        content_filter: Room policy hook (defaults to WordlistContentFilter)
        clarity_prior: Keyword clarity hook (defaults to IdiomClarityPrior)
        sentiment_analyzer: VADER-compatible analyzer (defaults to nltk's)
    """

    def __init__(
        self,
        catalog: SongCatalog,
        store: NearestNeighborSearch,
        embedder: QueryEmbedder,
        config: Optional[PipelineConfig] = None,
        content_filter: Optional[ContentFilter] = None,
        clarity_prior: Optional[ClarityPrior] = None,
        sentiment_analyzer: Optional[SentimentAnalyzer] = None,
    ):
        self.config = config or PipelineConfig()
        self.catalog = catalog

        self.keyword_matcher = KeywordMatcher(catalog, self.config.keyword, clarity_prior)
        self.semantic_searcher = SemanticSearcher(store, embedder, self.config.semantic, self.config.aboutness)
        self.strategy: RankingStrategy = create_strategy(self.semantic_searcher, self.config.aboutness)
        self.mood_classifier = MoodClassifier(self.config.mood, sentiment_analyzer)
        self.entity_extractor = EntityExtractor(self.config.entity)
        self.combiner = CandidateCombiner(self.config.mood, self.entity_extractor)
        self.content_filter = content_filter or WordlistContentFilter()
        self.reranker = SongReranker(self.config.scoring)

        self._requests = 0
        self._total_duration = 0.0

        self.logger = logger.bind(component="SongRecommendationPipeline")
        self.logger.info(
            "Pipeline initialized",
            strategy=self.strategy.kind.value,
            knn_size=self.config.semantic.knn_size,
        )

    async def recommend(self, request: RecommendationRequest) -> List[Candidate]:
        """Run the pipeline for a RecommendationRequest."""
        context = RankingContext(
            recent_song_ids=request.recent_song_ids,
            avoid_decades=request.avoid_decades,
            user_id=request.user_id,
        )
        return await self.generate_candidates(request.message, request.k, context, request.room)

    async def generate_candidates(
        self,
        message: str,
        k: Optional[int] = None,
        context: Optional[RankingContext] = None,
        room: Optional[RoomConfig] = None,
    ) -> List[Candidate]:
        """
        Ranked, deduplicated candidates for `message`.

        Args:
            message: Raw chat message
            k: Number of candidates to return (defaults to the result limit)
            context: Recently served songs and decades to avoid
            room: Room policy for the content filter

        Raises:
            FatalPipelineError: Dimension mismatch or vector search failure
        """
        context = context or RankingContext()
        start_time = time.time()

        with bound_contextvars(request_id=uuid.uuid4().hex[:12], user_id=context.user_id):
            self.logger.info(
                "Starting song candidate pipeline",
                message=(message or "")[:100],
                recent_songs=len(context.recent_song_ids),
            )

            keyword_matches, semantic_matches, mood, entities = await asyncio.gather(
                self._keyword_signal(message),
                self._semantic_signal(message),
                self._mood_signal(message),
                self._entity_signal(message),
            )

            candidates = self.combiner.combine(keyword_matches, semantic_matches, mood, entities)

            if not candidates and self.config.popular_fallback_size > 0:
                candidates = await self._popular_fallback()

            if room is not None and not room.allow_explicit:
                candidates = await apply_content_filter(candidates, self.content_filter, room)

            ranked = self.reranker.rank(candidates, k, context)

            duration = time.time() - start_time
            self._requests += 1
            self._total_duration += duration

            self.logger.info(
                "Pipeline completed",
                candidates_found=len(ranked),
                top_score=ranked[0].scores.final if ranked else 0.0,
                keyword_matches=len(keyword_matches),
                semantic_matches=len(semantic_matches),
                dominant_mood=mood.dominant,
                entities=entities.total(),
                duration_ms=int(duration * 1000),
            )
            log_performance("generate_candidates", duration, candidates=len(ranked))
            return ranked

    async def _keyword_signal(self, message: str) -> List[KeywordMatch]:
        try:
            return await self.keyword_matcher.find_matches(message)
        except Exception as e:
            self.logger.warning("Keyword matching failed - continuing without it", error=str(e))
            return []

    async def _semantic_signal(self, message: str) -> List[SemanticMatch]:
        k = self.config.semantic.knn_size
        timeout = self.config.semantic_timeout_seconds
        try:
            if timeout is None:
                return await self.strategy.rank(message, k)
            return await asyncio.wait_for(self.strategy.rank(message, k), timeout=timeout)
        except FatalPipelineError as e:
            log_error(e, {"stage": "semantic", "message": (message or "")[:100]})
            raise
        except asyncio.TimeoutError:
            self.logger.warning("Semantic search timed out - continuing without it", timeout_seconds=timeout)
            return []
        except Exception as e:
            self.logger.warning(
                "Semantic search failed - continuing without it",
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    async def _mood_signal(self, message: str) -> MoodAnalysis:
        return await self.mood_classifier.classify(message)

    async def _entity_signal(self, message: str) -> ExtractedEntities:
        return await self.entity_extractor.extract(message)

    async def _popular_fallback(self) -> List[Candidate]:
        try:
            songs = await self.catalog.popular_songs(self.config.popular_fallback_size)
        except Exception as e:
            self.logger.warning("Popular fallback failed", error=str(e))
            return []

        candidates = []
        for song in songs:
            candidate = Candidate(
                song_id=song.id,
                title=song.title,
                artist=song.artist,
                tags=list(song.tags),
                year=song.year,
                popularity=song.popularity,
            )
            candidate.add_source("popular")
            candidate.add_reason("popular fallback")
            candidates.append(candidate)

        self.logger.info("Using popularity-only fallback", candidates=len(candidates))
        return candidates

    async def get_stats(self) -> Dict[str, Any]:
        """Catalog size, mean response time and per-component health."""
        try:
            stats = await self.semantic_searcher.get_embedding_stats()
            total_songs = stats.total_songs
            database_ok = True
        except Exception as e:
            self.logger.warning("Catalog stats unavailable", error=str(e))
            total_songs = 0
            database_ok = False

        return {
            "total_songs": total_songs,
            "requests": self._requests,
            "avg_response_time_ms": (self._total_duration / self._requests * 1000) if self._requests else 0.0,
            "strategy": self.strategy.kind.value,
            "keyword_cache": self.keyword_matcher.get_cache_stats(),
            "component_health": {
                "database": database_ok,
                "embeddings": await self.semantic_searcher.is_healthy(),
                "keyword": self.keyword_matcher.is_healthy(),
                "mood": await self.mood_classifier.is_healthy(),
                "entities": self.entity_extractor.is_healthy(),
            },
        }

"""
Song Reranker

final = semantic_weight * semantic + keyword_weight * keyword
      + popularity_weight * popularity + clarity_weight * clarity
      + mood_weight * mood + entity_weight * entity
      - repetition penalty

Semantic, keyword, popularity and clarity are clamped to [0, 1] before
weighting. Mood and entity are additive boosts produced by the combiner
(boost_factor, summed category bonuses) and are weighted at their raw,
non-negative magnitude. The final score is not clamped so that popularity
stays monotone and a repeated song always scores strictly below an
otherwise identical fresh one.
"""

import time
from typing import Dict, List, Optional

import structlog

from ..config.settings import ScoringWeights
from ..models.candidate_models import Candidate, RankingContext

logger = structlog.get_logger(__name__)

DEFAULT_CLARITY = 0.5
RECENT_REPEAT_SHARE = 0.8
AVOIDED_DECADE_SHARE = 0.2


def _unit(value: Optional[float]) -> float:
    return max(0.0, min(1.0, value or 0.0))


def _boost(value: Optional[float]) -> float:
    return max(0.0, value or 0.0)


class SongReranker:
    """Weighted-sum reranker with repetition penalties."""

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()
        self.logger = logger.bind(component="SongReranker")

    def normalized_signals(self, candidate: Candidate) -> Dict[str, float]:
        clarity = candidate.scores.clarity
        return {
            "semantic": _unit(candidate.scores.semantic),
            "keyword": _unit(candidate.scores.keyword),
            "popularity": _unit(candidate.popularity / 100),
            "clarity": _unit(DEFAULT_CLARITY if clarity is None else clarity),
            "mood": _boost(candidate.scores.mood),
            "entity": _boost(candidate.scores.entity),
        }

    def repetition_penalty(self, candidate: Candidate, context: Optional[RankingContext]) -> float:
        if context is None:
            return 0.0
        penalty = 0.0
        if candidate.song_id in context.recent_song_ids:
            penalty += self.weights.repetition_penalty * RECENT_REPEAT_SHARE
        if candidate.decade is not None and candidate.decade in context.avoid_decades:
            penalty += self.weights.repetition_penalty * AVOIDED_DECADE_SHARE
        return penalty

    def score(self, candidate: Candidate, context: Optional[RankingContext] = None) -> float:
        """Compute and record the final score on `candidate`."""
        signals = self.normalized_signals(candidate)
        penalty = self.repetition_penalty(candidate, context)
        w = self.weights

        final = (
            signals["semantic"] * w.semantic_weight
            + signals["keyword"] * w.keyword_weight
            + signals["popularity"] * w.popularity_weight
            + signals["clarity"] * w.clarity_weight
            + signals["mood"] * w.mood_weight
            + signals["entity"] * w.entity_weight
            - penalty
        )

        candidate.scores.popularity = signals["popularity"]
        candidate.scores.clarity = signals["clarity"]
        candidate.scores.repetition_penalty = penalty
        candidate.scores.final = final
        if penalty > 0 and candidate.song_id in (context.recent_song_ids if context else []):
            candidate.add_reason("recently played")
        return final

    def rank(
        self,
        candidates: List[Candidate],
        k: Optional[int] = None,
        context: Optional[RankingContext] = None,
    ) -> List[Candidate]:
        """
        Score, sort and truncate.

        Ties break on popularity (descending) then song id (ascending).

        Args:
            candidates: Combined candidates
            k: Result count (defaults to the configured result limit)
            context: Recent songs and decades to avoid
        """
        if not candidates:
            return []

        start_time = time.time()
        limit = k or self.weights.result_limit

        for candidate in candidates:
            self.score(candidate, context)

        ranked = sorted(
            candidates,
            key=lambda c: (-c.scores.final, -c.popularity, c.song_id),
        )[:limit]

        self.logger.debug(
            "Candidate reranking completed",
            candidate_count=len(candidates),
            ranked_count=len(ranked),
            top_score=ranked[0].scores.final,
            score_breakdown=self.get_score_breakdown(ranked[0]),
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return ranked

    def get_score_breakdown(self, candidate: Candidate) -> Dict[str, float]:
        signals = self.normalized_signals(candidate)
        w = self.weights
        return {
            "semantic_contribution": signals["semantic"] * w.semantic_weight,
            "keyword_contribution": signals["keyword"] * w.keyword_weight,
            "popularity_contribution": signals["popularity"] * w.popularity_weight,
            "clarity_contribution": signals["clarity"] * w.clarity_weight,
            "mood_contribution": signals["mood"] * w.mood_weight,
            "entity_contribution": signals["entity"] * w.entity_weight,
            "repetition_penalty": candidate.scores.repetition_penalty or 0.0,
            "final_score": candidate.scores.final or 0.0,
        }

    def get_weights(self) -> ScoringWeights:
        return self.weights

    def update_weights(self, **changes) -> ScoringWeights:
        """Swap in a new validated weights object with `changes` applied."""
        self.weights = ScoringWeights(**{**self.weights.model_dump(), **changes})
        self.logger.info("Updated scoring weights", weights=self.weights.model_dump())
        return self.weights

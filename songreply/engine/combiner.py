"""
Candidate Combiner

Unions keyword and semantic matches into exactly one Candidate per song
id, then attaches mood and entity boosts. Nothing is pruned here.
"""

from typing import Dict, List, Optional

import structlog

from ..config.settings import MoodConfig
from ..models.candidate_models import Candidate, SignalScores
from ..models.match_models import (
    AboutnessV2Match,
    ExtractedEntities,
    KeywordMatch,
    MoodAnalysis,
    SemanticMatch,
)
from .matchers.entities import EntityExtractor

logger = structlog.get_logger(__name__)


class CandidateCombiner:
    """Merges per-signal matches into Candidates keyed by song id."""

    def __init__(self, mood_config: Optional[MoodConfig] = None, entity_extractor: Optional[EntityExtractor] = None):
        self.mood_config = mood_config or MoodConfig()
        self.entity_extractor = entity_extractor or EntityExtractor()
        self.logger = logger.bind(component="CandidateCombiner")

    def combine(
        self,
        keyword_matches: List[KeywordMatch],
        semantic_matches: List[SemanticMatch],
        mood: Optional[MoodAnalysis] = None,
        entities: Optional[ExtractedEntities] = None,
    ) -> List[Candidate]:
        candidates: Dict[str, Candidate] = {}

        for match in keyword_matches:
            existing = candidates.get(match.song_id)
            if existing is not None:
                # Matchers dedupe already; keep the stronger hit if one slips through
                if match.score > existing.scores.keyword:
                    existing.scores.keyword = match.score
                    existing.scores.clarity = match.clarity
                    existing.matched_phrase = match.matched_phrase
                continue
            candidate = Candidate(
                song_id=match.song_id,
                title=match.title,
                artist=match.artist,
                tags=list(match.tags),
                year=match.year,
                popularity=match.popularity,
                scores=SignalScores(keyword=match.score, clarity=match.clarity),
                matched_phrase=match.matched_phrase,
            )
            candidate.add_source("keyword")
            candidate.add_reason(f"keyword {match.match_type} match: '{match.matched_phrase}'")
            candidates[match.song_id] = candidate

        for match in semantic_matches:
            candidate = candidates.get(match.song_id)
            if candidate is None:
                candidate = Candidate(
                    song_id=match.song_id,
                    title=match.title,
                    artist=match.artist,
                    tags=list(match.tags),
                    year=match.year,
                    popularity=match.popularity,
                )
                candidates[match.song_id] = candidate
            candidate.scores.semantic = max(candidate.scores.semantic, match.similarity)
            candidate.add_source("semantic")
            candidate.add_reason(f"semantic similarity {match.similarity:.2f}")

            if isinstance(match, AboutnessV2Match):
                candidate.emotions_text = candidate.emotions_text or match.emotions_text
                candidate.moments_text = candidate.moments_text or match.moments_text

        for candidate in candidates.values():
            candidate.scores.mood = self.mood_score(candidate, mood)
            if candidate.scores.mood > 0:
                candidate.add_reason(f"mood: {mood.dominant}")

            candidate.scores.entity = self.entity_score(candidate, entities)
            if candidate.scores.entity > 0:
                candidate.add_reason("entity overlap with song tags")

        self.logger.debug(
            "Candidates combined",
            keyword_matches=len(keyword_matches),
            semantic_matches=len(semantic_matches),
            candidates=len(candidates),
        )
        return list(candidates.values())

    def mood_score(self, candidate: Candidate, mood: Optional[MoodAnalysis]) -> float:
        """boost_factor when the song carries a tag for the dominant mood, else 0."""
        if not self.mood_config.enabled or mood is None or mood.confidence <= 0:
            return 0.0

        synonyms = {s.lower() for s in self.mood_config.tag_synonyms.get(mood.dominant, ())}
        synonyms.add(mood.dominant.lower())
        if any(tag.lower() in synonyms for tag in candidate.tags):
            return self.mood_config.boost_factor
        return 0.0

    def entity_score(self, candidate: Candidate, entities: Optional[ExtractedEntities]) -> float:
        if entities is None or entities.is_empty():
            return 0.0
        return self.entity_extractor.calculate_entity_boost(candidate.tags, entities)

"""
Models Module

Catalog views, per-signal match records and the request/candidate schemas
shared across the matching engine.
"""

from .catalog_models import (
    AboutnessVersion,
    ConfidenceLevel,
    Song,
    AboutnessRecord,
)
from .match_models import (
    ENTITY_CATEGORIES,
    KeywordMatch,
    SemanticMatch,
    AboutnessMatch,
    AboutnessV2Match,
    MoodAnalysis,
    ExtractedEntities,
    ClarityAssessment,
)
from .candidate_models import (
    SignalScores,
    Candidate,
    YearRange,
    SearchContext,
    RoomConfig,
    RankingContext,
    RecommendationRequest,
)

__all__ = [
    "AboutnessVersion",
    "ConfidenceLevel",
    "Song",
    "AboutnessRecord",
    "ENTITY_CATEGORIES",
    "KeywordMatch",
    "SemanticMatch",
    "AboutnessMatch",
    "AboutnessV2Match",
    "MoodAnalysis",
    "ExtractedEntities",
    "ClarityAssessment",
    "SignalScores",
    "Candidate",
    "YearRange",
    "SearchContext",
    "RoomConfig",
    "RankingContext",
    "RecommendationRequest",
]

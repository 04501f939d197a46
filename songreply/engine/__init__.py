"""
Matching Engine

Signal matchers, ranking strategies, candidate combination, content
filtering, reranking and the pipeline that ties them together.
"""

from .cache import CacheStats, LRUCache
from .clarity import ClarityPrior, IdiomClarityPrior, NeutralClarityPrior
from .combiner import CandidateCombiner
from .content_filter import (
    ContentFilter,
    FilterDecision,
    Severity,
    WordlistContentFilter,
    apply_content_filter,
)
from .matchers import EntityExtractor, KeywordMatcher, MoodClassifier, SemanticSearcher
from .pipeline import SongRecommendationPipeline
from .reranker import SongReranker
from .strategies import (
    MetaOnlyStrategy,
    MetaPlusAboutnessStrategy,
    MetaPlusEmotionPlusMomentStrategy,
    RankingStrategy,
    create_strategy,
)

__all__ = [
    "CacheStats",
    "LRUCache",
    "ClarityPrior",
    "IdiomClarityPrior",
    "NeutralClarityPrior",
    "CandidateCombiner",
    "ContentFilter",
    "FilterDecision",
    "Severity",
    "WordlistContentFilter",
    "apply_content_filter",
    "EntityExtractor",
    "KeywordMatcher",
    "MoodClassifier",
    "SemanticSearcher",
    "SongRecommendationPipeline",
    "SongReranker",
    "MetaOnlyStrategy",
    "MetaPlusAboutnessStrategy",
    "MetaPlusEmotionPlusMomentStrategy",
    "RankingStrategy",
    "create_strategy",
]

"""
Signal matchers: keyword phrases, semantic search, mood and entities.
"""

from .keyword import KeywordMatcher, extract_phrases, lemmatize_phrase, normalize_message
from .semantic import QueryEmbedder, SemanticSearcher
from .mood import MoodClassifier, SentimentAnalyzer, load_vader
from .entities import EntityExtractor

__all__ = [
    "KeywordMatcher",
    "extract_phrases",
    "lemmatize_phrase",
    "normalize_message",
    "QueryEmbedder",
    "SemanticSearcher",
    "MoodClassifier",
    "SentimentAnalyzer",
    "load_vader",
    "EntityExtractor",
]

"""
Per-signal match models produced by the individual matchers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class KeywordMatch:
    """A song whose curated phrase list matched part of the message."""
    song_id: str
    title: str
    artist: str
    matched_phrase: str
    original_phrase: str
    match_type: str  # 'exact' | 'lemmatized'
    score: float
    clarity: float
    tags: List[str] = field(default_factory=list)
    year: Optional[int] = None
    popularity: int = 0


@dataclass
class SemanticMatch:
    """A nearest-neighbor hit with cosine-derived similarity in [0, 1]."""
    song_id: str
    title: str
    artist: str
    similarity: float
    distance: float
    tags: List[str] = field(default_factory=list)
    year: Optional[int] = None
    popularity: int = 0

    @property
    def decade(self) -> Optional[int]:
        return (self.year // 10) * 10 if self.year else None


@dataclass
class AboutnessMatch(SemanticMatch):
    """Union + rerank result over the metadata and single aboutness legs."""
    dist_meta: Optional[float] = None
    dist_about: Optional[float] = None
    about_score: float = 0.0
    aboutness_json: Optional[Dict[str, Any]] = None


@dataclass
class AboutnessV2Match(SemanticMatch):
    """Union + rerank result over the metadata, emotion and moment legs."""
    dist_meta: Optional[float] = None
    dist_emotion: Optional[float] = None
    dist_moment: Optional[float] = None
    about_score: float = 0.0
    emotions_text: Optional[str] = None
    moments_text: Optional[str] = None
    emotions_confidence: Optional[str] = None
    moments_confidence: Optional[str] = None


@dataclass
class MoodAnalysis:
    """Mood distribution for a message."""
    dominant: str
    confidence: float
    scores: Dict[str, float]
    sentiment_polarity: float
    sentiment_magnitude: float

    @classmethod
    def neutral(cls, tags) -> "MoodAnalysis":
        return cls(
            dominant="chill",
            confidence=0.0,
            scores={tag: 0.0 for tag in tags},
            sentiment_polarity=0.0,
            sentiment_magnitude=0.0,
        )


ENTITY_CATEGORIES = (
    "cities",
    "countries",
    "temporal",
    "weather",
    "relationships",
    "activities",
    "emotions",
    "colors",
    "numbers",
)


@dataclass
class ExtractedEntities:
    """Entity buckets recognised in a message."""
    cities: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    temporal: List[str] = field(default_factory=list)
    weather: List[str] = field(default_factory=list)
    relationships: List[str] = field(default_factory=list)
    activities: List[str] = field(default_factory=list)
    emotions: List[str] = field(default_factory=list)
    colors: List[str] = field(default_factory=list)
    numbers: List[str] = field(default_factory=list)

    def bucket(self, category: str) -> List[str]:
        return getattr(self, category, [])

    def total(self) -> int:
        return sum(len(self.bucket(c)) for c in ENTITY_CATEGORIES)

    def is_empty(self) -> bool:
        return self.total() == 0


@dataclass
class ClarityAssessment:
    """Verdict from a clarity prior on how idiomatic a matched phrase reads."""
    is_exact_phrase: bool = False
    is_common_idiom: bool = False
    is_metaphorical: bool = False
    is_obscure: bool = False
    clarity_bonus: float = 0.0  # +0.2, 0 or -0.2
    reasons: List[str] = field(default_factory=list)

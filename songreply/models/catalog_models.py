"""
Catalog Models

Read-only views of the song catalog and its optional aboutness enrichment,
as returned by the store adapters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class AboutnessVersion(Enum):
    """Generation of an aboutness record."""
    V1 = 1  # single legacy aboutness vector
    V2 = 2  # split emotions + moments vectors


class ConfidenceLevel(Enum):
    """Confidence label attached to generated aboutness text."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ConfidenceLevel"]:
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass
class Song:
    """
    A catalog song.

    Only songs with `is_placeholder == False` and a non-null
    `embedding` are eligible for semantic search.
    """
    id: str
    title: str
    artist: str
    tags: List[str] = field(default_factory=list)
    phrases: List[str] = field(default_factory=list)
    year: Optional[int] = None
    popularity: int = 0
    is_placeholder: bool = False
    embedding: Optional[List[float]] = None

    def __post_init__(self):
        self.title = self.title.strip() if self.title else ""
        self.artist = self.artist.strip() if self.artist else ""
        if self.tags is None:
            self.tags = []
        if self.phrases is None:
            self.phrases = []
        self.popularity = max(0, min(100, int(self.popularity or 0)))

    @property
    def decade(self) -> Optional[int]:
        return (self.year // 10) * 10 if self.year else None

    @property
    def is_eligible(self) -> bool:
        """Eligible for nearest-neighbor search on the metadata vector."""
        return not self.is_placeholder and self.embedding is not None


@dataclass
class AboutnessRecord:
    """
    Experiential description of a song, one-to-one with Song.

    V1 records carry `aboutness_vector`; V2 records carry separate
    emotions and moments vectors. Any field may be missing.
    """
    song_id: str
    version: AboutnessVersion = AboutnessVersion.V2
    aboutness_text: Optional[str] = None
    aboutness_json: Optional[Dict[str, Any]] = None
    aboutness_vector: Optional[List[float]] = None
    emotions_text: Optional[str] = None
    emotions_vector: Optional[List[float]] = None
    emotions_confidence: Optional[ConfidenceLevel] = None
    moments_text: Optional[str] = None
    moments_vector: Optional[List[float]] = None
    moments_confidence: Optional[ConfidenceLevel] = None

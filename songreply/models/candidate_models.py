from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


class SignalScores(BaseModel):
    """
    Per-signal score record for one candidate.

    keyword/semantic/mood/entity are filled by the combiner; popularity,
    clarity, repetition_penalty and final by the reranker.
    """
    keyword: float = Field(0.0, description="Best keyword match score for the song.")
    semantic: float = Field(0.0, description="Similarity from the semantic ranking strategy.")
    mood: float = Field(0.0, description="Mood boost when the song carries the dominant mood.")
    entity: float = Field(0.0, description="Sum of entity category bonuses with tag overlap.")
    popularity: Optional[float] = Field(None, description="Normalized popularity (0-1).")
    clarity: Optional[float] = Field(None, description="Clarity of the matched phrase (0-1).")
    repetition_penalty: Optional[float] = Field(None, description="Penalty for recently served songs.")
    final: Optional[float] = Field(None, description="Final weighted score.")


class Candidate(BaseModel):
    """
    An ephemeral, per-request scored song.

    At most one Candidate exists per song id within a request.
    """
    # --- Denormalized song data ---
    song_id: str = Field(..., description="Catalog song id.")
    title: str = Field("", description="Song title.")
    artist: str = Field("", description="Primary artist.")
    tags: List[str] = Field(default_factory=list, description="Song tags.")
    year: Optional[int] = Field(None, description="Release year, when known.")
    popularity: int = Field(0, ge=0, le=100, description="Catalog popularity (0-100).")

    # --- Scoring ---
    scores: SignalScores = Field(default_factory=SignalScores)
    match_reasons: List[str] = Field(
        default_factory=list,
        description="Human-readable reasons explaining why this song matched."
    )
    sources: List[str] = Field(
        default_factory=list,
        description="Signals that produced this candidate ('keyword', 'semantic', ...)."
    )

    # --- Explanation fields from aboutness legs ---
    matched_phrase: Optional[str] = Field(None, description="Phrase that produced the keyword hit.")
    emotions_text: Optional[str] = Field(None, description="Emotional character description.")
    moments_text: Optional[str] = Field(None, description="Moment/scene fit description.")

    @property
    def decade(self) -> Optional[int]:
        return (self.year // 10) * 10 if self.year else None

    def add_source(self, source: str) -> None:
        if source not in self.sources:
            self.sources.append(source)

    def add_reason(self, reason: str) -> None:
        if reason not in self.match_reasons:
            self.match_reasons.append(reason)


class YearRange(BaseModel):
    min: int
    max: int

    @model_validator(mode="after")
    def _ordered(self) -> "YearRange":
        if self.min > self.max:
            raise ValueError("year range min must not exceed max")
        return self


class SearchContext(BaseModel):
    """Optional filters and boosts for contextual semantic search."""
    excluded_song_ids: List[str] = Field(default_factory=list)
    preferred_tags: List[str] = Field(default_factory=list)
    min_popularity: Optional[int] = Field(None, ge=0, le=100)
    year_range: Optional[YearRange] = None


class RoomConfig(BaseModel):
    """Room policy consumed by the content filter."""
    allow_explicit: bool = True


class RankingContext(BaseModel):
    """Caller-supplied context for the reranker."""
    recent_song_ids: List[str] = Field(
        default_factory=list,
        description="Songs recently served to this user/session."
    )
    avoid_decades: List[int] = Field(default_factory=list)
    user_id: Optional[str] = None


class RecommendationRequest(BaseModel):
    """Input to the pipeline."""
    message: str = Field(..., description="Raw chat message.")
    k: int = Field(10, ge=1, description="Number of ranked candidates to return.")
    user_id: Optional[str] = None
    recent_song_ids: List[str] = Field(default_factory=list)
    avoid_decades: List[int] = Field(default_factory=list)
    room: RoomConfig = Field(default_factory=RoomConfig)

"""
Pipeline Configuration

Validated, immutable configuration for every matching component. Each
model is frozen: components read their settings once at construction and
never mutate them. Environment loading goes through python-dotenv.
"""

import os
from enum import Enum
from typing import Dict, Optional, Tuple

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import ConfigurationError

logger = structlog.get_logger(__name__)


MOOD_TAGS: Tuple[str, ...] = ("joy", "anger", "sadness", "confidence", "chill")


class KeywordConfig(BaseModel):
    """Keyword/phrase matcher settings."""
    model_config = ConfigDict(frozen=True)

    exact_weight: float = Field(default=1.0, gt=0, description="Score weight for exact phrase hits")
    lemma_weight: float = Field(default=0.8, gt=0, description="Score weight for suffix-stripped hits")
    min_phrase_length: int = Field(default=2, ge=1, description="Minimum phrase length in characters")
    cache_size: int = Field(default=2048, ge=0, description="Maximum cached phrase lookups (LRU)")

    @model_validator(mode="after")
    def _exact_outranks_lemma(self) -> "KeywordConfig":
        if self.lemma_weight >= self.exact_weight:
            raise ValueError("lemma_weight must be lower than exact_weight")
        return self


class MoodConfig(BaseModel):
    """Mood classifier and mood boost settings."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    tags: Tuple[str, ...] = MOOD_TAGS
    boost_factor: float = Field(default=1.2, ge=0)
    sentiment_threshold: float = Field(default=0.3, ge=0, le=1)
    tag_synonyms: Dict[str, Tuple[str, ...]] = Field(
        default_factory=lambda: {
            "joy": ("joy", "happy", "upbeat", "feel good", "cheerful", "party", "fun"),
            "anger": ("anger", "angry", "aggressive", "rage", "intense"),
            "sadness": ("sadness", "sad", "melancholy", "melancholic", "heartbreak", "somber"),
            "confidence": ("confidence", "confident", "empowering", "anthem", "motivational"),
            "chill": ("chill", "calm", "mellow", "relaxing", "peaceful", "laid-back"),
        },
        description="Song tags that count as carrying a given mood",
    )


class EntityConfig(BaseModel):
    """Entity extractor and entity boost settings."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    case_sensitive: bool = False
    category_boosts: Dict[str, float] = Field(
        default_factory=lambda: {
            "cities": 1.15,
            "temporal": 1.10,
            "weather": 1.05,
        },
        description="Additive bonus per entity category with tag overlap",
    )


class SemanticConfig(BaseModel):
    """Semantic nearest-neighbor search settings."""
    model_config = ConfigDict(frozen=True)

    knn_size: int = Field(default=50, ge=1)
    similarity_threshold: float = Field(default=0.2, ge=0, le=1)
    expected_dimensions: int = Field(default=384, ge=1)
    min_search_breadth: int = Field(default=100, ge=1)
    debug_matching: bool = False


class RankingStrategyKind(str, Enum):
    """Closed set of semantic ranking strategies."""
    META_ONLY = "meta_only"
    META_PLUS_ABOUTNESS = "meta_plus_aboutness"
    META_PLUS_EMOTION_PLUS_MOMENT = "meta_plus_emotion_plus_moment"


class AboutnessConfig(BaseModel):
    """Union + rerank settings for the aboutness-enabled strategies."""
    model_config = ConfigDict(frozen=True)

    strategy: RankingStrategyKind = RankingStrategyKind.META_ONLY

    # V1: metadata + single aboutness vector
    top_n: int = Field(default=50, ge=1)
    meta_weight: float = Field(default=0.6, ge=0)
    aboutness_weight: float = Field(default=0.4, ge=0)

    # V2: metadata + emotional character + moment/scene fit
    top_n_meta: int = Field(default=50, ge=1)
    top_n_emotion: int = Field(default=50, ge=1)
    v2_meta_weight: float = Field(default=0.5, ge=0)
    emotion_weight: float = Field(default=0.3, ge=0)
    moment_weight: float = Field(default=0.2, ge=0)


class ScoringWeights(BaseModel):
    """Final reranking weights."""
    model_config = ConfigDict(frozen=True)

    semantic_weight: float = Field(default=0.45, ge=0)
    keyword_weight: float = Field(default=0.30, ge=0)
    popularity_weight: float = Field(default=0.15, ge=0)
    clarity_weight: float = Field(default=0.10, ge=0)
    mood_weight: float = Field(default=0.05, ge=0)
    entity_weight: float = Field(default=0.02, ge=0)
    repetition_penalty: float = Field(default=0.2, gt=0)
    result_limit: int = Field(default=20, ge=1)


class PipelineConfig(BaseModel):
    """Aggregate configuration for SongRecommendationPipeline."""
    model_config = ConfigDict(frozen=True)

    keyword: KeywordConfig = Field(default_factory=KeywordConfig)
    mood: MoodConfig = Field(default_factory=MoodConfig)
    entity: EntityConfig = Field(default_factory=EntityConfig)
    semantic: SemanticConfig = Field(default_factory=SemanticConfig)
    aboutness: AboutnessConfig = Field(default_factory=AboutnessConfig)
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    semantic_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    popular_fallback_size: int = Field(default=0, ge=0)


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def resolve_strategy_kind() -> RankingStrategyKind:
    """
    Pick the ranking strategy from feature flags.

    ABOUTNESS_V2_ENABLED wins over ABOUTNESS_ENABLED; neither means meta-only.
    """
    if _env_flag("ABOUTNESS_V2_ENABLED"):
        return RankingStrategyKind.META_PLUS_EMOTION_PLUS_MOMENT
    if _env_flag("ABOUTNESS_ENABLED"):
        return RankingStrategyKind.META_PLUS_ABOUTNESS
    return RankingStrategyKind.META_ONLY


def load_pipeline_config(env_file: Optional[str] = None) -> PipelineConfig:
    """
    Build a PipelineConfig from the environment (and an optional .env file).

    Args:
        env_file: Path to a dotenv file; defaults to searching for `.env`

    Returns:
        Frozen PipelineConfig

    Raises:
        ConfigurationError: If a variable is unparseable or out of range
    """
    load_dotenv(env_file)

    try:
        timeout = os.getenv("SONGREPLY_SEMANTIC_TIMEOUT_SECONDS")

        config = PipelineConfig(
            keyword=KeywordConfig(
                exact_weight=_env_float("SONGREPLY_KEYWORD_EXACT_WEIGHT", 1.0),
                lemma_weight=_env_float("SONGREPLY_KEYWORD_LEMMA_WEIGHT", 0.8),
                min_phrase_length=_env_int("SONGREPLY_KEYWORD_MIN_PHRASE_LENGTH", 2),
                cache_size=_env_int("SONGREPLY_KEYWORD_CACHE_SIZE", 2048),
            ),
            mood=MoodConfig(
                enabled=_env_flag("SONGREPLY_MOOD_ENABLED", True),
                boost_factor=_env_float("SONGREPLY_MOOD_BOOST", 1.2),
            ),
            entity=EntityConfig(
                enabled=_env_flag("SONGREPLY_ENTITY_ENABLED", True),
            ),
            semantic=SemanticConfig(
                knn_size=_env_int("SONGREPLY_KNN_SIZE", 50),
                similarity_threshold=_env_float("SONGREPLY_SIMILARITY_THRESHOLD", 0.2),
                expected_dimensions=_env_int("EMBEDDING_DIMENSIONS", 384),
                debug_matching=_env_flag("DEBUG_MATCHING"),
            ),
            aboutness=AboutnessConfig(
                strategy=resolve_strategy_kind(),
                top_n=_env_int("ABOUTNESS_TOP_N", 50),
                meta_weight=_env_float("ABOUTNESS_META_WEIGHT", 0.6),
                aboutness_weight=_env_float("ABOUTNESS_WEIGHT", 0.4),
                top_n_meta=_env_int("ABOUTNESS_V2_TOP_N_META", 50),
                top_n_emotion=_env_int("ABOUTNESS_V2_TOP_N_EMOTION", 50),
                v2_meta_weight=_env_float("ABOUTNESS_V2_META_WEIGHT", 0.5),
                emotion_weight=_env_float("ABOUTNESS_V2_EMOTION_WEIGHT", 0.3),
                moment_weight=_env_float("ABOUTNESS_V2_MOMENT_WEIGHT", 0.2),
            ),
            scoring=ScoringWeights(
                semantic_weight=_env_float("SONGREPLY_SEMANTIC_WEIGHT", 0.45),
                keyword_weight=_env_float("SONGREPLY_KEYWORD_WEIGHT", 0.30),
                popularity_weight=_env_float("SONGREPLY_POPULARITY_WEIGHT", 0.15),
                clarity_weight=_env_float("SONGREPLY_CLARITY_WEIGHT", 0.10),
                repetition_penalty=_env_float("SONGREPLY_REPETITION_PENALTY", 0.2),
            ),
            semantic_timeout_seconds=float(timeout) if timeout else None,
            popular_fallback_size=_env_int("SONGREPLY_POPULAR_FALLBACK_SIZE", 0),
        )
    except ValueError as e:
        # pydantic's ValidationError is a ValueError too
        logger.error("Invalid pipeline configuration", error=str(e))
        raise ConfigurationError(f"Invalid pipeline configuration: {e}") from e

    logger.info(
        "Pipeline configuration loaded",
        strategy=config.aboutness.strategy.value,
        knn_size=config.semantic.knn_size,
        similarity_threshold=config.semantic.similarity_threshold,
    )
    return config


def database_url() -> Optional[str]:
    """Connection string for the catalog store, if configured."""
    load_dotenv()
    return os.getenv("DATABASE_URL")

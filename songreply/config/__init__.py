"""
Configuration Package

Frozen pydantic settings for each matching component and the pipeline.
"""

from .settings import (
    MOOD_TAGS,
    KeywordConfig,
    MoodConfig,
    EntityConfig,
    SemanticConfig,
    RankingStrategyKind,
    AboutnessConfig,
    ScoringWeights,
    PipelineConfig,
    load_pipeline_config,
    resolve_strategy_kind,
    database_url,
)

__all__ = [
    "MOOD_TAGS",
    "KeywordConfig",
    "MoodConfig",
    "EntityConfig",
    "SemanticConfig",
    "RankingStrategyKind",
    "AboutnessConfig",
    "ScoringWeights",
    "PipelineConfig",
    "load_pipeline_config",
    "resolve_strategy_kind",
    "database_url",
]

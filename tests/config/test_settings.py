"""
Tests for pipeline configuration models and environment loading.
"""

import pytest
from pydantic import ValidationError

from songreply.config.settings import (
    AboutnessConfig,
    KeywordConfig,
    PipelineConfig,
    RankingStrategyKind,
    database_url,
    load_pipeline_config,
    resolve_strategy_kind,
)
from songreply.errors import ConfigurationError

ENV_VARS = (
    "ABOUTNESS_ENABLED",
    "ABOUTNESS_V2_ENABLED",
    "ABOUTNESS_TOP_N",
    "SONGREPLY_KNN_SIZE",
    "SONGREPLY_SIMILARITY_THRESHOLD",
    "SONGREPLY_SEMANTIC_TIMEOUT_SECONDS",
    "SONGREPLY_MOOD_ENABLED",
    "SONGREPLY_KEYWORD_EXACT_WEIGHT",
    "SONGREPLY_KEYWORD_LEMMA_WEIGHT",
    "DEBUG_MATCHING",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv first so variables a dotenv file adds are removed again on teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return str(env_file)


class TestConfigModels:

    def test_defaults(self):
        config = PipelineConfig()

        assert config.semantic.knn_size == 50
        assert config.semantic.similarity_threshold == 0.2
        assert config.semantic.expected_dimensions == 384
        assert config.aboutness.strategy is RankingStrategyKind.META_ONLY
        assert config.aboutness.meta_weight == 0.6
        assert config.aboutness.aboutness_weight == 0.4
        assert config.mood.tags == ("joy", "anger", "sadness", "confidence", "chill")
        assert config.semantic_timeout_seconds is None
        assert config.popular_fallback_size == 0

    def test_frozen(self):
        config = PipelineConfig()
        with pytest.raises(ValidationError):
            config.popular_fallback_size = 3

    def test_exact_must_outrank_lemma(self):
        with pytest.raises(ValidationError):
            KeywordConfig(exact_weight=0.5, lemma_weight=0.8)

    def test_rejects_out_of_range(self):
        with pytest.raises(ValidationError):
            AboutnessConfig(top_n=0)
        with pytest.raises(ValidationError):
            PipelineConfig(semantic_timeout_seconds=0)


class TestStrategyResolution:

    def test_meta_only_by_default(self, clean_env):
        assert resolve_strategy_kind() is RankingStrategyKind.META_ONLY

    def test_v1_flag(self, clean_env, monkeypatch):
        monkeypatch.setenv("ABOUTNESS_ENABLED", "true")
        assert resolve_strategy_kind() is RankingStrategyKind.META_PLUS_ABOUTNESS

    def test_v2_wins_over_v1(self, clean_env, monkeypatch):
        monkeypatch.setenv("ABOUTNESS_ENABLED", "true")
        monkeypatch.setenv("ABOUTNESS_V2_ENABLED", "1")
        assert resolve_strategy_kind() is RankingStrategyKind.META_PLUS_EMOTION_PLUS_MOMENT

    def test_falsey_values(self, clean_env, monkeypatch):
        monkeypatch.setenv("ABOUTNESS_ENABLED", "off")
        assert resolve_strategy_kind() is RankingStrategyKind.META_ONLY


class TestLoadPipelineConfig:

    def test_reads_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("SONGREPLY_KNN_SIZE", "25")
        monkeypatch.setenv("SONGREPLY_SIMILARITY_THRESHOLD", "0.35")
        monkeypatch.setenv("SONGREPLY_SEMANTIC_TIMEOUT_SECONDS", "1.5")
        monkeypatch.setenv("SONGREPLY_MOOD_ENABLED", "false")
        monkeypatch.setenv("ABOUTNESS_ENABLED", "yes")
        monkeypatch.setenv("ABOUTNESS_TOP_N", "30")

        config = load_pipeline_config(clean_env)

        assert config.semantic.knn_size == 25
        assert config.semantic.similarity_threshold == pytest.approx(0.35)
        assert config.semantic_timeout_seconds == pytest.approx(1.5)
        assert config.mood.enabled is False
        assert config.aboutness.strategy is RankingStrategyKind.META_PLUS_ABOUTNESS
        assert config.aboutness.top_n == 30

    def test_reads_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / "songreply.env"
        env_file.write_text("SONGREPLY_KNN_SIZE=12\nDEBUG_MATCHING=1\n")

        config = load_pipeline_config(str(env_file))

        assert config.semantic.knn_size == 12
        assert config.semantic.debug_matching is True

    def test_unparseable_value(self, clean_env, monkeypatch):
        monkeypatch.setenv("SONGREPLY_KNN_SIZE", "many")
        with pytest.raises(ConfigurationError):
            load_pipeline_config(clean_env)

    def test_invalid_combination(self, clean_env, monkeypatch):
        monkeypatch.setenv("SONGREPLY_KEYWORD_EXACT_WEIGHT", "0.5")
        with pytest.raises(ConfigurationError):
            load_pipeline_config(clean_env)

    def test_database_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u@db/songs")
        assert database_url() == "postgresql://u@db/songs"

"""
Tests for the entity extractor.
"""

import pytest

from songreply.config.settings import EntityConfig
from songreply.engine.matchers.entities import EntityExtractor
from songreply.models.match_models import ExtractedEntities


class TestEntityExtraction:

    @pytest.fixture
    def extractor(self):
        return EntityExtractor()

    @pytest.mark.asyncio
    async def test_extracts_buckets(self, extractor):
        entities = await extractor.extract("Driving through London on a rainy Friday night")

        assert entities.cities == ["london"]
        assert set(entities.temporal) == {"friday", "night"}
        assert entities.weather == ["rainy"]
        assert "driving" in entities.activities

    @pytest.mark.asyncio
    async def test_whole_words_only(self, extractor):
        entities = await extractor.extract("catching the train")

        assert "rain" not in entities.weather
        assert "train" in entities.activities

    @pytest.mark.asyncio
    async def test_numbers(self, extractor):
        entities = await extractor.extract("2 tickets for twenty people, twenty!")
        assert entities.numbers == ["2", "twenty"]

    @pytest.mark.asyncio
    async def test_case_insensitive_dedupe(self, extractor):
        entities = await extractor.extract("PARIS paris Paris")
        assert entities.cities == ["paris"]

    @pytest.mark.asyncio
    async def test_empty_message(self, extractor):
        entities = await extractor.extract("")

        assert entities.is_empty()
        assert entities.total() == 0

    @pytest.mark.asyncio
    async def test_disabled_returns_empty(self):
        extractor = EntityExtractor(EntityConfig(enabled=False))
        assert (await extractor.extract("London in the rain")).is_empty()

    @pytest.mark.asyncio
    async def test_internal_failure_returns_empty(self, extractor):
        extractor._patterns = None
        assert (await extractor.extract("London")).is_empty()

    @pytest.mark.asyncio
    async def test_custom_entities(self, extractor):
        extractor.add_custom_entities("cities", ["gotham"])
        extractor.add_custom_entities("planets", ["mars"])

        entities = await extractor.extract("a night in Gotham")

        assert "gotham" in entities.cities
        assert "planets" not in extractor.entity_lists


class TestEntityBoost:

    @pytest.fixture
    def extractor(self):
        return EntityExtractor()

    def test_single_category(self, extractor):
        entities = ExtractedEntities(cities=["london"])
        assert extractor.calculate_entity_boost(["London Calling", "punk"], entities) == pytest.approx(1.15)

    def test_categories_add_up(self, extractor):
        entities = ExtractedEntities(temporal=["monday"], weather=["rain"])
        boost = extractor.calculate_entity_boost(["rain", "monday"], entities)
        assert boost == pytest.approx(1.10 + 1.05)

    def test_unboosted_category_ignored(self, extractor):
        entities = ExtractedEntities(colors=["blue"])
        assert extractor.calculate_entity_boost(["blue"], entities) == 0.0

    def test_no_overlap(self, extractor):
        entities = ExtractedEntities(cities=["paris"])
        assert extractor.calculate_entity_boost(["rock"], entities) == 0.0

    def test_analyze_patterns(self):
        entities = ExtractedEntities(cities=["london"], temporal=["friday", "night"], emotions=["happy"])
        patterns = EntityExtractor.analyze_entity_patterns(entities)

        assert patterns["has_location_context"] is True
        assert patterns["has_time_context"] is True
        assert patterns["has_emotional_context"] is True
        assert patterns["has_activity_context"] is False
        assert patterns["context_strength"] == pytest.approx(0.4)

    def test_stats_and_health(self, extractor):
        stats = extractor.get_entity_stats()

        assert stats["is_enabled"] is True
        assert stats["total_entities"]["cities"] > 0
        assert extractor.is_healthy() is True

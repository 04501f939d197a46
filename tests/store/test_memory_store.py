"""
Tests for the in-memory catalog adapter.
"""

import pytest

from songreply.store.base import ABOUTNESS_VECTOR_COLUMN, EMOTIONS_VECTOR_COLUMN, MOMENTS_VECTOR_COLUMN


class TestInMemorySession:

    @pytest.mark.asyncio
    async def test_count_eligible(self, catalog):
        async with catalog.session() as session:
            assert await session.count_eligible() == 4

    @pytest.mark.asyncio
    async def test_query_requires_prepared_vector(self, catalog):
        async with catalog.session() as session:
            with pytest.raises(RuntimeError):
                await session.nearest_songs(5)

    @pytest.mark.asyncio
    async def test_nearest_songs_ordered(self, catalog, unit_vector):
        async with catalog.session() as session:
            await session.prepare_query_vector(unit_vector(0))
            rows = await session.nearest_songs(10)

        assert [r.id for r in rows] == ["s1", "s2", "s3", "s4"]
        assert rows[0].distance == pytest.approx(0.0, abs=1e-6)
        assert rows[2].distance == pytest.approx(1.0, abs=1e-6)

    @pytest.mark.asyncio
    async def test_nearest_aboutness_v1(self, catalog, unit_vector):
        async with catalog.session() as session:
            await session.prepare_query_vector(unit_vector(0))
            rows = await session.nearest_aboutness(ABOUTNESS_VECTOR_COLUMN, 10)

        assert [r.song_id for r in rows] == ["s3"]
        assert rows[0].aboutness_json == {"mood": "hopeful"}
        assert rows[0].title == "Hurt"

    @pytest.mark.asyncio
    async def test_nearest_aboutness_emotions(self, catalog, unit_vector):
        async with catalog.session() as session:
            await session.prepare_query_vector(unit_vector(0))
            rows = await session.nearest_aboutness(EMOTIONS_VECTOR_COLUMN, 10)

        assert [r.song_id for r in rows] == ["s4", "s1"]
        assert rows[0].emotions_confidence == "high"
        assert rows[1].moments_text is None

    @pytest.mark.asyncio
    async def test_unindexed_column_rejected(self, catalog, unit_vector):
        async with catalog.session() as session:
            await session.prepare_query_vector(unit_vector(0))
            with pytest.raises(ValueError):
                await session.nearest_aboutness(MOMENTS_VECTOR_COLUMN, 10)

    @pytest.mark.asyncio
    async def test_moment_distances_only_for_requested_ids(self, catalog, unit_vector):
        async with catalog.session() as session:
            await session.prepare_query_vector(unit_vector(0))
            distances = await session.moment_distances(["s1", "s2", "s4"])

        assert list(distances) == ["s4"]
        assert distances["s4"] == pytest.approx(0.0, abs=1e-6)


class TestInMemoryCatalog:

    @pytest.mark.asyncio
    async def test_songs_with_phrase_is_case_insensitive_exact(self, catalog):
        assert [s.id for s in await catalog.songs_with_phrase("Clap Along")] == ["s1"]
        assert await catalog.songs_with_phrase("clap") == []

    @pytest.mark.asyncio
    async def test_popular_songs_skip_placeholders(self, catalog):
        songs = await catalog.popular_songs(3)
        assert [s.id for s in songs] == ["s1", "s2", "s3"]

    @pytest.mark.asyncio
    async def test_embedding_stats_empty(self):
        from songreply.store.memory_store import InMemoryCatalog

        stats = await InMemoryCatalog().embedding_stats()

        assert stats.total_songs == 0
        assert stats.coverage == 0.0

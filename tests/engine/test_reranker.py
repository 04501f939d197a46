"""
Tests for the weighted reranker.
"""

import pytest

from songreply.config.settings import ScoringWeights
from songreply.engine.reranker import SongReranker
from songreply.models.candidate_models import Candidate, RankingContext, SignalScores


def candidate(song_id="a", popularity=50, semantic=0.5, keyword=0.0, clarity=None, year=None, **scores):
    return Candidate(
        song_id=song_id,
        title=f"Song {song_id}",
        artist="Artist",
        popularity=popularity,
        year=year,
        scores=SignalScores(semantic=semantic, keyword=keyword, clarity=clarity, **scores),
    )


class TestSongReranker:

    @pytest.fixture
    def reranker(self):
        return SongReranker()

    def test_weighted_sum(self, reranker):
        c = candidate(popularity=80, semantic=0.9, keyword=0.5, clarity=0.4)

        score = reranker.score(c)

        expected = 0.9 * 0.45 + 0.5 * 0.30 + 0.8 * 0.15 + 0.4 * 0.10
        assert score == pytest.approx(expected)
        assert c.scores.final == pytest.approx(expected)
        assert c.scores.popularity == pytest.approx(0.8)

    def test_missing_clarity_defaults_to_half(self, reranker):
        c = candidate(popularity=0, semantic=0.0)
        assert reranker.score(c) == pytest.approx(0.5 * 0.10)

    def test_signals_clamped_before_weighting(self, reranker):
        c = candidate(popularity=0, semantic=0.0, keyword=1.2, clarity=1.2)

        score = reranker.score(c)

        assert score == pytest.approx(0.30 + 0.10)

    def test_boosts_weighted_at_full_magnitude(self, reranker):
        c = candidate(popularity=0, semantic=0.0, clarity=0.0, mood=1.2, entity=2.15)
        assert reranker.score(c) == pytest.approx(1.2 * 0.05 + 2.15 * 0.02)

    def test_larger_mood_boost_ranks_higher(self, reranker):
        mild = candidate("a", mood=1.0)
        strong = candidate("a", mood=3.0)
        assert reranker.score(strong) > reranker.score(mild)

    def test_more_entity_categories_rank_higher(self, reranker):
        one_category = candidate("a", entity=1.15)
        three_categories = candidate("a", entity=1.15 + 1.10 + 1.05)
        assert reranker.score(three_categories) > reranker.score(one_category)

    def test_final_score_not_clamped(self, reranker):
        c = candidate(popularity=100, semantic=1.0, keyword=1.0, clarity=1.0, mood=1.0, entity=1.0)
        assert reranker.score(c) > 1.0

    @pytest.mark.parametrize("low,high", [(0, 10), (40, 41), (90, 100)])
    def test_popularity_monotone(self, reranker, low, high):
        assert reranker.score(candidate(popularity=high)) >= reranker.score(candidate(popularity=low))

    def test_recent_song_scores_strictly_lower(self, reranker):
        context = RankingContext(recent_song_ids=["a"])
        fresh = candidate("a")
        repeat = candidate("a")

        fresh_score = reranker.score(fresh)
        repeat_score = reranker.score(repeat, context)

        assert repeat_score < fresh_score
        assert repeat.scores.repetition_penalty == pytest.approx(0.2 * 0.8)
        assert "recently played" in repeat.match_reasons

    def test_avoided_decade_penalty(self, reranker):
        context = RankingContext(avoid_decades=[1980])
        c = candidate(year=1985)

        reranker.score(c, context)

        assert c.scores.repetition_penalty == pytest.approx(0.2 * 0.2)
        assert "recently played" not in c.match_reasons

    def test_rank_sorts_descending(self, reranker):
        ranked = reranker.rank([candidate("a", semantic=0.2), candidate("b", semantic=0.9), candidate("c", semantic=0.5)])
        assert [c.song_id for c in ranked] == ["b", "c", "a"]

    def test_tie_break_popularity_then_id(self):
        reranker = SongReranker(ScoringWeights(popularity_weight=0.0))
        ranked = reranker.rank([
            candidate("b", popularity=50),
            candidate("a", popularity=50),
            candidate("c", popularity=90),
        ])
        assert [c.song_id for c in ranked] == ["c", "a", "b"]

    def test_truncates_to_k(self, reranker):
        ranked = reranker.rank([candidate(str(i)) for i in range(10)], k=3)
        assert len(ranked) == 3

    def test_defaults_to_result_limit(self):
        reranker = SongReranker(ScoringWeights(result_limit=4))
        assert len(reranker.rank([candidate(str(i)) for i in range(10)])) == 4

    def test_empty(self, reranker):
        assert reranker.rank([]) == []

    def test_deterministic(self, reranker):
        first = reranker.rank([candidate(str(i), popularity=i * 7 % 100) for i in range(20)])
        second = reranker.rank([candidate(str(i), popularity=i * 7 % 100) for i in range(20)])

        assert [c.song_id for c in first] == [c.song_id for c in second]
        assert [c.scores.final for c in first] == [c.scores.final for c in second]

    def test_score_breakdown(self, reranker):
        c = candidate(popularity=100, semantic=1.0)
        reranker.score(c)

        breakdown = reranker.get_score_breakdown(c)

        assert breakdown["semantic_contribution"] == pytest.approx(0.45)
        assert breakdown["popularity_contribution"] == pytest.approx(0.15)
        assert breakdown["final_score"] == pytest.approx(c.scores.final)

    def test_update_weights_returns_new_object(self, reranker):
        original = reranker.get_weights()

        updated = reranker.update_weights(semantic_weight=0.6)

        assert updated is not original
        assert original.semantic_weight == 0.45
        assert reranker.get_weights().semantic_weight == 0.6

    def test_weights_are_frozen(self, reranker):
        with pytest.raises(Exception):
            reranker.get_weights().semantic_weight = 0.9

    def test_invalid_weight_rejected(self, reranker):
        with pytest.raises(ValueError):
            reranker.update_weights(keyword_weight=-1.0)

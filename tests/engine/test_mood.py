"""
Tests for the mood classifier.

A stub analyzer stands in for VADER so no lexicon download is needed.
"""

import asyncio
import threading
from unittest.mock import Mock, patch

import pytest

from songreply.config.settings import MoodConfig
from songreply.engine.matchers.mood import MoodClassifier, load_vader


class TestMoodClassifier:

    @pytest.fixture
    def classifier(self, neutral_sentiment):
        return MoodClassifier(analyzer=neutral_sentiment)

    @pytest.mark.asyncio
    async def test_joy_from_keywords(self, classifier):
        analysis = await classifier.classify("I need something happy and upbeat")

        assert analysis.dominant == "joy"
        assert analysis.confidence > 0
        assert set(analysis.scores) == {"joy", "anger", "sadness", "confidence", "chill"}

    @pytest.mark.asyncio
    async def test_sadness_from_keywords(self, classifier):
        analysis = await classifier.classify("so sad and lonely tonight")
        assert analysis.dominant == "sadness"

    @pytest.mark.asyncio
    async def test_empty_message_defaults_to_chill(self, make_sentiment):
        classifier = MoodClassifier(analyzer=make_sentiment({"neg": 0, "neu": 0, "pos": 0, "compound": 0}))

        analysis = await classifier.classify("")

        assert analysis.dominant == "chill"
        assert analysis.confidence == 0.0

    @pytest.mark.asyncio
    async def test_sentiment_reported(self, make_sentiment):
        classifier = MoodClassifier(analyzer=make_sentiment({"neg": 0.6, "neu": 0.4, "pos": 0.0, "compound": -0.8}))

        analysis = await classifier.classify("worst day ever")

        assert analysis.sentiment_polarity == pytest.approx(-0.8)
        assert analysis.sentiment_magnitude == pytest.approx(0.8)
        assert analysis.dominant == "anger"

    @pytest.mark.asyncio
    async def test_analyzer_failure_is_neutral(self):
        analyzer = Mock()
        analyzer.polarity_scores.side_effect = RuntimeError("lexicon missing")
        classifier = MoodClassifier(analyzer=analyzer)

        analysis = await classifier.classify("happy happy joy joy")

        assert analysis.dominant == "chill"
        assert analysis.confidence == 0.0
        assert analysis.sentiment_polarity == 0.0

    @pytest.mark.asyncio
    async def test_disabled_is_neutral(self, neutral_sentiment):
        classifier = MoodClassifier(MoodConfig(enabled=False), analyzer=neutral_sentiment)

        analysis = await classifier.classify("so happy")

        assert analysis.dominant == "chill"
        assert analysis.confidence == 0.0

    @pytest.mark.asyncio
    async def test_batch_classify(self, classifier):
        results = await classifier.batch_classify(["so happy", "so sad"])
        assert [r.dominant for r in results] == ["joy", "sadness"]

    def test_keyword_scores_exact_and_partial(self, classifier):
        scores = classifier.calculate_keyword_scores("happy unhappiness")
        # "happy" is an exact word hit (1.0); partial hits add 0.5 each
        assert scores["joy"] > 0
        assert scores["anger"] == 0.0

    def test_anger_needs_strong_negative(self):
        base = {"joy": 0.0, "anger": 0.0, "sadness": 0.0, "confidence": 0.0, "chill": 0.0}

        mild = MoodClassifier.adjust_with_sentiment(base, {"neg": 0.2, "neu": 0.8, "pos": 0.0, "compound": -0.6})
        strong = MoodClassifier.adjust_with_sentiment(base, {"neg": 0.5, "neu": 0.5, "pos": 0.0, "compound": -0.6})

        assert mild["anger"] == 0.0
        assert strong["anger"] == pytest.approx(0.35)
        assert mild["sadness"] > 0

    def test_neutral_sentiment_boosts_chill(self):
        base = {"joy": 0.0, "anger": 0.0, "sadness": 0.0, "confidence": 0.0, "chill": 0.0}
        adjusted = MoodClassifier.adjust_with_sentiment(base, {"neg": 0.0, "neu": 1.0, "pos": 0.0, "compound": 0.0})
        assert adjusted["chill"] == pytest.approx(0.4)

    def test_ties_keep_chill(self):
        assert MoodClassifier.find_dominant_mood({"joy": 0.5, "chill": 0.5, "anger": 0.5}) == "chill"
        assert MoodClassifier.find_dominant_mood({}) == "chill"

    def test_update_keywords(self, classifier):
        classifier.update_keywords("joy", ["yay"])
        classifier.update_keywords("unknown", ["x"])

        assert classifier.mood_keywords["joy"] == ["yay"]
        assert "unknown" not in classifier.mood_keywords

    @pytest.mark.asyncio
    async def test_stats_and_health(self, classifier):
        stats = classifier.get_mood_stats()

        assert stats["available_moods"] == ["joy", "anger", "sadness", "confidence", "chill"]
        assert stats["is_enabled"] is True
        assert await classifier.is_healthy() is True

    @pytest.mark.asyncio
    async def test_unhealthy_when_analyzer_fails(self):
        analyzer = Mock()
        analyzer.polarity_scores.side_effect = RuntimeError("boom")
        assert await MoodClassifier(analyzer=analyzer).is_healthy() is False

    def test_mass_threshold_is_configurable(self):
        base = {"joy": 0.0, "anger": 0.0, "sadness": 0.0, "confidence": 0.0, "chill": 0.0}
        sentiment = {"neg": 0.2, "neu": 0.8, "pos": 0.0, "compound": -0.6}

        assert MoodClassifier.adjust_with_sentiment(base, sentiment, mass_threshold=0.1)["anger"] > 0
        assert MoodClassifier.adjust_with_sentiment(base, sentiment, mass_threshold=0.3)["anger"] == 0.0

    @pytest.mark.asyncio
    async def test_classify_uses_configured_threshold(self, make_sentiment):
        sentiment = make_sentiment({"neg": 0.2, "neu": 0.8, "pos": 0.0, "compound": -0.6})

        lenient = MoodClassifier(MoodConfig(sentiment_threshold=0.1), analyzer=sentiment)
        strict = MoodClassifier(MoodConfig(sentiment_threshold=0.5), analyzer=sentiment)

        assert (await lenient.classify("whatever")).scores["anger"] > 0
        assert (await strict.classify("whatever")).scores["anger"] == 0.0


class TestVaderLoading:

    @pytest.mark.asyncio
    async def test_loaded_once_off_the_event_loop(self, neutral_sentiment):
        loop_thread = threading.get_ident()
        load_threads = []

        def fake_load():
            load_threads.append(threading.get_ident())
            return neutral_sentiment

        classifier = MoodClassifier()
        with patch("songreply.engine.matchers.mood.load_vader", side_effect=fake_load):
            results = await asyncio.gather(*(classifier.classify("happy day") for _ in range(5)))

        assert len(load_threads) == 1
        assert load_threads[0] != loop_thread
        assert all(r.dominant == "joy" for r in results)

    @pytest.mark.asyncio
    async def test_load_failure_is_neutral(self):
        classifier = MoodClassifier()
        with patch("songreply.engine.matchers.mood.load_vader", side_effect=LookupError("no lexicon")):
            analysis = await classifier.classify("happy day")
            healthy = await classifier.is_healthy()

        assert analysis.confidence == 0.0
        assert analysis.dominant == "chill"
        assert healthy is False

    def test_downloads_missing_lexicon(self):
        with patch("nltk.data.find", side_effect=LookupError("missing")), \
                patch("nltk.download") as download, \
                patch("nltk.sentiment.vader.SentimentIntensityAnalyzer") as analyzer_cls:
            analyzer = load_vader()

        download.assert_called_once_with("vader_lexicon", quiet=True)
        assert analyzer is analyzer_cls.return_value

    def test_skips_download_when_present(self):
        with patch("nltk.data.find"), \
                patch("nltk.download") as download, \
                patch("nltk.sentiment.vader.SentimentIntensityAnalyzer"):
            load_vader()

        download.assert_not_called()

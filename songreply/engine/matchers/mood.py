"""
Mood/Sentiment Classifier

Keyword buckets per mood, adjusted by VADER sentiment (nltk), reduced to
a dominant mood over {joy, anger, sadness, confidence, chill}.
"""

import asyncio
from typing import Dict, List, Optional, Protocol

import structlog

from ...config.settings import MoodConfig
from ...models.match_models import MoodAnalysis

logger = structlog.get_logger(__name__)

DEFAULT_MOOD = "chill"


class SentimentAnalyzer(Protocol):
    """Anything with VADER's `polarity_scores` shape (neg/neu/pos/compound)."""

    def polarity_scores(self, text: str) -> Dict[str, float]:
        ...


def load_vader() -> SentimentAnalyzer:
    """Build nltk's VADER analyzer, fetching the lexicon on first use."""
    import nltk
    from nltk.sentiment.vader import SentimentIntensityAnalyzer

    try:
        nltk.data.find("sentiment/vader_lexicon.zip")
    except LookupError:
        nltk.download("vader_lexicon", quiet=True)
    return SentimentIntensityAnalyzer()


class MoodClassifier:
    """
    Lightweight mood classifier.

    Any failure during analysis yields the neutral result (chill,
    confidence 0) instead of propagating.
    """

    def __init__(self, config: Optional[MoodConfig] = None, analyzer: Optional[SentimentAnalyzer] = None):
        self.config = config or MoodConfig()
        self._analyzer = analyzer
        self._load_lock = asyncio.Lock()
        self.mood_keywords = self._initialize_mood_keywords()
        self.logger = logger.bind(component="MoodClassifier")

    async def get_analyzer(self) -> SentimentAnalyzer:
        """
        The sentiment analyzer, building nltk's VADER on first use.

        Building may download the lexicon, so it runs in a worker thread
        behind a lock and never blocks the event loop.
        """
        if self._analyzer is None:
            async with self._load_lock:
                if self._analyzer is None:
                    self.logger.info("Loading VADER sentiment analyzer")
                    self._analyzer = await asyncio.to_thread(load_vader)
        return self._analyzer

    def _initialize_mood_keywords(self) -> Dict[str, List[str]]:
        return {
            "joy": [
                "happy", "excited", "amazing", "awesome", "great", "fantastic", "wonderful",
                "love", "enjoy", "fun", "celebrate", "party", "dance", "laugh", "smile",
                "upbeat", "energetic", "cheerful", "positive", "bright", "sunny",
            ],
            "anger": [
                "angry", "mad", "furious", "rage", "hate", "annoyed", "frustrated",
                "irritated", "pissed", "livid", "outraged", "fierce", "aggressive",
                "fight", "battle", "rebel", "protest", "scream", "yell",
            ],
            "sadness": [
                "sad", "depressed", "blue", "down", "melancholy", "lonely", "heartbroken",
                "cry", "tears", "grief", "sorrow", "mourn", "miss", "lost", "empty",
                "dark", "gloomy", "dreary", "hopeless", "despair",
            ],
            "confidence": [
                "confident", "strong", "powerful", "bold", "fierce", "determined",
                "unstoppable", "winning", "champion", "boss", "leader", "dominate",
                "conquer", "achieve", "succeed", "triumph", "victory", "overcome",
            ],
            "chill": [
                "chill", "relax", "calm", "peaceful", "serene", "mellow", "smooth",
                "easy", "laid-back", "casual", "cool", "zen", "tranquil", "quiet",
                "soft", "gentle", "slow", "lazy", "comfortable", "cozy",
            ],
        }

    async def classify(self, message: str) -> MoodAnalysis:
        """
        Classify the mood of a message.

        Args:
            message: Raw chat message

        Returns:
            MoodAnalysis with the dominant mood and per-mood scores
        """
        if not self.config.enabled:
            return MoodAnalysis.neutral(self.config.tags)

        try:
            analyzer = await self.get_analyzer()
            sentiment = analyzer.polarity_scores((message or "").lower())
            scores = self.calculate_keyword_scores(message or "")
            adjusted = self.adjust_with_sentiment(scores, sentiment, self.config.sentiment_threshold)
            dominant = self.find_dominant_mood(adjusted)
            compound = float(sentiment.get("compound", 0.0) or 0.0)

            analysis = MoodAnalysis(
                dominant=dominant,
                confidence=adjusted[dominant],
                scores=adjusted,
                sentiment_polarity=compound,
                sentiment_magnitude=abs(compound),
            )

            self.logger.debug(
                "Mood analysis completed",
                dominant=dominant,
                confidence=analysis.confidence,
                sentiment_polarity=compound,
            )
            return analysis

        except Exception as e:
            self.logger.warning("Mood classification failed, using default", error=str(e))
            return MoodAnalysis.neutral(self.config.tags)

    def calculate_keyword_scores(self, message: str) -> Dict[str, float]:
        """Exact word hits count 1.0, substring hits 0.5, normalized by bucket size."""
        normalized = message.lower()
        words = normalized.split()

        scores = {}
        for mood, keywords in self.mood_keywords.items():
            mood_score = 0.0
            for keyword in keywords:
                if keyword in words:
                    mood_score += 1.0
                elif keyword in normalized:
                    mood_score += 0.5
            scores[mood] = min(1.0, mood_score / max(len(keywords) * 0.1, 1))
        return scores

    @staticmethod
    def adjust_with_sentiment(
        scores: Dict[str, float],
        sentiment: Optional[Dict[str, float]],
        mass_threshold: float = 0.3,
    ) -> Dict[str, float]:
        """
        Nudge keyword scores with VADER output.

        Anger and confidence need a strong compound score and a
        negative/positive mass above `mass_threshold`.
        """
        adjusted = dict(scores)
        if not sentiment:
            return adjusted

        compound = sentiment.get("compound", 0.0) or 0.0
        positive = sentiment.get("pos", 0.0) or 0.0
        negative = sentiment.get("neg", 0.0) or 0.0
        neutral = sentiment.get("neu", 0.0) or 0.0

        if compound > 0.1:
            adjusted["joy"] = min(1.0, adjusted.get("joy", 0.0) + positive * 0.5)
        if compound < -0.1:
            adjusted["sadness"] = min(1.0, adjusted.get("sadness", 0.0) + negative * 0.5)
        if compound < -0.5 and negative > mass_threshold:
            adjusted["anger"] = min(1.0, adjusted.get("anger", 0.0) + negative * 0.7)
        if compound > 0.5 and positive > mass_threshold:
            adjusted["confidence"] = min(1.0, adjusted.get("confidence", 0.0) + positive * 0.3)
        if abs(compound) < 0.1 and neutral > 0.6:
            adjusted["chill"] = min(1.0, adjusted.get("chill", 0.0) + neutral * 0.4)

        return adjusted

    @staticmethod
    def find_dominant_mood(scores: Dict[str, float]) -> str:
        """Argmax starting from chill; ties keep chill."""
        dominant = DEFAULT_MOOD
        best = scores.get(DEFAULT_MOOD, 0.0)
        for mood, score in scores.items():
            if score > best:
                dominant, best = mood, score
        return dominant

    async def batch_classify(self, messages: List[str]) -> List[MoodAnalysis]:
        return [await self.classify(message) for message in messages]

    def get_mood_stats(self) -> dict:
        return {
            "available_moods": list(self.config.tags),
            "keyword_counts": {mood: len(words) for mood, words in self.mood_keywords.items()},
            "is_enabled": self.config.enabled,
        }

    async def is_healthy(self) -> bool:
        try:
            analyzer = await self.get_analyzer()
            result = analyzer.polarity_scores("test message")
            return bool(result) and self.config.enabled
        except Exception as e:
            self.logger.warning("Mood classifier health check failed", error=str(e))
            return False

    def update_keywords(self, mood: str, keywords: List[str]):
        """Replace the keyword bucket for an existing mood; unknown moods are ignored."""
        if mood in self.mood_keywords:
            self.mood_keywords[mood] = list(keywords)
            self.logger.info("Updated mood keywords", mood=mood, keyword_count=len(keywords))

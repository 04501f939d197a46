"""
Keyword/Idiom Matcher

Matches n-gram phrases from a message against each song's curated phrase
list, exact first and then with light suffix stripping, and scores each
hit by phrase specificity, song popularity and a clarity prior.
"""

import re
from typing import Dict, List, Optional, Tuple

import structlog

from ...config.settings import KeywordConfig
from ...models.catalog_models import Song
from ...models.match_models import KeywordMatch
from ...store.base import SongCatalog
from ..cache import LRUCache
from ..clarity import ClarityPrior, IdiomClarityPrior

logger = structlog.get_logger(__name__)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could", "should",
})

# Checked in this order; the first suffix that fits wins
LEMMA_SUFFIXES = ("ing", "ed", "er", "est", "ly", "s", "es", "ies", "ied", "ier", "iest")

MIN_CLARITY = 0.1
MAX_CLARITY = 1.2

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_message(message: str) -> str:
    cleaned = _NON_WORD.sub(" ", (message or "").lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def extract_phrases(message: str) -> List[str]:
    """
    Contiguous word windows of length 1-3, plus length 4 when more than six
    words remain after stop-word removal.
    """
    words = [
        word for word in normalize_message(message).split(" ")
        if len(word) > 1 and word not in STOP_WORDS
    ]

    max_window = 4 if len(words) > 6 else 3
    phrases: List[str] = []
    for size in range(1, max_window + 1):
        for start in range(len(words) - size + 1):
            phrases.append(" ".join(words[start:start + size]))
    return phrases


def lemmatize_word(word: str) -> str:
    if len(word) <= 3:
        return word
    for suffix in LEMMA_SUFFIXES:
        if word.endswith(suffix) and len(word) > len(suffix) + 2:
            return word[:-len(suffix)]
    return word


def lemmatize_phrase(phrase: str) -> str:
    return " ".join(lemmatize_word(word) for word in phrase.split(" "))


class KeywordMatcher:
    """
    Phrase matcher over a SongCatalog.

    Catalog lookups are cached per phrase in a bounded LRU; clarity depends
    on the message and is always computed fresh.
    """

    def __init__(
        self,
        catalog: SongCatalog,
        config: Optional[KeywordConfig] = None,
        clarity_prior: Optional[ClarityPrior] = None,
    ):
        self.catalog = catalog
        self.config = config or KeywordConfig()
        self.clarity_prior = clarity_prior or IdiomClarityPrior()
        self.phrase_cache: LRUCache[Tuple[Song, ...]] = LRUCache(self.config.cache_size, name="keyword_phrases")
        self.logger = logger.bind(component="KeywordMatcher")

    async def find_matches(self, message: str) -> List[KeywordMatch]:
        """
        Find songs whose phrase lists match part of `message`.

        Returns:
            One match per song (its best), sorted by score descending
        """
        phrases = extract_phrases(message)
        matches: List[KeywordMatch] = []

        self.logger.debug("Extracted phrases from message", phrase_count=len(phrases))

        for phrase in phrases:
            if len(phrase) < self.config.min_phrase_length:
                continue

            exact = await self._match_phrase(phrase, phrase, message, "exact", self.config.exact_weight)
            matches.extend(exact)

            if not exact:
                lemma = lemmatize_phrase(phrase)
                matches.extend(
                    await self._match_phrase(lemma, phrase, message, "lemmatized", self.config.lemma_weight)
                )

        deduped = self._deduplicate(matches)
        deduped.sort(key=lambda m: (-m.score, m.song_id))

        self.logger.debug(
            "Keyword matching completed",
            original_matches=len(matches),
            deduplicated_matches=len(deduped),
        )
        return deduped

    async def _lookup(self, key: str, phrase: str) -> Tuple[Song, ...]:
        cached = self.phrase_cache.get(key)
        if cached is not None:
            return cached
        songs = tuple(await self.catalog.songs_with_phrase(phrase))
        self.phrase_cache.set(key, songs)
        return songs

    async def _match_phrase(
        self,
        lookup_phrase: str,
        original_phrase: str,
        message: str,
        match_type: str,
        weight: float,
    ) -> List[KeywordMatch]:
        prefix = "exact" if match_type == "exact" else "lemma"
        songs = await self._lookup(f"{prefix}:{lookup_phrase}", lookup_phrase)

        needle = lookup_phrase.lower()
        matches = []
        for song in songs:
            for song_phrase in song.phrases:
                if needle not in song_phrase.lower():
                    continue
                if len(song_phrase) < self.config.min_phrase_length:
                    continue
                clarity = self.calculate_clarity(song_phrase, song.popularity, song.title, message)
                matches.append(KeywordMatch(
                    song_id=song.id,
                    title=song.title,
                    artist=song.artist,
                    matched_phrase=song_phrase,
                    original_phrase=original_phrase,
                    match_type=match_type,
                    score=weight * clarity,
                    clarity=clarity,
                    tags=list(song.tags),
                    year=song.year,
                    popularity=song.popularity,
                ))
        return matches

    def calculate_clarity(self, phrase: str, popularity: int, song_title: str, message: str) -> float:
        """
        Blend phrase length, word count and popularity, then apply the
        clarity prior and clamp to [0.1, 1.2].
        """
        length_score = min(len(phrase) / 50, 1.0)
        word_score = min(len(phrase.split()) / 10, 1.0)
        popularity_score = min(popularity / 100, 1.0)
        base_score = length_score * 0.4 + word_score * 0.4 + popularity_score * 0.2

        assessment = self.clarity_prior.assess(message, song_title)
        final_score = max(MIN_CLARITY, min(MAX_CLARITY, base_score + assessment.clarity_bonus))

        if assessment.clarity_bonus:
            self.logger.debug(
                "Applied clarity prior adjustment",
                phrase=phrase,
                song_title=song_title,
                base_score=base_score,
                clarity_bonus=assessment.clarity_bonus,
                final_score=final_score,
                reasons=assessment.reasons,
            )
        return final_score

    @staticmethod
    def _deduplicate(matches: List[KeywordMatch]) -> List[KeywordMatch]:
        best: Dict[str, KeywordMatch] = {}
        for match in matches:
            existing = best.get(match.song_id)
            if existing is None or match.score > existing.score:
                best[match.song_id] = match
        return list(best.values())

    def is_healthy(self) -> bool:
        return True

    def clear_cache(self):
        self.phrase_cache.clear()

    def get_cache_stats(self) -> dict:
        return self.phrase_cache.stats().to_dict()

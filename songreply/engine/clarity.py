"""
Clarity prior.

A pluggable judgement of how idiomatic a keyword hit reads. The keyword
matcher adds the returned bonus (+0.2, 0 or -0.2) to its blended clarity
score before clamping.
"""

import re
from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, Optional

from ..models.match_models import ClarityAssessment

CLARITY_BONUS = 0.2

COMMON_IDIOMS: FrozenSet[str] = frozenset({
    # love and relationships
    "break my heart", "falling in love", "love me tender", "crazy in love",
    "head over heels", "match made in heaven", "better half", "soulmate",
    # life
    "live your life", "follow your dreams", "time heals", "new beginning",
    "turn the page", "start over", "moving on", "let it go", "hold on",
    # party
    "party all night", "dance floor", "good times", "celebrate tonight",
    "turn up", "let loose", "have a ball", "living it up",
    # emotions
    "feeling blue", "on cloud nine", "walking on air", "down in the dumps",
    "over the moon", "through the roof", "hit rock bottom", "on top of the world",
    # time and seasons
    "summertime", "winter wonderland", "spring fever", "autumn leaves",
    "monday morning", "friday night", "weekend warrior", "late night",
    # music
    "turn it up", "pump up the volume", "drop the beat", "feel the rhythm",
    "sing along", "dance all night", "music to my ears", "sound of music",
})

METAPHORICAL_CONCEPTS: FrozenSet[str] = frozenset({
    "shadows of tomorrow", "echoes of yesterday", "whispers in the wind",
    "fragments of time", "rivers of memory", "valleys of sorrow",
    "crimson sky", "silver moonlight", "golden dawn", "velvet night",
    "crystal tears", "paper hearts", "plastic dreams", "neon lights",
    "meaning of life", "purpose of existence", "soul searching", "inner peace",
    "spiritual journey", "cosmic connection", "universal truth", "eternal love",
    "nowhere land", "wonderland", "paradise lost", "seventh heaven",
    "twilight zone", "no mans land", "promised land", "never never land",
})

_SPECIAL_CHARS = re.compile(r"[()\[\]{}<>|@#$%^&*+=]")


class ClarityPrior(ABC):
    """Scores how clearly a song title relates to a message."""

    @abstractmethod
    def assess(self, message: str, song_title: str) -> ClarityAssessment:
        pass


class NeutralClarityPrior(ClarityPrior):
    """Always returns a zero bonus."""

    def assess(self, message: str, song_title: str) -> ClarityAssessment:
        return ClarityAssessment()


class IdiomClarityPrior(ClarityPrior):
    """
    Wordlist prior.

    +0.2 when the title appears in the message (or the message in the
    title), or either contains a common idiom. Otherwise -0.2 when the title
    is metaphorical or obscure. Otherwise 0.
    """

    def __init__(
        self,
        idioms: Optional[Iterable[str]] = None,
        metaphors: Optional[Iterable[str]] = None,
    ):
        self.idioms = frozenset(i.lower() for i in idioms) if idioms is not None else COMMON_IDIOMS
        self.metaphors = frozenset(m.lower() for m in metaphors) if metaphors is not None else METAPHORICAL_CONCEPTS

    def assess(self, message: str, song_title: str) -> ClarityAssessment:
        normalized_message = (message or "").lower().strip()
        normalized_title = (song_title or "").lower().strip()

        is_exact_phrase = bool(normalized_title) and bool(normalized_message) and (
            normalized_title in normalized_message or normalized_message in normalized_title
        )
        is_common_idiom = self._contains_any(normalized_title, self.idioms) or \
            self._contains_any(normalized_message, self.idioms)
        is_metaphorical = self._contains_any(normalized_title, self.metaphors)
        is_obscure = self.is_obscure_title(normalized_title)

        assessment = ClarityAssessment(
            is_exact_phrase=is_exact_phrase,
            is_common_idiom=is_common_idiom,
            is_metaphorical=is_metaphorical,
            is_obscure=is_obscure,
        )

        if is_exact_phrase or is_common_idiom:
            assessment.clarity_bonus = CLARITY_BONUS
            assessment.reasons.append("exact phrase match" if is_exact_phrase else "common idiom")
        elif is_metaphorical or is_obscure:
            assessment.clarity_bonus = -CLARITY_BONUS
            assessment.reasons.append("metaphorical title" if is_metaphorical else "obscure title")

        return assessment

    @staticmethod
    def _contains_any(text: str, phrases: FrozenSet[str]) -> bool:
        return any(phrase in text for phrase in phrases)

    @staticmethod
    def is_obscure_title(title: str) -> bool:
        """Over 100 characters, more than 3 special characters, or any word over 15 characters."""
        if len(title) > 100:
            return True
        if len(_SPECIAL_CHARS.findall(title)) > 3:
            return True
        return any(len(word) > 15 for word in title.split())

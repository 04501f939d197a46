"""
Content filter hook.

Applied between the combiner and the reranker only when the room does not
allow explicit content. Decisions are per candidate: keep it, swap in a
radio edit, or drop it. A filter that raises for a candidate keeps that
candidate (fail-open).
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import structlog

from ..models.candidate_models import Candidate, RoomConfig

logger = structlog.get_logger(__name__)


class Severity(Enum):
    CLEAN = 0
    MILD = 1
    MODERATE = 2
    EXPLICIT = 3


@dataclass
class FilterDecision:
    """Outcome of checking one candidate against a room policy."""
    allowed: bool
    severity: Severity = Severity.CLEAN
    radio_edit_title: Optional[str] = None
    alternative_id: Optional[str] = None
    reasons: List[str] = field(default_factory=list)

    @property
    def has_radio_edit(self) -> bool:
        return self.radio_edit_title is not None


class ContentFilter(ABC):
    """Decides whether a candidate may be served in a room."""

    @abstractmethod
    async def check(self, candidate: Candidate, room: RoomConfig) -> FilterDecision:
        pass


EXPLICIT_WORDS: Dict[str, Severity] = {
    "damn": Severity.MILD,
    "hell": Severity.MILD,
    "crap": Severity.MILD,
    "ass": Severity.MILD,
    "shit": Severity.MODERATE,
    "bitch": Severity.MODERATE,
    "bastard": Severity.MODERATE,
    "piss": Severity.MODERATE,
    "fuck": Severity.EXPLICIT,
    "fucking": Severity.EXPLICIT,
    "fucked": Severity.EXPLICIT,
    "motherfucker": Severity.EXPLICIT,
}

# Substring hits that mark a title as moderate
SENSITIVE_TOPICS: Dict[str, List[str]] = {
    "sexual content": ["sex", "horny", "naked", "porn", "erotic", "kinky"],
    "drug reference": ["cocaine", "heroin", "meth", "weed", "marijuana", "ecstasy", "lsd", "xanax", "fentanyl"],
    "violent content": ["kill", "murder", "suicide", "torture", "genocide", "terrorist"],
}

RADIO_EDITS: Dict[str, str] = {
    "what the fuck": "what the heck",
    "holy shit": "holy crap",
    "son of a bitch": "son of a gun",
    "damn it": "darn it",
    "piss off": "buzz off",
    "motherfucker": "mother***er",
    "fucking": "f***ing",
    "fuck": "f***",
    "shit": "s***",
    "bitch": "b****",
}


class WordlistContentFilter(ContentFilter):
    """
    Title/artist wordlist filter.

    In rooms that disallow explicit content, moderate and explicit matches
    are blocked; a blocked song whose title has a known clean rendering is
    replaced by its radio edit.
    """

    def __init__(self, strict_filtering: bool = False):
        self.strict_filtering = strict_filtering
        self.logger = logger.bind(component="WordlistContentFilter")

    async def check(self, candidate: Candidate, room: RoomConfig) -> FilterDecision:
        severity, reasons = self.analyze_text(f"{candidate.title} {candidate.artist}")

        if room.allow_explicit:
            blocked = self.strict_filtering and severity is Severity.EXPLICIT
        else:
            blocked = severity in (Severity.MODERATE, Severity.EXPLICIT)

        decision = FilterDecision(allowed=not blocked, severity=severity, reasons=reasons)
        if blocked:
            clean_title = self.radio_edit(candidate.title)
            if clean_title != candidate.title:
                decision.radio_edit_title = clean_title
                decision.alternative_id = f"{candidate.song_id}_radio_edit"
        return decision

    @staticmethod
    def analyze_text(text: str):
        normalized = text.lower()
        severity = Severity.CLEAN
        reasons: List[str] = []

        for word in re.findall(r"[\w']+", normalized):
            word_severity = EXPLICIT_WORDS.get(word)
            if word_severity is not None:
                reasons.append(f"explicit language: {word}")
                if word_severity.value > severity.value:
                    severity = word_severity

        for topic, terms in SENSITIVE_TOPICS.items():
            for term in terms:
                if term in normalized:
                    reasons.append(f"{topic}: {term}")
                    if Severity.MODERATE.value > severity.value:
                        severity = Severity.MODERATE

        return severity, list(dict.fromkeys(reasons))

    @staticmethod
    def radio_edit(title: str) -> str:
        clean = title
        for explicit, replacement in RADIO_EDITS.items():
            clean = re.sub(re.escape(explicit), replacement, clean, flags=re.IGNORECASE)
        return clean


async def apply_content_filter(
    candidates: List[Candidate],
    content_filter: ContentFilter,
    room: RoomConfig,
) -> List[Candidate]:
    """
    Run `content_filter` over every candidate.

    Allowed candidates pass through, blocked ones with a radio edit are
    swapped for it, other blocked ones are dropped.
    """
    kept: List[Candidate] = []
    for candidate in candidates:
        try:
            decision = await content_filter.check(candidate, room)
        except Exception as e:
            logger.warning(
                "Content filtering failed for candidate - including anyway",
                song_id=candidate.song_id,
                error=str(e),
            )
            kept.append(candidate)
            continue

        if decision.allowed:
            kept.append(candidate)
        elif decision.has_radio_edit:
            edited = candidate.model_copy(deep=True, update={
                "song_id": decision.alternative_id or candidate.song_id,
                "title": decision.radio_edit_title,
            })
            edited.add_reason("radio edit substitution")
            kept.append(edited)

    logger.debug(
        "Content filtering completed",
        original_count=len(candidates),
        filtered_count=len(kept),
        removed_count=len(candidates) - len(kept),
    )
    return kept

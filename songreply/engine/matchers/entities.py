"""
Named Entity Extractor

Wordlist and regex recognition of contextual references (places, times,
weather, relationships, activities, emotions, colors, numbers) that can
boost songs whose tags mention the same thing.
"""

import re
from typing import Dict, List, Optional

import structlog

from ...config.settings import EntityConfig
from ...models.match_models import ExtractedEntities

logger = structlog.get_logger(__name__)

NUMBER_PATTERN = (
    r"\b(\d+|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve|"
    r"thirteen|fourteen|fifteen|sixteen|seventeen|eighteen|nineteen|twenty|"
    r"thirty|forty|fifty|sixty|seventy|eighty|ninety|hundred|thousand|million|billion)\b"
)

ENTITY_WORDLISTS: Dict[str, List[str]] = {
    "cities": [
        # US
        "new york", "los angeles", "chicago", "houston", "philadelphia", "phoenix",
        "san antonio", "san diego", "dallas", "san jose", "austin", "jacksonville",
        "fort worth", "columbus", "charlotte", "seattle", "denver", "boston",
        "detroit", "nashville", "memphis", "portland", "las vegas", "louisville",
        "baltimore", "milwaukee", "albuquerque", "tucson", "fresno", "sacramento",
        "atlanta", "kansas city", "colorado springs", "miami", "raleigh", "omaha",
        "long beach", "virginia beach", "oakland", "minneapolis", "tampa",
        "tulsa", "new orleans", "honolulu", "anaheim", "aurora", "santa ana",
        "st. louis", "riverside", "corpus christi", "lexington", "pittsburgh",
        "anchorage", "stockton", "cincinnati", "st. paul", "toledo", "newark",
        # world
        "london", "paris", "berlin", "madrid", "rome", "amsterdam", "vienna",
        "prague", "budapest", "warsaw", "stockholm", "oslo", "copenhagen",
        "helsinki", "dublin", "edinburgh", "glasgow", "manchester", "liverpool",
        "tokyo", "osaka", "kyoto", "seoul", "beijing", "shanghai", "hong kong",
        "singapore", "bangkok", "kuala lumpur", "jakarta", "manila", "mumbai",
        "delhi", "bangalore", "chennai", "kolkata", "sydney", "melbourne",
        "brisbane", "perth", "auckland", "wellington", "toronto", "vancouver",
        "montreal", "ottawa", "calgary", "edmonton", "winnipeg", "quebec city",
        "mexico city", "guadalajara", "monterrey", "puebla", "tijuana", "león",
        "buenos aires", "córdoba", "rosario", "mendoza", "san miguel", "salta",
        "são paulo", "rio de janeiro", "salvador", "brasília", "fortaleza", "belo horizonte",
        "cairo", "alexandria", "giza", "casablanca", "fez", "marrakech",
        "johannesburg", "cape town", "durban", "pretoria", "nairobi", "lagos",
    ],
    "countries": [
        "usa", "america", "united states", "canada", "mexico", "brazil", "argentina",
        "uk", "england", "britain", "scotland", "wales", "ireland", "france", "germany",
        "italy", "spain", "portugal", "netherlands", "belgium", "switzerland", "austria",
        "sweden", "norway", "denmark", "finland", "poland", "czech republic", "hungary",
        "russia", "china", "japan", "korea", "india", "thailand", "vietnam", "singapore",
        "australia", "new zealand", "south africa", "egypt", "morocco", "nigeria",
    ],
    "temporal": [
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        "mon", "tue", "wed", "thu", "fri", "sat", "sun",
        "weekend", "weekday", "weeknight", "workday",
        "morning", "afternoon", "evening", "night", "midnight", "noon", "dawn", "dusk",
        "sunrise", "sunset", "daybreak", "twilight", "am", "pm",
        "spring", "summer", "autumn", "fall", "winter",
        "january", "february", "march", "april", "may", "june",
        "july", "august", "september", "october", "november", "december",
        "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "oct", "nov", "dec",
        "today", "yesterday", "tomorrow", "tonight", "now", "then", "soon", "later",
        "early", "late", "before", "after", "during", "while",
    ],
    "weather": [
        "sunny", "cloudy", "rainy", "stormy", "snowy", "foggy", "misty", "hazy",
        "clear", "overcast", "drizzle", "shower", "thunderstorm", "lightning",
        "thunder", "rainbow", "wind", "windy", "breeze", "breezy", "calm",
        "hot", "warm", "cool", "cold", "freezing", "humid", "dry",
        "rain", "snow", "hail", "sleet", "ice", "frost", "dew",
        "storm", "hurricane", "tornado", "blizzard", "flood",
    ],
    "relationships": [
        "love", "lover", "boyfriend", "girlfriend", "husband", "wife", "partner",
        "relationship", "dating", "married", "single", "crush", "romance", "romantic",
        "breakup", "ex", "divorce", "separation", "together", "apart",
        "family", "mother", "father", "mom", "dad", "parents", "child", "children",
        "son", "daughter", "brother", "sister", "sibling", "cousin", "uncle", "aunt",
        "grandmother", "grandfather", "grandma", "grandpa", "grandparents",
        "friend", "friends", "friendship", "buddy", "pal", "mate",
        "heart", "heartbreak", "soul", "soulmate", "valentine", "wedding", "anniversary",
    ],
    "activities": [
        "driving", "walking", "running", "dancing", "singing", "playing", "working",
        "studying", "reading", "writing", "cooking", "eating", "drinking", "sleeping",
        "shopping", "traveling", "vacation", "holiday", "party", "celebration",
        "concert", "movie", "theater", "restaurant", "bar", "club", "gym", "sport",
        "exercise", "workout", "game", "competition", "race", "match",
        "meeting", "date", "appointment", "interview", "presentation", "conference",
        "school", "work", "office", "home", "house", "car", "train", "plane", "bus",
    ],
    "emotions": [
        "happy", "sad", "angry", "excited", "nervous", "anxious", "worried", "scared",
        "afraid", "confident", "proud", "embarrassed", "ashamed", "guilty", "jealous",
        "envious", "grateful", "thankful", "hopeful", "disappointed", "frustrated",
        "annoyed", "irritated", "confused", "surprised", "shocked", "amazed",
        "impressed", "inspired", "motivated", "determined", "focused", "relaxed",
        "peaceful", "calm", "stressed", "overwhelmed", "tired", "energetic",
        "bored", "interested", "curious", "passionate", "enthusiastic",
    ],
    "colors": [
        "red", "blue", "green", "yellow", "orange", "purple", "pink", "brown",
        "black", "white", "gray", "grey", "gold", "silver", "bronze",
        "crimson", "scarlet", "maroon", "navy", "turquoise", "cyan", "teal",
        "lime", "forest", "olive", "amber", "beige", "tan", "cream", "ivory",
        "violet", "indigo", "magenta", "rose", "coral", "salmon",
    ],
}

WORDLIST_CATEGORIES = tuple(ENTITY_WORDLISTS)


class EntityExtractor:
    """
    Whole-word wordlist matcher.

    Each term is anchored on word boundaries so "rain" does not fire inside
    "train". Any internal failure returns empty buckets.
    """

    def __init__(self, config: Optional[EntityConfig] = None):
        self.config = config or EntityConfig()
        self.entity_lists: Dict[str, List[str]] = {k: list(v) for k, v in ENTITY_WORDLISTS.items()}
        self._flags = 0 if self.config.case_sensitive else re.IGNORECASE
        self._patterns: Dict[str, List[re.Pattern]] = {}
        for category in self.entity_lists:
            self._compile(category)
        self._number_pattern = re.compile(NUMBER_PATTERN, self._flags)
        self.logger = logger.bind(component="EntityExtractor")

    def _compile(self, category: str):
        self._patterns[category] = [
            re.compile(rf"\b{re.escape(term)}\b", self._flags)
            for term in self.entity_lists[category]
        ]

    async def extract(self, message: str) -> ExtractedEntities:
        """
        Extract entity buckets from a message.

        Returns:
            ExtractedEntities; empty when disabled or on failure
        """
        if not self.config.enabled:
            return ExtractedEntities()

        try:
            text = message or ""
            buckets = {category: self._find(category, text) for category in self.entity_lists}
            buckets["numbers"] = self._extract_numbers(text)
            entities = ExtractedEntities(**buckets)

            self.logger.debug(
                "Entity extraction completed",
                total_entities=entities.total(),
                cities=len(entities.cities),
                temporal=len(entities.temporal),
                weather=len(entities.weather),
            )
            return entities

        except Exception as e:
            self.logger.warning("Entity extraction failed", error=str(e))
            return ExtractedEntities()

    def _find(self, category: str, text: str) -> List[str]:
        found = [
            term for term, pattern in zip(self.entity_lists[category], self._patterns[category])
            if pattern.search(text)
        ]
        return list(dict.fromkeys(found))

    def _extract_numbers(self, text: str) -> List[str]:
        matches = [m.group(0).lower() for m in self._number_pattern.finditer(text)]
        return list(dict.fromkeys(matches))

    def calculate_entity_boost(self, song_tags: List[str], entities: ExtractedEntities) -> float:
        """
        Sum of category bonuses for every boosted category with a tag overlap.

        A tag overlaps an entity when it contains it (case-insensitive).
        """
        if not self.config.enabled:
            return 0.0

        tags = [tag.lower() for tag in song_tags or []]
        boost = 0.0
        for category, bonus in self.config.category_boosts.items():
            found = [e.lower() for e in entities.bucket(category)]
            if found and any(entity in tag for tag in tags for entity in found):
                boost += bonus
        return boost

    @staticmethod
    def analyze_entity_patterns(entities: ExtractedEntities) -> Dict[str, object]:
        location_count = len(entities.cities) + len(entities.countries)
        time_count = len(entities.temporal)
        emotional_count = len(entities.emotions) + len(entities.relationships)
        activity_count = len(entities.activities)
        total = location_count + time_count + emotional_count + activity_count

        return {
            "has_location_context": location_count > 0,
            "has_time_context": time_count > 0,
            "has_emotional_context": emotional_count > 0,
            "has_activity_context": activity_count > 0,
            "context_strength": min(1.0, total / 10),
        }

    def add_custom_entities(self, category: str, entities: List[str]):
        """Extend a wordlist category; unknown categories are ignored."""
        if category not in self.entity_lists:
            self.logger.warning("Unknown entity category", category=category)
            return
        self.entity_lists[category] = list(dict.fromkeys(self.entity_lists[category] + list(entities)))
        self._compile(category)
        self.logger.info(
            "Added custom entities",
            category=category,
            added_count=len(entities),
            total_count=len(self.entity_lists[category]),
        )

    def get_entity_stats(self) -> dict:
        return {
            "total_entities": {category: len(terms) for category, terms in self.entity_lists.items()},
            "is_enabled": self.config.enabled,
            "config": self.config.model_dump(),
        }

    def is_healthy(self) -> bool:
        return self.config.enabled and bool(self.entity_lists)

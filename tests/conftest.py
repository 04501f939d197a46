"""
Shared fixtures for the SongReply test suite.

Vectors are deterministic 384-d unit vectors built from a few active axes,
so cosine distances between fixtures are easy to reason about.
"""

from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Sequence

import numpy as np
import pytest

from songreply.embeddings.base import Embedder
from songreply.errors import EmbeddingError
from songreply.models.catalog_models import AboutnessRecord, AboutnessVersion, ConfidenceLevel, Song
from songreply.store.memory_store import InMemoryCatalog, InMemorySession

DIM = 384


def unit(*axes: int, weights: Optional[Sequence[float]] = None, dim: int = DIM) -> List[float]:
    """Unit vector with the given axes set (optionally weighted)."""
    vec = np.zeros(dim, dtype=np.float64)
    for axis, weight in zip(axes, weights or [1.0] * len(axes)):
        vec[axis] = weight
    return (vec / np.linalg.norm(vec)).tolist()


class FakeEmbedder(Embedder):
    """Looks messages up in a table; unknown text maps to `default`."""

    provider = "fake"

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        default: Optional[List[float]] = None,
        dimensions: int = DIM,
        available: bool = True,
        fail: bool = False,
    ):
        self.vectors = vectors or {}
        self.default = default if default is not None else unit(0, dim=dimensions)
        self.dimensions = dimensions
        self.available = available
        self.fail = fail
        self.calls = 0

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls += 1
        if self.fail:
            raise EmbeddingError("fake embedder failure", provider=self.provider)
        return [list(self.vectors.get(text, self.default)) for text in texts]

    def get_model(self) -> str:
        return "fake-embedder"

    def get_dimensions(self) -> int:
        return self.dimensions

    async def is_available(self) -> bool:
        return self.available


class StubSentiment:
    """VADER-shaped analyzer returning fixed scores."""

    def __init__(self, scores: Optional[Dict[str, float]] = None):
        self.scores = scores or {"neg": 0.0, "neu": 1.0, "pos": 0.0, "compound": 0.0}

    def polarity_scores(self, text: str) -> Dict[str, float]:
        return dict(self.scores)


class BrokenSession(InMemorySession):
    """In-memory session whose selected operations raise or return nothing."""

    def __init__(self, catalog, fail: Sequence[str] = (), empty: Sequence[str] = ()):
        super().__init__(catalog)
        self.fail = set(fail)
        self.empty = set(empty)

    async def count_eligible(self) -> int:
        if "count_eligible" in self.fail:
            raise RuntimeError("count failed")
        return await super().count_eligible()

    async def nearest_songs(self, limit: int):
        if "nearest_songs" in self.fail:
            raise RuntimeError("index scan failed")
        if "nearest_songs" in self.empty:
            return []
        return await super().nearest_songs(limit)

    async def nearest_aboutness(self, column: str, limit: int):
        if "nearest_aboutness" in self.fail:
            raise RuntimeError("aboutness leg failed")
        return await super().nearest_aboutness(column, limit)

    async def moment_distances(self, song_ids):
        if "moment_distances" in self.fail:
            raise RuntimeError("moments failed")
        return await super().moment_distances(song_ids)


class BrokenCatalog(InMemoryCatalog):
    """InMemoryCatalog that hands out BrokenSessions."""

    def __init__(self, songs=(), aboutness=(), fail: Sequence[str] = (), empty: Sequence[str] = ()):
        super().__init__(songs, aboutness)
        self.fail = fail
        self.empty = empty
        self.last_session: Optional[BrokenSession] = None

    @asynccontextmanager
    async def session(self):
        self.last_session = BrokenSession(self, self.fail, self.empty)
        yield self.last_session


def make_songs() -> List[Song]:
    return [
        Song(
            id="s1", title="Happy", artist="Pharrell Williams",
            tags=["happy", "pop", "upbeat"], phrases=["happy", "clap along"],
            year=2013, popularity=90, embedding=unit(0),
        ),
        Song(
            id="s2", title="Walking on Sunshine", artist="Katrina and the Waves",
            tags=["upbeat", "feel good", "80s"], phrases=["walking on sunshine", "sunshine"],
            year=1985, popularity=80, embedding=unit(0, 1, weights=(0.9, 0.4)),
        ),
        Song(
            id="s3", title="Hurt", artist="Johnny Cash",
            tags=["sad", "country"], phrases=["hurt"],
            year=2002, popularity=70, embedding=unit(2),
        ),
        Song(
            id="s4", title="Rainy Days and Mondays", artist="Carpenters",
            tags=["melancholy", "rain", "monday"], phrases=["rainy days", "mondays"],
            year=1971, popularity=60, embedding=unit(3),
        ),
        Song(
            id="s5", title="Untitled Track", artist="Unknown",
            tags=[], phrases=[], popularity=95, is_placeholder=True, embedding=unit(0),
        ),
        Song(
            id="s6", title="Not Yet Embedded", artist="Nobody",
            tags=["pop"], phrases=[], popularity=10, embedding=None,
        ),
    ]


def make_aboutness() -> List[AboutnessRecord]:
    return [
        AboutnessRecord(
            song_id="s3",
            version=AboutnessVersion.V1,
            aboutness_text="quiet joy after a long winter",
            aboutness_json={"mood": "hopeful"},
            aboutness_vector=unit(0),
        ),
        AboutnessRecord(
            song_id="s4",
            emotions_text="wistful, rain-soaked calm",
            emotions_vector=unit(0),
            emotions_confidence=ConfidenceLevel.HIGH,
            moments_text="staring out a window on a grey morning",
            moments_vector=unit(0),
            moments_confidence=ConfidenceLevel.MEDIUM,
        ),
        AboutnessRecord(
            song_id="s1",
            emotions_text="bouncy and carefree",
            emotions_vector=unit(0, 2),
            emotions_confidence=ConfidenceLevel.HIGH,
        ),
    ]


@pytest.fixture
def songs() -> List[Song]:
    return make_songs()


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog(make_songs(), make_aboutness())


@pytest.fixture
def empty_catalog() -> InMemoryCatalog:
    return InMemoryCatalog([
        Song(id="p1", title="Placeholder", artist="", is_placeholder=True, embedding=unit(0)),
        Song(id="p2", title="Pending", artist="", embedding=None),
    ])


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def neutral_sentiment() -> StubSentiment:
    return StubSentiment()


@pytest.fixture
def unit_vector():
    return unit


@pytest.fixture
def make_embedder():
    return FakeEmbedder


@pytest.fixture
def make_sentiment():
    return StubSentiment


@pytest.fixture
def make_broken_catalog():
    def _make(fail: Sequence[str] = (), empty: Sequence[str] = (), songs=None, aboutness=None):
        return BrokenCatalog(
            make_songs() if songs is None else songs,
            make_aboutness() if aboutness is None else aboutness,
            fail=fail,
            empty=empty,
        )
    return _make

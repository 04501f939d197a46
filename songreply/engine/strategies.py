"""
Semantic ranking strategies.

A closed set of interchangeable strategies, all with the same
`rank(message, k)` contract, so the combiner and reranker never need to
know which generation of aboutness data is in play.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import structlog

from ..config.settings import AboutnessConfig, RankingStrategyKind
from ..errors import FatalPipelineError
from ..models.match_models import SemanticMatch
from .matchers.semantic import SemanticSearcher

logger = structlog.get_logger(__name__)


class RankingStrategy(ABC):
    kind: RankingStrategyKind

    def __init__(self, searcher: SemanticSearcher):
        self.searcher = searcher

    @abstractmethod
    async def rank(self, message: str, k: int) -> List[SemanticMatch]:
        pass


class MetaOnlyStrategy(RankingStrategy):
    """Metadata vector only."""

    kind = RankingStrategyKind.META_ONLY

    async def rank(self, message: str, k: int) -> List[SemanticMatch]:
        return await self.searcher.find_similar(message, k)


class _UnionStrategy(RankingStrategy):
    """Falls back to meta-only when the union search fails non-fatally."""

    def __init__(self, searcher: SemanticSearcher, config: Optional[AboutnessConfig] = None):
        super().__init__(searcher)
        self.config = config or searcher.aboutness

    @abstractmethod
    async def _union(self, message: str, k: int) -> List[SemanticMatch]:
        pass

    async def rank(self, message: str, k: int) -> List[SemanticMatch]:
        try:
            return await self._union(message, k)
        except FatalPipelineError:
            raise
        except Exception as e:
            logger.warning(
                "Union search failed - falling back to meta-only",
                strategy=self.kind.value,
                error=str(e),
            )
            return await self.searcher.find_similar(message, k)


class MetaPlusAboutnessStrategy(_UnionStrategy):
    """V1: metadata + single aboutness vector."""

    kind = RankingStrategyKind.META_PLUS_ABOUTNESS

    async def _union(self, message: str, k: int) -> List[SemanticMatch]:
        return await self.searcher.find_similar_union_rerank(message, k, self.config)


class MetaPlusEmotionPlusMomentStrategy(_UnionStrategy):
    """V2: metadata + emotional character + moment/scene fit."""

    kind = RankingStrategyKind.META_PLUS_EMOTION_PLUS_MOMENT

    async def _union(self, message: str, k: int) -> List[SemanticMatch]:
        return await self.searcher.find_similar_union_rerank_v2(message, k, self.config)


STRATEGIES = {
    RankingStrategyKind.META_ONLY: MetaOnlyStrategy,
    RankingStrategyKind.META_PLUS_ABOUTNESS: MetaPlusAboutnessStrategy,
    RankingStrategyKind.META_PLUS_EMOTION_PLUS_MOMENT: MetaPlusEmotionPlusMomentStrategy,
}


def create_strategy(searcher: SemanticSearcher, config: Optional[AboutnessConfig] = None) -> RankingStrategy:
    """Build the strategy named by `config.strategy`."""
    config = config or searcher.aboutness
    strategy_cls = STRATEGIES[config.strategy]
    if strategy_cls is MetaOnlyStrategy:
        return MetaOnlyStrategy(searcher)
    return strategy_cls(searcher, config)

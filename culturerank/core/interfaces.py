from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Sequence, final
from .config import DPPParams, ExplainThresholds
from .numeric import finite_or
from .state import (
    ConstraintsReport,
    ReasonCode,
    ScoredCandidate,
    ScoreWeights,
    Strategy,
)


# -------- Shared data structures for rerank outputs --------
@dataclass(frozen=True, slots=True)
class RerankContext:
    """Everything a rerank strategy needs besides the sorted candidates."""

    diversity_cap_n: int
    effective_k: int
    exploration_budget: float
    effective_weights: ScoreWeights
    request_id: str = ""
    request_seed: str | None = None
    mmr_lambda: float = 0.3
    cluster_exposures: Mapping[str, int] = field(default_factory=dict)
    thresholds: ExplainThresholds = field(default_factory=ExplainThresholds)
    explore_exposure_max: int = 2
    dpp: DPPParams = field(default_factory=DPPParams)

    def exposure(self, cluster_id: str) -> int:
        return max(0, int(finite_or(self.cluster_exposures.get(cluster_id, 0))))


@dataclass(frozen=True, slots=True)
class RerankResult:
    items: list[tuple[ScoredCandidate, tuple[ReasonCode, ...]]]
    report: ConstraintsReport

    def __len__(self) -> int:
        return len(self.items)


# -------- Base component interface --------
class Component(ABC):
    """Base class for ranking components.

    Components are constructed per call from plain params and hold no state
    between calls.
    """

    component_kind: ClassVar[str] = "component"

    def __init__(self, **params: Any):
        self.params: dict[str, Any] = params
        self.id: str = params.get("id", self.__class__.__name__)

    @final
    def require_param(
        self, key: str, expected: type, default_value: Any | None = None
    ) -> Any:
        if key in self.params:
            val = self.params[key]
        elif default_value is not None:
            self.params[key] = default_value
            val = default_value
        else:
            raise KeyError(f"{type(self).__name__}: missing required param '{key}'")

        if not isinstance(val, expected):
            raise TypeError(
                f"{self.__class__.__name__}: param '{key}' must be {expected}, got {type(val).__name__}"
            )
        return val


class Reranker(Component):
    """Diversity-aware reranking strategy.

    Contract for `rerank`: `candidates` arrive sorted by the total order
    (final_score desc, created_at desc, item_key asc); the result holds at
    most `target_size` distinct items, each carrying at least one reason code.
    """

    component_kind: ClassVar[str] = "reranker"
    strategy: ClassVar[Strategy]

    @abstractmethod
    def rerank(
        self, candidates: Sequence[ScoredCandidate], ctx: RerankContext, target_size: int
    ) -> RerankResult: ...

    @staticmethod
    def target_size(candidates: Sequence[ScoredCandidate], ctx: RerankContext) -> int:
        return max(0, min(ctx.diversity_cap_n, len(candidates)))

    @staticmethod
    def empty_report(ctx: RerankContext) -> ConstraintsReport:
        return ConstraintsReport(
            used_strategy=Strategy.NONE,
            cap_applied_count=0,
            exploration_slots_requested=0,
            exploration_slots_filled=0,
            effective_diversity_cap_k=ctx.effective_k,
            effective_exploration_budget=ctx.exploration_budget,
            effective_weights=ctx.effective_weights,
        )

    @final
    def run(
        self, candidates: Sequence[ScoredCandidate], ctx: RerankContext
    ) -> RerankResult:
        n: int = self.target_size(candidates, ctx)
        if n == 0:
            return RerankResult(items=[], report=self.empty_report(ctx))
        return self.rerank(candidates, ctx, n)

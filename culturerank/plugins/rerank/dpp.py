import logging
import math
import numpy as np
from numpy.typing import NDArray
from typing import Any, ClassVar, Sequence

from typing_extensions import override
from ...core.interfaces import Reranker, RerankContext, RerankResult
from ...core.numeric import ZERO_THRESHOLD, determinant, finite_or
from ...core.registry import register
from ...core.state import ConstraintsReport, ReasonCode, ScoredCandidate, Strategy
from ..common import SimilarityCache, SimilarityMethod
from ..explain.reasons import determine_reason_codes

logger = logging.getLogger(__name__)


def build_dpp_kernel(
    items: Sequence[ScoredCandidate],
    diversity_weight: float,
    sim: SimilarityCache | None = None,
) -> NDArray[np.float64]:
    """L[i][i] = q_i ** 2, L[i][j] = q_i * max(0, 1 - w * S_ij) * q_j with q = max(final_score, 1e-10).

    S_ij is raw cosine in [-1, 1] when both items carry embeddings, else
    cluster identity, so opposed embeddings couple more strongly than
    orthogonal ones.
    """
    if sim is None:
        sim = SimilarityCache("cosine", unit_interval=False)
    n: int = len(items)
    w: float = max(0.0, finite_or(diversity_weight))
    q = np.array([max(c.final_score, ZERO_THRESHOLD) for c in items], dtype=np.float64)
    kernel = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        kernel[i, i] = q[i] * q[i]
        for j in range(i + 1, n):
            s: float = sim(items[i].candidate, items[j].candidate)
            value = q[i] * max(0.0, 1.0 - w * s) * q[j]
            kernel[i, j] = kernel[j, i] = value
    return np.nan_to_num(kernel, nan=0.0, posinf=0.0, neginf=0.0)


def _scaled_gain(gain: float, temperature: float) -> float:
    if gain <= 0.0 or not math.isfinite(gain):
        return 0.0
    try:
        out = gain ** (1.0 / max(temperature, 1e-6))
    except OverflowError:
        return 0.0
    return out if math.isfinite(out) else 0.0


def dpp_greedy(
    kernel: NDArray[np.float64],
    k: int,
    temperature: float = 1.0,
    regularization: float = 1e-6,
) -> list[int]:
    """Greedy MAP: repeatedly add the index whose subset determinant, scaled by
    det ** (1 / temperature), is largest.

    Stops early once no remaining index yields a positive gain.
    """
    n: int = kernel.shape[0]
    selected: list[int] = []
    remaining: list[int] = list(range(n))

    while len(selected) < min(k, n) and remaining:
        best_idx: int = -1
        best_gain: float = 0.0
        for idx in remaining:
            subset = selected + [idx]
            det = determinant(kernel[np.ix_(subset, subset)], regularization)
            gain = _scaled_gain(det, temperature)
            # strict > keeps the earliest (better sorted) index on ties
            if gain > best_gain:
                best_idx, best_gain = idx, gain
        if best_idx < 0:
            break
        selected.append(best_idx)
        remaining.remove(best_idx)
    return selected


@register("reranker", "DPP")
class DPP(Reranker):
    """Determinantal Point Process reranker (greedy MAP over a quality x similarity kernel).

    The per-cluster cap is observed but not enforced here: picks that land in a
    cluster already at the cap are counted in `cap_applied_count`. No
    exploration slots are reserved. The result may be shorter than the target
    when the determinant stops growing.
    """

    strategy: ClassVar[Strategy] = Strategy.DPP

    @override
    def __init__(self, **params: Any):
        super().__init__(**params)
        self.similarity_method: SimilarityMethod = self.require_param(
            "similarity_method", str, "cosine"
        )

    @override
    def rerank(
        self, candidates: Sequence[ScoredCandidate], ctx: RerankContext, target_size: int
    ) -> RerankResult:
        pool = list(candidates[: max(0, ctx.dpp.max_items)])
        sim = SimilarityCache(self.similarity_method, unit_interval=False)
        kernel = build_dpp_kernel(pool, ctx.dpp.diversity_weight, sim)
        order = dpp_greedy(
            kernel, target_size, ctx.dpp.temperature, ctx.dpp.regularization
        )

        cap: int = max(1, ctx.effective_k)
        counts: dict[str, int] = {}
        cap_applied: int = 0
        items: list[tuple[ScoredCandidate, tuple[ReasonCode, ...]]] = []
        for idx in order:
            pick = pool[idx]
            if counts.get(pick.cluster_id, 0) >= cap:
                cap_applied += 1
            counts[pick.cluster_id] = counts.get(pick.cluster_id, 0) + 1
            codes = determine_reason_codes(
                pick.candidate, ctx.cluster_exposures, ctx.thresholds
            )
            items.append((pick, codes))

        logger.debug(
            "dpp: %d/%d selected from %d, cap exceeded %d",
            len(items),
            target_size,
            len(pool),
            cap_applied,
        )
        return RerankResult(
            items=items,
            report=ConstraintsReport(
                used_strategy=self.strategy,
                cap_applied_count=cap_applied,
                exploration_slots_requested=0,
                exploration_slots_filled=0,
                effective_diversity_cap_k=ctx.effective_k,
                effective_exploration_budget=ctx.exploration_budget,
                effective_weights=ctx.effective_weights,
            ),
        )

import logging
import math
from typing import Any, ClassVar, Sequence

from typing_extensions import override
from ...core.interfaces import Reranker, RerankContext, RerankResult
from ...core.registry import register
from ...core.rng import XorShift64, unique_random_indices
from ...core.state import (
    Candidate,
    ConstraintsReport,
    ReasonCode,
    ScoredCandidate,
    Strategy,
)
from ..common import SimilarityCache, SimilarityMethod
from ..explain.reasons import (
    EXPLORATION_CODES,
    determine_reason_codes,
    merge_reason_codes,
)

logger = logging.getLogger(__name__)


@register("reranker", "MMR")
class MMR(Reranker):
    """Maximal Marginal Relevance reranker with a soft per-cluster cap and seeded exploration slots.

    Position 0 takes the most relevant candidate. Exploration positions, drawn
    from [1, N-1] by the request-seeded generator, take the best
    0.7 * DNS + 0.3 * final candidate from clusters the user has barely seen.
    Every other position takes argmax(final - lambda * max_sim(selected)).
    The cap is soft: when it excludes every remaining candidate the best
    candidate is taken anyway so the slate always fills.
    """

    strategy: ClassVar[Strategy] = Strategy.MMR
    EXPLORATION_DNS_WEIGHT: ClassVar[float] = 0.7
    EXPLORATION_SCORE_WEIGHT: ClassVar[float] = 0.3

    @override
    def __init__(self, **params: Any):
        super().__init__(**params)
        self.similarity_method: SimilarityMethod = self.require_param(
            "similarity_method", str, "cosine"
        )

    @classmethod
    def exploration_score(cls, c: ScoredCandidate) -> float:
        return (
            cls.EXPLORATION_DNS_WEIGHT * c.breakdown.dns
            + cls.EXPLORATION_SCORE_WEIGHT * c.final_score
        )

    @staticmethod
    def exploration_positions(ctx: RerankContext, n: int) -> tuple[int, list[int]]:
        requested: int = int(math.floor(n * max(0.0, ctx.exploration_budget)))
        rng = XorShift64.from_request(ctx.request_seed, ctx.request_id)
        return requested, unique_random_indices(rng, requested, 1, n - 1)

    def _best_mmr(
        self,
        cands: Sequence[ScoredCandidate],
        selected: Sequence[Candidate],
        sim: SimilarityCache,
        lmb: float,
    ) -> ScoredCandidate | None:
        best: ScoredCandidate | None = None
        best_score: float = -math.inf
        for c in cands:
            score = c.final_score - lmb * sim.max_similarity(c.candidate, selected)
            if score > best_score:
                best, best_score = c, score
        return best

    def _best_exploration(
        self,
        remaining: Sequence[ScoredCandidate],
        eligible: set[str],
        counts: dict[str, int],
        cap: int,
    ) -> ScoredCandidate | None:
        under_cap = [c for c in remaining if counts.get(c.cluster_id, 0) < cap]
        tiers = (
            [c for c in under_cap if c.item_key in eligible],
            under_cap,
            list(remaining),
        )
        for tier in tiers:
            if tier:
                # max() keeps the first of equal scores, i.e. the better-sorted one
                return max(tier, key=self.exploration_score)
        return None

    @override
    def rerank(
        self, candidates: Sequence[ScoredCandidate], ctx: RerankContext, target_size: int
    ) -> RerankResult:
        n: int = target_size
        cap: int = max(1, ctx.effective_k)
        requested, positions = self.exploration_positions(ctx, n)
        slots: set[int] = set(positions)

        eligible: set[str] = {
            c.item_key
            for c in candidates
            if ctx.exposure(c.cluster_id) <= ctx.explore_exposure_max
        }
        sim = SimilarityCache(self.similarity_method)
        used: set[str] = set()
        counts: dict[str, int] = {}
        selected: list[Candidate] = []
        items: list[tuple[ScoredCandidate, tuple[ReasonCode, ...]]] = []
        cap_applied: int = 0
        filled: int = 0

        while len(items) < n:
            remaining = [c for c in candidates if c.item_key not in used]
            if not remaining:
                break
            pos: int = len(items)
            pick: ScoredCandidate | None
            exploring: bool = pos in slots

            if exploring:
                pick = self._best_exploration(remaining, eligible, counts, cap)
            else:
                under_cap: list[ScoredCandidate] = []
                for c in remaining:
                    if counts.get(c.cluster_id, 0) >= cap:
                        cap_applied += 1
                        continue
                    under_cap.append(c)
                if pos == 0 and under_cap:
                    pick = under_cap[0]
                else:
                    # cap excluding everyone falls back to the whole pool
                    pick = self._best_mmr(
                        under_cap or remaining, selected, sim, ctx.mmr_lambda
                    )

            if pick is None:
                break
            codes = determine_reason_codes(
                pick.candidate, ctx.cluster_exposures, ctx.thresholds
            )
            if exploring:
                codes = merge_reason_codes(codes, EXPLORATION_CODES)
                filled += 1
            items.append((pick, codes))
            used.add(pick.item_key)
            selected.append(pick.candidate)
            counts[pick.cluster_id] = counts.get(pick.cluster_id, 0) + 1

        logger.debug(
            "mmr: %d/%d selected, cap applied %d, exploration %d/%d, %d similarities",
            len(items),
            n,
            cap_applied,
            filled,
            requested,
            len(sim),
        )
        return RerankResult(
            items=items,
            report=ConstraintsReport(
                used_strategy=self.strategy,
                cap_applied_count=cap_applied,
                exploration_slots_requested=requested,
                exploration_slots_filled=filled,
                effective_diversity_cap_k=ctx.effective_k,
                effective_exploration_budget=ctx.exploration_budget,
                effective_weights=ctx.effective_weights,
            ),
        )

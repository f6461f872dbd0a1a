"""Multi-objective score blending and the primary ranking pass.

final = round9(w_prs * PRS + w_cvs * CVS + w_dns * DNS - penalty)

PRS and the CVS sub-signals are computed upstream and read from the
candidate's feature record; DNS is derived here from cluster exposure and age.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping
from ...core.config import DEFAULT_PARAMS, CVSWeights, NoveltyParams, RankParams
from ...core.numeric import clamp01, finite_or, round9
from ...core.state import (
    Candidate,
    CVSComponents,
    ScoreBreakdown,
    ScoredCandidate,
    ScoreWeights,
)

logger = logging.getLogger(__name__)

LN2: float = math.log(2.0)
MS_PER_HOUR: float = 60.0 * 60.0 * 1000.0


@dataclass(frozen=True, slots=True)
class SurfacePolicy:
    """Boolean filter derived from a surface's policy. The table itself is owned by the caller."""

    require_moderated: bool = False
    exclude_nsfw: bool = False
    allowed_types: frozenset[str] | None = None

    def allows(self, cand: Candidate) -> bool:
        flags = cand.quality_flags
        if self.require_moderated and not flags.moderated:
            return False
        if self.exclude_nsfw and flags.nsfw:
            return False
        if self.allowed_types is not None and cand.type not in self.allowed_types:
            return False
        return True


def exposure_count(exposures: Mapping[str, int], cluster_id: str) -> int:
    return max(0, int(finite_or(exposures.get(cluster_id, 0))))


def calculate_cvs(components: CVSComponents, weights: CVSWeights = CVSWeights()) -> float:
    cvs = (
        weights.like * components.like
        + weights.context * components.context
        + weights.collection * components.collection
        + weights.bridge * components.bridge
        + weights.sustain * components.sustain
    )
    return clamp01(cvs)


def calculate_dns(
    cand: Candidate,
    exposures: Mapping[str, int],
    now_ts: float,
    novelty: NoveltyParams = NoveltyParams(),
) -> float:
    count: int = exposure_count(exposures, cand.cluster_id)
    factor: float = max(0.0, finite_or(novelty.cluster_novelty_factor))
    cluster_novelty: float = 1.0 / (1.0 + count * factor)

    # future timestamps behave as age 0
    age_hours: float = max(0.0, finite_or((now_ts - cand.created_at) / MS_PER_HOUR))
    half_life: float = max(1e-6, finite_or(novelty.time_half_life_hours, 1e-6))
    time_novelty: float = math.exp(-LN2 * age_hours / half_life)

    return clamp01(
        novelty.cluster_weight * cluster_novelty + novelty.time_weight * time_novelty
    )


def calculate_penalty(cand: Candidate, spam_penalty: float = 0.5) -> float:
    penalty: float = spam_penalty if cand.quality_flags.spam_suspect else 0.0
    return clamp01(penalty)


def score_candidate(
    cand: Candidate,
    exposures: Mapping[str, int],
    now_ts: float,
    weights: ScoreWeights,
    params: RankParams = DEFAULT_PARAMS,
) -> ScoredCandidate:
    feats = cand.features
    prs = clamp01(feats.prs if feats.prs is not None else 0.0)
    cvs = calculate_cvs(feats.cvs_components, params.cvs_weights)
    dns = calculate_dns(cand, exposures, now_ts, params.novelty)
    penalty = calculate_penalty(cand, params.spam_penalty)
    final = round9(weights.prs * prs + weights.cvs * cvs + weights.dns * dns - penalty)
    return ScoredCandidate(
        candidate=cand,
        breakdown=ScoreBreakdown(
            prs=prs, cvs=cvs, dns=dns, penalty=penalty, final_score=final
        ),
    )


def filter_candidates(
    candidates: Iterable[Candidate], policy: SurfacePolicy | None = None
) -> list[Candidate]:
    """Silently drop hard-blocked candidates and those the surface policy rejects."""
    kept: list[Candidate] = []
    for c in candidates:
        if c.quality_flags.hard_block:
            continue
        if policy is not None and not policy.allows(c):
            continue
        kept.append(c)
    return kept


def primary_rank(
    candidates: Iterable[Candidate],
    exposures: Mapping[str, int],
    now_ts: float,
    weights: ScoreWeights,
    params: RankParams = DEFAULT_PARAMS,
    policy: SurfacePolicy | None = None,
) -> list[ScoredCandidate]:
    pool = list(candidates)
    kept = filter_candidates(pool, policy)
    scored = [score_candidate(c, exposures, now_ts, weights, params) for c in kept]
    scored.sort(key=ScoredCandidate.sort_key)
    logger.debug("primary rank: %d scored, %d filtered", len(scored), len(pool) - len(kept))
    return scored

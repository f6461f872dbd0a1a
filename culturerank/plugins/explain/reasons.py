"""Reason codes derived from a candidate's final features.

Every rule is evaluated in a fixed order with no short-circuit; the result is
deduplicated and always non-empty (TRENDING_IN_CLUSTER is the fallback).
"""

import math
from typing import Any, Iterable, Mapping
from ...core.config import ExplainThresholds
from ...core.numeric import finite_or, safe_div
from ...core.state import Candidate, ReasonCode, ScoreBreakdown

_PRS_SOURCE_CODES: dict[str, ReasonCode] = {
    "saved": ReasonCode.SIMILAR_TO_SAVED,
    "liked": ReasonCode.SIMILAR_TO_LIKED,
    "following": ReasonCode.FOLLOWING,
}

EXPLORATION_CODES: tuple[ReasonCode, ...] = (
    ReasonCode.EXPLORATION,
    ReasonCode.DIVERSITY_SLOT,
)


def merge_reason_codes(*groups: Iterable[ReasonCode]) -> tuple[ReasonCode, ...]:
    """Concatenate groups keeping first occurrence order."""
    return tuple(dict.fromkeys(code for group in groups for code in group))


def support_density(
    cand: Candidate, thresholds: ExplainThresholds = ExplainThresholds()
) -> float | None:
    """Explicit hint, else (like + prior_likes) / (unique_views + prior_views) ** beta."""
    feats = cand.features
    if feats.support_density is not None:
        return finite_or(feats.support_density)
    if feats.unique_views is None:
        return None
    base: float = max(0.0, finite_or(feats.unique_views)) + thresholds.prior_views
    if base <= 0.0:
        return 0.0
    try:
        denom: float = base**thresholds.density_beta
    except OverflowError:
        return 0.0
    return safe_div(feats.cvs_components.like + thresholds.prior_likes, denom)


def determine_reason_codes(
    cand: Candidate,
    exposures: Mapping[str, int],
    thresholds: ExplainThresholds = ExplainThresholds(),
) -> tuple[ReasonCode, ...]:
    codes: list[ReasonCode] = []
    feats = cand.features
    comps = feats.cvs_components

    if comps.context >= thresholds.context_high:
        codes.append(ReasonCode.GROWING_CONTEXT)

    if comps.bridge >= thresholds.bridge_high:
        codes.append(ReasonCode.BRIDGE_SUCCESS)

    density = support_density(cand, thresholds)
    if density is not None and density >= thresholds.support_density_high:
        codes.append(ReasonCode.HIGH_SUPPORT_DENSITY)

    exposure: int = max(0, int(finite_or(exposures.get(cand.cluster_id, 0))))
    if exposure < thresholds.new_cluster_exposure_max:
        codes.append(ReasonCode.NEW_IN_CLUSTER)

    if feats.prs is not None and feats.prs >= thresholds.prs_similarity_min:
        code = _PRS_SOURCE_CODES.get(feats.prs_source or "")
        if code is not None:
            codes.append(code)

    if not codes:
        codes.append(ReasonCode.TRENDING_IN_CLUSTER)

    return merge_reason_codes(codes)


def contribution_rates(breakdown: ScoreBreakdown) -> dict[str, int]:
    """Integer percentage share of prs / cvs / dns in their sum."""
    prs = finite_or(breakdown.prs)
    cvs = finite_or(breakdown.cvs)
    dns = finite_or(breakdown.dns)
    total = prs + cvs + dns
    if total == 0.0:
        return {"prs": 0, "cvs": 0, "dns": 0}
    return {
        "prs": int(math.floor(prs / total * 100 + 0.5)),
        "cvs": int(math.floor(cvs / total * 100 + 0.5)),
        "dns": int(math.floor(dns / total * 100 + 0.5)),
    }


def detailed_explanation(
    breakdown: ScoreBreakdown, codes: Iterable[ReasonCode]
) -> dict[str, Any]:
    factors: list[dict[str, Any]] = [
        {"name": "PRS", "value": breakdown.prs, "description": "Personal relevance"},
        {"name": "CVS", "value": breakdown.cvs, "description": "Cultural value"},
        {"name": "DNS", "value": breakdown.dns, "description": "Diversity/novelty"},
    ]
    if breakdown.penalty > 0:
        factors.append(
            {
                "name": "Penalty",
                "value": -breakdown.penalty,
                "description": "Quality penalties",
            }
        )
    # first factor wins ties
    main = factors[0]
    for f in factors[1:]:
        if abs(f["value"]) > abs(main["value"]):
            main = f
    return {
        "summary": f"{main['description']} is the main factor.",
        "factors": factors,
        "reason_codes": [str(c) for c in codes],
        "contribution_rates": contribution_rates(breakdown),
    }

"""camelCase JSON contract <-> typed request/response values.

Only this module knows the wire spelling; everything past `request_from_dict`
works on the frozen dataclasses in `culturerank.core.state`. Required fields
missing from the payload raise KeyError naming the offending path.
"""

import re
from typing import Any, Mapping
from ..core.state import (
    Candidate,
    CandidateFeatures,
    ConstraintsReport,
    CVSComponents,
    QualityFlags,
    RankContext,
    RankedItem,
    RankRequest,
    RankResponse,
    ScoreBreakdown,
    ScoreWeights,
    UserState,
)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def snake_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively rename camelCase param keys (diversityCapK -> diversity_cap_k)."""
    out: dict[str, Any] = {}
    for k, v in params.items():
        out[camel_to_snake(str(k))] = snake_params(v) if isinstance(v, Mapping) else v
    return out


def _require(d: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in d:
        raise KeyError(f"{where}: missing required field '{key}'")
    return d[key]


def _cvs_components(d: Mapping[str, Any]) -> CVSComponents:
    return CVSComponents(
        like=float(d.get("likeSignal", 0.0)),
        context=float(d.get("contextSignal", 0.0)),
        collection=float(d.get("collectionSignal", 0.0)),
        bridge=float(d.get("bridgeSignal", 0.0)),
        sustain=float(d.get("sustainSignal", 0.0)),
    )


def _quality_flags(d: Mapping[str, Any]) -> QualityFlags:
    return QualityFlags(
        moderated=bool(d.get("moderated", False)),
        spam_suspect=bool(d.get("spamSuspect", False)),
        hard_block=bool(d.get("hardBlock", False)),
        nsfw=bool(d.get("nsfw", False)),
    )


def candidate_from_dict(d: Mapping[str, Any]) -> Candidate:
    item_key = str(_require(d, "itemKey", "Candidate"))
    where = f"Candidate[{item_key}]"
    feats: Mapping[str, Any] = d.get("features") or {}
    # flags may sit on the candidate or inside its features
    flags: Mapping[str, Any] = d.get("qualityFlags") or feats.get("qualityFlags") or {}

    density = feats.get("supportDensity")
    if density is None:
        density = (feats.get("publicMetrics") or {}).get("supportDensity")
    embedding = feats.get("embedding")
    prs = feats.get("prs")
    views = feats.get("uniqueViews")

    return Candidate(
        item_key=item_key,
        type=str(_require(d, "type", where)),
        cluster_id=str(_require(d, "clusterId", where)),
        created_at=float(_require(d, "createdAt", where)),
        quality_flags=_quality_flags(flags),
        features=CandidateFeatures(
            cvs_components=_cvs_components(feats.get("cvsComponents") or {}),
            prs=None if prs is None else float(prs),
            prs_source=feats.get("prsSource"),
            embedding=None if embedding is None else tuple(float(x) for x in embedding),
            support_density=None if density is None else float(density),
            unique_views=None if views is None else int(views),
        ),
    )


def user_state_from_dict(d: Mapping[str, Any]) -> UserState:
    return UserState(
        user_key=str(d.get("userKey", "")),
        diversity_slider=float(d.get("diversitySlider", 0.5)),
        recent_cluster_exposures={
            str(k): int(v) for k, v in (d.get("recentClusterExposures") or {}).items()
        },
        like_window_count=int(d.get("likeWindowCount24h", 0)),
        curator_reputation=float(d.get("curatorReputation", 1.0)),
    )


def request_from_dict(d: Mapping[str, Any]) -> RankRequest:
    ctx: Mapping[str, Any] = _require(d, "context", "RankRequest")
    params = d.get("params")
    return RankRequest(
        contract_version=str(_require(d, "contractVersion", "RankRequest")),
        request_id=str(_require(d, "requestId", "RankRequest")),
        user_state=user_state_from_dict(_require(d, "userState", "RankRequest")),
        candidates=tuple(
            candidate_from_dict(c) for c in _require(d, "candidates", "RankRequest")
        ),
        context=RankContext(
            surface=str(ctx.get("surface", "home_mix")),
            now_ts=float(_require(ctx, "nowTs", "RankContext")),
        ),
        request_seed=d.get("requestSeed"),
        params=snake_params(params) if params else None,
        variant_id=d.get("variantId"),
    )


def _weights_to_dict(w: ScoreWeights) -> dict[str, float]:
    return {"prs": w.prs, "cvs": w.cvs, "dns": w.dns}


def _breakdown_to_dict(b: ScoreBreakdown) -> dict[str, float]:
    return {
        "prs": b.prs,
        "cvs": b.cvs,
        "dns": b.dns,
        "penalty": b.penalty,
        "finalScore": b.final_score,
    }


def _item_to_dict(item: RankedItem) -> dict[str, Any]:
    return {
        "itemKey": item.item_key,
        "type": item.type,
        "clusterId": item.cluster_id,
        "finalScore": item.final_score,
        "reasonCodes": [str(c) for c in item.reason_codes],
        "scoreBreakdown": _breakdown_to_dict(item.score_breakdown),
    }


def _report_to_dict(r: ConstraintsReport) -> dict[str, Any]:
    return {
        "usedStrategy": str(r.used_strategy),
        "capAppliedCount": r.cap_applied_count,
        "explorationSlotsRequested": r.exploration_slots_requested,
        "explorationSlotsFilled": r.exploration_slots_filled,
        "effectiveDiversityCapK": r.effective_diversity_cap_k,
        "effectiveExplorationBudget": r.effective_exploration_budget,
        "effectiveWeights": _weights_to_dict(r.effective_weights),
    }


def response_to_dict(resp: RankResponse) -> dict[str, Any]:
    out: dict[str, Any] = {
        "requestId": resp.request_id,
        "algorithmId": resp.algorithm_id,
        "algorithmVersion": resp.algorithm_version,
        "contractVersion": resp.contract_version,
        "paramSetId": resp.param_set_id,
        "ranked": [_item_to_dict(i) for i in resp.ranked],
        "constraintsReport": _report_to_dict(resp.constraints_report),
    }
    if resp.variant_id is not None:
        out["variantId"] = resp.variant_id
    return out

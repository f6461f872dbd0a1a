from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Mapping


class Strategy(StrEnum):
    MMR = "MMR"
    DPP = "DPP"
    NONE = "NONE"


class ReasonCode(StrEnum):
    SIMILAR_TO_SAVED = "SIMILAR_TO_SAVED"
    SIMILAR_TO_LIKED = "SIMILAR_TO_LIKED"
    FOLLOWING = "FOLLOWING"
    GROWING_CONTEXT = "GROWING_CONTEXT"
    BRIDGE_SUCCESS = "BRIDGE_SUCCESS"
    DIVERSITY_SLOT = "DIVERSITY_SLOT"
    EXPLORATION = "EXPLORATION"
    HIGH_SUPPORT_DENSITY = "HIGH_SUPPORT_DENSITY"
    TRENDING_IN_CLUSTER = "TRENDING_IN_CLUSTER"
    NEW_IN_CLUSTER = "NEW_IN_CLUSTER"
    EDITORIAL = "EDITORIAL"


# -------- Candidate inputs (precomputed upstream, never mutated) --------
@dataclass(frozen=True, slots=True)
class CVSComponents:
    like: float = 0.0
    context: float = 0.0
    collection: float = 0.0
    bridge: float = 0.0
    sustain: float = 0.0


@dataclass(frozen=True, slots=True)
class QualityFlags:
    moderated: bool = False
    spam_suspect: bool = False
    hard_block: bool = False
    nsfw: bool = False


@dataclass(frozen=True, slots=True)
class CandidateFeatures:
    cvs_components: CVSComponents = field(default_factory=CVSComponents)
    prs: float | None = None
    prs_source: str | None = None  # "saved" | "liked" | "following"
    embedding: tuple[float, ...] | None = None
    support_density: float | None = None
    unique_views: int | None = None


@dataclass(frozen=True, slots=True)
class Candidate:
    item_key: str
    type: str
    cluster_id: str
    created_at: float  # epoch ms
    quality_flags: QualityFlags = field(default_factory=QualityFlags)
    features: CandidateFeatures = field(default_factory=CandidateFeatures)


# -------- Per-call derived values --------
@dataclass(frozen=True, slots=True)
class ScoreWeights:
    prs: float
    cvs: float
    dns: float

    @property
    def total(self) -> float:
        return self.prs + self.cvs + self.dns


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    prs: float
    cvs: float
    dns: float
    penalty: float
    final_score: float


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    candidate: Candidate
    breakdown: ScoreBreakdown

    @property
    def item_key(self) -> str:
        return self.candidate.item_key

    @property
    def cluster_id(self) -> str:
        return self.candidate.cluster_id

    @property
    def final_score(self) -> float:
        return self.breakdown.final_score

    def sort_key(self) -> tuple[float, float, str]:
        """Total order: final_score desc, created_at desc, item_key asc."""
        return (-self.final_score, -self.candidate.created_at, self.item_key)


@dataclass(frozen=True, slots=True)
class ConstraintsReport:
    used_strategy: Strategy
    cap_applied_count: int
    exploration_slots_requested: int
    exploration_slots_filled: int
    effective_diversity_cap_k: int
    effective_exploration_budget: float
    effective_weights: ScoreWeights


@dataclass(frozen=True, slots=True)
class RankedItem:
    item_key: str
    type: str
    cluster_id: str
    final_score: float
    reason_codes: tuple[ReasonCode, ...]
    score_breakdown: ScoreBreakdown


# -------- Request / response envelopes --------
@dataclass(frozen=True, slots=True)
class UserState:
    user_key: str = ""
    diversity_slider: float = 0.5
    recent_cluster_exposures: Mapping[str, int] = field(default_factory=dict)
    # owned by external collaborators, carried through untouched
    like_window_count: int = 0
    curator_reputation: float = 1.0


@dataclass(frozen=True, slots=True)
class RankContext:
    surface: str = "home_mix"
    now_ts: float = 0.0  # epoch ms


@dataclass(frozen=True, slots=True)
class RankRequest:
    contract_version: str
    request_id: str
    user_state: UserState
    candidates: tuple[Candidate, ...]
    context: RankContext
    request_seed: str | None = None
    params: Mapping[str, Any] | None = None
    variant_id: str | None = None


@dataclass(frozen=True, slots=True)
class RankResponse:
    request_id: str
    algorithm_id: str
    algorithm_version: str
    contract_version: str
    param_set_id: str
    ranked: list[RankedItem]
    constraints_report: ConstraintsReport
    variant_id: str | None = None

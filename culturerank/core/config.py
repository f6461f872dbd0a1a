import logging
import yaml
from dataclasses import dataclass, fields, is_dataclass, replace
from typing import Any, Mapping
from .fingerprint import fingerprint_field
from .state import ScoreWeights, Strategy

logger = logging.getLogger(__name__)


class Config(dict):
    """Process-level config loaded from YAML (dict-like)."""

    @property
    def params(self) -> Mapping[str, Any]:
        return self.get("params") or {}


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as f:
        return Config(yaml.safe_load(f) or {})


# -------- Parameter groups --------
@dataclass(frozen=True, slots=True)
class CVSWeights:
    like: float = 0.35
    context: float = 0.25
    collection: float = 0.15
    bridge: float = 0.15
    sustain: float = 0.10


@dataclass(frozen=True, slots=True)
class NoveltyParams:
    cluster_novelty_factor: float = 0.06
    time_half_life_hours: float = 72.0
    cluster_weight: float = 0.6
    time_weight: float = 0.4


@dataclass(frozen=True, slots=True)
class SliderParams:
    delta_max: float = 0.10
    min_weight: float = 0.05
    max_weight: float = 0.90
    max_iterations: int = 3
    dns_ratio: float = 0.6
    cvs_ratio: float = 0.4
    k_min_multiplier: float = 0.5
    k_max_multiplier: float = 1.5
    exploration_min_multiplier: float = 0.5
    exploration_max_multiplier: float = 1.5
    budget_min: float = 0.0
    budget_max: float = 0.5


@dataclass(frozen=True, slots=True)
class DPPParams:
    diversity_weight: float = 0.5
    temperature: float = 1.0
    regularization: float = 1e-6
    max_items: int = 100


@dataclass(frozen=True, slots=True)
class ExplainThresholds:
    context_high: float = 0.70
    bridge_high: float = 0.70
    support_density_high: float = 0.15
    new_cluster_exposure_max: int = 2  # NEW_IN_CLUSTER fires strictly below
    prs_similarity_min: float = 0.65
    # priors for deriving support density from like signal / unique views
    prior_views: float = 10.0
    prior_likes: float = 1.0
    density_beta: float = 1.0


@dataclass(frozen=True, slots=True)
class RankParams:
    """Effective ranking parameters for one call. Every field is fingerprinted."""

    weights: ScoreWeights = fingerprint_field(
        default_factory=lambda: ScoreWeights(prs=0.55, cvs=0.25, dns=0.20)
    )
    cvs_weights: CVSWeights = fingerprint_field(default_factory=CVSWeights)
    novelty: NoveltyParams = fingerprint_field(default_factory=NoveltyParams)
    slider: SliderParams = fingerprint_field(default_factory=SliderParams)
    dpp: DPPParams = fingerprint_field(default_factory=DPPParams)
    explain: ExplainThresholds = fingerprint_field(default_factory=ExplainThresholds)
    diversity_cap_n: int = fingerprint_field(default=20)
    diversity_cap_k: int = fingerprint_field(default=5)
    exploration_budget: float = fingerprint_field(default=0.15)
    rerank_max_candidates: int = fingerprint_field(default=200)
    strategy: Strategy = fingerprint_field(default=Strategy.MMR, transform=str)
    mmr_lambda: float = fingerprint_field(default=0.3)
    explore_exposure_max: int = fingerprint_field(default=2)
    spam_penalty: float = fingerprint_field(default=0.5)


DEFAULT_PARAMS = RankParams()


def _coerce(owner: str, key: str, current: Any, value: Any) -> Any:
    if isinstance(current, Strategy):
        try:
            strategy = Strategy(str(value).upper())
        except ValueError as e:
            raise ValueError(f"{owner}: unknown strategy {value!r}") from e
        if strategy is Strategy.NONE:
            raise ValueError(f"{owner}: strategy {value!r} cannot be requested")
        return strategy
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise TypeError(
                f"{owner}: param '{key}' must be bool, got {type(value).__name__}"
            )
        return value
    if isinstance(current, int):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(
                f"{owner}: param '{key}' must be int, got {type(value).__name__}"
            )
        return int(value)
    if isinstance(current, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(
                f"{owner}: param '{key}' must be float, got {type(value).__name__}"
            )
        return float(value)
    if is_dataclass(current):
        if not isinstance(value, Mapping):
            raise TypeError(
                f"{owner}: param '{key}' must be a mapping, got {type(value).__name__}"
            )
        return _merge(current, value)
    return value


def _merge(base: Any, overrides: Mapping[str, Any]) -> Any:
    owner = type(base).__name__
    known = {f.name for f in fields(base)}
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            logger.warning("%s: ignoring unknown param '%s'", owner, key)
            continue
        if value is None:
            continue
        changes[key] = _coerce(owner, key, getattr(base, key), value)
    return replace(base, **changes) if changes else base


def resolve_params(
    overrides: Mapping[str, Any] | None = None,
    base: RankParams = DEFAULT_PARAMS,
) -> RankParams:
    """Merge snake_case overrides onto `base`; nested groups merge field by field."""
    if not overrides:
        return base
    return _merge(base, overrides)

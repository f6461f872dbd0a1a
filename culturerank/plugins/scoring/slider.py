import math
from dataclasses import dataclass
from ...core.config import SliderParams
from ...core.numeric import clamp, clamp01, finite_or, lerp
from ...core.state import ScoreWeights


@dataclass(frozen=True, slots=True)
class SliderAdjustment:
    weights: ScoreWeights
    effective_k: int
    exploration_budget: float


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def renormalize_weights(
    prs: float, cvs: float, dns: float, params: SliderParams = SliderParams()
) -> ScoreWeights:
    """Clamp to [min_weight, max_weight] and renormalize, up to `max_iterations` passes."""
    ws: list[float] = [finite_or(prs), finite_or(cvs), finite_or(dns)]
    for _ in range(max(1, params.max_iterations)):
        ws = [clamp(w, params.min_weight, params.max_weight) for w in ws]
        total = sum(ws)
        if total <= 0.0:
            ws = [1.0 / 3.0] * 3
        else:
            ws = [w / total for w in ws]
        if all(params.min_weight <= w <= params.max_weight for w in ws):
            break
    return ScoreWeights(prs=ws[0], cvs=ws[1], dns=ws[2])


def adjust_for_slider(
    base: ScoreWeights,
    slider: float,
    base_k: int,
    base_budget: float,
    params: SliderParams = SliderParams(),
) -> SliderAdjustment:
    """Map a diversity preference t in [0, 1] onto weights, cluster cap and exploration budget.

    t > 0.5 shifts weight from PRS to DNS/CVS, tightens the per-cluster cap and
    widens the exploration budget; t = 0.5 leaves the base values untouched.
    """
    t: float = clamp01(finite_or(slider, 0.5))
    delta: float = (2.0 * t - 1.0) * params.delta_max
    weights = renormalize_weights(
        base.prs - delta,
        base.cvs + params.cvs_ratio * delta,
        base.dns + params.dns_ratio * delta,
        params,
    )

    k_mult: float = lerp(params.k_max_multiplier, params.k_min_multiplier, t)
    raw_k: int = _round_half_up(finite_or(base_k * k_mult))
    effective_k: int = int(clamp(raw_k, 1, max(1, base_k + 3)))

    b_mult: float = lerp(
        params.exploration_min_multiplier, params.exploration_max_multiplier, t
    )
    budget: float = clamp(
        finite_or(base_budget) * b_mult, params.budget_min, params.budget_max
    )
    return SliderAdjustment(weights=weights, effective_k=effective_k, exploration_budget=budget)

import logging
from typing import Mapping
from .config import DEFAULT_PARAMS, Config, RankParams, resolve_params
from .fingerprint import Fingerprinter
from .interfaces import Reranker, RerankContext
from .registry import create
from .state import RankedItem, RankRequest, RankResponse, Strategy
from .version import ALGORITHM_ID, ALGORITHM_VERSION, CONTRACT_VERSION, check_contract_version
from ..plugins.scoring.blend import SurfacePolicy, primary_rank
from ..plugins.scoring.slider import adjust_for_slider

logger = logging.getLogger(__name__)

STRATEGY_IMPLS: dict[Strategy, str] = {
    Strategy.MMR: "culturerank.plugins.rerank.mmr:MMR",
    Strategy.DPP: "culturerank.plugins.rerank.dpp:DPP",
}


def effective_params(request: RankRequest, config: Config | None = None) -> RankParams:
    """Defaults, then process-level config params, then per-request overrides."""
    base: RankParams = DEFAULT_PARAMS
    if config is not None:
        base = resolve_params(config.params, base)
    return resolve_params(request.params, base)


def choose_strategy(params: RankParams, target_size: int) -> Strategy:
    if params.strategy is Strategy.DPP and target_size > params.dpp.max_items:
        logger.warning(
            "DPP requested for %d items (max %d), falling back to MMR",
            target_size,
            params.dpp.max_items,
        )
        return Strategy.MMR
    return params.strategy


def rank(
    request: RankRequest,
    *,
    config: Config | None = None,
    surface_policies: Mapping[str, SurfacePolicy] | None = None,
) -> RankResponse:
    """Score, primary-rank and diversity-rerank one request's candidates.

    Pure and deterministic: identical requests (including request_seed) give
    identical responses. Raises ValueError for an incompatible contract
    version or an unknown strategy, TypeError for mistyped param overrides.
    """
    check_contract_version(request.contract_version)
    params: RankParams = effective_params(request, config)
    user = request.user_state
    exposures = user.recent_cluster_exposures

    adj = adjust_for_slider(
        params.weights,
        user.diversity_slider,
        params.diversity_cap_k,
        params.exploration_budget,
        params.slider,
    )
    policy = (surface_policies or {}).get(request.context.surface)
    scored = primary_rank(
        request.candidates, exposures, request.context.now_ts, adj.weights, params, policy
    )
    pool = scored[: max(0, params.rerank_max_candidates)]

    ctx = RerankContext(
        diversity_cap_n=params.diversity_cap_n,
        effective_k=adj.effective_k,
        exploration_budget=adj.exploration_budget,
        effective_weights=adj.weights,
        request_id=request.request_id,
        request_seed=request.request_seed,
        mmr_lambda=params.mmr_lambda,
        cluster_exposures=exposures,
        thresholds=params.explain,
        explore_exposure_max=params.explore_exposure_max,
        dpp=params.dpp,
    )
    strategy = choose_strategy(params, Reranker.target_size(pool, ctx))
    reranker = create("reranker", STRATEGY_IMPLS[strategy])
    if not isinstance(reranker, Reranker):
        raise TypeError(
            f"rank: {STRATEGY_IMPLS[strategy]} must be a Reranker, got {type(reranker).__name__}"
        )
    result = reranker.run(pool, ctx)

    ranked: list[RankedItem] = [
        RankedItem(
            item_key=sc.item_key,
            type=sc.candidate.type,
            cluster_id=sc.cluster_id,
            final_score=sc.final_score,
            reason_codes=codes,
            score_breakdown=sc.breakdown,
        )
        for sc, codes in result.items
    ]
    param_set_id: str = Fingerprinter().make(params).digest
    logger.debug(
        "rank %s: %d candidates, %d scored, %d ranked via %s (param_set_id=%s)",
        request.request_id,
        len(request.candidates),
        len(scored),
        len(ranked),
        result.report.used_strategy,
        param_set_id,
    )
    return RankResponse(
        request_id=request.request_id,
        algorithm_id=ALGORITHM_ID,
        algorithm_version=str(ALGORITHM_VERSION),
        contract_version=str(CONTRACT_VERSION),
        param_set_id=param_set_id,
        ranked=ranked,
        constraints_report=result.report,
        variant_id=request.variant_id,
    )

from .core.config import Config, RankParams, load_config, resolve_params
from .core.runner import rank
from .core.state import (
    Candidate,
    CandidateFeatures,
    ConstraintsReport,
    CVSComponents,
    QualityFlags,
    RankContext,
    RankedItem,
    RankRequest,
    RankResponse,
    ReasonCode,
    ScoreBreakdown,
    ScoreWeights,
    Strategy,
    UserState,
)
from .core.version import ALGORITHM_ID, ALGORITHM_VERSION, CONTRACT_VERSION
from .plugins.scoring.blend import SurfacePolicy

__all__ = [
    "ALGORITHM_ID",
    "ALGORITHM_VERSION",
    "CONTRACT_VERSION",
    "Candidate",
    "CandidateFeatures",
    "Config",
    "ConstraintsReport",
    "CVSComponents",
    "QualityFlags",
    "RankContext",
    "RankedItem",
    "RankParams",
    "RankRequest",
    "RankResponse",
    "ReasonCode",
    "ScoreBreakdown",
    "ScoreWeights",
    "Strategy",
    "SurfacePolicy",
    "UserState",
    "load_config",
    "rank",
    "resolve_params",
]

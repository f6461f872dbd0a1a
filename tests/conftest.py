"""Shared factories for building candidates and requests in tests."""

import pytest
from culturerank.core.state import (
    Candidate,
    CandidateFeatures,
    CVSComponents,
    QualityFlags,
    RankContext,
    RankRequest,
    ScoreBreakdown,
    ScoredCandidate,
    UserState,
)

NOW_MS = 1_700_000_000_000.0


def build_candidate(
    key: str,
    cluster: str = "c0",
    *,
    prs: float | None = None,
    prs_source: str | None = None,
    created_at: float = NOW_MS,
    embedding: tuple[float, ...] | None = None,
    hard_block: bool = False,
    spam: bool = False,
    moderated: bool = True,
    nsfw: bool = False,
    type: str = "post",
    **cvs: float,
) -> Candidate:
    return Candidate(
        item_key=key,
        type=type,
        cluster_id=cluster,
        created_at=created_at,
        quality_flags=QualityFlags(
            moderated=moderated, spam_suspect=spam, hard_block=hard_block, nsfw=nsfw
        ),
        features=CandidateFeatures(
            cvs_components=CVSComponents(**cvs),
            prs=prs,
            prs_source=prs_source,
            embedding=embedding,
        ),
    )


def build_scored(
    key: str,
    score: float,
    cluster: str = "c0",
    *,
    dns: float = 0.5,
    embedding: tuple[float, ...] | None = None,
    created_at: float = NOW_MS,
) -> ScoredCandidate:
    return ScoredCandidate(
        candidate=build_candidate(
            key, cluster, embedding=embedding, created_at=created_at
        ),
        breakdown=ScoreBreakdown(
            prs=score, cvs=0.0, dns=dns, penalty=0.0, final_score=score
        ),
    )


def build_request(
    candidates,
    *,
    request_id: str = "req-1",
    request_seed: str | None = None,
    params=None,
    slider: float = 0.5,
    exposures=None,
    surface: str = "home_mix",
    contract_version: str = "1.0",
) -> RankRequest:
    return RankRequest(
        contract_version=contract_version,
        request_id=request_id,
        user_state=UserState(
            user_key="u1",
            diversity_slider=slider,
            recent_cluster_exposures=exposures or {},
        ),
        candidates=tuple(candidates),
        context=RankContext(surface=surface, now_ts=NOW_MS),
        request_seed=request_seed,
        params=params,
    )


@pytest.fixture
def make_candidate():
    return build_candidate


@pytest.fixture
def make_scored():
    return build_scored


@pytest.fixture
def make_request():
    return build_request

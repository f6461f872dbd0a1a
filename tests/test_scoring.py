"""Tests for culturerank.plugins.scoring.blend module."""

import pytest
from culturerank.core.config import DEFAULT_PARAMS, CVSWeights, NoveltyParams
from culturerank.core.state import CVSComponents, ScoreWeights
from culturerank.plugins.scoring.blend import (
    MS_PER_HOUR,
    SurfacePolicy,
    calculate_cvs,
    calculate_dns,
    calculate_penalty,
    filter_candidates,
    primary_rank,
    score_candidate,
)
from conftest import NOW_MS

WEIGHTS = ScoreWeights(prs=0.55, cvs=0.25, dns=0.20)


def test_calculate_cvs_default_weights_sum_to_one():
    """Test all-ones components give CVS 1."""
    comps = CVSComponents(like=1.0, context=1.0, collection=1.0, bridge=1.0, sustain=1.0)
    assert calculate_cvs(comps) == pytest.approx(1.0)


def test_calculate_cvs_weighted_and_clamped():
    """Test weighting and clamping into [0, 1]."""
    assert calculate_cvs(CVSComponents(context=1.0)) == pytest.approx(0.25)
    heavy = CVSWeights(like=5.0)
    assert calculate_cvs(CVSComponents(like=1.0), heavy) == 1.0


def test_calculate_dns_fresh_unseen(make_candidate):
    """Test a brand-new item from an unseen cluster is maximally novel."""
    c = make_candidate("a", "c1", created_at=NOW_MS)
    assert calculate_dns(c, {}, NOW_MS) == pytest.approx(1.0)


def test_calculate_dns_exposure_and_age(make_candidate):
    """Test cluster exposure and one half-life of age."""
    c = make_candidate("a", "c1", created_at=NOW_MS - 72 * MS_PER_HOUR)
    # 0.6 * 1/(1 + 10*0.06) + 0.4 * 0.5
    assert calculate_dns(c, {"c1": 10}, NOW_MS) == pytest.approx(0.575)


def test_calculate_dns_future_timestamp_is_age_zero(make_candidate):
    """Test items created after now are treated as brand new."""
    c = make_candidate("a", "c1", created_at=NOW_MS + 10 * MS_PER_HOUR)
    assert calculate_dns(c, {}, NOW_MS) == pytest.approx(1.0)


def test_calculate_dns_zero_half_life_guarded(make_candidate):
    """Test a zero half-life does not divide by zero."""
    c = make_candidate("a", "c1", created_at=NOW_MS - MS_PER_HOUR)
    dns = calculate_dns(c, {}, NOW_MS, NoveltyParams(time_half_life_hours=0.0))
    assert dns == pytest.approx(0.6)


def test_calculate_penalty(make_candidate):
    """Test spam suspects are penalized."""
    assert calculate_penalty(make_candidate("a", spam=True)) == 0.5
    assert calculate_penalty(make_candidate("a")) == 0.0


def test_score_candidate_blends(make_candidate):
    """Test final = w_prs*PRS + w_cvs*CVS + w_dns*DNS - penalty."""
    c = make_candidate("a", "c1", prs=0.8)
    sc = score_candidate(c, {}, NOW_MS, WEIGHTS)
    assert sc.breakdown.prs == 0.8
    assert sc.breakdown.cvs == 0.0
    assert sc.breakdown.dns == pytest.approx(1.0)
    assert sc.final_score == pytest.approx(0.64)


def test_score_candidate_missing_prs_and_spam(make_candidate):
    """Test missing PRS counts as 0 and spam subtracts the penalty."""
    c = make_candidate("a", "c1", spam=True)
    sc = score_candidate(c, {}, NOW_MS, WEIGHTS)
    assert sc.breakdown.prs == 0.0
    assert sc.breakdown.penalty == 0.5
    assert sc.final_score == pytest.approx(0.2 - 0.5)


def test_score_candidate_clamps_prs(make_candidate):
    """Test PRS outside [0, 1] is clamped."""
    sc = score_candidate(make_candidate("a", prs=3.0), {}, NOW_MS, WEIGHTS)
    assert sc.breakdown.prs == 1.0


def test_score_candidate_is_rounded(make_candidate):
    """Test the final score carries at most nine decimals."""
    sc = score_candidate(make_candidate("a", prs=1 / 3), {}, NOW_MS, WEIGHTS)
    assert sc.final_score == round(sc.final_score, 9)


def test_filter_candidates_drops_hard_block(make_candidate):
    """Test hard-blocked candidates are silently removed."""
    kept = filter_candidates(
        [make_candidate("a", hard_block=True), make_candidate("b")]
    )
    assert [c.item_key for c in kept] == ["b"]


def test_surface_policy(make_candidate):
    """Test moderation, nsfw and type filters."""
    policy = SurfacePolicy(
        require_moderated=True, exclude_nsfw=True, allowed_types=frozenset({"post"})
    )
    assert policy.allows(make_candidate("a"))
    assert not policy.allows(make_candidate("b", moderated=False))
    assert not policy.allows(make_candidate("c", nsfw=True))
    assert not policy.allows(make_candidate("d", type="work"))


def test_primary_rank_total_order(make_candidate):
    """Test ties break by created_at desc, then item_key asc."""
    cands = [
        make_candidate("b", "c1", prs=0.5, created_at=NOW_MS),
        make_candidate("a", "c1", prs=0.5, created_at=NOW_MS),
        make_candidate("z", "c1", prs=0.5, created_at=NOW_MS - 1000),
        make_candidate("top", "c1", prs=0.9, created_at=NOW_MS - 1000),
    ]
    ranked = primary_rank(cands, {}, NOW_MS, WEIGHTS, DEFAULT_PARAMS)
    assert ranked[0].item_key == "top"
    assert [r.item_key for r in ranked[1:3]] == ["a", "b"]


def test_primary_rank_applies_policy(make_candidate):
    """Test the surface policy and hard block both filter."""
    cands = [
        make_candidate("a", moderated=False),
        make_candidate("b", hard_block=True),
        make_candidate("c"),
    ]
    ranked = primary_rank(
        cands, {}, NOW_MS, WEIGHTS, DEFAULT_PARAMS, SurfacePolicy(require_moderated=True)
    )
    assert [r.item_key for r in ranked] == ["c"]

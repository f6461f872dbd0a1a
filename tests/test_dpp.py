"""Tests for culturerank.plugins.rerank.dpp module."""

import numpy as np
import pytest
from culturerank.core.interfaces import RerankContext
from culturerank.core.state import ScoreWeights, Strategy
from culturerank.plugins.common import SimilarityCache
from culturerank.plugins.rerank.dpp import DPP, build_dpp_kernel, dpp_greedy

WEIGHTS = ScoreWeights(prs=0.55, cvs=0.25, dns=0.20)


def make_ctx(**kw) -> RerankContext:
    base = dict(
        diversity_cap_n=20,
        effective_k=5,
        exploration_budget=0.15,
        effective_weights=WEIGHTS,
        request_id="req-1",
    )
    base.update(kw)
    return RerankContext(**base)


def test_kernel_entries(make_scored):
    """Test diagonal q^2 and off-diagonal q_i * (1 - w * S) * q_j."""
    items = [make_scored("a", 0.5, "c1"), make_scored("b", 0.5, "c1")]
    L = build_dpp_kernel(items, 0.5, SimilarityCache())
    assert L[0, 0] == pytest.approx(0.25)
    assert L[0, 1] == pytest.approx(0.125)
    assert np.array_equal(L, L.T)


def test_kernel_quality_floor(make_scored):
    """Test non-positive scores are floored at 1e-10."""
    L = build_dpp_kernel([make_scored("a", -0.3, "c1")], 0.5, SimilarityCache())
    assert L[0, 0] == pytest.approx(1e-20)


def test_kernel_dissimilar_items_keep_full_coupling(make_scored):
    """Test zero similarity leaves q_i * q_j off the diagonal."""
    items = [make_scored("a", 0.5, "c1"), make_scored("b", 0.4, "c2")]
    L = build_dpp_kernel(items, 0.5, SimilarityCache())
    assert L[0, 1] == pytest.approx(0.2)


def test_kernel_uses_raw_cosine_for_embeddings(make_scored):
    """Test embedded items couple by 1 - w * cos with cos left in [-1, 1]."""
    items = [
        make_scored("a", 1.0, "c1", embedding=(1.0, 0.0)),
        make_scored("b", 1.0, "c1", embedding=(0.0, 1.0)),
        make_scored("c", 1.0, "c2", embedding=(-1.0, 0.0)),
        make_scored("d", 1.0, "c3", embedding=(2.0, 0.0)),
    ]
    L = build_dpp_kernel(items, 0.5)
    assert L[0, 1] == pytest.approx(1.0)
    assert L[0, 2] == pytest.approx(1.5)
    assert L[0, 3] == pytest.approx(0.5)


def test_kernel_mixes_embeddings_and_clusters(make_scored):
    """Test a pair missing an embedding falls back to cluster identity."""
    items = [
        make_scored("a", 1.0, "c1", embedding=(1.0, 0.0)),
        make_scored("b", 1.0, "c1"),
        make_scored("c", 1.0, "c2"),
    ]
    L = build_dpp_kernel(items, 0.5)
    assert L[0, 1] == pytest.approx(0.5)
    assert L[0, 2] == pytest.approx(1.0)


def test_dpp_rerank_with_embeddings(make_scored):
    """Test the reranker builds its kernel from raw cosine of the embeddings."""
    cands = [
        make_scored("a", 0.9, "c1", embedding=(1.0, 0.0)),
        make_scored("b", 0.8, "c2", embedding=(0.9, 0.1)),
        make_scored("c", 0.7, "c3", embedding=(-1.0, 0.0)),
    ]
    result = DPP().run(cands, make_ctx(diversity_cap_n=3))
    keys = [sc.item_key for sc, _ in result.items]
    assert keys[0] == "a"
    assert len(keys) == len(set(keys))
    expected = build_dpp_kernel(cands, 0.5)
    assert dpp_greedy(expected, 3) == [
        ["a", "b", "c"].index(k) for k in keys
    ]


def test_greedy_picks_by_determinant():
    """Test greedy order on a diagonal kernel follows the diagonal."""
    kernel = np.diag([4.0, 1.0, 9.0])
    assert dpp_greedy(kernel, 3) == [2, 0, 1]


def test_greedy_respects_k():
    """Test at most k indices are returned."""
    kernel = np.diag([4.0, 1.0, 9.0])
    assert dpp_greedy(kernel, 1) == [2]
    assert dpp_greedy(kernel, 0) == []


def test_greedy_stops_without_positive_gain():
    """Test early stop on a zero kernel."""
    assert dpp_greedy(np.zeros((3, 3)), 3, regularization=0.0) == []


def test_greedy_temperature_keeps_order():
    """Test temperature rescales gains without changing the argmax."""
    kernel = np.diag([4.0, 1.0, 9.0])
    assert dpp_greedy(kernel, 3, temperature=2.0) == [2, 0, 1]


def test_dpp_rerank_report(make_scored):
    """Test DPP reports its strategy and no exploration slots."""
    cands = [make_scored(f"i{i}", 0.9 - i * 0.1, f"c{i}") for i in range(5)]
    result = DPP().run(cands, make_ctx())
    assert result.report.used_strategy == Strategy.DPP
    assert result.report.exploration_slots_requested == 0
    assert result.report.exploration_slots_filled == 0
    assert 1 <= len(result) <= 5
    assert len({sc.item_key for sc, _ in result.items}) == len(result)
    assert result.items[0][0].item_key == "i0"


def test_dpp_counts_but_does_not_enforce_cap(make_scored):
    """Test picks over the cap are counted rather than skipped."""
    cands = [make_scored(f"a{i}", 0.9 - i * 0.1, "A") for i in range(3)]
    result = DPP().run(cands, make_ctx(effective_k=1))
    assert len(result) == 3
    assert result.report.cap_applied_count == 2


def test_dpp_every_item_has_codes(make_scored):
    """Test each DPP pick carries reason codes."""
    cands = [make_scored(f"i{i}", 0.5 + i * 0.01, f"c{i % 2}") for i in range(6)]
    result = DPP().run(cands, make_ctx())
    assert all(codes for _, codes in result.items)


def test_dpp_empty():
    """Test empty input reports NONE."""
    assert DPP().run([], make_ctx()).report.used_strategy == Strategy.NONE

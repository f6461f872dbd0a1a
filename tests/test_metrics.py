"""Tests for culturerank.plugins.eval.metrics module."""

import pytest
from culturerank.plugins.eval.metrics import (
    average_pairwise_distance,
    cluster_entropy,
    diversity_metrics,
    effective_clusters,
    max_cluster_ratio,
)


def test_cluster_entropy_uniform():
    """Test two equally common clusters carry one bit."""
    assert cluster_entropy(["a", "a", "b", "b"]) == pytest.approx(1.0)


def test_cluster_entropy_single_cluster():
    """Test a single cluster has zero entropy."""
    assert cluster_entropy(["a", "a", "a"]) == pytest.approx(0.0)


def test_effective_clusters():
    """Test exp(entropy) counts equally likely clusters."""
    assert effective_clusters(["a", "b", "c", "d"]) == pytest.approx(4.0)


def test_max_cluster_ratio():
    """Test the share of the largest cluster."""
    assert max_cluster_ratio(["a", "a", "a", "b"]) == pytest.approx(0.75)


def test_empty_inputs():
    """Test empty slates produce zeros."""
    assert cluster_entropy([]) == 0.0
    assert effective_clusters([]) == 0.0
    assert max_cluster_ratio([]) == 0.0
    assert average_pairwise_distance([]) == 0.0


def test_average_pairwise_distance(make_candidate):
    """Test 1 - similarity averaged over pairs."""
    items = [
        make_candidate("a", "c1"),
        make_candidate("b", "c1"),
        make_candidate("c", "c2"),
    ]
    # pairs: (a,b)=0, (a,c)=1, (b,c)=1
    assert average_pairwise_distance(items) == pytest.approx(2 / 3)


def test_diversity_metrics(make_candidate):
    """Test the combined report."""
    items = [make_candidate("a", "c1"), make_candidate("b", "c2")]
    m = diversity_metrics(items)
    assert m["unique_clusters"] == 2.0
    assert m["max_cluster_ratio"] == pytest.approx(0.5)
    assert m["cluster_entropy"] == pytest.approx(1.0)
    assert m["average_pairwise_distance"] == pytest.approx(1.0)

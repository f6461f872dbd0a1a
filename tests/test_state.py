"""Tests for culturerank.core.state module."""

import dataclasses
import pytest
from culturerank.core.state import ReasonCode, ScoreWeights, Strategy


def test_score_weights_total():
    """Test the weight sum helper."""
    assert ScoreWeights(prs=0.5, cvs=0.3, dns=0.2).total == pytest.approx(1.0)


def test_sort_key_total_order(make_scored):
    """Test score desc, created_at desc, item_key asc."""
    items = [
        make_scored("b", 0.5, created_at=10.0),
        make_scored("a", 0.5, created_at=10.0),
        make_scored("c", 0.5, created_at=20.0),
        make_scored("d", 0.9, created_at=0.0),
    ]
    assert [s.item_key for s in sorted(items, key=lambda s: s.sort_key())] == [
        "d",
        "c",
        "a",
        "b",
    ]


def test_candidate_is_frozen(make_candidate):
    """Test candidates cannot be mutated."""
    c = make_candidate("a")
    with pytest.raises(dataclasses.FrozenInstanceError):
        c.item_key = "b"


def test_enums_serialize_as_strings():
    """Test enum members compare equal to their wire names."""
    assert Strategy.DPP == "DPP"
    assert str(ReasonCode.NEW_IN_CLUSTER) == "NEW_IN_CLUSTER"
    assert len(ReasonCode) == 11

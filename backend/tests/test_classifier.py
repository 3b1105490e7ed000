"""
Tests for core/classifier.py — classification labels and borderline handling.
"""

import os
import sys

import pytest

# Ensure backend/ is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.classifier import (
    BorderlineAdjustment,
    ClassificationTable,
    classify,
    lookup_label,
    near_boundary,
)
from core.scales import sort_entries


@pytest.fixture
def honours():
    return ClassificationTable(
        id="h",
        entries=sort_entries([
            (70, "First"), (60, "2:1"), (50, "2:2"), (40, "Third"), (0, "Fail"),
        ]),
    )


@pytest.fixture
def leeds():
    return ClassificationTable(
        id="l",
        entries=sort_entries([(68.5, "First"), (59, "2:1"), (49.5, "2:2"), (39.5, "Third"), (0, "Fail")]),
    )


class TestLookupLabel:

    def test_boundaries(self, honours):
        assert lookup_label(70, honours) == "First"
        assert lookup_label(69.99, honours) == "2:1"
        assert lookup_label(40, honours) == "Third"

    def test_below_lowest_gets_lowest_label(self):
        table = ClassificationTable(id="x", entries=sort_entries([(3.5, "Honors"), (2.0, "Good")]))
        assert lookup_label(1.2, table) == "Good"
        assert table.lowest_label == "Good"


class TestBorderlineAdjustment:

    def test_add(self):
        assert BorderlineAdjustment("add", 0.5).apply(68.6) == pytest.approx(69.1)

    def test_multiply(self):
        assert BorderlineAdjustment("multiply", 1.01).apply(60) == pytest.approx(60.6)

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            BorderlineAdjustment("round", 1)

    def test_describe(self):
        assert BorderlineAdjustment("add", 0.5).describe() == "+0.5 points"


class TestClassify:

    def test_without_adjustment(self, honours):
        result = classify(65, honours)
        assert result.label == "2:1"
        assert result.adjusted_score is None
        assert result.lookup_score == 65

    def test_adjustment_lifts_into_next_band(self, leeds):
        result = classify(68.6, leeds, BorderlineAdjustment("add", 0.5))
        assert result.label == "First"
        assert result.score == 68.6
        assert result.adjusted_score == pytest.approx(69.1)

    def test_adjustment_used_for_lookup(self, leeds):
        # 68.0 alone is a 2:1; +0.5 reaches the 68.5 boundary
        assert classify(68.0, leeds).label == "2:1"
        assert classify(68.0, leeds, BorderlineAdjustment("add", 0.5)).label == "First"


class TestNearBoundary:

    def test_within_margin(self, honours):
        found = near_boundary(69.2, honours, 1.0)
        assert found["boundary"] == 70
        assert found["label"] == "First"
        assert found["gap"] == pytest.approx(0.8)

    def test_outside_margin(self, honours):
        assert near_boundary(67.5, honours, 1.0) is None

    def test_top_band_has_nothing_above(self, honours):
        assert near_boundary(85, honours, 2.0) is None

    def test_zero_margin_disabled(self, honours):
        assert near_boundary(69.9, honours, 0) is None

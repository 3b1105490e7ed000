"""
Tests for core/aggregator.py — credit-weighted period averages and credit checks.
"""

import os
import sys

import pytest

# Ensure backend/ is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.aggregator import (
    aggregate,
    category_averages,
    credit_diagnostics,
    honors_weighted_average,
    period_averages,
)
from core.records import Record


def rec(period, weight, mark, excluded=False):
    return Record(label="m", weight=weight, mark=mark, period=period, exclude_from_average=excluded)


@pytest.fixture
def three_years():
    return [
        rec(1, 60, 60), rec(1, 60, 70),
        rec(2, 90, 70), rec(2, 30, 50),
        rec(3, 120, 75),
    ]


class TestAggregate:

    def test_credit_weighted_average(self, three_years):
        summaries = aggregate(three_years)
        assert summaries[1].average == pytest.approx(65.0)
        assert summaries[2].average == pytest.approx((90 * 70 + 30 * 50) / 120)
        assert summaries[3].average == pytest.approx(75.0)

    def test_counts_and_credits(self, three_years):
        summary = aggregate(three_years)[2]
        assert summary.credits == 120.0
        assert summary.record_count == 2
        assert summary.eligible_count == 2

    def test_excluded_records_do_not_move_average(self, three_years):
        baseline = aggregate(three_years)[1].average
        with_excluded = three_years + [rec(1, 20, 0, excluded=True), rec(1, 20, 100, excluded=True)]
        summary = aggregate(with_excluded)[1]
        assert summary.average == pytest.approx(baseline)
        assert summary.credits == 120.0
        assert summary.workload_credits == 160.0
        assert summary.record_count == 4
        assert summary.eligible_count == 2

    def test_zero_weight_and_unmarked_records_ignored(self):
        summaries = aggregate([rec(1, 20, 60), rec(1, 0, 10), rec(1, 20, None)])
        assert summaries[1].average == pytest.approx(60.0)
        assert summaries[1].credits == 20.0

    def test_period_without_eligible_records_has_no_average(self):
        summaries = aggregate([rec(1, 20, 60), rec(2, 20, 70, excluded=True)])
        assert summaries[2].average is None
        assert not summaries[2].has_data

    def test_required_periods_listed_even_without_records(self):
        summaries = aggregate([rec(2, 20, 60)], periods=[1, 2, 3])
        assert list(summaries.keys()) == [1, 2, 3]
        assert summaries[1].average is None
        assert summaries[1].record_count == 0

    def test_extra_periods_follow_in_first_seen_order(self):
        summaries = aggregate([rec("Spring", 4, 3.0), rec(1, 20, 60), rec("Fall", 4, 4.0)], periods=[1])
        assert list(summaries.keys()) == [1, "Spring", "Fall"]

    def test_empty_input(self):
        summaries = aggregate([], periods=[1, 2])
        assert all(s.average is None for s in summaries.values())

    def test_period_averages(self, three_years):
        averages = period_averages(aggregate(three_years))
        assert set(averages) == {1, 2, 3}


class TestCreditDiagnostics:

    def test_mismatch_under_target(self):
        summaries = aggregate([rec(1, 60, 70), rec(1, 40, 70)], credit_target=120)
        assert summaries[1].credit_mismatch == -20.0
        diagnostics = credit_diagnostics(summaries, 120)
        assert len(diagnostics) == 1
        assert diagnostics[0].type == "credit_mismatch"
        assert diagnostics[0].amount == -20.0
        assert diagnostics[0].period == 1
        assert "under" in diagnostics[0].message

    def test_matching_credits_produce_nothing(self):
        summaries = aggregate([rec(1, 60, 70), rec(1, 60, 70)], credit_target=120)
        assert credit_diagnostics(summaries, 120) == []

    def test_no_target_produces_nothing(self):
        summaries = aggregate([rec(1, 10, 70)])
        assert credit_diagnostics(summaries, None) == []

    def test_only_requested_periods(self):
        summaries = aggregate([rec(1, 10, 70), rec("extra", 10, 70)], credit_target=120)
        diagnostics = credit_diagnostics(summaries, 120, periods=[1])
        assert [d.period for d in diagnostics] == [1]

    def test_excluded_credits_do_not_count(self):
        summaries = aggregate([rec(1, 100, 70), rec(1, 20, 70, excluded=True)], credit_target=120)
        assert summaries[1].credit_mismatch == -20.0


class TestSubsetAverages:

    def test_category_averages(self):
        records = [
            Record(label="a", weight=4, mark=4.0, period="overall", category="major"),
            Record(label="b", weight=4, mark=3.0, period="overall", category="major"),
            Record(label="c", weight=5, mark=2.0, period="overall", category="elective"),
            Record(label="d", weight=4, mark=None, period="overall", category="major"),
            Record(label="e", weight=4, mark=1.0, period="overall"),
        ]
        assert category_averages(records) == {
            "major": pytest.approx(3.5),
            "elective": pytest.approx(2.0),
        }

    def test_no_categories(self, three_years):
        assert category_averages(three_years) == {}

    def test_honours_weighted_average(self):
        records = [
            Record(label="a", weight=4, mark=4.0, period="overall", honors=True, honors_mark=5.0),
            Record(label="b", weight=4, mark=3.0, period="overall"),
        ]
        assert honors_weighted_average(records) == pytest.approx(4.0)

    def test_honours_weighted_average_without_data(self):
        assert honors_weighted_average([rec(1, 10, None)]) is None

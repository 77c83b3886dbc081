"""
Unit tests for the dashboard summaries: KPIs, failure histogram, terminal cases.
"""

import pytest

from screening.eligibility.aggregator import (
    ResultAggregator,
    failure_histogram,
    summarize,
    terminal_cases,
)
from screening.eligibility.engine import EligibilityEngine, EvaluationResult
from screening.eligibility.exceptions import EmptyDatasetError


def _result(pid, failed):
    return EvaluationResult(patient_id=pid, eligible=not failed, failed_criteria=failed)


@pytest.fixture
def run(criteria, patients):
    return EligibilityEngine().evaluate(patients, criteria)


class TestSummarize:

    def test_counts(self, run):
        summary = summarize(run.results)
        assert summary.total == 5
        assert summary.eligible_count == 2
        assert summary.ineligible_count == 3
        assert summary.eligible_rate == pytest.approx(0.4)
        assert summary.eligible_percent == 40.0

    def test_empty_dataset(self):
        with pytest.raises(EmptyDatasetError):
            summarize([])


class TestFailureHistogram:

    def test_sorted_by_count(self, run):
        histogram = failure_histogram(run.results, run.criteria_order)
        assert [(h.criterion_name, h.count) for h in histogram] == [
            ("Age", 2),
            ("Diagnosis", 2),
            ("BMI", 2),
        ]

    def test_ties_follow_criteria_order_not_first_seen(self):
        results = [
            _result("P1", ["BMI"]),
            _result("P2", ["Age"]),
        ]
        histogram = failure_histogram(results, ["Age", "Diagnosis", "BMI"])
        assert [h.criterion_name for h in histogram] == ["Age", "BMI"]

    def test_without_order_uses_first_seen(self):
        results = [
            _result("P1", ["BMI"]),
            _result("P2", ["Age"]),
        ]
        assert [h.criterion_name for h in failure_histogram(results)] == ["BMI", "Age"]

    def test_higher_count_wins_over_order(self):
        results = [
            _result("P1", ["Age", "BMI"]),
            _result("P2", ["BMI"]),
        ]
        histogram = failure_histogram(results, ["Age", "BMI"])
        assert [(h.criterion_name, h.count) for h in histogram] == [("BMI", 2), ("Age", 1)]

    def test_counts_sum_to_failed_pairs(self, run):
        histogram = failure_histogram(run.results, run.criteria_order)
        pairs = sum(len(r.failed_criteria) for r in run.results)
        assert sum(h.count for h in histogram) == pairs

    def test_all_eligible(self):
        assert failure_histogram([_result("P1", [])]) == []


class TestTerminalCases:

    def test_sorted_and_tie_broken_by_id(self):
        results = [
            _result("P3", ["Age"]),
            _result("P2", ["Age", "BMI"]),
            _result("P1", ["BMI"]),
            _result("P0", []),
        ]
        cases = terminal_cases(results, limit=5)
        assert [(c.patient_id, c.failed_count) for c in cases] == [("P2", 2), ("P1", 1), ("P3", 1)]

    def test_eligible_patients_never_listed(self):
        results = [_result("P1", []), _result("P2", []), _result("P3", ["Age"])]
        cases = terminal_cases(results, limit=5)
        assert [c.patient_id for c in cases] == ["P3"]
        assert terminal_cases([_result("P1", [])], limit=5) == []

    def test_limit(self, run):
        cases = terminal_cases(run.results, limit=2)
        assert len(cases) <= 2
        counts = [c.failed_count for c in cases]
        assert counts == sorted(counts, reverse=True)

    def test_scenario_ranking(self, run):
        cases = terminal_cases(run.results)
        assert cases[0].patient_id == "P002"
        assert cases[0].failed_criteria == ["Age", "Diagnosis", "BMI"]

    def test_zero_limit(self, run):
        assert terminal_cases(run.results, limit=0) == []

    def test_negative_limit(self, run):
        with pytest.raises(ValueError):
            terminal_cases(run.results, limit=-1)


def test_dashboard_report(run):
    report = ResultAggregator(run).dashboard(limit=1)
    assert report.summary.total == 5
    assert report.eligible_percent == 40.0
    assert len(report.terminal_cases) == 1
    assert report.warnings_count == 0
    assert report.failure_histogram[0].criterion_name == "Age"

"""Result Aggregator — dashboard summaries derived from an evaluation run.

Every function here is recomputed from the results alone; nothing is patched
incrementally when the results change.
"""

from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from screening.eligibility.engine import EvaluationResult, EvaluationRun
from screening.eligibility.exceptions import EmptyDatasetError
from screening.config.logging_config import get_logger

logger = get_logger(__name__)


class Summary(BaseModel):
    total: int
    eligible_count: int
    ineligible_count: int
    eligible_rate: float

    @property
    def eligible_percent(self) -> float:
        return round(self.eligible_rate * 100, 1)


class FailureCount(BaseModel):
    criterion_name: str
    count: int


class TerminalCase(BaseModel):
    patient_id: str
    failed_count: int
    failed_criteria: List[str] = Field(default_factory=list)


class DashboardReport(BaseModel):
    summary: Summary
    eligible_percent: float
    failure_histogram: List[FailureCount] = Field(default_factory=list)
    terminal_cases: List[TerminalCase] = Field(default_factory=list)
    warnings_count: int = 0


def summarize(results: Sequence[EvaluationResult]) -> Summary:
    total = len(results)
    if total == 0:
        raise EmptyDatasetError("Cannot summarize an evaluation over zero patients")
    eligible = sum(1 for r in results if r.eligible)
    return Summary(
        total=total,
        eligible_count=eligible,
        ineligible_count=total - eligible,
        eligible_rate=eligible / total,
    )


def failure_histogram(
    results: Sequence[EvaluationResult],
    criteria_order: Optional[Sequence[str]] = None,
) -> List[FailureCount]:
    """
    Count failed criteria across ineligible patients.

    Sorted by count descending. Ties go to the criterion that comes first in
    criteria_order; without an order, first-seen order across results is used.
    """
    counts: Dict[str, int] = {}
    for result in results:
        if result.eligible:
            continue
        for name in result.failed_criteria:
            counts[name] = counts.get(name, 0) + 1

    # dict preserves first-seen order
    position = {name: i for i, name in enumerate(counts)}
    if criteria_order is not None:
        offset = len(criteria_order)
        position = {name: i for i, name in enumerate(criteria_order)}
        for i, name in enumerate(counts):
            position.setdefault(name, offset + i)

    ranked = sorted(counts, key=lambda name: (-counts[name], position[name]))
    return [FailureCount(criterion_name=name, count=counts[name]) for name in ranked]


def terminal_cases(results: Sequence[EvaluationResult], limit: int = 5) -> List[TerminalCase]:
    """Ineligible patients failing the most criteria, ties by patient ID.

    Eligible patients are never listed, so fewer than ``limit`` cases come back
    when fewer patients fail.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    failing = [r for r in results if not r.eligible]
    failing.sort(key=lambda r: (-r.failed_count, r.patient_id))
    return [
        TerminalCase(
            patient_id=r.patient_id,
            failed_count=r.failed_count,
            failed_criteria=list(r.failed_criteria),
        )
        for r in failing[:limit]
    ]


class ResultAggregator:
    """Bundles the dashboard summaries for one evaluation run."""

    def __init__(self, run: EvaluationRun):
        self.run = run

    def summarize(self) -> Summary:
        return summarize(self.run.results)

    def failure_histogram(self) -> List[FailureCount]:
        return failure_histogram(self.run.results, self.run.criteria_order)

    def terminal_cases(self, limit: int = 5) -> List[TerminalCase]:
        return terminal_cases(self.run.results, limit)

    def dashboard(self, limit: int = 5) -> DashboardReport:
        summary = self.summarize()
        report = DashboardReport(
            summary=summary,
            eligible_percent=summary.eligible_percent,
            failure_histogram=self.failure_histogram(),
            terminal_cases=self.terminal_cases(limit),
            warnings_count=len(self.run.warnings),
        )
        logger.info(
            "Dashboard built",
            total=summary.total,
            eligible=summary.eligible_count,
            failure_reasons=len(report.failure_histogram),
        )
        return report

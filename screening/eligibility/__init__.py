"""Eligibility Screening Module.

Criteria review, deterministic patient evaluation, and dashboard summaries
for the patient screening wizard.
"""

from screening.eligibility.exceptions import (
    ScreeningError,
    InvalidCriteriaError,
    UnknownCriterionError,
    EmptyDatasetError,
    InvalidDatasetError,
    UnknownFeatureError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from screening.eligibility.criteria_store import (
    CriteriaStore,
    CriteriaDivergence,
    FieldChange,
)
from screening.eligibility.engine import (
    EligibilityEngine,
    EvaluationResult,
    EvaluationRun,
    MissingFeatureWarning,
)
from screening.eligibility.aggregator import (
    ResultAggregator,
    Summary,
    FailureCount,
    TerminalCase,
    DashboardReport,
    summarize,
    failure_histogram,
    terminal_cases,
)
from screening.eligibility.workflow import ScreeningSession, SessionRegistry

__all__ = [
    # Exceptions
    "ScreeningError",
    "InvalidCriteriaError",
    "UnknownCriterionError",
    "EmptyDatasetError",
    "InvalidDatasetError",
    "UnknownFeatureError",
    "InvalidTransitionError",
    "SessionNotFoundError",
    # Criteria review
    "CriteriaStore",
    "CriteriaDivergence",
    "FieldChange",
    # Evaluation
    "EligibilityEngine",
    "EvaluationResult",
    "EvaluationRun",
    "MissingFeatureWarning",
    # Aggregation
    "ResultAggregator",
    "Summary",
    "FailureCount",
    "TerminalCase",
    "DashboardReport",
    "summarize",
    "failure_histogram",
    "terminal_cases",
    # Workflow
    "ScreeningSession",
    "SessionRegistry",
]

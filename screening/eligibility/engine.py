"""Deterministic Eligibility Engine — pure logic, no I/O.

Evaluates each patient record against the active criteria set to produce a
pass/fail verdict and the ordered list of violated criteria.

Design principles:
- Pure function: inputs are never mutated, same inputs give the same run
- Criteria are checked in the criteria set's insertion order
- A missing feature fails its criterion and is recorded as a warning on the
  run; it never stops evaluation of the remaining criteria or patients
"""

import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from screening.models.criteria import Criterion, CriteriaSet, FeatureValue, PatientRecord
from screening.models.enums import CriterionKind, WarningReason
from screening.config.logging_config import get_logger

logger = get_logger(__name__)


class EvaluationResult(BaseModel):
    patient_id: str
    eligible: bool
    failed_criteria: List[str] = Field(default_factory=list)
    met_criteria: List[str] = Field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_criteria)


class MissingFeatureWarning(BaseModel):
    """Non-fatal annotation: a patient/criterion pair could not be checked."""
    patient_id: str
    criterion_name: str
    reason: WarningReason = WarningReason.MISSING


class EvaluationRun(BaseModel):
    results: List[EvaluationResult] = Field(default_factory=list)
    warnings: List[MissingFeatureWarning] = Field(default_factory=list)
    criteria_order: List[str] = Field(default_factory=list)

    def result_for(self, patient_id: str) -> Optional[EvaluationResult]:
        for result in self.results:
            if result.patient_id == patient_id:
                return result
        return None


# --- Checker Registry ---

# Returns (passed, warning reason or None)
CriterionCheckFn = Callable[[Criterion, FeatureValue, bool], Tuple[bool, Optional[WarningReason]]]

CHECKER_REGISTRY: Dict[CriterionKind, CriterionCheckFn] = {}


def register_checker(*kinds: CriterionKind):
    """Decorator to register a check function for one or more CriterionKind values."""
    def decorator(fn: CriterionCheckFn):
        for kind in kinds:
            CHECKER_REGISTRY[kind] = fn
        return fn
    return decorator


@register_checker(CriterionKind.RANGE)
def check_range(criterion: Criterion, value: FeatureValue, case_sensitive: bool = True):
    number = safe_float(value)
    if number is None:
        return False, WarningReason.NON_NUMERIC
    if criterion.min is not None and number < criterion.min:
        return False, None
    if criterion.max is not None and number > criterion.max:
        return False, None
    return True, None


@register_checker(CriterionKind.CATEGORICAL)
def check_categorical(criterion: Criterion, value: FeatureValue, case_sensitive: bool = True):
    expected = criterion.value if criterion.value is not None else ""
    actual = str(value)
    if not case_sensitive:
        return actual.casefold() == expected.casefold(), None
    return actual == expected, None


def evaluate_criterion(
    criterion: Criterion,
    value: FeatureValue,
    case_sensitive: bool = True,
) -> Tuple[bool, Optional[WarningReason]]:
    """Check one feature value against one criterion.

    Missing values (None or blank text) fail with WarningReason.MISSING.
    """
    if is_missing(value):
        return False, WarningReason.MISSING
    checker = CHECKER_REGISTRY[criterion.kind]
    return checker(criterion, value, case_sensitive)


class EligibilityEngine:
    """Evaluates patients against an active criteria set."""

    def __init__(self, case_sensitive: bool = True):
        self.case_sensitive = case_sensitive

    def evaluate_patient(
        self,
        patient: PatientRecord,
        criteria: CriteriaSet,
    ) -> Tuple[EvaluationResult, List[MissingFeatureWarning]]:
        failed = []
        met = []
        warnings = []
        for name, criterion in criteria.items():
            # Categorical criteria match the cell as uploaded, not its coerced number
            if criterion.kind == CriterionKind.CATEGORICAL:
                value = patient.text(name)
            else:
                value = patient.get(name)
            passed, reason = evaluate_criterion(criterion, value, self.case_sensitive)
            if reason is not None:
                warnings.append(MissingFeatureWarning(
                    patient_id=patient.patient_id,
                    criterion_name=name,
                    reason=reason,
                ))
            if passed:
                met.append(name)
            else:
                failed.append(name)
        result = EvaluationResult(
            patient_id=patient.patient_id,
            eligible=not failed,
            failed_criteria=failed,
            met_criteria=met,
        )
        return result, warnings

    def evaluate(self, patients: Sequence[PatientRecord], criteria: CriteriaSet) -> EvaluationRun:
        """Evaluate every patient, preserving input order."""
        results = []
        warnings = []
        for patient in patients:
            result, patient_warnings = self.evaluate_patient(patient, criteria)
            results.append(result)
            warnings.extend(patient_warnings)

        eligible = sum(1 for r in results if r.eligible)
        logger.info(
            "Evaluation complete",
            patients=len(results),
            criteria=len(criteria),
            eligible=eligible,
            ineligible=len(results) - eligible,
            warnings=len(warnings),
        )
        return EvaluationRun(
            results=results,
            warnings=warnings,
            criteria_order=list(criteria.keys()),
        )


def is_missing(value: FeatureValue) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def safe_float(value) -> Optional[float]:
    """Safely convert a value to float, returning None on failure."""
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
        if math.isnan(result) or math.isinf(result):
            return None
        return result
    except (ValueError, TypeError):
        return None

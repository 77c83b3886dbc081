"""Feature distributions for the dashboard, split by eligibility verdict.

Numeric features are bucketed into equal-width bins between the smallest and
largest observed value. Categorical features get one bucket per distinct
value, in first-seen order.
"""

import math
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from screening.models.criteria import PatientRecord
from screening.eligibility.engine import EvaluationRun, is_missing, safe_float
from screening.eligibility.exceptions import UnknownFeatureError


class DistributionBucket(BaseModel):
    label: str
    lower: Optional[float] = None
    upper: Optional[float] = None
    eligible: int = 0
    ineligible: int = 0

    @property
    def total(self) -> int:
        return self.eligible + self.ineligible


class FeatureDistribution(BaseModel):
    feature: str
    numeric: bool
    buckets: List[DistributionBucket] = Field(default_factory=list)
    missing: int = 0


def numeric_features(patients: Sequence[PatientRecord]) -> List[str]:
    """Features whose present values are all numeric, in first-seen order."""
    numeric: Dict[str, bool] = {}
    for patient in patients:
        for name, value in patient.features.items():
            if is_missing(value):
                numeric.setdefault(name, True)
                continue
            numeric[name] = numeric.get(name, True) and safe_float(value) is not None
    return [name for name, is_numeric in numeric.items() if is_numeric]


def feature_distribution(
    patients: Sequence[PatientRecord],
    run: EvaluationRun,
    feature: str,
    bins: int = 10,
) -> FeatureDistribution:
    """Histogram of one feature, counting eligible and ineligible patients per bucket."""
    if bins < 1:
        raise ValueError(f"bins must be at least 1, got {bins}")
    if not any(feature in p.features for p in patients):
        raise UnknownFeatureError(feature)

    verdicts = {r.patient_id: r.eligible for r in run.results}
    present = []
    missing = 0
    for patient in patients:
        value = patient.get(feature)
        if is_missing(value):
            missing += 1
        else:
            present.append((value, verdicts.get(patient.patient_id, False)))

    numbers = [safe_float(v) for v, _ in present]
    if present and all(n is not None for n in numbers):
        buckets = _numeric_buckets(
            [(n, eligible) for n, (_, eligible) in zip(numbers, present)], bins
        )
        return FeatureDistribution(feature=feature, numeric=True, buckets=buckets, missing=missing)

    return FeatureDistribution(
        feature=feature,
        numeric=False,
        buckets=_categorical_buckets(present),
        missing=missing,
    )


def _numeric_buckets(values, bins: int) -> List[DistributionBucket]:
    low = min(v for v, _ in values)
    high = max(v for v, _ in values)
    if low == high:
        bucket = DistributionBucket(label=f"{low:g}", lower=low, upper=high)
        for _, eligible in values:
            _tally(bucket, eligible)
        return [bucket]

    width = (high - low) / bins
    buckets = []
    for i in range(bins):
        lower = low + i * width
        upper = high if i == bins - 1 else low + (i + 1) * width
        buckets.append(DistributionBucket(
            label=f"{lower:g}-{upper:g}",
            lower=lower,
            upper=upper,
        ))
    for value, eligible in values:
        # Last bin is closed on the right so the maximum lands in it.
        index = min(int(math.floor((value - low) / width)), bins - 1)
        _tally(buckets[index], eligible)
    return buckets


def _categorical_buckets(values) -> List[DistributionBucket]:
    buckets: Dict[str, DistributionBucket] = {}
    for value, eligible in values:
        label = str(value)
        bucket = buckets.setdefault(label, DistributionBucket(label=label))
        _tally(bucket, eligible)
    return list(buckets.values())


def _tally(bucket: DistributionBucket, eligible: bool) -> None:
    if eligible:
        bucket.eligible += 1
    else:
        bucket.ineligible += 1

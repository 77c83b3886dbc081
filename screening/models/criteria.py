"""
Eligibility Criteria and Patient Record Schema

Criteria come in two shapes:
- Range: optional numeric lower/upper bounds, both inclusive (Age 40-75)
- Categorical: a single expected string value (Diagnosis = Hypertension)

A criteria set is an ordered mapping of criterion name to Criterion. Its
insertion order drives the order of failed criteria in evaluation output and
the tie-break order of the failure histogram.
"""

from typing import Dict, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from .enums import CriterionKind


FeatureValue = Union[int, float, str, None]


class Criterion(BaseModel):
    """A single eligibility criterion, keyed by feature name."""
    name: str = Field(..., description="Criterion name; matches a patient feature name")
    kind: CriterionKind = Field(..., description="Range or categorical")

    # Range criteria (inclusive bounds)
    min: Optional[float] = Field(None, description="Inclusive lower bound")
    max: Optional[float] = Field(None, description="Inclusive upper bound")

    # Categorical criteria
    value: Optional[str] = Field(None, description="Expected categorical value")

    def has_constraint(self) -> bool:
        """True when the criterion actually constrains something for its kind."""
        if self.kind == CriterionKind.RANGE:
            return self.min is not None or self.max is not None
        return self.value is not None


CriteriaSet = Dict[str, Criterion]


class PatientRecord(BaseModel):
    """One patient row. Immutable for the lifetime of an evaluation run."""
    model_config = ConfigDict(frozen=True)

    patient_id: str = Field(..., description="Unique within a dataset")
    features: Dict[str, FeatureValue] = Field(default_factory=dict)
    cells: Dict[str, str] = Field(
        default_factory=dict,
        description="Uploaded cell text for features coerced to numbers (007, 2.50)",
    )

    def get(self, feature: str) -> FeatureValue:
        return self.features.get(feature)

    def text(self, feature: str) -> Optional[str]:
        """Feature as written in the upload; falls back to str() of the value."""
        if feature in self.cells:
            return self.cells[feature]
        value = self.features.get(feature)
        return None if value is None else str(value)


def clone_criteria(criteria: CriteriaSet) -> CriteriaSet:
    """Deep copy of a criteria set, preserving insertion order."""
    return {name: c.model_copy(deep=True) for name, c in criteria.items()}

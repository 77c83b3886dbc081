"""Data models for the patient screening service."""
from .enums import (
    CriterionKind,
    CriterionField,
    WarningReason,
    WorkflowState,
)
from .criteria import Criterion, CriteriaSet, PatientRecord, clone_criteria

__all__ = [
    "CriterionKind",
    "CriterionField",
    "WarningReason",
    "WorkflowState",
    "Criterion",
    "CriteriaSet",
    "PatientRecord",
    "clone_criteria",
]

"""Enumeration types for the patient screening service."""
from enum import Enum


class CriterionKind(str, Enum):
    """Shape of an eligibility criterion."""
    RANGE = "range"
    CATEGORICAL = "categorical"


class CriterionField(str, Enum):
    """Editable fields of a criterion."""
    MIN = "min"
    MAX = "max"
    VALUE = "value"


class WarningReason(str, Enum):
    """Why a patient's feature could not be checked against a criterion."""
    MISSING = "missing"
    NON_NUMERIC = "non_numeric"


class WorkflowState(str, Enum):
    """States of the screening wizard."""
    START = "start"
    AWAITING_DATASET = "awaiting_dataset"
    AWAITING_CRITERIA = "awaiting_criteria"
    REVIEWING_CRITERIA = "reviewing_criteria"
    REVIEWING_DIVERGENCE = "reviewing_divergence"
    DASHBOARD = "dashboard"
    FEATURE_DISTRIBUTION = "feature_distribution"

"""Shared fixtures for screening tests."""

import pytest

from screening.models.criteria import Criterion, CriteriaSet, PatientRecord
from screening.models.enums import CriterionKind
from screening.eligibility.criteria_store import CriteriaStore


@pytest.fixture
def criteria() -> CriteriaSet:
    """Age 40-75, Diagnosis = Hypertension, BMI 28-35, in that order."""
    return {
        "Age": Criterion(name="Age", kind=CriterionKind.RANGE, min=40, max=75),
        "Diagnosis": Criterion(name="Diagnosis", kind=CriterionKind.CATEGORICAL, value="Hypertension"),
        "BMI": Criterion(name="BMI", kind=CriterionKind.RANGE, min=28, max=35),
    }


@pytest.fixture
def patients():
    return [
        PatientRecord(patient_id="P001", features={"Age": 65, "Diagnosis": "Hypertension", "BMI": 30}),
        PatientRecord(patient_id="P002", features={"Age": 80, "Diagnosis": "Diabetes", "BMI": 40}),
        PatientRecord(patient_id="P003", features={"Age": 58, "Diagnosis": "Hypertension", "BMI": 36}),
        PatientRecord(patient_id="P004", features={"Age": 30, "Diagnosis": "Diabetes", "BMI": 31}),
        PatientRecord(patient_id="P005", features={"Age": 67, "Diagnosis": "Hypertension", "BMI": 29.5}),
    ]


@pytest.fixture
def store(criteria) -> CriteriaStore:
    s = CriteriaStore()
    s.load(criteria)
    return s


@pytest.fixture
def patients_csv() -> str:
    return (
        "patient_id,Age,Diagnosis,BMI\n"
        "P001,65,Hypertension,30\n"
        "P002,80,Diabetes,40\n"
        "P003,58,Hypertension,36\n"
        "P004,30,Diabetes,31\n"
        "P005,67,Hypertension,29.5\n"
    )


@pytest.fixture
def criteria_document() -> dict:
    return {
        "Age": {"min": 40, "max": 75},
        "Diagnosis": "Hypertension",
        "BMI": {"min": 28, "max": 35},
    }

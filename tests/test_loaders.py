"""
Unit tests for dataset and criteria ingestion.
"""

import pytest

from screening.models.enums import CriterionKind
from screening.eligibility.criteria_loader import parse_criteria
from screening.eligibility.dataset_loader import coerce_cell, load_patients, load_patients_csv
from screening.eligibility.exceptions import InvalidCriteriaError, InvalidDatasetError
from screening.eligibility.json_utils import extract_json_from_text


class TestDatasetLoader:

    def test_csv_rows_become_patients(self, patients_csv):
        patients = load_patients_csv(patients_csv)
        assert [p.patient_id for p in patients] == ["P001", "P002", "P003", "P004", "P005"]
        assert patients[0].features == {"Age": 65, "Diagnosis": "Hypertension", "BMI": 30}
        assert patients[4].get("BMI") == 29.5

    def test_cells_are_stripped_and_blank_is_none(self):
        text = "patient_id, Age ,Diagnosis\n P1 , 61 ,\n"
        (patient,) = load_patients_csv(text)
        assert patient.patient_id == "P1"
        assert patient.features == {"Age": 61, "Diagnosis": None}

    def test_byte_order_mark(self):
        (patient,) = load_patients_csv("\ufeffpatient_id,Age\nP1,50\n")
        assert patient.patient_id == "P1"

    def test_custom_id_column(self):
        (patient,) = load_patients_csv("id,Age\nA-7,50\n", id_column="id")
        assert patient.patient_id == "A-7"
        assert "id" not in patient.features

    def test_missing_id_column(self):
        with pytest.raises(InvalidDatasetError):
            load_patients_csv("name,Age\nJohn,50\n")

    def test_empty_document(self):
        with pytest.raises(InvalidDatasetError):
            load_patients_csv("")

    def test_duplicate_patient_id(self):
        with pytest.raises(InvalidDatasetError, match="Duplicate"):
            load_patients_csv("patient_id,Age\nP1,50\nP1,51\n")

    def test_blank_patient_id(self):
        with pytest.raises(InvalidDatasetError):
            load_patients_csv("patient_id,Age\n,50\n")

    def test_dataset_size_limit(self):
        rows = [{"patient_id": f"P{i}", "Age": i} for i in range(3)]
        with pytest.raises(InvalidDatasetError):
            load_patients(rows, max_patients=2)

    def test_coerced_cells_keep_their_text(self):
        (patient,) = load_patients_csv("patient_id,SiteCode,Stage,Diagnosis\nP1, 007 ,2.50,Asthma\n")
        assert patient.features == {"SiteCode": 7, "Stage": 2.5, "Diagnosis": "Asthma"}
        assert patient.text("SiteCode") == "007"
        assert patient.text("Stage") == "2.50"
        assert patient.text("Diagnosis") == "Asthma"
        assert patient.text("Missing") is None

    def test_header_only(self):
        assert load_patients_csv("patient_id,Age\n") == []

    def test_coerce_cell(self):
        assert coerce_cell("42") == 42
        assert coerce_cell("4.5") == 4.5
        assert coerce_cell("nan") == "nan"
        assert coerce_cell("Hypertension") == "Hypertension"
        assert coerce_cell("   ") is None
        assert coerce_cell(7) == 7


class TestCriteriaLoader:

    def test_mapping_document(self, criteria_document, criteria):
        parsed = parse_criteria(criteria_document)
        assert list(parsed) == ["Age", "Diagnosis", "BMI"]
        assert parsed == criteria

    def test_list_document(self):
        parsed = parse_criteria([
            {"name": "Age", "min": 18},
            {"name": "Sex", "value": "F"},
        ])
        assert parsed["Age"].kind == CriterionKind.RANGE
        assert parsed["Age"].max is None
        assert parsed["Sex"].kind == CriterionKind.CATEGORICAL
        assert parsed["Sex"].value == "F"

    def test_wrapped_criteria_key(self):
        parsed = parse_criteria({"criteria": {"Age": {"max": 65}}})
        assert parsed["Age"].max == 65

    def test_extractor_text_with_fence(self):
        text = (
            "Here are the extracted criteria:\n"
            "```json\n"
            '{"Age": {"min": 40, "max": 75}, "Diagnosis": "Hypertension"}\n'
            "```\n"
        )
        parsed = parse_criteria(text)
        assert list(parsed) == ["Age", "Diagnosis"]

    def test_numeric_text_bounds(self):
        parsed = parse_criteria({"BMI": {"min": "28", "max": "35.5"}})
        assert parsed["BMI"].min == 28
        assert parsed["BMI"].max == 35.5

    def test_explicit_kind(self):
        parsed = parse_criteria({"Stage": {"kind": "categorical", "value": 2}})
        assert parsed["Stage"].value == "2"

    def test_criterion_without_bound_or_value(self):
        with pytest.raises(InvalidCriteriaError):
            parse_criteria({"Age": {}})

    def test_non_numeric_bound(self):
        with pytest.raises(InvalidCriteriaError):
            parse_criteria({"Age": {"min": "forty"}})

    def test_duplicate_names_in_list(self):
        with pytest.raises(InvalidCriteriaError, match="Duplicate"):
            parse_criteria([{"name": "Age", "min": 1}, {"name": "Age", "max": 2}])

    def test_not_json(self):
        with pytest.raises(InvalidCriteriaError):
            parse_criteria("no criteria here")

    def test_unsupported_type(self):
        with pytest.raises(InvalidCriteriaError):
            parse_criteria(42)


class TestJsonExtraction:

    def test_direct(self):
        assert extract_json_from_text('{"a": 1}') == {"a": 1}

    def test_array_with_trailing_prose(self):
        assert extract_json_from_text('Result: [1, 2, {"b": "]"}] done.') == [1, 2, {"b": "]"}]

    def test_object_with_surrounding_prose(self):
        assert extract_json_from_text('Sure. {"a": {"b": 2}} Let me know.') == {"a": {"b": 2}}

"""Dataset Loader - Normalizes uploaded patient rows for deterministic evaluation.

Converts a CSV upload (or already-parsed rows) into PatientRecords: cells are
stripped, blank cells become None, numeric-looking cells become int/float and
everything else stays a string. The text of a coerced cell is kept alongside
so categorical criteria still match it exactly (007, 2.50).
"""

import csv
import io
import math
from typing import Any, Dict, Iterable, List, Optional

from screening.models.criteria import FeatureValue, PatientRecord
from screening.eligibility.exceptions import InvalidDatasetError
from screening.config.settings import get_settings
from screening.config.logging_config import get_logger

logger = get_logger(__name__)


def coerce_cell(raw: Any) -> FeatureValue:
    """Normalize one raw cell value."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        return str(raw).lower()
    if isinstance(raw, (int, float)):
        return raw
    text = str(raw).strip()
    if text == "":
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return text
    if math.isnan(number) or math.isinf(number):
        return text
    return number


def load_patients(
    rows: Iterable[Dict[str, Any]],
    id_column: Optional[str] = None,
    max_patients: Optional[int] = None,
) -> List[PatientRecord]:
    """Build PatientRecords from dict rows, preserving input order."""
    settings = get_settings()
    id_column = id_column or settings.patient_id_column
    max_patients = max_patients if max_patients is not None else settings.max_patients

    patients: List[PatientRecord] = []
    seen = set()
    for line, row in enumerate(rows, start=1):
        if id_column not in row:
            raise InvalidDatasetError(f"Row {line} has no '{id_column}' column")
        raw_id = row.get(id_column)
        patient_id = str(raw_id).strip() if raw_id is not None else ""
        if not patient_id:
            raise InvalidDatasetError(f"Row {line} has a blank patient ID")
        if patient_id in seen:
            raise InvalidDatasetError(f"Duplicate patient ID: {patient_id}")
        seen.add(patient_id)

        features = {}
        cells = {}
        for key, value in row.items():
            if key is None or key == id_column:
                continue
            name = str(key).strip()
            features[name] = coerce_cell(value)
            if isinstance(value, str) and isinstance(features[name], (int, float)):
                cells[name] = value.strip()
        patients.append(PatientRecord(patient_id=patient_id, features=features, cells=cells))

        if len(patients) > max_patients:
            raise InvalidDatasetError(f"Dataset exceeds the limit of {max_patients} patients")

    logger.info("Patients loaded", patients=len(patients), id_column=id_column)
    return patients


def load_patients_csv(
    text: str,
    id_column: Optional[str] = None,
    max_patients: Optional[int] = None,
) -> List[PatientRecord]:
    """Parse a CSV document with a header row into PatientRecords."""
    id_column = id_column or get_settings().patient_id_column
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    header = reader.fieldnames
    if not header:
        raise InvalidDatasetError("CSV has no header row")
    header = [h.strip() for h in header]
    if id_column not in header:
        raise InvalidDatasetError(f"CSV header has no '{id_column}' column")
    reader.fieldnames = header
    return load_patients(reader, id_column=id_column, max_patients=max_patients)

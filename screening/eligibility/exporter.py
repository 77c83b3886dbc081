"""Flat delimited exports of the eligible patient table and the failure table."""

import csv
import io
from typing import List, Sequence

from screening.models.criteria import PatientRecord
from screening.eligibility.aggregator import FailureCount
from screening.eligibility.engine import EvaluationRun


def _feature_columns(patients: Sequence[PatientRecord]) -> List[str]:
    columns: dict = {}
    for patient in patients:
        for name in patient.features:
            columns.setdefault(name, None)
    return list(columns)


def export_eligible_csv(
    patients: Sequence[PatientRecord],
    run: EvaluationRun,
    delimiter: str = ",",
) -> str:
    """One row per eligible patient: patient_id, every feature, then the met criteria."""
    eligible = {r.patient_id: r for r in run.results if r.eligible}
    rows = [p for p in patients if p.patient_id in eligible]
    columns = _feature_columns(rows)

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    writer.writerow(["patient_id", *columns, "reason"])
    for patient in rows:
        values = [patient.text(c) or "" for c in columns]
        reason = ", ".join(eligible[patient.patient_id].met_criteria)
        writer.writerow([patient.patient_id, *values, reason])
    return buffer.getvalue()


def export_failures_csv(histogram: Sequence[FailureCount], delimiter: str = ",") -> str:
    """Failure table with columns condition,count."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    writer.writerow(["condition", "count"])
    for row in histogram:
        writer.writerow([row.criterion_name, row.count])
    return buffer.getvalue()

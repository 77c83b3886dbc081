"""Criteria Loader - turns criteria extractor output into a CriteriaSet.

Accepted shapes, in document order:

    {"Age": {"min": 40, "max": 75}, "Diagnosis": "Hypertension"}
    [{"name": "Age", "min": 40, "max": 75}, {"name": "Diagnosis", "value": "Hypertension"}]

Text payloads may wrap the JSON in prose or a markdown fence.
"""

import json
import math
from typing import Any, Dict, Optional

from screening.models.criteria import Criterion, CriteriaSet
from screening.models.enums import CriterionKind
from screening.eligibility.exceptions import InvalidCriteriaError
from screening.eligibility.json_utils import loads_any
from screening.config.logging_config import get_logger

logger = get_logger(__name__)


def parse_criteria(payload: Any) -> CriteriaSet:
    """Parse a dict, list, or text payload into an ordered CriteriaSet."""
    try:
        data = loads_any(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidCriteriaError(f"Criteria document is not valid JSON: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("criteria"), (dict, list)):
        data = data["criteria"]

    if isinstance(data, dict):
        entries = [(name, entry) for name, entry in data.items()]
    elif isinstance(data, list):
        entries = []
        for item in data:
            if not isinstance(item, dict) or not item.get("name"):
                raise InvalidCriteriaError(f"Criterion entry without a name: {item!r}")
            entries.append((item["name"], item))
    else:
        raise InvalidCriteriaError(f"Unsupported criteria document type: {type(data).__name__}")

    criteria: CriteriaSet = {}
    for name, entry in entries:
        name = str(name).strip()
        if not name:
            raise InvalidCriteriaError("Criterion name cannot be empty")
        if name in criteria:
            raise InvalidCriteriaError(f"Duplicate criterion name: {name}")
        criteria[name] = _build_criterion(name, entry)

    logger.info("Criteria parsed", criteria_count=len(criteria))
    return criteria


def _build_criterion(name: str, entry: Any) -> Criterion:
    # Bare scalar: "Diagnosis": "Hypertension"
    if not isinstance(entry, dict):
        if entry is None or isinstance(entry, (list, bool)):
            raise InvalidCriteriaError(f"Criterion '{name}' has no usable value: {entry!r}")
        return Criterion(name=name, kind=CriterionKind.CATEGORICAL, value=str(entry))

    kind = _infer_kind(name, entry)
    if kind == CriterionKind.CATEGORICAL:
        value = entry.get("value")
        if value is None:
            raise InvalidCriteriaError(f"Criterion '{name}' has neither min, max, nor a categorical value")
        return Criterion(name=name, kind=kind, value=str(value))

    low = _to_bound(name, "min", entry.get("min"))
    high = _to_bound(name, "max", entry.get("max"))
    if low is None and high is None:
        raise InvalidCriteriaError(f"Criterion '{name}' has neither min, max, nor a categorical value")
    return Criterion(name=name, kind=kind, min=low, max=high)


def _infer_kind(name: str, entry: Dict[str, Any]) -> CriterionKind:
    declared = entry.get("kind") or entry.get("type")
    if declared:
        try:
            return CriterionKind(str(declared).lower())
        except ValueError:
            raise InvalidCriteriaError(f"Criterion '{name}' has unknown kind: {declared}") from None
    if entry.get("min") is not None or entry.get("max") is not None:
        return CriterionKind.RANGE
    return CriterionKind.CATEGORICAL


def _to_bound(name: str, field: str, raw: Any) -> Optional[float]:
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return None
    if isinstance(raw, bool):
        raise InvalidCriteriaError(f"Criterion '{name}' has a non-numeric {field}: {raw!r}")
    try:
        number = float(raw)
    except (TypeError, ValueError):
        raise InvalidCriteriaError(f"Criterion '{name}' has a non-numeric {field}: {raw!r}") from None
    if math.isnan(number) or math.isinf(number):
        raise InvalidCriteriaError(f"Criterion '{name}' has a non-finite {field}: {raw!r}")
    return number

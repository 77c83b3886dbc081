"""Criteria Store — original extracted criteria plus a user-editable working copy.

The working copy is edited field by field from an interactive form. Numeric
bounds tolerate partial text while the user types ("", "-", "."); such text is
held as a draft and only resolved when the field is committed (loss of focus)
or when the criteria are read for evaluation. A blank bound resolves to 0.
"""

import math
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from screening.models.criteria import Criterion, CriteriaSet, clone_criteria
from screening.models.enums import CriterionField, CriterionKind
from screening.eligibility.exceptions import InvalidCriteriaError, UnknownCriterionError
from screening.config.logging_config import get_logger

logger = get_logger(__name__)

_NUMERIC_FIELDS = (CriterionField.MIN, CriterionField.MAX)


class FieldChange(BaseModel):
    field_name: str
    old: Optional[str] = None
    new: Optional[str] = None


class CriteriaDivergence(BaseModel):
    criterion_name: str
    kind: CriterionKind
    field_changes: List[FieldChange] = Field(default_factory=list)

    @property
    def human_summary(self) -> str:
        return "; ".join(f"{fc.field_name}: {fc.old} -> {fc.new}" for fc in self.field_changes)


class CriteriaStore:
    """Holds the canonical criteria set and the working copy the user edits."""

    def __init__(self):
        self._original: Optional[CriteriaSet] = None
        self._working: Optional[CriteriaSet] = None
        # (criterion name, field) -> raw text that does not parse yet
        self._drafts: Dict[Tuple[str, CriterionField], str] = {}

    @property
    def is_loaded(self) -> bool:
        return self._original is not None

    @property
    def original(self) -> CriteriaSet:
        self._require_loaded()
        return clone_criteria(self._original)

    @property
    def working(self) -> CriteriaSet:
        """Working copy as currently stored. Pending drafts are not applied."""
        self._require_loaded()
        return clone_criteria(self._working)

    @property
    def pending_drafts(self) -> Dict[Tuple[str, str], str]:
        return {(name, f.value): raw for (name, f), raw in self._drafts.items()}

    def load(self, original: CriteriaSet) -> None:
        """Set original and working copy to clones of the extracted criteria."""
        for key, criterion in original.items():
            if key != criterion.name:
                raise InvalidCriteriaError(
                    f"Criterion keyed '{key}' is named '{criterion.name}'"
                )
            if not criterion.has_constraint():
                raise InvalidCriteriaError(
                    f"Criterion '{key}' has neither min, max, nor a categorical value"
                )
            for f in _NUMERIC_FIELDS:
                bound = getattr(criterion, f.value)
                if bound is not None and not math.isfinite(bound):
                    raise InvalidCriteriaError(
                        f"Criterion '{key}' has a non-finite {f.value} bound: {bound}"
                    )
        self._original = clone_criteria(original)
        self._working = clone_criteria(original)
        self._drafts = {}
        logger.info("Criteria loaded", criteria_count=len(original))

    def set_field(self, name: str, field: str, raw: str) -> None:
        """Apply one edit from the review form."""
        self._require_loaded()
        criterion = self._lookup(name)
        target = self._check_field(criterion, field)

        if target == CriterionField.VALUE:
            self._working[name] = criterion.model_copy(update={"value": raw})
            return

        parsed = _parse_number(raw)
        if parsed is None:
            self._drafts[(name, target)] = raw
            logger.debug("Draft held for numeric field", criterion=name, field=target.value, raw=raw)
            return
        self._drafts.pop((name, target), None)
        self._working[name] = criterion.model_copy(update={target.value: parsed})

    def commit_field(self, name: str, field: str) -> None:
        """Finalize a field on loss of focus. Blank numeric text becomes 0."""
        self._require_loaded()
        criterion = self._lookup(name)
        target = self._check_field(criterion, field)
        raw = self._drafts.pop((name, target), None)
        if raw is None:
            return
        resolved = _resolve_draft(raw)
        if resolved is None:
            # Keep the draft so the user can fix it in place.
            self._drafts[(name, target)] = raw
            raise InvalidCriteriaError(f"'{raw}' is not a valid number for {name}.{target.value}")
        self._working[name] = criterion.model_copy(update={target.value: resolved})

    def commit_all(self) -> None:
        for name, target in list(self._drafts):
            self.commit_field(name, target.value)

    def active_criteria(self) -> CriteriaSet:
        """Criteria as read for evaluation; all drafts must resolve to finite numbers."""
        self._require_loaded()
        self.commit_all()
        return clone_criteria(self._working)

    def has_diverged(self) -> bool:
        self._require_loaded()
        if any(_resolve_draft(raw) is None for raw in self._drafts.values()):
            return True
        return bool(self.diff())

    def diff(self) -> List[CriteriaDivergence]:
        """Field-wise differences, in original insertion order."""
        self._require_loaded()
        divergences = []
        for name, old in self._original.items():
            new = self._effective(name)
            if new is None:
                continue
            changes = _compare_fields(old, new)
            if changes:
                divergences.append(CriteriaDivergence(
                    criterion_name=name,
                    kind=old.kind,
                    field_changes=changes,
                ))
        return divergences

    def reset_to_original(self) -> None:
        self._require_loaded()
        self._working = clone_criteria(self._original)
        self._drafts = {}
        logger.info("Criteria reset to original")

    def _effective(self, name: str) -> Optional[Criterion]:
        """Working criterion with resolvable drafts applied; None if a draft cannot resolve."""
        criterion = self._working[name]
        updates = {}
        for target in _NUMERIC_FIELDS:
            raw = self._drafts.get((name, target))
            if raw is None:
                continue
            resolved = _resolve_draft(raw)
            if resolved is None:
                return None
            updates[target.value] = resolved
        return criterion.model_copy(update=updates) if updates else criterion

    def _lookup(self, name: str) -> Criterion:
        criterion = self._working.get(name)
        if criterion is None:
            raise UnknownCriterionError(name)
        return criterion

    def _check_field(self, criterion: Criterion, field: str) -> CriterionField:
        try:
            target = CriterionField(field)
        except ValueError:
            raise InvalidCriteriaError(f"Unknown criterion field: {field}") from None
        numeric = target in _NUMERIC_FIELDS
        if numeric != (criterion.kind == CriterionKind.RANGE):
            raise InvalidCriteriaError(
                f"Field '{target.value}' does not apply to {criterion.kind.value} criterion '{criterion.name}'"
            )
        return target

    def _require_loaded(self) -> None:
        if self._original is None:
            raise InvalidCriteriaError("No criteria loaded")


def _parse_number(raw: str) -> Optional[float]:
    """Parse decimal text into a finite float, None while the text is incomplete."""
    try:
        result = float(raw.strip())
    except (ValueError, AttributeError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def _resolve_draft(raw: str) -> Optional[float]:
    if raw.strip() == "":
        return 0.0
    return _parse_number(raw)


def _compare_fields(old: Criterion, new: Criterion) -> List[FieldChange]:
    """Compare only the fields that carry meaning for the criterion's kind."""
    if old.kind == CriterionKind.CATEGORICAL:
        fields = [CriterionField.VALUE]
    else:
        fields = list(_NUMERIC_FIELDS)
    changes = []
    for f in fields:
        old_val = getattr(old, f.value)
        new_val = getattr(new, f.value)
        if old_val != new_val:
            changes.append(FieldChange(
                field_name=f.value,
                old=_as_text(old_val),
                new=_as_text(new_val),
            ))
    return changes


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)

"""Screening Workflow — the wizard as an explicit finite-state machine.

start -> awaiting_dataset -> awaiting_criteria -> reviewing_criteria
      -> (reviewing_divergence) -> dashboard <-> feature_distribution

A session owns the patient set, the CriteriaStore, and the current evaluation
run. Any change to patients or criteria drops the run; dashboard reads
re-evaluate when needed.
"""

import uuid
from typing import Dict, List, Optional, Sequence

from screening.models.criteria import CriteriaSet, PatientRecord
from screening.models.enums import WorkflowState
from screening.eligibility.aggregator import DashboardReport, ResultAggregator
from screening.eligibility.criteria_store import CriteriaDivergence, CriteriaStore
from screening.eligibility.distribution import FeatureDistribution, feature_distribution
from screening.eligibility.engine import EligibilityEngine, EvaluationRun
from screening.eligibility.exceptions import InvalidTransitionError, SessionNotFoundError
from screening.eligibility.exporter import export_eligible_csv, export_failures_csv
from screening.config.settings import Settings, get_settings
from screening.config.logging_config import get_logger

logger = get_logger(__name__)

S = WorkflowState

_BACK: Dict[WorkflowState, WorkflowState] = {
    S.AWAITING_DATASET: S.START,
    S.AWAITING_CRITERIA: S.AWAITING_DATASET,
    S.REVIEWING_CRITERIA: S.AWAITING_CRITERIA,
    S.REVIEWING_DIVERGENCE: S.REVIEWING_CRITERIA,
    S.DASHBOARD: S.REVIEWING_CRITERIA,
    S.FEATURE_DISTRIBUTION: S.DASHBOARD,
}

_RESULT_STATES = (S.DASHBOARD, S.FEATURE_DISTRIBUTION)


class ScreeningSession:
    """One user's pass through the screening wizard."""

    def __init__(self, session_id: Optional[str] = None, settings: Optional[Settings] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.settings = settings or get_settings()
        self.engine = EligibilityEngine(case_sensitive=self.settings.categorical_case_sensitive)
        self.store = CriteriaStore()
        self.state = S.START
        self.patients: List[PatientRecord] = []
        self.selected_feature: Optional[str] = None
        self._run: Optional[EvaluationRun] = None

    # --- Transitions ---

    def begin(self) -> None:
        self._require(S.START, action="begin")
        self._move(S.AWAITING_DATASET)

    def upload_dataset(self, patients: Sequence[PatientRecord]) -> None:
        self._require(S.AWAITING_DATASET, S.AWAITING_CRITERIA, action="upload_dataset")
        self.patients = list(patients)
        self._run = None
        self._move(S.AWAITING_CRITERIA)

    def upload_criteria(self, criteria: CriteriaSet) -> None:
        self._require(S.AWAITING_CRITERIA, action="upload_criteria")
        if not self.patients:
            raise InvalidTransitionError("Upload a patient dataset before the criteria")
        self.store.load(criteria)
        self._run = None
        self._move(S.REVIEWING_CRITERIA)

    def edit_criterion(self, name: str, field: str, raw: str, commit: bool = False) -> None:
        self._require(S.REVIEWING_CRITERIA, action="edit_criterion")
        self.store.set_field(name, field, raw)
        if commit:
            self.store.commit_field(name, field)
        self._run = None

    def commit_criterion(self, name: str, field: str) -> None:
        self._require(S.REVIEWING_CRITERIA, action="commit_criterion")
        self.store.commit_field(name, field)
        self._run = None

    def confirm_criteria(self) -> WorkflowState:
        """Confirm the reviewed criteria; diverging edits need an explicit accept."""
        self._require(S.REVIEWING_CRITERIA, action="confirm_criteria")
        self.store.commit_all()
        if self.store.has_diverged():
            self._move(S.REVIEWING_DIVERGENCE)
        else:
            self._evaluate()
            self._move(S.DASHBOARD)
        return self.state

    def accept_divergence(self) -> None:
        self._require(S.REVIEWING_DIVERGENCE, action="accept_divergence")
        self._evaluate()
        self._move(S.DASHBOARD)

    def revert_divergence(self) -> None:
        self._require(S.REVIEWING_DIVERGENCE, action="revert_divergence")
        self.store.reset_to_original()
        self._run = None
        self._move(S.REVIEWING_CRITERIA)

    def view_distribution(self, feature: str) -> FeatureDistribution:
        self._require(*_RESULT_STATES, action="view_distribution")
        distribution = self.distribution(feature)
        self.selected_feature = feature
        self._move(S.FEATURE_DISTRIBUTION)
        return distribution

    def back(self) -> WorkflowState:
        target = _BACK.get(self.state)
        if target is None:
            raise InvalidTransitionError(f"Cannot go back from {self.state.value}")
        if self.state == S.FEATURE_DISTRIBUTION:
            self.selected_feature = None
        self._move(target)
        return self.state

    def restart(self) -> None:
        self.store = CriteriaStore()
        self.patients = []
        self.selected_feature = None
        self._run = None
        self._move(S.START)

    # --- Reads ---

    def divergence(self) -> List[CriteriaDivergence]:
        self._require(S.REVIEWING_CRITERIA, S.REVIEWING_DIVERGENCE, action="divergence")
        return self.store.diff()

    @property
    def run(self) -> EvaluationRun:
        self._require(*_RESULT_STATES, action="read results")
        if self._run is None:
            self._evaluate()
        return self._run

    def dashboard(self, limit: Optional[int] = None) -> DashboardReport:
        limit = self.settings.terminal_cases_limit if limit is None else limit
        return ResultAggregator(self.run).dashboard(limit)

    def distribution(self, feature: str) -> FeatureDistribution:
        return feature_distribution(self.patients, self.run, feature, bins=self.settings.histogram_bins)

    def export_eligible(self) -> str:
        return export_eligible_csv(self.patients, self.run, delimiter=self.settings.export_delimiter)

    def export_failures(self) -> str:
        histogram = ResultAggregator(self.run).failure_histogram()
        return export_failures_csv(histogram, delimiter=self.settings.export_delimiter)

    def snapshot(self) -> dict:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "patients": len(self.patients),
            "criteria": len(self.store.working) if self.store.is_loaded else 0,
            "has_diverged": self.store.has_diverged() if self.store.is_loaded else False,
            "selected_feature": self.selected_feature,
        }

    # --- Internals ---

    def _evaluate(self) -> None:
        self._run = self.engine.evaluate(self.patients, self.store.active_criteria())

    def _require(self, *allowed: WorkflowState, action: str) -> None:
        if self.state not in allowed:
            expected = ", ".join(s.value for s in allowed)
            raise InvalidTransitionError(
                f"Cannot {action} in state {self.state.value} (expected {expected})"
            )

    def _move(self, target: WorkflowState) -> None:
        logger.info("Workflow transition", session_id=self.session_id, source=self.state.value, target=target.value)
        self.state = target


class SessionRegistry:
    """In-memory screening sessions, bounded; the oldest session is evicted first."""

    def __init__(self, max_sessions: int = 64):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, ScreeningSession] = {}

    def create(self, settings: Optional[Settings] = None) -> ScreeningSession:
        if len(self._sessions) >= self.max_sessions:
            oldest_id = next(iter(self._sessions))
            del self._sessions[oldest_id]
            logger.info("Session evicted", session_id=oldest_id)
        session = ScreeningSession(settings=settings)
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> ScreeningSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Screening session not found: {session_id}")
        return session

    def remove(self, session_id: str) -> None:
        self.get(session_id)
        del self._sessions[session_id]

    def __len__(self) -> int:
        return len(self._sessions)


_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """Get or create the global SessionRegistry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry(max_sessions=get_settings().max_sessions)
    return _registry

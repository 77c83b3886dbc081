"""
Unit tests for the screening wizard state machine and session registry.
"""

import pytest

from screening.config.settings import Settings
from screening.models.enums import WorkflowState
from screening.eligibility.exceptions import (
    InvalidCriteriaError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from screening.eligibility.workflow import ScreeningSession, SessionRegistry


@pytest.fixture
def session() -> ScreeningSession:
    return ScreeningSession(settings=Settings())


@pytest.fixture
def reviewing(session, patients, criteria) -> ScreeningSession:
    session.begin()
    session.upload_dataset(patients)
    session.upload_criteria(criteria)
    return session


def test_happy_path_without_edits(reviewing):
    assert reviewing.state == WorkflowState.REVIEWING_CRITERIA
    assert reviewing.confirm_criteria() == WorkflowState.DASHBOARD
    report = reviewing.dashboard()
    assert report.summary.eligible_count == 2


def test_edits_route_through_divergence_review(reviewing):
    reviewing.edit_criterion("BMI", "max", "40")
    assert reviewing.confirm_criteria() == WorkflowState.REVIEWING_DIVERGENCE
    (change,) = reviewing.divergence()
    assert change.criterion_name == "BMI"

    reviewing.accept_divergence()
    assert reviewing.state == WorkflowState.DASHBOARD
    # P003 (BMI 36) now passes
    assert reviewing.dashboard().summary.eligible_count == 3


def test_revert_divergence_restores_original(reviewing):
    reviewing.edit_criterion("Age", "min", "", commit=True)
    reviewing.confirm_criteria()
    reviewing.revert_divergence()
    assert reviewing.state == WorkflowState.REVIEWING_CRITERIA
    assert not reviewing.store.has_diverged()


def test_blank_bound_becomes_zero_on_commit(reviewing):
    reviewing.edit_criterion("Age", "min", "")
    reviewing.commit_criterion("Age", "min")
    assert reviewing.store.working["Age"].min == 0


def test_confirm_with_unparseable_draft_stays_in_review(reviewing):
    reviewing.edit_criterion("Age", "min", "-")
    with pytest.raises(InvalidCriteriaError):
        reviewing.confirm_criteria()
    assert reviewing.state == WorkflowState.REVIEWING_CRITERIA


def test_transitions_are_guarded(session, patients, criteria):
    with pytest.raises(InvalidTransitionError):
        session.upload_dataset(patients)
    session.begin()
    with pytest.raises(InvalidTransitionError):
        session.upload_criteria(criteria)
    with pytest.raises(InvalidTransitionError):
        session.dashboard()


def test_criteria_need_a_non_empty_dataset(session, criteria):
    session.begin()
    session.upload_dataset([])
    with pytest.raises(InvalidTransitionError):
        session.upload_criteria(criteria)


def test_edits_only_during_review(reviewing):
    reviewing.confirm_criteria()
    with pytest.raises(InvalidTransitionError):
        reviewing.edit_criterion("Age", "min", "10")


def test_back_navigation(reviewing):
    reviewing.confirm_criteria()
    assert reviewing.back() == WorkflowState.REVIEWING_CRITERIA
    assert reviewing.back() == WorkflowState.AWAITING_CRITERIA
    assert reviewing.back() == WorkflowState.AWAITING_DATASET
    assert reviewing.back() == WorkflowState.START
    with pytest.raises(InvalidTransitionError):
        reviewing.back()


def test_feature_distribution_and_back(reviewing):
    reviewing.confirm_criteria()
    dist = reviewing.view_distribution("Age")
    assert dist.feature == "Age"
    assert reviewing.state == WorkflowState.FEATURE_DISTRIBUTION
    assert reviewing.selected_feature == "Age"
    assert reviewing.back() == WorkflowState.DASHBOARD
    assert reviewing.selected_feature is None


def test_results_recomputed_after_returning_to_review(reviewing):
    reviewing.confirm_criteria()
    assert reviewing.dashboard().summary.eligible_count == 2
    reviewing.back()
    reviewing.edit_criterion("Diagnosis", "value", "Diabetes")
    reviewing.confirm_criteria()
    reviewing.accept_divergence()
    assert reviewing.dashboard().summary.eligible_count == 0


def test_exports(reviewing):
    reviewing.confirm_criteria()
    assert reviewing.export_eligible().splitlines()[0] == "patient_id,Age,Diagnosis,BMI,reason"
    assert reviewing.export_failures().splitlines()[0] == "condition,count"


def test_restart_clears_session(reviewing):
    reviewing.restart()
    assert reviewing.state == WorkflowState.START
    assert reviewing.patients == []
    assert not reviewing.store.is_loaded


def test_snapshot(reviewing):
    snap = reviewing.snapshot()
    assert snap["state"] == "reviewing_criteria"
    assert snap["patients"] == 5
    assert snap["criteria"] == 3
    assert snap["has_diverged"] is False


class TestSessionRegistry:

    def test_create_and_get(self):
        registry = SessionRegistry(max_sessions=2)
        session = registry.create(settings=Settings())
        assert registry.get(session.session_id) is session

    def test_oldest_evicted(self):
        registry = SessionRegistry(max_sessions=2)
        first = registry.create(settings=Settings())
        registry.create(settings=Settings())
        registry.create(settings=Settings())
        assert len(registry) == 2
        with pytest.raises(SessionNotFoundError):
            registry.get(first.session_id)

    def test_remove(self):
        registry = SessionRegistry()
        session = registry.create(settings=Settings())
        registry.remove(session.session_id)
        with pytest.raises(SessionNotFoundError):
            registry.remove(session.session_id)

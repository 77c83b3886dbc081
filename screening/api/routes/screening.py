"""Screening workflow API routes."""
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import PlainTextResponse

from screening.api.requests import CriteriaUploadRequest, CriterionEditRequest, EvaluateRequest
from screening.api.responses import (
    CriteriaResponse,
    DivergenceResponse,
    EvaluateResponse,
    SessionResponse,
)
from screening.eligibility.aggregator import DashboardReport, ResultAggregator
from screening.eligibility.criteria_loader import parse_criteria
from screening.eligibility.criteria_store import CriteriaStore
from screening.eligibility.dataset_loader import load_patients, load_patients_csv
from screening.eligibility.distribution import FeatureDistribution
from screening.eligibility.engine import EligibilityEngine
from screening.eligibility.exceptions import (
    EmptyDatasetError,
    InvalidCriteriaError,
    InvalidDatasetError,
    InvalidTransitionError,
    ScreeningError,
    SessionNotFoundError,
    UnknownCriterionError,
    UnknownFeatureError,
)
from screening.eligibility.workflow import ScreeningSession, get_session_registry
from screening.config.logging_config import get_logger
from screening.config.settings import get_settings

logger = get_logger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

_STATUS_BY_ERROR = (
    ((InvalidCriteriaError, InvalidDatasetError), 422),
    ((UnknownCriterionError, UnknownFeatureError, SessionNotFoundError), 404),
    ((EmptyDatasetError, InvalidTransitionError), 409),
)


def _http_error(exc: ScreeningError) -> HTTPException:
    """Map a screening error to an HTTP error, message unchanged."""
    for error_types, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_types):
            return HTTPException(status_code=status, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _session(session_id: str) -> ScreeningSession:
    try:
        return get_session_registry().get(session_id)
    except SessionNotFoundError as e:
        raise _http_error(e)


def _session_response(session: ScreeningSession) -> SessionResponse:
    return SessionResponse(**session.snapshot())


def _criteria_response(session: ScreeningSession) -> CriteriaResponse:
    store = session.store
    return CriteriaResponse(
        session_id=session.session_id,
        state=session.state.value,
        original=list(store.original.values()),
        working=list(store.working.values()),
        pending_drafts={f"{name}.{field}": raw for (name, field), raw in store.pending_drafts.items()},
        has_diverged=store.has_diverged(),
    )


router = APIRouter(tags=["Screening"])


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(request: EvaluateRequest):
    """
    Evaluate a patient set against a criteria document without a session.

    Returns:
        The evaluation run and its dashboard summaries
    """
    settings = get_settings()
    try:
        patients = load_patients(request.patients)
        store = CriteriaStore()
        store.load(parse_criteria(request.criteria))
        engine = EligibilityEngine(case_sensitive=settings.categorical_case_sensitive)
        run = engine.evaluate(patients, store.active_criteria())
        limit = settings.terminal_cases_limit if request.limit is None else request.limit
        return EvaluateResponse(run=run, dashboard=ResultAggregator(run).dashboard(limit))
    except ScreeningError as e:
        logger.warning("Stateless evaluation rejected", error=str(e))
        raise _http_error(e)


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session():
    session = get_session_registry().create()
    logger.info("Screening session created", session_id=session.session_id)
    return _session_response(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    return _session_response(_session(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    try:
        get_session_registry().remove(session_id)
    except SessionNotFoundError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/begin", response_model=SessionResponse)
async def begin(session_id: str):
    session = _session(session_id)
    try:
        session.begin()
    except ScreeningError as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/sessions/{session_id}/dataset", response_model=SessionResponse)
async def upload_dataset(session_id: str, file: UploadFile = File(...)):
    """Upload the patient dataset as a CSV file."""
    session = _session(session_id)
    content_bytes = await file.read()
    if len(content_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File exceeds 10 MB limit.")
    try:
        text = content_bytes.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Dataset must be UTF-8 encoded CSV.")

    try:
        patients = load_patients_csv(text)
        session.upload_dataset(patients)
    except ScreeningError as e:
        logger.warning("Dataset upload rejected", session_id=session_id, filename=file.filename, error=str(e))
        raise _http_error(e)
    return _session_response(session)


@router.post("/sessions/{session_id}/criteria", response_model=CriteriaResponse)
async def upload_criteria(session_id: str, request: CriteriaUploadRequest):
    session = _session(session_id)
    try:
        session.upload_criteria(parse_criteria(request.criteria))
    except ScreeningError as e:
        raise _http_error(e)
    return _criteria_response(session)


@router.get("/sessions/{session_id}/criteria", response_model=CriteriaResponse)
async def get_criteria(session_id: str):
    session = _session(session_id)
    if not session.store.is_loaded:
        raise HTTPException(status_code=409, detail="No criteria loaded for this session")
    return _criteria_response(session)


@router.patch("/sessions/{session_id}/criteria/{name}", response_model=CriteriaResponse)
async def edit_criterion(session_id: str, name: str, request: CriterionEditRequest):
    session = _session(session_id)
    try:
        session.edit_criterion(name, request.field, request.raw, commit=request.commit)
    except ScreeningError as e:
        raise _http_error(e)
    return _criteria_response(session)


@router.get("/sessions/{session_id}/divergence", response_model=DivergenceResponse)
async def get_divergence(session_id: str):
    session = _session(session_id)
    try:
        divergences = session.divergence()
    except ScreeningError as e:
        raise _http_error(e)
    return DivergenceResponse(
        session_id=session.session_id,
        has_diverged=session.store.has_diverged(),
        divergences=divergences,
    )


@router.post("/sessions/{session_id}/confirm", response_model=SessionResponse)
async def confirm_criteria(session_id: str):
    session = _session(session_id)
    try:
        session.confirm_criteria()
    except ScreeningError as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/sessions/{session_id}/divergence/accept", response_model=SessionResponse)
async def accept_divergence(session_id: str):
    session = _session(session_id)
    try:
        session.accept_divergence()
    except ScreeningError as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/sessions/{session_id}/divergence/revert", response_model=SessionResponse)
async def revert_divergence(session_id: str):
    session = _session(session_id)
    try:
        session.revert_divergence()
    except ScreeningError as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/sessions/{session_id}/back", response_model=SessionResponse)
async def back(session_id: str):
    session = _session(session_id)
    try:
        session.back()
    except ScreeningError as e:
        raise _http_error(e)
    return _session_response(session)


@router.post("/sessions/{session_id}/restart", response_model=SessionResponse)
async def restart(session_id: str):
    session = _session(session_id)
    session.restart()
    return _session_response(session)


@router.get("/sessions/{session_id}/dashboard", response_model=DashboardReport)
async def get_dashboard(session_id: str, limit: Optional[int] = Query(None, ge=0)):
    session = _session(session_id)
    try:
        return session.dashboard(limit)
    except ScreeningError as e:
        raise _http_error(e)


@router.get("/sessions/{session_id}/distribution/{feature}", response_model=FeatureDistribution)
async def get_distribution(session_id: str, feature: str):
    session = _session(session_id)
    try:
        return session.view_distribution(feature)
    except ScreeningError as e:
        raise _http_error(e)


@router.get("/sessions/{session_id}/exports/eligible.csv", response_class=PlainTextResponse)
async def export_eligible(session_id: str):
    session = _session(session_id)
    try:
        content = session.export_eligible()
    except ScreeningError as e:
        raise _http_error(e)
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="eligible.csv"'},
    )


@router.get("/sessions/{session_id}/exports/failures.csv", response_class=PlainTextResponse)
async def export_failures(session_id: str):
    session = _session(session_id)
    try:
        content = session.export_failures()
    except ScreeningError as e:
        raise _http_error(e)
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="failures.csv"'},
    )

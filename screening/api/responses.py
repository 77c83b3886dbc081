"""Response models for screening API endpoints."""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from screening.models.criteria import Criterion
from screening.eligibility.aggregator import DashboardReport
from screening.eligibility.criteria_store import CriteriaDivergence
from screening.eligibility.engine import EvaluationRun


class SessionResponse(BaseModel):
    """Current workflow position of a screening session."""
    session_id: str
    state: str
    patients: int
    criteria: int
    has_diverged: bool
    selected_feature: Optional[str] = None


class CriteriaResponse(BaseModel):
    """Original and working criteria of a session."""
    session_id: str
    state: str
    original: List[Criterion]
    working: List[Criterion]
    pending_drafts: Dict[str, str] = Field(default_factory=dict)
    has_diverged: bool


class DivergenceResponse(BaseModel):
    session_id: str
    has_diverged: bool
    divergences: List[CriteriaDivergence]


class EvaluateResponse(BaseModel):
    run: EvaluationRun
    dashboard: DashboardReport


class HealthCheckResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str
    components: Dict[str, bool]


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None
    code: Optional[str] = None

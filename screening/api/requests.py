"""Request models for screening API endpoints."""
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field


class EvaluateRequest(BaseModel):
    """Stateless evaluation of a patient set against a criteria document."""
    patients: List[Dict[str, Any]] = Field(..., description="Patient rows, each holding the ID column")
    criteria: Union[Dict[str, Any], List[Dict[str, Any]], str] = Field(
        ..., description="Criteria extractor output"
    )
    limit: Optional[int] = Field(None, ge=0, description="Number of terminal cases to return")


class CriteriaUploadRequest(BaseModel):
    """Criteria extractor output for a session."""
    criteria: Union[Dict[str, Any], List[Dict[str, Any]], str] = Field(
        ..., description="Mapping, list of criteria, or extractor text containing JSON"
    )


class CriterionEditRequest(BaseModel):
    """One field edit from the review form."""
    field: str = Field(..., description="min, max, or value")
    raw: str = Field(..., description="Raw text as typed")
    commit: bool = Field(False, description="Finalize the field (loss of focus)")

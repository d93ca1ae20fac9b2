"""
API-specific request and response models for FastAPI endpoints.

These wrap the domain models (SyncReport, SearchHit, CaseRecord) with
API-specific metadata and status information.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from objection_analyzer.models.catalog_models import SearchHit, SyncReport
from objection_analyzer.models.enums import CaseOutcome
from objection_analyzer.models.pipeline_models import CaseRecord, utcnow
from objection_analyzer.persistence.case_store import parse_ordered_record


class AnalyzeRequest(BaseModel):
    """Request for transcript analysis."""

    transcript: str = Field(
        min_length=1,
        description="Full call transcript text",
    )


class AnalyzeResponse(BaseModel):
    """Response for synchronous transcript analysis."""

    status: str = Field(
        description="Processing status",
        examples=["completed", "no_records"],
    )
    records: list[dict[str, str]] = Field(
        default_factory=list,
        description="Canonical-ordered records, one per objection that reached a case store",
    )
    duration_ms: int = Field(ge=0, description="Processing time in milliseconds")


class TaskSubmitResponse(BaseModel):
    """Response for Celery task submission endpoints."""

    task_id: str = Field(description="Celery task ID for tracking")
    submitted_at: datetime = Field(default_factory=utcnow)


class TaskStatusResponse(BaseModel):
    """Response for task status check endpoint."""

    task_id: str
    status: str = Field(
        description="Task state: PENDING, STARTED, SUCCESS, FAILURE, RETRY",
        examples=["PENDING", "STARTED", "SUCCESS", "FAILURE", "RETRY"],
    )
    result: Optional[Any] = Field(
        default=None,
        description="Task return value (present only if status=SUCCESS)",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message (present only if status=FAILURE)",
    )


class SyncRequest(BaseModel):
    """Request for a catalog sync run over the configured feed directory."""

    force_refresh: Optional[bool] = Field(
        default=None,
        description="Re-embed every shared code (defaults to CATALOG_FORCE_REFRESH)",
    )
    bootstrap: bool = Field(
        default=False,
        description="Skip the run when the catalog already has records",
    )


class SyncResponse(BaseModel):
    """Response for catalog sync endpoint."""

    report: SyncReport
    summary: str = Field(description="Human-readable change summary")


class CategoryHit(BaseModel):
    """One search result without its embedding."""

    code: str
    big_code: str
    big_name: str
    small_code: str
    small_title: str
    distance: float
    similarity: float

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "CategoryHit":
        record = hit.record
        return cls(
            code=record.code,
            big_code=record.big_code,
            big_name=record.big_name,
            small_code=record.small_code,
            small_title=record.small_title,
            distance=hit.distance,
            similarity=hit.similarity,
        )


class SearchResponse(BaseModel):
    """Response for catalog similarity search."""

    query: str
    hits: list[CategoryHit] = Field(default_factory=list)


class CaseView(BaseModel):
    """A stored case with its record decoded in canonical key order."""

    problem: str
    answer: str
    reason: str
    record: dict[str, str]
    transcript: str
    created_at: datetime

    @classmethod
    def from_case(cls, case: CaseRecord) -> "CaseView":
        return cls(
            problem=case.problem,
            answer=case.answer,
            reason=case.reason,
            record=parse_ordered_record(case),
            transcript=case.transcript,
            created_at=case.created_at,
        )


class CasesResponse(BaseModel):
    """Page of one case store."""

    outcome: CaseOutcome
    total: int = Field(description="Cases in the store (-1 when unavailable)")
    offset: int
    limit: int
    cases: list[CaseView] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "degraded", "unhealthy"],
    )
    version: str = Field(examples=["0.1.0"])
    services: dict[str, str] = Field(
        description="Service-specific health status",
        examples=[{"ollama": "ok", "redis": "ok", "catalog": "1200 categories"}],
    )
    timestamp: datetime = Field(default_factory=utcnow)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(
        description="Error code or type",
        examples=["pipeline_failed", "provider_unavailable", "internal_error"],
    )
    message: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=utcnow)

"""Pydantic schemas for API request/response validation."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from job_tracker.analysis.interview import InterviewPrep
from job_tracker.analysis.resume import ResumeAnalysis
from job_tracker.extraction.result import ClassificationResult

# Display placeholders; the core itself reports absence as None.
UNKNOWN_COMPANY = "Unknown Company"
UNKNOWN_POSITION = "Unknown Position"


# ── Classification schemas ────────────────────────────────


class EmailIn(BaseModel):
    """One email submitted for classification."""

    subject: str = Field("", max_length=1000)
    sender: str = Field("", max_length=500)
    content: str = ""
    message_id: Optional[str] = None


class ClassificationOut(BaseModel):
    status: str
    company: str
    job_title: str
    confidence: float
    method: str
    reasoning: str = ""

    @classmethod
    def from_result(cls, result: ClassificationResult) -> "ClassificationOut":
        return cls(
            status=result.status,
            company=result.company or UNKNOWN_COMPANY,
            job_title=result.job_title or UNKNOWN_POSITION,
            confidence=result.confidence,
            method=result.method,
            reasoning=result.reasoning,
        )


class EmailClassificationOut(BaseModel):
    """Full pipeline decision for one email."""

    job_related: bool
    noise_reason: Optional[str] = None
    retained: bool = False
    classification: Optional[ClassificationOut] = None


# ── Scan schemas ──────────────────────────────────────────


class ScanResultOut(BaseModel):
    emails_scanned: int
    job_related: int
    retained: int
    imported: int
    duplicates_skipped: int
    ai_analyzed: int
    regex_analyzed: int
    errors: List[str] = []
    cancelled: bool = False


# ── Recategorization schemas ──────────────────────────────


class RecategorizeRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=128)
    mode: Literal["analyze", "update"] = "analyze"
    force_update: bool = False


class StatusChangeOut(BaseModel):
    job_id: int
    from_status: str
    to_status: str
    company: str
    job_title: str

    model_config = {"from_attributes": True}


class RecategorizationResultOut(BaseModel):
    total_jobs: int
    analyzed_jobs: int
    updated_jobs: int
    errors: List[str] = []
    ai_analyzed: int
    regex_fallback: int
    skipped: int
    status_changes: List[StatusChangeOut] = []
    cancelled: bool = False

    model_config = {"from_attributes": True}


class RecategorizationStatsOut(BaseModel):
    total_jobs: int
    jobs_with_email_data: int
    jobs_without_email_data: int
    recently_analyzed: int
    needs_analysis: int
    status_breakdown: dict[str, int]
    should_run: bool
    recommendation: str

    model_config = {"from_attributes": True}


# ── Resume / interview schemas ────────────────────────────


class ResumeAnalysisRequest(BaseModel):
    job_description: Optional[str] = None
    resume_text: Optional[str] = None


class ResumeAnalysisResponse(BaseModel):
    success: bool = True
    analysis: ResumeAnalysis
    fallback_used: bool
    message: str


class ServiceStatusOut(BaseModel):
    message: str
    status: str = "active"
    ai_service_available: bool


class InterviewPrepRequest(BaseModel):
    job_description: Optional[str] = None


class InterviewPrepResponse(BaseModel):
    success: bool = True
    prep: InterviewPrep
    fallback_used: bool


# ── AI status ─────────────────────────────────────────────


class AIStatusOut(BaseModel):
    success: bool
    ai_available: bool
    test_result: Optional[ClassificationOut] = None
    error: Optional[str] = None

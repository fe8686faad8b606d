"""Resume analysis and interview preparation endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException

from job_tracker.analysis.interview import InterviewPrepGenerator
from job_tracker.analysis.resume import MIN_JOB_DESCRIPTION_CHARS, MIN_RESUME_CHARS, ResumeAnalyzer
from job_tracker.api.deps import get_interview_prep, get_resume_analyzer
from job_tracker.schemas import (
    InterviewPrepRequest,
    InterviewPrepResponse,
    ResumeAnalysisRequest,
    ResumeAnalysisResponse,
    ServiceStatusOut,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/resume-analysis", response_model=ResumeAnalysisResponse)
def analyze_resume(
    body: ResumeAnalysisRequest,
    analyzer: ResumeAnalyzer = Depends(get_resume_analyzer),
) -> ResumeAnalysisResponse:
    """Score a resume against a job description."""
    job_description = (body.job_description or "").strip()
    resume_text = (body.resume_text or "").strip()
    if not job_description or not resume_text:
        raise HTTPException(status_code=400, detail="Job description and resume text are required")
    if len(job_description) < MIN_JOB_DESCRIPTION_CHARS:
        raise HTTPException(
            status_code=400,
            detail=(
                "Job description is too short. Please provide a more detailed job description "
                f"(at least {MIN_JOB_DESCRIPTION_CHARS} characters)."
            ),
        )
    if len(resume_text) < MIN_RESUME_CHARS:
        raise HTTPException(
            status_code=400,
            detail=(
                "Resume text is too short. Please provide your complete resume "
                f"(at least {MIN_RESUME_CHARS} characters)."
            ),
        )

    analysis = analyzer.analyze(job_description, resume_text)
    message = (
        "Analysis completed using pattern matching (AI service temporarily unavailable)"
        if analysis.fallback_used
        else "Analysis completed using AI"
    )
    return ResumeAnalysisResponse(
        analysis=analysis,
        fallback_used=analysis.fallback_used,
        message=message,
    )


@router.get("/resume-analysis", response_model=ServiceStatusOut)
def resume_analysis_status(
    analyzer: ResumeAnalyzer = Depends(get_resume_analyzer),
) -> ServiceStatusOut:
    return ServiceStatusOut(
        message="Resume analysis API is running",
        ai_service_available=analyzer.ai_available,
    )


@router.post("/interview-prep", response_model=InterviewPrepResponse)
def interview_prep(
    body: InterviewPrepRequest,
    generator: InterviewPrepGenerator = Depends(get_interview_prep),
) -> InterviewPrepResponse:
    """Generate interview questions and tips for a job description."""
    job_description = (body.job_description or "").strip()
    if not job_description:
        raise HTTPException(status_code=400, detail="Job description is required")

    prep = generator.generate(job_description)
    return InterviewPrepResponse(prep=prep, fallback_used=prep.fallback_used)

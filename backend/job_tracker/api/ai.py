"""External classifier self-test."""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends

from job_tracker.api.deps import get_email_classifier
from job_tracker.email.parser import EmailRecord
from job_tracker.extraction.llm import EmailClassifier
from job_tracker.extraction.result import ClassificationResult
from job_tracker.schemas import AIStatusOut, ClassificationOut

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/ai", tags=["ai"])

SAMPLE_EMAIL = EmailRecord(
    subject="Thank you for your interest in the Software Engineer position",
    sender="hr@testcompany.com",
    content=(
        "Dear Candidate, Thank you for applying to the Software Engineer position at "
        "TestCompany. We have received your application and will review it."
    ),
)


@router.get("/status", response_model=AIStatusOut)
def ai_status(
    classifier: Optional[EmailClassifier] = Depends(get_email_classifier),
) -> AIStatusOut:
    """Report availability and classify a fixed sample email."""
    if classifier is None:
        return AIStatusOut(success=False, ai_available=False, error="AI classifier is not configured")

    try:
        ai = classifier.classify(SAMPLE_EMAIL)
    except Exception as exc:
        logger.warning("ai_self_test_failed", error_type=type(exc).__name__, error=str(exc)[:200])
        return AIStatusOut(success=False, ai_available=True, error=str(exc))

    result = ClassificationResult(
        status=ai.status,
        company=ai.company or None,
        job_title=ai.job_title or None,
        confidence=ai.confidence,
        method="ai",
        reasoning=ai.reasoning or "",
    )
    return AIStatusOut(success=True, ai_available=True, test_result=ClassificationOut.from_result(result))

"""Single-email classification endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from job_tracker.api.deps import get_app_config, get_hybrid
from job_tracker.config import AppConfig
from job_tracker.email.classifier import noise_reason
from job_tracker.email.normalizer import normalize_html
from job_tracker.email.parser import EmailRecord
from job_tracker.extraction.pipeline import HybridClassifier, analyze_email
from job_tracker.schemas import ClassificationOut, EmailClassificationOut, EmailIn

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/emails", tags=["emails"])


@router.post("/classify", response_model=EmailClassificationOut)
def classify_email(
    body: EmailIn,
    config: AppConfig = Depends(get_app_config),
    hybrid: HybridClassifier = Depends(get_hybrid),
) -> EmailClassificationOut:
    """Run the noise filter and hybrid classifier over one submitted email."""
    email = EmailRecord(
        subject=body.subject,
        sender=body.sender,
        content=body.content,
        message_id=body.message_id,
    )
    analysis = analyze_email(email, hybrid, config)
    if not analysis.job_related or analysis.result is None:
        reason = noise_reason(normalize_html(email.content), email.sender, email.subject)
        logger.info("classify_not_job_related", subject=email.subject[:60], reason=reason)
        return EmailClassificationOut(job_related=False, noise_reason=reason)

    return EmailClassificationOut(
        job_related=True,
        retained=analysis.retained,
        classification=ClassificationOut.from_result(analysis.result),
    )

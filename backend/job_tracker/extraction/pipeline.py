"""Classification pipeline: hybrid AI + heuristic classifier and the scan loop."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence, TypedDict

import structlog

from job_tracker.config import AppConfig
from job_tracker.email.classifier import is_job_related
from job_tracker.email.normalizer import normalize_html
from job_tracker.email.parser import EmailRecord
from job_tracker.extraction.llm import AIClassification, EmailClassifier
from job_tracker.extraction.result import ClassificationResult, JobStatus
from job_tracker.extraction.rules import extract_company, extract_job_title, match_status
from job_tracker.extraction.scoring import score_confidence

logger = structlog.get_logger(__name__)

INSUFFICIENT_DATA_CONFIDENCE = 0.1


class ProgressInfo(TypedDict):
    """Progress information passed to the progress callback."""
    processed: int
    total: int
    current_subject: str
    status: str  # "processing", "completed", "cancelled", "error"


ProgressCallback = Callable[[ProgressInfo], None]


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def classify_heuristically(
    email: EmailRecord,
    fallback_status: Optional[JobStatus] = None,
) -> ClassificationResult:
    """Run extractors, status rules and the scorer over one email."""
    body = normalize_html(email.content)
    text = f"{email.subject}\n{body}"
    company = extract_company(email.sender, body, email.subject)
    job_title = extract_job_title(body, email.subject)
    status = match_status(text) or fallback_status or "applied"
    confidence = score_confidence(
        company=company,
        job_title=job_title,
        subject=email.subject,
        sender=email.sender,
        content=text,
    )
    return ClassificationResult(
        status=status,
        company=company,
        job_title=job_title,
        confidence=confidence,
        method="regex",
    )


class HybridClassifier:
    """Try the external classifier first; fall back to the heuristic rules.

    ``classify`` never raises because of the external classifier: transport
    errors, timeouts, invalid payloads and low-confidence answers all end
    on the heuristic path.
    """

    def __init__(self, config: AppConfig, classifier: Optional[EmailClassifier] = None) -> None:
        self._config = config
        self._classifier = classifier

    @property
    def ai_available(self) -> bool:
        return self._classifier is not None

    def classify(
        self,
        email: EmailRecord,
        *,
        fallback_status: Optional[JobStatus] = None,
        heuristic_email: Optional[EmailRecord] = None,
    ) -> ClassificationResult:
        """Classify *email*, AI first.

        *heuristic_email*, when given, replaces *email* on the rule-based path
        so the status rules only read the text it carries.
        """
        if not email.subject.strip() and not email.sender.strip():
            logger.info("classification_insufficient_data", message_id=email.message_id)
            return ClassificationResult(
                status=fallback_status or "applied",
                company=None,
                job_title=None,
                confidence=INSUFFICIENT_DATA_CONFIDENCE,
                method="insufficient_data",
            )

        if self._classifier is not None:
            ai_result = self._try_ai(self._classifier, email)
            if ai_result is not None:
                return ai_result

        return classify_heuristically(heuristic_email or email, fallback_status)

    def _try_ai(self, classifier: EmailClassifier, email: EmailRecord) -> Optional[ClassificationResult]:
        cfg = self._config
        bounded = replace(email, content=normalize_html(email.content)[: cfg.llm_max_content_chars])
        try:
            ai = AIClassification.model_validate(classifier.classify(bounded).model_dump())
        except Exception as exc:
            logger.warning(
                "ai_classification_failed",
                subject=email.subject[:80],
                error_type=type(exc).__name__,
                error=str(exc)[:200],
            )
            return None

        if ai.confidence < cfg.ai_min_confidence:
            logger.info(
                "ai_confidence_too_low",
                confidence=ai.confidence,
                threshold=cfg.ai_min_confidence,
            )
            return None

        return ClassificationResult(
            status=ai.status,
            company=_blank_to_none(ai.company),
            job_title=_blank_to_none(ai.job_title),
            confidence=ai.confidence,
            method="ai",
            reasoning=ai.reasoning or "",
        )


# ── Scan pipeline ─────────────────────────────────────────


@dataclass(frozen=True)
class EmailAnalysis:
    """What the pipeline decided for one email."""

    email: EmailRecord
    job_related: bool
    result: Optional[ClassificationResult] = None
    retained: bool = False


@dataclass
class ScanSummary:
    """Result summary after a scan run."""

    emails_scanned: int = 0
    job_related: int = 0
    retained: int = 0
    ai_analyzed: int = 0
    regex_analyzed: int = 0
    analyses: list[EmailAnalysis] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def retained_analyses(self) -> list[EmailAnalysis]:
        return [a for a in self.analyses if a.retained]


def analyze_email(email: EmailRecord, hybrid: HybridClassifier, config: AppConfig) -> EmailAnalysis:
    """Noise filter, hybrid classification and retention threshold for one email."""
    body = normalize_html(email.content)
    if not is_job_related(body, email.sender, email.subject):
        return EmailAnalysis(email=email, job_related=False)

    result = hybrid.classify(email)
    retained = result.confidence >= config.min_retained_confidence
    if retained:
        logger.info(
            "email_retained",
            method=result.method,
            status=result.status,
            company=result.company,
            job_title=result.job_title,
            confidence=result.confidence,
        )
    else:
        logger.info(
            "email_below_threshold",
            subject=email.subject[:60],
            confidence=result.confidence,
            threshold=config.min_retained_confidence,
        )
    return EmailAnalysis(email=email, job_related=True, result=result, retained=retained)


def scan_emails(
    emails: Sequence[EmailRecord],
    hybrid: HybridClassifier,
    config: AppConfig,
    *,
    should_cancel: Optional[Callable[[], bool]] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ScanSummary:
    """Classify a batch of emails, collecting per-message errors.

    Args:
        emails: Records to classify, most relevant first.
        hybrid: Classifier used for every job-related email.
        config: Application configuration (retention threshold).
        should_cancel: Optional callable that returns True to stop early.
        progress_callback: Optional callback for progress updates.
    """
    summary = ScanSummary()
    total = len(emails)
    logger.info("scan_starting", count=total, ai_available=hybrid.ai_available)

    for idx, email in enumerate(emails, start=1):
        if should_cancel and should_cancel():
            logger.warning("scan_cancelled", processed=idx - 1, total=total)
            summary.cancelled = True
            if progress_callback:
                progress_callback({
                    "processed": idx - 1,
                    "total": total,
                    "current_subject": "",
                    "status": "cancelled",
                })
            break

        if progress_callback:
            progress_callback({
                "processed": idx,
                "total": total,
                "current_subject": email.subject[:100],
                "status": "processing",
            })

        summary.emails_scanned += 1
        try:
            analysis = analyze_email(email, hybrid, config)
        except Exception as exc:
            ref = email.message_id or email.subject[:60]
            logger.error("email_processing_error", message=ref, error=str(exc))
            summary.errors.append(f"{ref}: {exc}")
            if progress_callback:
                progress_callback({
                    "processed": idx,
                    "total": total,
                    "current_subject": "",
                    "status": "error",
                })
            continue

        summary.analyses.append(analysis)
        if not analysis.job_related or analysis.result is None:
            continue
        summary.job_related += 1
        if analysis.result.method == "ai":
            summary.ai_analyzed += 1
        else:
            summary.regex_analyzed += 1
        if analysis.retained:
            summary.retained += 1

    if progress_callback and not summary.cancelled:
        progress_callback({
            "processed": summary.emails_scanned,
            "total": total,
            "current_subject": "",
            "status": "completed",
        })

    logger.info(
        "scan_cancelled_summary" if summary.cancelled else "scan_complete",
        scanned=summary.emails_scanned,
        job_related=summary.job_related,
        retained=summary.retained,
        ai=summary.ai_analyzed,
        regex=summary.regex_analyzed,
        errors=len(summary.errors),
    )
    return summary

"""Batch recategorization of stored job records.

Records are processed sequentially from a snapshot. Each record is
re-classified through the hybrid classifier; proposed changes are either
reported (``analyze`` mode) or written back one record at a time
(``update`` mode). A failing record is reported and the batch moves on.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal, Optional

import structlog

from job_tracker.config import AppConfig
from job_tracker.email.parser import EmailRecord
from job_tracker.extraction.pipeline import HybridClassifier
from job_tracker.extraction.result import VALID_STATUSES, ClassificationResult
from job_tracker.jobs.store import JobRecord, JobStore, ensure_aware

logger = structlog.get_logger(__name__)

RecategorizeMode = Literal["analyze", "update"]


@dataclass(frozen=True)
class StatusChange:
    job_id: int
    from_status: str
    to_status: str
    company: str
    job_title: str


@dataclass
class RecategorizationResult:
    """Counters and changes from one recategorization run."""

    total_jobs: int = 0
    analyzed_jobs: int = 0
    updated_jobs: int = 0
    errors: list[str] = field(default_factory=list)
    ai_analyzed: int = 0
    regex_fallback: int = 0
    skipped: int = 0
    status_changes: list[StatusChange] = field(default_factory=list)
    cancelled: bool = False


@dataclass
class RecategorizationStats:
    """Read-only overview used to decide whether a run is worthwhile."""

    total_jobs: int = 0
    jobs_with_email_data: int = 0
    jobs_without_email_data: int = 0
    recently_analyzed: int = 0
    needs_analysis: int = 0
    status_breakdown: dict[str, int] = field(
        default_factory=lambda: {status: 0 for status in VALID_STATUSES}
    )

    @property
    def should_run(self) -> bool:
        return self.needs_analysis > 0

    @property
    def recommendation(self) -> str:
        if self.should_run:
            return f"{self.needs_analysis} jobs could benefit from AI recategorization"
        return "All jobs have been recently analyzed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_recently_analyzed(record: JobRecord, now: datetime, stale_after_days: int) -> bool:
    """True when *record* was analyzed less than *stale_after_days* ago."""
    last = ensure_aware(record.last_analyzed)
    if last is None:
        return False
    return now - last < timedelta(days=stale_after_days)


def record_to_email(record: JobRecord) -> EmailRecord:
    """Rebuild a classifier input from the fields stored on *record*."""
    subject = record.email_subject or ""
    return EmailRecord(
        subject=subject,
        sender=record.email_from or "",
        content=f"Company: {record.company_name}, Position: {record.job_title}. Subject: {subject}",
    )


def record_to_subject_email(record: JobRecord) -> EmailRecord:
    """Rule-based input for *record*: the stored subject and sender only.

    Stored company and job title never feed the status rules.
    """
    return EmailRecord(subject=record.email_subject or "", sender=record.email_from or "", content="")


def propose_updates(record: JobRecord, result: ClassificationResult) -> dict[str, object]:
    """Whole-field replacements for status/company/title that actually differ.

    A missing company or title candidate never replaces the stored value.
    """
    updates: dict[str, object] = {}
    if result.status != record.status:
        updates["status"] = result.status
    if result.company and result.company != record.company_name:
        updates["company_name"] = result.company
    if result.job_title and result.job_title != record.job_title:
        updates["job_title"] = result.job_title
    return updates


def get_recategorization_stats(
    store: JobStore,
    owner_id: str,
    config: AppConfig,
    now: Optional[datetime] = None,
) -> RecategorizationStats:
    """Summarize how many of *owner_id*'s jobs are due for re-analysis."""
    now = now or _utcnow()
    stats = RecategorizationStats()
    for record in store.list_for_owner(owner_id):
        stats.total_jobs += 1
        if record.status in stats.status_breakdown:
            stats.status_breakdown[record.status] += 1
        if record.has_email_data:
            stats.jobs_with_email_data += 1
        else:
            stats.jobs_without_email_data += 1
        if is_recently_analyzed(record, now, config.recategorize_stale_after_days):
            stats.recently_analyzed += 1
        else:
            stats.needs_analysis += 1
    logger.info("recategorize_stats", owner_id=owner_id, total=stats.total_jobs, needs=stats.needs_analysis)
    return stats


def run_recategorization(
    store: JobStore,
    owner_id: str,
    hybrid: HybridClassifier,
    config: AppConfig,
    *,
    mode: RecategorizeMode = "analyze",
    force_update: bool = False,
    should_cancel: Optional[Callable[[], bool]] = None,
    now: Optional[datetime] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RecategorizationResult:
    """Re-classify every job of *owner_id*.

    Args:
        store: Persistence collaborator.
        owner_id: Whose jobs to process.
        hybrid: Classifier used for each record.
        config: Staleness window and post-AI delay.
        mode: ``analyze`` only reports; ``update`` writes changes back.
        force_update: Ignore the staleness gate.
        should_cancel: Optional callable; once it returns True no further
            records are processed. Applied updates stay applied.
        now: Clock override for tests.
        sleep: Delay function used after each AI-path record.
    """
    if mode not in ("analyze", "update"):
        raise ValueError(f"Unknown recategorization mode: {mode!r}")

    now = now or _utcnow()
    records = store.list_for_owner(owner_id)
    result = RecategorizationResult(total_jobs=len(records))
    logger.info(
        "recategorize_starting",
        owner_id=owner_id,
        total=len(records),
        mode=mode,
        force=force_update,
        ai_available=hybrid.ai_available,
    )

    for record in records:
        if should_cancel and should_cancel():
            logger.warning("recategorize_cancelled", analyzed=result.analyzed_jobs, total=len(records))
            result.cancelled = True
            break

        if not force_update and is_recently_analyzed(record, now, config.recategorize_stale_after_days):
            result.skipped += 1
            logger.debug("recategorize_skip_recent", job_id=record.id)
            continue

        try:
            result.analyzed_jobs += 1
            classification = hybrid.classify(
                record_to_email(record),
                fallback_status=record.status,
                heuristic_email=record_to_subject_email(record),
            )

            if classification.method == "insufficient_data":
                result.skipped += 1
                continue
            if classification.method == "ai":
                result.ai_analyzed += 1
            else:
                result.regex_fallback += 1

            changes = propose_updates(record, classification)
            if "status" in changes:
                result.status_changes.append(
                    StatusChange(
                        job_id=record.id,
                        from_status=record.status,
                        to_status=classification.status,
                        company=record.company_name,
                        job_title=record.job_title,
                    )
                )

            if mode == "update":
                store.update(
                    record.id,
                    {
                        **changes,
                        "last_analyzed": now,
                        "analysis_method": classification.method,
                        "confidence": classification.confidence,
                    },
                )
                if changes:
                    result.updated_jobs += 1

            logger.info(
                "recategorize_job",
                job_id=record.id,
                method=classification.method,
                changes=sorted(changes),
                applied=mode == "update",
                confidence=classification.confidence,
            )

            if classification.method == "ai" and config.ai_call_delay_sec > 0:
                sleep(config.ai_call_delay_sec)
        except Exception as exc:
            logger.error("recategorize_job_failed", job_id=record.id, error=str(exc))
            result.errors.append(f"Failed to process job {record.id}: {exc}")

    logger.info(
        "recategorize_complete",
        total=result.total_jobs,
        analyzed=result.analyzed_jobs,
        updated=result.updated_jobs,
        ai=result.ai_analyzed,
        regex=result.regex_fallback,
        skipped=result.skipped,
        status_changes=len(result.status_changes),
        errors=len(result.errors),
    )
    return result

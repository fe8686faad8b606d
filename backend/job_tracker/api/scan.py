"""Mailbox scan endpoint: fetch, classify and import job emails."""

from __future__ import annotations

import imaplib
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from job_tracker.api.deps import get_app_config, get_hybrid
from job_tracker.config import AppConfig
from job_tracker.database import get_db
from job_tracker.extraction.pipeline import HybridClassifier, ScanSummary, scan_emails
from job_tracker.jobs.store import SqlJobStore
from job_tracker.schemas import UNKNOWN_COMPANY, UNKNOWN_POSITION, ScanResultOut

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/scan", tags=["scan"])


def import_retained(store: SqlJobStore, owner_id: str, summary: ScanSummary) -> tuple[int, int]:
    """Add retained, not-yet-imported emails as job records.

    Returns ``(imported, duplicates_skipped)``. Emails without a message id
    cannot be deduplicated and are always imported.
    """
    seen = store.imported_message_ids(owner_id)
    now = datetime.now(timezone.utc)
    imported = duplicates = 0
    for analysis in summary.retained_analyses:
        result = analysis.result
        if result is None:
            continue
        mid = analysis.email.message_id
        if mid and mid in seen:
            duplicates += 1
            continue
        store.add(
            owner_id=owner_id,
            company_name=result.company or UNKNOWN_COMPANY,
            job_title=result.job_title or UNKNOWN_POSITION,
            status=result.status,
            email_subject=analysis.email.subject,
            email_from=analysis.email.sender,
            email_date=analysis.email.date,
            message_id=mid,
            confidence=result.confidence,
            analysis_method=result.method,
            last_analyzed=now,
        )
        if mid:
            seen.add(mid)
        imported += 1
    return imported, duplicates


@router.post("", response_model=ScanResultOut)
def trigger_scan(
    request: Request,
    owner_id: str = Query(..., min_length=1, max_length=128),
    max_emails: Optional[int] = Query(None, ge=1, le=1000, description="Cap on fetched emails"),
    lookback_days: Optional[int] = Query(None, ge=1, le=3650, description="Search window in days"),
    config: AppConfig = Depends(get_app_config),
    hybrid: HybridClassifier = Depends(get_hybrid),
    db: Session = Depends(get_db),
) -> ScanResultOut:
    """Scan the configured mailbox and import retained job emails for *owner_id*."""
    if not config.imap_configured:
        raise HTTPException(status_code=400, detail="IMAP is not configured")

    lock = request.app.state.scan_lock
    if not lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="A scan is already in progress")

    try:
        source_factory = request.app.state.email_source_factory
        try:
            with source_factory(config) as source:
                emails = source.fetch_recent(lookback_days=lookback_days, max_results=max_emails)
        except (imaplib.IMAP4.error, OSError, RuntimeError) as exc:
            logger.error("scan_fetch_failed", error=str(exc))
            raise HTTPException(status_code=502, detail=f"Email fetch failed: {exc}") from exc

        summary = scan_emails(emails, hybrid, config)
        imported, duplicates = import_retained(SqlJobStore(db), owner_id, summary)
    finally:
        lock.release()

    logger.info(
        "scan_complete",
        owner_id=owner_id,
        scanned=summary.emails_scanned,
        retained=summary.retained,
        imported=imported,
        duplicates=duplicates,
        errors=len(summary.errors),
    )
    return ScanResultOut(
        emails_scanned=summary.emails_scanned,
        job_related=summary.job_related,
        retained=summary.retained,
        imported=imported,
        duplicates_skipped=duplicates,
        ai_analyzed=summary.ai_analyzed,
        regex_analyzed=summary.regex_analyzed,
        errors=summary.errors,
        cancelled=summary.cancelled,
    )

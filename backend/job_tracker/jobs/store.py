"""Persistence collaborator for job records: protocol plus SQLAlchemy adapter."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from job_tracker.models import JobApplication, StatusHistory

logger = structlog.get_logger(__name__)

# The only fields a recategorization run may replace.
UPDATABLE_FIELDS = frozenset(
    {"status", "company_name", "job_title", "last_analyzed", "analysis_method", "confidence"}
)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class JobRecord:
    """Snapshot of a stored job application, as read by the core."""

    id: int
    owner_id: str
    company_name: str
    job_title: str
    status: str
    email_subject: Optional[str] = None
    email_from: Optional[str] = None
    confidence: Optional[float] = None
    last_analyzed: Optional[datetime] = None
    analysis_method: Optional[str] = None

    @property
    def has_email_data(self) -> bool:
        return bool(self.email_subject or self.email_from)


class JobStore(Protocol):
    """What the recategorization core needs from storage."""

    def list_for_owner(self, owner_id: str) -> list[JobRecord]: ...

    def update(self, record_id: int, updates: Mapping[str, object]) -> None: ...


def check_update_fields(updates: Mapping[str, object]) -> None:
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")


def _to_record(row: JobApplication) -> JobRecord:
    return JobRecord(
        id=row.id,
        owner_id=row.owner_id,
        company_name=row.company_name,
        job_title=row.job_title,
        status=row.status,
        email_subject=row.email_subject,
        email_from=row.email_from,
        confidence=row.confidence,
        last_analyzed=ensure_aware(row.last_analyzed),
        analysis_method=row.analysis_method,
    )


class SqlJobStore:
    """:class:`JobStore` over the ``job_applications`` table.

    Each update is committed on its own, so a failure on one record never
    undoes the records applied before it.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_owner(self, owner_id: str) -> list[JobRecord]:
        rows = self._session.scalars(
            select(JobApplication)
            .where(JobApplication.owner_id == owner_id)
            .order_by(JobApplication.id)
        ).all()
        return [_to_record(row) for row in rows]

    def get(self, record_id: int) -> Optional[JobRecord]:
        row = self._session.get(JobApplication, record_id)
        return _to_record(row) if row is not None else None

    def update(self, record_id: int, updates: Mapping[str, object]) -> None:
        check_update_fields(updates)
        row = self._session.get(JobApplication, record_id)
        if row is None:
            raise ValueError(f"Job {record_id} not found")

        new_status = updates.get("status")
        if new_status is not None and new_status != row.status:
            self._session.add(
                StatusHistory(
                    application_id=row.id,
                    old_status=row.status,
                    new_status=str(new_status),
                    change_source=str(updates.get("analysis_method") or "recategorize"),
                )
            )
        for key, value in updates.items():
            setattr(row, key, value)
        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        logger.debug("job_updated", job_id=record_id, fields=sorted(updates))

    def add(
        self,
        *,
        owner_id: str,
        company_name: str,
        job_title: str,
        status: str,
        email_subject: Optional[str] = None,
        email_from: Optional[str] = None,
        email_date: Optional[datetime] = None,
        message_id: Optional[str] = None,
        confidence: Optional[float] = None,
        analysis_method: Optional[str] = None,
        last_analyzed: Optional[datetime] = None,
    ) -> JobRecord:
        row = JobApplication(
            owner_id=owner_id,
            company_name=company_name,
            job_title=job_title,
            status=status,
            email_subject=email_subject,
            email_from=email_from,
            email_date=email_date,
            message_id=message_id,
            confidence=confidence,
            analysis_method=analysis_method,
            last_analyzed=last_analyzed,
        )
        self._session.add(row)
        self._session.flush()
        self._session.add(
            StatusHistory(application_id=row.id, old_status=None, new_status=status, change_source="scan")
        )
        return _to_record(row)

    def imported_message_ids(self, owner_id: str) -> set[str]:
        """Message ids already imported for *owner_id* (scan dedup key)."""
        ids = self._session.scalars(
            select(JobApplication.message_id).where(
                JobApplication.owner_id == owner_id,
                JobApplication.message_id.is_not(None),
            )
        ).all()
        return {mid for mid in ids if mid}

"""Tests for batch recategorization and the SQL job store."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Mapping

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import StubClassifier, make_config
from job_tracker.extraction.llm import AIClassification
from job_tracker.extraction.pipeline import HybridClassifier
from job_tracker.extraction.result import ClassificationResult
from job_tracker.jobs import (
    JobRecord,
    SqlJobStore,
    get_recategorization_stats,
    run_recategorization,
)
from job_tracker.jobs.recategorize import propose_updates, record_to_email
from job_tracker.models import StatusHistory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeStore:
    """In-memory JobStore that records updates and can fail on chosen ids."""

    def __init__(self, records: list[JobRecord], fail_on: set[int] | None = None) -> None:
        self.records = {r.id: r for r in records}
        self.fail_on = fail_on or set()
        self.updates: list[tuple[int, dict]] = []

    def list_for_owner(self, owner_id: str) -> list[JobRecord]:
        return [r for r in self.records.values() if r.owner_id == owner_id]

    def update(self, record_id: int, updates: Mapping[str, object]) -> None:
        if record_id in self.fail_on:
            raise RuntimeError("database is locked")
        self.updates.append((record_id, dict(updates)))
        self.records[record_id] = replace(self.records[record_id], **updates)


def _record(job_id: int, **overrides) -> JobRecord:
    values = dict(
        id=job_id,
        owner_id="user-1",
        company_name="Acme",
        job_title="Software Engineer",
        status="applied",
        email_subject="Interview invitation",
        email_from="jane.doe@acme.com",
    )
    values.update(overrides)
    return JobRecord(**values)


def _ai(status="interviewing", confidence=0.9, company="Acme", job_title="Software Engineer"):
    return AIClassification(status=status, company=company, job_title=job_title, confidence=confidence)


class TestRunRecategorization:
    def test_recently_analyzed_is_skipped_without_external_call(self, config):
        stub = StubClassifier(_ai())
        store = FakeStore([_record(1, last_analyzed=NOW - timedelta(days=2))])

        result = run_recategorization(store, "user-1", HybridClassifier(config, stub), config, now=NOW)

        assert result.skipped == 1
        assert result.analyzed_jobs == 0
        assert stub.calls == []

    def test_force_update_ignores_staleness(self, config):
        stub = StubClassifier(_ai())
        store = FakeStore([_record(1, last_analyzed=NOW - timedelta(days=2))])

        result = run_recategorization(
            store, "user-1", HybridClassifier(config, stub), config, force_update=True, now=NOW
        )

        assert result.analyzed_jobs == 1
        assert len(stub.calls) == 1

    def test_analyze_mode_reports_without_writing(self, config):
        store = FakeStore([_record(1)])
        hybrid = HybridClassifier(config, StubClassifier(_ai()))

        result = run_recategorization(store, "user-1", hybrid, config, mode="analyze", now=NOW)

        assert result.ai_analyzed == 1
        assert result.updated_jobs == 0
        assert store.updates == []
        assert [(c.job_id, c.from_status, c.to_status) for c in result.status_changes] == [
            (1, "applied", "interviewing")
        ]

    def test_update_mode_writes_whole_fields(self):
        config = make_config(ai_call_delay_sec=0.1)
        store = FakeStore([_record(1), _record(2, status="interviewing")])
        hybrid = HybridClassifier(config, StubClassifier(_ai()))
        delays: list[float] = []

        result = run_recategorization(
            store, "user-1", hybrid, config, mode="update", now=NOW, sleep=delays.append
        )

        assert result.updated_jobs == 1
        assert delays == [0.1, 0.1]
        job_id, updates = store.updates[0]
        assert job_id == 1
        assert updates == {
            "status": "interviewing",
            "last_analyzed": NOW,
            "analysis_method": "ai",
            "confidence": 0.9,
        }
        assert store.updates[1][1] == {"last_analyzed": NOW, "analysis_method": "ai", "confidence": 0.9}

    def test_regex_fallback_counted_and_no_delay(self, config):
        store = FakeStore([_record(1, email_subject="We regret to inform you")])
        delays: list[float] = []

        result = run_recategorization(
            store, "user-1", HybridClassifier(config), config, mode="update", now=NOW, sleep=delays.append
        )

        assert result.regex_fallback == 1
        assert delays == []
        assert store.records[1].status == "rejected"

    def test_stored_title_does_not_drive_status(self, config):
        store = FakeStore([
            _record(
                1,
                job_title="Interview Coordinator",
                status="rejected",
                email_subject="Your application to Acme",
            )
        ])

        result = run_recategorization(
            store, "user-1", HybridClassifier(config), config, mode="update", force_update=True, now=NOW
        )

        assert result.regex_fallback == 1
        assert result.updated_jobs == 0
        assert result.status_changes == []
        assert store.records[1].status == "rejected"

    def test_ai_still_sees_stored_company_and_title(self, config):
        stub = StubClassifier(_ai(status="rejected"))
        store = FakeStore([_record(1, job_title="Interview Coordinator")])

        run_recategorization(store, "user-1", HybridClassifier(config, stub), config, now=NOW)

        assert "Interview Coordinator" in stub.calls[0].content

    def test_insufficient_data_is_skipped(self, config):
        store = FakeStore([_record(1, email_subject=None, email_from=None)])

        result = run_recategorization(store, "user-1", HybridClassifier(config), config, now=NOW)

        assert result.analyzed_jobs == 1
        assert result.skipped == 1
        assert result.regex_fallback == 0

    def test_store_failure_is_recorded_and_batch_continues(self, config):
        store = FakeStore([_record(1), _record(2)], fail_on={1})
        hybrid = HybridClassifier(config, StubClassifier(_ai()))

        result = run_recategorization(store, "user-1", hybrid, config, mode="update", now=NOW)

        assert result.errors == ["Failed to process job 1: database is locked"]
        assert [job_id for job_id, _ in store.updates] == [2]

    def test_cancellation_stops_further_updates(self, config):
        store = FakeStore([_record(1), _record(2), _record(3)])
        hybrid = HybridClassifier(config, StubClassifier(_ai()))

        result = run_recategorization(
            store,
            "user-1",
            hybrid,
            config,
            mode="update",
            now=NOW,
            should_cancel=lambda: len(store.updates) >= 1,
        )

        assert result.cancelled
        assert len(store.updates) == 1

    def test_unknown_mode(self, config):
        with pytest.raises(ValueError):
            run_recategorization(FakeStore([]), "user-1", HybridClassifier(config), config, mode="rewrite")


class TestHelpers:
    def test_record_to_email(self):
        email = record_to_email(_record(1, email_subject="Next steps"))
        assert email.content == "Company: Acme, Position: Software Engineer. Subject: Next steps"
        assert email.sender == "jane.doe@acme.com"

    def test_missing_candidates_never_replace_stored_values(self):
        result = ClassificationResult(
            status="applied", company=None, job_title=None, confidence=0.5, method="regex"
        )
        assert propose_updates(_record(1), result) == {}

    def test_stats(self, config):
        store = FakeStore([
            _record(1, last_analyzed=NOW - timedelta(days=1)),
            _record(2, status="rejected", last_analyzed=NOW - timedelta(days=30)),
            _record(3, email_subject=None, email_from=None),
        ])

        stats = get_recategorization_stats(store, "user-1", config, now=NOW)

        assert stats.total_jobs == 3
        assert stats.jobs_with_email_data == 2
        assert stats.jobs_without_email_data == 1
        assert stats.recently_analyzed == 1
        assert stats.needs_analysis == 2
        assert stats.status_breakdown["rejected"] == 1
        assert stats.should_run
        assert stats.recommendation == "2 jobs could benefit from AI recategorization"


class TestSqlJobStore:
    def _add(self, store: SqlJobStore, **overrides) -> JobRecord:
        values = dict(
            owner_id="user-1",
            company_name="Acme",
            job_title="Software Engineer",
            status="applied",
            email_subject="Thank you for applying",
            email_from="jobs@acme.com",
            message_id="m-1",
        )
        values.update(overrides)
        return store.add(**values)

    def test_add_and_list(self, db_session: Session):
        store = SqlJobStore(db_session)
        record = self._add(store)
        self._add(store, owner_id="user-2", message_id="m-2")
        db_session.commit()

        records = store.list_for_owner("user-1")
        assert [r.id for r in records] == [record.id]
        assert store.imported_message_ids("user-1") == {"m-1"}

    def test_update_writes_history_on_status_change(self, db_session: Session):
        store = SqlJobStore(db_session)
        record = self._add(store)
        db_session.commit()

        store.update(record.id, {"status": "offered", "analysis_method": "ai", "last_analyzed": NOW})

        updated = store.get(record.id)
        assert updated.status == "offered"
        assert updated.last_analyzed == NOW
        history = db_session.scalars(
            select(StatusHistory).where(StatusHistory.application_id == record.id).order_by(StatusHistory.id)
        ).all()
        assert [(h.old_status, h.new_status, h.change_source) for h in history] == [
            (None, "applied", "scan"),
            ("applied", "offered", "ai"),
        ]

    def test_update_rejects_unknown_fields(self, db_session: Session):
        store = SqlJobStore(db_session)
        record = self._add(store)
        with pytest.raises(ValueError, match="notes"):
            store.update(record.id, {"notes": "hello"})

    def test_update_missing_record(self, db_session: Session):
        with pytest.raises(ValueError, match="not found"):
            SqlJobStore(db_session).update(999, {"status": "applied"})

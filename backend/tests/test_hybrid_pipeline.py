"""End-to-end tests for the hybrid classifier and the scan loop."""

from __future__ import annotations

import pytest

from conftest import StubClassifier, StubProvider, make_config
from job_tracker.email.parser import EmailRecord
from job_tracker.extraction.llm import AIClassification, ClassifierResponseError, LLMEmailClassifier
from job_tracker.extraction.pipeline import (
    INSUFFICIENT_DATA_CONFIDENCE,
    HybridClassifier,
    analyze_email,
    classify_heuristically,
    scan_emails,
)
from job_tracker.extraction.result import ClassificationResult

ACME_CONFIRMATION = EmailRecord(
    subject="Thank you for applying to Acme Corp — Software Engineer",
    sender="jobs@acmecorp.com",
    content="We have received your application and will review it.",
    message_id="acme-1@acmecorp.com",
)

REJECTION = EmailRecord(
    subject="Your application",
    sender="Talent Team <talent@globex.com>",
    content=(
        "Thank you for taking the time to interview with us. We regret to inform you that "
        "we have decided to move forward with other candidates. Congratulations on reaching "
        "the final round."
    ),
    message_id="globex-7@globex.com",
)

LINKEDIN_ALERT = EmailRecord(
    subject="LinkedIn Job Alert: 12 new jobs matching your search",
    sender="LinkedIn <jobs-noreply@linkedin.com>",
    content="Software Engineer at Initech. Backend Engineer at Hooli.",
    message_id="alert-1@linkedin.com",
)


def _ai(status="interviewing", confidence=0.9, company="Acme", job_title="Backend Engineer"):
    return AIClassification(
        status=status, company=company, job_title=job_title, confidence=confidence, reasoning="stub"
    )


class TestScenarios:
    def test_confirmation_without_ai(self, config):
        result = HybridClassifier(config).classify(ACME_CONFIRMATION)

        assert result.method == "regex"
        assert result.status == "applied"
        assert result.company in ("Acme", "Acmecorp")
        assert result.job_title == "Software Engineer"
        assert result.confidence >= 0.5

    def test_rejection_wins_over_other_phrases(self, config):
        result = HybridClassifier(config).classify(REJECTION)
        assert result.status == "rejected"

    def test_job_alert_is_discarded(self, config):
        classifier = StubClassifier(_ai())
        analysis = analyze_email(LINKEDIN_ALERT, HybridClassifier(config, classifier), config)

        assert not analysis.job_related
        assert analysis.result is None
        assert classifier.calls == []

    def test_code_fenced_ai_answer_accepted(self, config):
        provider = StubProvider(
            '```json\n{"status":"interviewing","company":"Acme","jobTitle":"Backend Engineer",'
            '"confidence":0.9,"reasoning":"invite"}\n```'
        )
        hybrid = HybridClassifier(config, LLMEmailClassifier(provider, config))

        result = hybrid.classify(ACME_CONFIRMATION)

        assert result.method == "ai"
        assert result.status == "interviewing"
        assert result.confidence == 0.9


class TestFallbackGuarantee:
    @pytest.mark.parametrize(
        "error",
        [TimeoutError("slow"), ClassifierResponseError("bad json"), RuntimeError("boom"), OSError("net")],
    )
    def test_classifier_errors_fall_back_to_regex(self, config, error):
        result = HybridClassifier(config, StubClassifier(error=error)).classify(ACME_CONFIRMATION)
        assert result.method == "regex"
        assert result.status == "applied"

    def test_unvalidated_ai_payload_falls_back(self, config):
        forged = AIClassification.model_construct(
            status="pending", company="Acme", job_title="Engineer", confidence=1.7, reasoning=""
        )
        result = HybridClassifier(config, StubClassifier(forged)).classify(ACME_CONFIRMATION)
        assert result.method == "regex"
        assert result.status == "applied"

    def test_low_confidence_ai_answer_rejected(self, config):
        result = HybridClassifier(config, StubClassifier(_ai(confidence=0.2))).classify(ACME_CONFIRMATION)
        assert result.method == "regex"

    def test_threshold_is_configurable(self):
        config = make_config(ai_min_confidence=0.1)
        result = HybridClassifier(config, StubClassifier(_ai(confidence=0.2))).classify(ACME_CONFIRMATION)
        assert result.method == "ai"

    def test_blank_ai_fields_become_none(self, config):
        stub = StubClassifier(_ai(company="  ", job_title=""))
        result = HybridClassifier(config, stub).classify(ACME_CONFIRMATION)
        assert result.company is None
        assert result.job_title is None

    def test_ai_receives_normalized_truncated_content(self):
        config = make_config(llm_max_content_chars=20)
        stub = StubClassifier(_ai())
        email = EmailRecord(subject="Hi", sender="a@acme.com", content="<p>" + "word " * 50 + "</p>")

        HybridClassifier(config, stub).classify(email)

        sent = stub.calls[0].content
        assert "<p>" not in sent
        assert len(sent) <= 20


class TestInsufficientData:
    def test_no_subject_and_no_sender(self, config):
        stub = StubClassifier(_ai())
        email = EmailRecord(subject="  ", sender="", content="Thank you for applying")

        result = HybridClassifier(config, stub).classify(email, fallback_status="interviewing")

        assert result.method == "insufficient_data"
        assert result.status == "interviewing"
        assert result.confidence == INSUFFICIENT_DATA_CONFIDENCE
        assert result.company is None
        assert stub.calls == []

    def test_defaults_to_applied(self, config):
        result = HybridClassifier(config).classify(EmailRecord(subject="", sender="", content=""))
        assert result.status == "applied"


class TestHeuristicPath:
    def test_fallback_status_used_without_indicator(self):
        email = EmailRecord(subject="Checking in", sender="jane.doe@acme.com", content="Hello there")
        assert classify_heuristically(email, fallback_status="interviewing").status == "interviewing"

    @pytest.mark.parametrize("email", [ACME_CONFIRMATION, REJECTION, LINKEDIN_ALERT])
    def test_confidence_bounds(self, email):
        result = classify_heuristically(email)
        assert 0.0 <= result.confidence <= 0.95

    def test_result_rejects_out_of_range_confidence(self):
        with pytest.raises(ValueError):
            ClassificationResult(status="applied", company=None, job_title=None, confidence=1.2, method="regex")


class _ExplodingHybrid(HybridClassifier):
    def classify(self, email, *, fallback_status=None):
        if "explode" in email.subject:
            raise RuntimeError("classifier crashed")
        return super().classify(email, fallback_status=fallback_status)


class TestScanEmails:
    def test_counts_and_errors(self, config):
        broken = EmailRecord(subject="Application explode", sender="hr@acme.com", content="job", message_id="bad-1")
        summary = scan_emails(
            [ACME_CONFIRMATION, LINKEDIN_ALERT, broken, REJECTION], _ExplodingHybrid(config), config
        )

        assert summary.emails_scanned == 4
        assert summary.job_related == 2
        assert summary.retained == 2
        assert summary.regex_analyzed == 2
        assert summary.ai_analyzed == 0
        assert summary.errors == ["bad-1: classifier crashed"]
        assert [a.email.message_id for a in summary.retained_analyses] == [
            "acme-1@acmecorp.com",
            "globex-7@globex.com",
        ]

    def test_cancellation_and_progress(self, config):
        progress = []
        calls = {"n": 0}

        def should_cancel():
            calls["n"] += 1
            return calls["n"] > 1

        summary = scan_emails(
            [ACME_CONFIRMATION, REJECTION],
            HybridClassifier(config),
            config,
            should_cancel=should_cancel,
            progress_callback=progress.append,
        )

        assert summary.cancelled
        assert summary.emails_scanned == 1
        assert progress[-1]["status"] == "cancelled"

    def test_retention_threshold(self):
        config = make_config(min_retained_confidence=0.9)
        analysis = analyze_email(ACME_CONFIRMATION, HybridClassifier(config), config)
        assert analysis.job_related
        assert not analysis.retained

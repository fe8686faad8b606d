"""Tests for heuristic company/title extraction and status rules."""

from __future__ import annotations

import pytest

from job_tracker.extraction.matching import contains_any, first_match, first_result
from job_tracker.extraction.rules import (
    company_from_domain,
    company_from_text,
    determine_status,
    extract_company,
    extract_job_title,
    format_title,
    is_generic_company,
    match_status,
    sender_address,
)


class TestMatching:
    def test_first_match_respects_order(self):
        rules = [(contains_any(["a"]), "first"), (contains_any(["b"]), "second")]
        assert first_match(rules, "ab") == "first"
        assert first_match(rules, "b") == "second"
        assert first_match(rules, "z") is None
        assert first_match(rules, "z", default="none") == "none"

    def test_first_result_skips_none(self):
        calls: list[str] = []

        def strategy(name, value):
            def run():
                calls.append(name)
                return value
            return run

        assert first_result([strategy("a", None), strategy("b", "hit"), strategy("c", "late")]) == "hit"
        assert calls == ["a", "b"]


class TestCompanyExtraction:
    def test_sender_address(self):
        assert sender_address('"Jane" <Jane.Doe@Acme.com>') == "jane.doe@acme.com"

    @pytest.mark.parametrize(
        "sender, expected",
        [
            ("jobs@acme.com", "Acme"),
            ("hr@mail.globex.com", "Globex"),
            ("talent@initechcorp.com", "Initech"),
            ("noreply@gmail.com", None),
            ("candidates@myworkdayjobs.com", None),
            ("team@team.com", None),
            ("not-an-address", None),
        ],
    )
    def test_company_from_domain(self, sender, expected):
        assert company_from_domain(sender) == expected

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Acme Recruiting", True),
            ("HR", True),
            ("", True),
            (None, True),
            ("Streamline", False),
            ("Globex", False),
        ],
    )
    def test_is_generic_company(self, name, expected):
        assert is_generic_company(name) is expected

    def test_company_from_text_thank_you_pattern(self):
        text = "Thank you for applying to Globex Corporation for the Data Analyst role."
        assert company_from_text(text) == "Globex Corporation"

    def test_generic_candidate_falls_through(self):
        text = "Thank you for applying to the Recruiting Team. The team at Initech would like to thank you."
        assert company_from_text(text) == "Initech"

    def test_domain_wins_over_text(self):
        assert extract_company("jobs@acme.com", "Thank you for applying to Globex.") == "Acme"

    def test_text_used_when_domain_excluded(self):
        assert extract_company("Jane Doe <jane@gmail.com>", "Thank you for applying to Initech.") == "Initech"

    def test_display_name_used_last(self):
        sender = '"Umbrella Health Systems" <noreply@myworkdayjobs.com>'
        assert extract_company(sender, "Hello there") == "Umbrella Health Systems"

    def test_personal_display_name_rejected(self):
        assert extract_company('"Jane Doe" <jane@gmail.com>', "Hi") is None


class TestTitleExtraction:
    def test_application_for_pattern(self):
        text = "We received your application for the Senior Data Engineer position."
        assert extract_job_title(text) == "Senior Data Engineer"

    def test_subject_line_pattern(self):
        assert extract_job_title("", subject="Application: Data Analyst at Acme") == "Data Analyst"

    def test_known_title_in_subject(self):
        subject = "Thank you for applying to Acme Corp — Software Engineer"
        assert extract_job_title("We have received your application.", subject) == "Software Engineer"

    def test_no_title(self):
        assert extract_job_title("Thanks for your note, talk soon.") is None

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("ui/ux designer", "UI/UX Designer"),
            ("senior devops engineer", "Senior DevOps Engineer"),
            ("qa engineer", "QA Engineer"),
            ("full-stack developer", "Full-Stack Developer"),
        ],
    )
    def test_format_title(self, raw, expected):
        assert format_title(raw) == expected


class TestStatusRules:
    @pytest.mark.parametrize(
        "content, expected",
        [
            ("We are pleased to offer you the position.", "offered"),
            ("We'd like to schedule an interview next week.", "interviewing"),
            ("Your application is under review.", "applied"),
            ("Unfortunately the position has been filled.", "rejected"),
        ],
    )
    def test_determine_status(self, content, expected):
        assert determine_status(content) == expected

    def test_rejection_takes_precedence(self):
        content = (
            "Thank you for the interview. We regret to inform you that we have decided "
            "to move forward with other candidates. Congratulations on your progress."
        )
        assert determine_status(content) == "rejected"

    def test_no_indicator(self):
        assert match_status("Hello there") is None
        assert determine_status("Hello there") == "applied"

    @pytest.mark.parametrize(
        "content",
        [
            "No response for weeks",
            "We have not heard back",
            "Following up on my application",
            "",
        ],
    )
    def test_ghosted_never_produced(self, content):
        assert determine_status(content) != "ghosted"

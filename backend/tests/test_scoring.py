"""Tests for heuristic confidence scoring."""

from __future__ import annotations

import pytest

from job_tracker.extraction.scoring import MAX_CONFIDENCE, looks_personal, score_confidence


def _score(**overrides):
    values = {
        "company": None,
        "job_title": None,
        "subject": "Hello",
        "sender": "noreply@acme.com",
        "content": "Plain body",
    }
    values.update(overrides)
    return score_confidence(**values)


def test_base_confidence():
    assert _score() == 0.3


def test_all_boosts_accumulate():
    score = _score(
        company="Acme",
        job_title="Backend Engineer",
        subject="Congratulations! Your offer",
        sender="Jane Doe <jane.doe@acme.com>",
    )
    assert score == 0.8


def test_generic_company_gets_no_boost():
    assert _score(company="Recruiting Team") == 0.3


def test_subject_boosts_are_exclusive():
    assert _score(subject="Application received - interview to follow") == 0.4
    assert _score(subject="Interview schedule") == 0.45
    assert _score(subject="Offer letter") == 0.5


def test_boilerplate_penalty_clamps_at_zero():
    assert _score(content="Click here to unsubscribe") == 0.0


def test_capped_at_maximum():
    assert _score(base=0.9, company="Acme", job_title="Engineer") == MAX_CONFIDENCE


@pytest.mark.parametrize(
    "sender, expected",
    [
        ("Jane Doe <jane.doe@acme.com>", True),
        ("janeDoe@acme.com", True),
        ("careers@acme.com", False),
        ("no-reply.jobs@acme.com", False),
        ("Acme", False),
    ],
)
def test_looks_personal(sender, expected):
    assert looks_personal(sender) is expected

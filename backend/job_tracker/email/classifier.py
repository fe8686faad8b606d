"""Noise filter: separate genuine application emails from job-board digests.

All matching is case-insensitive substring matching over the combined
subject and body. An application-confirmation phrase always wins over the
noise signals, because real employers send confirmations from the same
``noreply`` style addresses that job boards use.
"""

from __future__ import annotations

from typing import Optional

import structlog

from job_tracker.extraction.matching import Rule, contains_any, first_match

logger = structlog.get_logger(__name__)

# ── Application confirmations (never noise) ───────────────
CONFIRMATION_PHRASES: list[str] = [
    "thank you for applying",
    "thanks for applying",
    "application received",
    "we have received your application",
    "your application has been received",
]
INTEREST_PHRASES: list[str] = ["thank you for your interest"]
INTEREST_CONTEXT: list[str] = ["application", "position", "role"]

# ── Noise signals ─────────────────────────────────────────
NOTIFICATION_SENDER_PATTERNS: list[str] = [
    "notifications@",
    "notification@",
    "alerts@",
    "digest@",
    "newsletter@",
    "updates@",
    "marketing@",
    "automated@",
    "jobs@indeed",
    "jobs@linkedin",
    "jobs-noreply@linkedin",
    "jobalerts-noreply@linkedin",
    "alerts@glassdoor",
    "bebee",
]

JOB_BOARD_PHRASES: list[str] = [
    # LinkedIn
    "jobs you may be interested in",
    "recommended for you",
    "new jobs posted",
    "job alert",
    "daily job digest",
    "weekly job digest",
    "jobs matching your preferences",
    "similar jobs to ones you",
    "jobs like",
    "jobs near you",
    "trending jobs",
    "premium job insights",
    # Indeed
    "jobs matching your search",
    "recommended jobs",
    "jobs from your search",
    "new jobs on indeed",
    "similar to jobs you",
    "jobs posted today",
    "more jobs like",
    # Glassdoor
    "jobs for you",
    "personalized job recommendations",
    "companies hiring",
    "salary insights",
    # ZipRecruiter
    "jobs posted near",
    "apply to these jobs",
    "one-click apply",
    # BeBee
    "new jobs on bebee",
    "bebee professional network",
    "bebee opportunities",
    # Marketing / digests
    "newsletter",
    "weekly update",
    "digest",
    "subscription",
    "unsubscribe",
    "marketing",
    "promotional",
    "sponsored",
    "advertisement",
    "ad:",
    "jobs you might like",
    "might interest you",
    "explore opportunities",
    "browse jobs",
    "view all jobs",
    "see more jobs",
    "apply now to",
    "quick apply",
    "easy apply",
]

AUTOMATED_BODY_PHRASES: list[str] = [
    "this is an automated",
    "do not reply to this",
    "automatically generated",
]
AUTOMATED_SUBJECT_MARKERS: list[str] = ["[automated]", "auto:"]

# ── Job-relatedness signals ───────────────────────────────
# Two-letter keywords ("hr", "cv") are left out: as substrings they match
# nearly every English message.
JOB_KEYWORDS: list[str] = [
    "job",
    "application",
    "position",
    "role",
    "interview",
    "hiring",
    "recruiter",
    "human resources",
    "talent",
    "career",
    "opportunity",
    "employment",
    "candidate",
    "resume",
    "screening",
    "phone screen",
]

APPLICATION_CONFIRMATION_PATTERNS: list[str] = [
    "thank you for applying",
    "thanks for applying",
    "thanks for your application",
    "application received",
    "we have received your application",
    "thanks for your interest",
    "thank you for your interest",
    "application confirmation",
    "successfully submitted",
    "application status",
    "received your resume",
    "thank you for your submission",
    "we received your application",
    "your application has been received",
    "application has been received",
    "we will review your application",
    "we will review it right away",
    "we will review as soon as possible",
    "we have received your",
    "thank you for submitting",
    "your application for",
    "application for the",
    "received your application for",
    "thank you for your application to",
    "application submitted successfully",
    "we appreciate your interest",
    "received your job application",
    "application confirmation number",
    "reference number",
    "application id",
    "next steps in our process",
    "our hiring team will review",
    "your candidacy for",
    "position you applied for",
    "role you applied for",
]

JOB_SITE_DOMAINS: list[str] = [
    "linkedin",
    "indeed",
    "glassdoor",
    "monster",
    "ziprecruiter",
    "dice",
    "stackoverflow",
    "github",
    "angel.co",
    "wellfound",
    "hired",
    "bebee",
]

RECRUITER_INDICATORS: list[str] = [
    "recruiter",
    "recruiting",
    "talent acquisition",
    "hr specialist",
    "hiring manager",
    "people operations",
    "people team",
]


def _combine(content: str, subject: str) -> str:
    return f"{subject} {content}".lower()


def is_application_confirmation(text: str) -> bool:
    """True when *text* reads like an employer's "we got your application" note."""
    lowered = text.lower()
    if any(phrase in lowered for phrase in CONFIRMATION_PHRASES):
        return True
    return any(phrase in lowered for phrase in INTEREST_PHRASES) and any(
        ctx in lowered for ctx in INTEREST_CONTEXT
    )


def noise_reason(content: str, sender: str, subject: str) -> Optional[str]:
    """Return the name of the first noise signal that fires, or None.

    The application-confirmation override is checked before any noise
    signal, so a confirmation is never reported as noise.
    """
    text = _combine(content, subject)
    if is_application_confirmation(text):
        return None

    sender_lower = sender.lower()
    subject_lower = subject.lower()
    checks: list[tuple[str, bool]] = [
        ("notification_sender", any(p in sender_lower for p in NOTIFICATION_SENDER_PATTERNS)),
        ("job_board_phrase", any(p in text for p in JOB_BOARD_PHRASES)),
        (
            "automated_message",
            any(p in text for p in AUTOMATED_BODY_PHRASES)
            or any(m in subject_lower for m in AUTOMATED_SUBJECT_MARKERS),
        ),
    ]
    for reason, fired in checks:
        if fired:
            return reason
    return None


def is_job_board_notification(content: str, sender: str, subject: str) -> bool:
    """Return True if the email is a digest, alert, or other automated noise."""
    text = _combine(content, subject)
    if is_application_confirmation(text):
        logger.debug("noise_filter_confirmation_override", subject=subject[:80])
        return False
    reason = noise_reason(content, sender, subject)
    if reason:
        logger.debug("noise_filter_match", reason=reason, subject=subject[:80])
        return True
    return False


_RELATEDNESS_RULES: list[Rule[str]] = [
    (contains_any(JOB_KEYWORDS), "job_keyword"),
    (contains_any(APPLICATION_CONFIRMATION_PATTERNS), "confirmation_phrase"),
    (contains_any(RECRUITER_INDICATORS), "recruiter_indicator"),
]


def is_job_related(content: str, sender: str, subject: str) -> bool:
    """Return True if the email is a candidate application-lifecycle message.

    Noise (see :func:`is_job_board_notification`) is rejected first. After
    that, any generic job keyword, confirmation phrase, job-site sender or
    recruiter indicator marks the email as job related.
    """
    if is_job_board_notification(content, sender, subject):
        return False

    text = _combine(content, subject)
    sender_lower = sender.lower()
    signal = first_match(_RELATEDNESS_RULES, text)
    if signal is None and any(site in sender_lower for site in JOB_SITE_DOMAINS):
        signal = "job_site_sender"
    if signal is None and any(ind in sender_lower for ind in RECRUITER_INDICATORS):
        signal = "recruiter_sender"

    if signal is None:
        logger.debug("classifier_no_signal", subject=subject[:80])
        return False
    logger.debug("classifier_match", signal=signal, subject=subject[:80])
    return True

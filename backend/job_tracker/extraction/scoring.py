"""Confidence scoring for heuristic classifications."""

from __future__ import annotations

import re
from typing import Optional

from job_tracker.extraction.rules import is_generic_company, sender_address

BASE_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95

COMPANY_BOOST = 0.1
TITLE_BOOST = 0.1
APPLICATION_RECEIVED_BOOST = 0.1
INTERVIEW_SUBJECT_BOOST = 0.15
OFFER_SUBJECT_BOOST = 0.2
PERSONAL_SENDER_BOOST = 0.1
BOILERPLATE_PENALTY = 0.3

BOILERPLATE_MARKERS: list[str] = [
    "newsletter",
    "digest",
    "marketing",
    "promotional",
    "unsubscribe",
    "you may be interested",
]

_CAMEL_CASE_RE = re.compile(r"[a-z]+[A-Z]")
_AUTOMATED_LOCAL_PARTS = ("noreply", "no-reply", "donotreply", "do-not-reply")


def _subject_boost(subject: str) -> float:
    lowered = subject.lower()
    if "application" in lowered and "received" in lowered:
        return APPLICATION_RECEIVED_BOOST
    if "interview" in lowered or "schedule" in lowered:
        return INTERVIEW_SUBJECT_BOOST
    if "offer" in lowered or "congratulations" in lowered:
        return OFFER_SUBJECT_BOOST
    return 0.0


def looks_personal(sender: str) -> bool:
    """True when the sender's local part looks like a person (``jane.doe``, ``janeDoe``)."""
    address = sender_address(sender)
    if "@" not in address or any(token in address for token in _AUTOMATED_LOCAL_PARTS):
        return False
    # Case is lost in sender_address, so camelCase is read off the raw header.
    raw_local = re.search(r"([\w.+\-]+)@", sender)
    local = raw_local.group(1) if raw_local else address.split("@", 1)[0]
    return "." in local or bool(_CAMEL_CASE_RE.search(local))


def has_boilerplate(content: str) -> bool:
    lowered = content.lower()
    return any(marker in lowered for marker in BOILERPLATE_MARKERS)


def score_confidence(
    *,
    company: Optional[str],
    job_title: Optional[str],
    subject: str,
    sender: str,
    content: str,
    base: float = BASE_CONFIDENCE,
) -> float:
    """Blend the heuristic signals into a confidence in ``[0, 0.95]``.

    The three subject boosts are mutually exclusive; the first applicable
    one (application received, interview, offer) wins. The boilerplate
    penalty applies even to emails that passed the noise filter.
    """
    confidence = base
    if company and not is_generic_company(company):
        confidence += COMPANY_BOOST
    if job_title:
        confidence += TITLE_BOOST
    confidence += _subject_boost(subject)
    if looks_personal(sender):
        confidence += PERSONAL_SENDER_BOOST
    if has_boilerplate(content):
        confidence -= BOILERPLATE_PENALTY
    return round(min(max(confidence, 0.0), MAX_CONFIDENCE), 2)

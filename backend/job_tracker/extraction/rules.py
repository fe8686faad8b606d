"""Heuristic field extraction (company, job title) and status classification.

Every extractor walks an ordered pattern table and returns the first
candidate that survives validation, or ``None``. Placeholders such as
"Unknown Company" belong to the presentation layer, never to this module.
"""

from __future__ import annotations

import re
from email.utils import parseaddr
from typing import Optional

import structlog

from job_tracker.extraction.matching import Rule, contains_any, first_match, first_result
from job_tracker.extraction.result import JobStatus

logger = structlog.get_logger(__name__)

# ── Helpers ───────────────────────────────────────────────


def _word_pattern(terms: list[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(t) for t in sorted(terms, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def sender_address(sender: str) -> str:
    """Return the bare address from a ``From`` header, lower-cased."""
    _, addr = parseaddr(sender)
    if "@" not in addr:
        match = re.search(r"[\w.+\-]+@[\w.\-]+", sender)
        addr = match.group(0) if match else ""
    return addr.lower()


# ── Company extraction ────────────────────────────────────

EXCLUDED_DOMAINS: frozenset[str] = frozenset({
    # Webmail
    "gmail", "googlemail", "yahoo", "outlook", "hotmail", "live", "aol", "icloud", "protonmail",
    # Job boards
    "linkedin", "indeed", "glassdoor", "monster", "ziprecruiter", "dice",
    "stackoverflow", "github", "angel", "wellfound", "hired", "bebee",
    # Applicant tracking / HR platforms
    "workday", "myworkday", "myworkdayjobs", "greenhouse", "greenhouse-mail", "lever", "hire",
    "jobvite", "smartrecruiters", "brassring", "icims", "kronos", "successfactors",
    "taleo", "bamboohr", "namely", "zenefits", "gusto", "adp", "ashbyhq",
    # Automated senders
    "noreply", "no-reply", "donotreply", "automated", "notifications",
})

# First domain labels that are mail/HR subdomains rather than the company.
DOMAIN_PREFIXES: frozenset[str] = frozenset(
    {"www", "mail", "email", "hr", "jobs", "careers", "recruiting", "talent"}
)

_CORPORATE_SUFFIX_RE = re.compile(r"(?:corp|inc|llc|ltd)$")

GENERIC_COMPANY_TERMS: list[str] = [
    "team", "hr", "human resources", "recruiting", "talent", "hiring",
    "notification", "notifications", "noreply", "no reply", "no-reply", "donotreply",
    "automated", "system", "admin", "support", "customer service", "help desk", "info",
    "sales", "marketing", "newsletter", "updates", "alerts", "digest",
    "jobs", "careers", "opportunities", "positions", "roles",
    "application", "applications", "candidate", "candidates",
    "recruiter", "recruiters", "staffing", "employment",
    "department", "office", "division", "group", "unit",
]
_GENERIC_COMPANY_RE = _word_pattern(GENERIC_COMPANY_TERMS)

_NAME = r"([A-Za-z][A-Za-z0-9&.'\- ]*?)"
_ARTICLE = r"(?:the\s+)?"

# Priority order: the first pattern that yields a valid candidate wins.
COMPANY_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        rf"thank(?:s|\s+you)\s+for\s+applying\s+(?:to|at|with)\s+{_NAME}"
        r"(?=\s+for\b|\s+as\b|\s+\(|[.,!]|\s+team\b|\s+hr\b|\s+and\b|\s+we\b|\s+your\b"
        r"|\s+today\b|\s+yesterday\b|\s+on\b|\s+[-–—]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"thank\s+you\s+for\s+your\s+interest\s+in\s+(?:joining\s+)?{_NAME}"
        r"(?=\s+as\b|\s+for\b|\s+\(|[.,!]|\s+team\b|\s+we\b|\s+and\b|\s+your\b|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"(?:we\s+at|team\s+at|here\s+at|from\s+the\s+team\s+at)\s+{_NAME}"
        r"(?=\s+are\b|\s+have\b|\s+would\b|\s+want\b|[.,!]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"application\s+(?:to|at|with)\s+{_NAME}"
        r"(?=\s+for\b|\s+as\b|\s+has\b|[.,!]|\s+team\b|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"(?:position|role)\s+(?:at|with)\s+{_NAME}"
        r"(?=\s+as\b|\s+for\b|[.,!]|\s+team\b|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    # Signature style: capitalized words followed by a corporate suffix.
    re.compile(
        r"\b([A-Z][\w&'\-]*(?: [A-Z][\w&'\-]*){0,3}) (?:Inc\.?|Corp\.?|LLC|Ltd\.?|Company|Co\.)"
    ),
    re.compile(
        rf"\bfrom\s+{_ARTICLE}{_NAME}"
        r"(?=\s+team\b|\s+hiring\b|\s+hr\b|\s+recruiting\b|\s+talent\b|[.,]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"(?:we\s+are|i\s+am\s+with|i\s+work\s+at|i\s+represent)\s+{_NAME}"
        r"(?=\s+and\b|\s+team\b|[.,]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
]

_PERSON_NAME_SUFFIXES = {"Inc", "Corp", "LLC", "Ltd", "Company", "Co"}


def is_generic_company(name: Optional[str]) -> bool:
    """True when *name* is empty or contains a generic term as a whole word."""
    if not name or not name.strip():
        return True
    return bool(_GENERIC_COMPANY_RE.search(name))


def company_from_domain(sender: str) -> Optional[str]:
    """Derive a company name from the sender's domain, or None."""
    address = sender_address(sender)
    if "@" not in address:
        return None
    labels = [label for label in address.rsplit("@", 1)[1].split(".") if label]
    if len(labels) < 2:
        return None

    token = labels[0]
    if token in DOMAIN_PREFIXES and len(labels) > 2:
        token = labels[1]
    if token in EXCLUDED_DOMAINS:
        return None

    stripped = _CORPORATE_SUFFIX_RE.sub("", token)
    if len(stripped) >= 2:
        token = stripped

    name = token[:1].upper() + token[1:]
    if not 2 <= len(name) <= 50 or is_generic_company(name):
        return None
    return name


def _clean_company(candidate: str) -> Optional[str]:
    value = candidate.strip(" \t-.'&")
    if not 2 <= len(value) <= 50 or is_generic_company(value):
        return None
    value = re.sub(r"[^\w\s&.\-']", "", value).strip()
    if len(value) < 2 or re.fullmatch(r"[\d\s]+", value) or re.fullmatch(r"[A-Za-z]\s*", value):
        return None
    return " ".join(_capitalize(word) for word in value.split())


def company_from_text(text: str) -> Optional[str]:
    """Scan *text* with :data:`COMPANY_PATTERNS` in priority order."""
    for pattern in COMPANY_PATTERNS:
        for match in pattern.finditer(text):
            company = _clean_company(match.group(1))
            if company:
                return company
    return None


def _looks_like_person(name: str) -> bool:
    words = name.split()
    return (
        len(words) == 2
        and all(len(w) >= 2 and w[0].isupper() for w in words)
        and not any(w.rstrip(".") in _PERSON_NAME_SUFFIXES for w in words)
    )


def company_from_display_name(sender: str) -> Optional[str]:
    """Use the ``From`` display name when it looks like an organisation."""
    display, _ = parseaddr(sender)
    name = display.replace('"', "").replace("'", "").strip()
    if not 2 <= len(name) <= 50 or "@" in name:
        return None
    if _looks_like_person(name) or is_generic_company(name):
        return None
    return name


def extract_company(sender: str, body: str = "", subject: str = "") -> Optional[str]:
    """Extract a company name: sender domain, then text patterns, then display name."""
    full_text = f"{subject}\n{body}"
    company = first_result([
        lambda: company_from_domain(sender),
        lambda: company_from_text(full_text),
        lambda: company_from_display_name(sender),
    ])
    logger.debug("company_extracted", company=company)
    return company


# ── Job title extraction ──────────────────────────────────

_TITLE = r"([A-Za-z0-9][A-Za-z0-9 \-/]*?)"
_TITLE_END = r"(?=\s+position\b|\s+role\b|\s+job\b|\s+opening\b|\s+at\b|\s+with\b|[.,]|\s*$)"
_DET = r"(?:the\s+|a\s+|an\s+)?"

KNOWN_TITLES: list[str] = [
    r"software engineer", r"full[\s\-]?stack developer", r"front[\s\-]?end developer",
    r"back[\s\-]?end developer", r"web developer", r"mobile developer", r"ios developer",
    r"android developer", r"react developer", r"angular developer", r"vue developer",
    r"node\.?js developer", r"python developer", r"java developer", r"\.net developer",
    r"php developer", r"ruby developer", r"go developer", r"rust developer",
    r"data scientist", r"data analyst", r"data engineer", r"machine learning engineer",
    r"ai engineer", r"product manager", r"project manager", r"program manager",
    r"scrum master", r"agile coach", r"ui/ux designer", r"ux designer", r"ui designer",
    r"graphic designer", r"visual designer", r"interaction designer", r"product designer",
    r"devops engineer", r"site reliability engineer", r"system administrator",
    r"database administrator", r"network administrator", r"cloud engineer", r"aws engineer",
    r"azure engineer", r"gcp engineer", r"security engineer", r"cybersecurity analyst",
    r"qa engineer", r"test engineer", r"automation engineer", r"quality assurance engineer",
    r"business analyst", r"systems analyst", r"financial analyst", r"marketing analyst",
    r"technical writer", r"documentation specialist", r"sales manager", r"marketing manager",
    r"hr manager", r"operations manager", r"customer success manager", r"account manager",
    r"sales representative", r"business development", r"software architect",
    r"solutions architect", r"enterprise architect", r"technical architect",
    r"cloud architect", r"security architect", r"network engineer",
    r"infrastructure engineer", r"platform engineer", r"release engineer", r"build engineer",
]

_ROLE_NOUNS = (
    r"engineer|developer|programmer|analyst|manager|designer|architect|specialist"
    r"|coordinator|director|consultant|advisor"
)

# Priority order: the first pattern that yields a valid candidate wins.
TITLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        rf"(?:applied\s+for|applying\s+for|application\s+for)\s+{_DET}{_TITLE}"
        r"(?=\s+position\b|\s+role\b|\s+job\b|\s+opening\b|\s+at\b|\s+with\b|[.,]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"(?:for\s+the|for\s+a|for\s+an|as\s+a|as\s+an)\s+{_TITLE}{_TITLE_END}",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"(?:position\s+of|role\s+of|job\s+of|title\s+of)\s+{_TITLE}"
        r"(?=\s+at\b|\s+with\b|[.,]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"(?:interested\s+in|regarding)\s+{_DET}{_TITLE}"
        r"(?=\s+position\b|\s+role\b|\s+job\b|\s+opening\b|\s+opportunity\b|\s+at\b|\s+with\b"
        r"|[.,]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"(?:opening\s+for|opportunity\s+for|vacancy\s+for)\s+{_DET}{_TITLE}"
        r"(?=\s+position\b|\s+role\b|\s+at\b|\s+with\b|[.,]|\s*$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    # Subject lines such as "Application: Data Analyst at Acme"
    re.compile(
        rf"^(?:re:\s*)?(?:application|applying|interested)\s*[:\-–—]\s*{_TITLE}"
        r"(?=\s+position\b|\s+role\b|\s+job\b|\s+at\b|\s+with\b|\s+-|[.,]|\s*$)",
        re.IGNORECASE,
    ),
    re.compile(
        rf"thank(?:s|\s+you)\s+for\s+applying\s+for\s+{_DET}{_TITLE}{_TITLE_END}",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        rf"thank\s+you\s+for\s+your\s+interest\s+in\s+{_DET}{_TITLE}{_TITLE_END}",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        r"\b(" + "|".join(t.replace(" ", r"\s+") for t in KNOWN_TITLES) + r")\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b((?:senior|sr\.?|junior|jr\.?|lead|principal|staff|associate|entry[\s\-]?level"
        r"|mid[\s\-]?level|experienced)\s+[a-zA-Z0-9 \-/]*?(?:" + _ROLE_NOUNS + r"))\b",
        re.IGNORECASE,
    ),
    re.compile(
        rf"\bfor\s+{_DET}({_ROLE_NOUNS}|lead|supervisor|executive){_TITLE_END}",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        r"\b((?:intern|internship|co[\s\-]?op)\s+[a-zA-Z0-9 \-/]*?"
        r"(?:engineer|developer|analyst|designer|marketing|sales|hr|finance|operations|product|data))\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b((?:summer|winter|spring|fall)\s+(?:intern|internship))\b", re.IGNORECASE),
]

TITLE_EXCLUDED_TERMS: frozenset[str] = frozenset({
    "application", "position", "role", "job", "opportunity", "opening",
    "notification", "alert", "update", "digest", "newsletter",
    "team", "company", "organization", "department", "division",
    "and", "or", "the", "a", "an", "of", "in", "at", "for", "with",
    "email", "message", "confirmation", "response", "reply",
})

# Pronouns mean the pattern caught a sentence fragment, not a title.
_TITLE_FILLER_WORDS = {"your", "our", "my", "this", "that", "we", "you", "us"}

TECH_ACRONYMS: dict[str, str] = {
    "ui": "UI", "ux": "UX", "api": "API", "sdk": "SDK", "ai": "AI", "ml": "ML",
    "aws": "AWS", "gcp": "GCP", "ios": "iOS", "android": "Android",
    "javascript": "JavaScript", "typescript": "TypeScript", "nodejs": "Node.js",
    "node.js": "Node.js", "reactjs": "React.js", "vuejs": "Vue.js", "angularjs": "Angular.js",
    "devops": "DevOps", "qa": "QA", "hr": "HR", "cto": "CTO", "ceo": "CEO",
    "php": "PHP", "sql": "SQL", "nosql": "NoSQL", "html": "HTML", "css": "CSS",
    "rest": "REST", "graphql": "GraphQL", "ci/cd": "CI/CD", ".net": ".NET", "sre": "SRE",
}


def _is_valid_title(title: str) -> bool:
    lowered = title.lower()
    return (
        3 <= len(title) <= 80
        and lowered not in TITLE_EXCLUDED_TERMS
        and not title.isdigit()
        and re.search(r"[A-Za-z]", title) is not None
        and "thank" not in lowered
        and "application received" not in lowered
        and not _TITLE_FILLER_WORDS.intersection(lowered.split())
    )


def _format_title_word(word: str) -> str:
    lowered = word.lower()
    if lowered in TECH_ACRONYMS:
        return TECH_ACRONYMS[lowered]
    parts = re.split(r"([\-/])", word)
    return "".join(
        part if part in "-/" else TECH_ACRONYMS.get(part.lower(), _capitalize(part))
        for part in parts
    )


def format_title(title: str) -> str:
    """Word-capitalize a title, honouring :data:`TECH_ACRONYMS`."""
    return " ".join(_format_title_word(word) for word in title.split())


def extract_job_title(content: str, subject: str = "") -> Optional[str]:
    """Extract a job title from subject + body, or None."""
    full_text = f"{subject}\n{content}"
    for pattern in TITLE_PATTERNS:
        for match in pattern.finditer(full_text):
            title = re.sub(r"[^\w\s\-/.]", "", match.group(1)).strip(" .-/")
            title = re.sub(r"\s+", " ", title)
            if _is_valid_title(title):
                formatted = format_title(title)
                logger.debug("job_title_extracted", title=formatted)
                return formatted
    return None


# ── Status classification ─────────────────────────────────

REJECTION_INDICATORS: list[str] = [
    # Direct
    "we regret to inform", "sorry to inform", "we are unable to", "we cannot",
    "we will not be", "we have decided not to", "we have chosen to",
    "moving forward with other candidates", "move forward with other candidates",
    "proceeding with other candidates", "selected other candidates",
    "chosen other candidates", "pursue other candidates", "going with another candidate",
    "chosen another candidate", "selected another candidate",
    # Polite
    "not a match at this time", "not the right fit", "not a good fit", "not the best fit",
    "better suited candidates", "more qualified candidates", "stronger candidates",
    "different direction", "different path", "other direction",
    "will not be moving forward", "not moving forward", "will not be proceeding",
    "not proceeding", "will not be advancing", "not advancing", "not continuing",
    # Softeners
    "unfortunately", "regrettably", "we must inform you", "we have to inform you",
    "we need to inform you", "we are writing to inform you",
    "thank you for your interest, however", "thank you for your interest but",
    "thank you for applying, however", "thank you for applying but",
    "we appreciate your interest, however", "we appreciate your interest but",
    "appreciate your time, however", "appreciate your time but",
    # Position closed
    "position has been filled", "role has been filled", "job has been filled",
    "position is no longer available", "role is no longer available",
    "job is no longer available", "decided not to fill", "chose not to fill",
    # Competition
    "highly competitive", "many qualified applicants", "numerous qualified candidates",
    "large pool of candidates", "extensive candidate pool", "other applicants",
    "alternative candidates",
    # Future consideration
    "keep your resume on file", "keep you in mind for future", "future opportunities",
    "future openings", "will keep your information", "consider you for future",
    "future positions",
    # Closers
    "wish you the best", "best of luck", "success in your job search",
    "good luck with your search", "wish you success", "best wishes", "all the best",
]

OFFER_INDICATORS: list[str] = [
    "pleased to offer", "happy to offer", "excited to offer", "delighted to offer",
    "thrilled to offer", "offer you the position", "offer you a position", "extend an offer",
    "job offer", "employment offer", "offer of employment", "congratulations",
    "you have been selected", "we would like to hire", "we want to hire",
    "welcome to the team", "welcome aboard", "offer letter", "compensation package",
    "salary offer", "starting salary", "benefits package", "start date",
    "first day of work", "orientation date",
]

INTERVIEW_INDICATORS: list[str] = [
    "interview", "phone screen", "phone call", "video call", "zoom call", "teams call",
    "schedule a call", "set up a call", "arrange a call", "technical screen",
    "coding challenge", "assessment", "next round", "second round", "final round",
    "meet with", "speak with", "chat with", "discussion", "conversation",
    "would like to talk", "like to speak", "schedule a meeting", "set up a meeting",
    "arrange a meeting", "next step", "follow up", "follow-up", "move forward",
    "proceed to", "advance to",
]

APPLIED_INDICATORS: list[str] = [
    "application received", "thank you for applying", "thanks for applying",
    "received your application", "application has been received",
    "thank you for your application", "thanks for your application",
    "application confirmation", "thank you for your interest", "thanks for your interest",
    "we have received your", "successfully submitted", "application submitted",
    "under review", "being reviewed", "review your application", "reviewing your application",
    "will review", "team will review", "hiring team will", "will be in touch",
    "will contact you", "will reach out", "will get back to you", "hear from us",
    "application status", "keep you updated", "update you",
]

# Rejection first: its language is the most specific and must not be masked
# by interview or offer words that appear in rejection boilerplate.
STATUS_RULES: list[Rule[JobStatus]] = [
    (contains_any(REJECTION_INDICATORS), "rejected"),
    (contains_any(OFFER_INDICATORS), "offered"),
    (contains_any(INTERVIEW_INDICATORS), "interviewing"),
    (contains_any(APPLIED_INDICATORS), "applied"),
]


def match_status(content: str) -> Optional[JobStatus]:
    """Return the status of the first indicator set that matches, or None."""
    return first_match(STATUS_RULES, content.lower())


def determine_status(content: str) -> JobStatus:
    """Classify *content* into a lifecycle status, defaulting to ``applied``.

    ``ghosted`` is never produced here; only the AI path or a manual edit
    can assign it.
    """
    return match_status(content) or "applied"

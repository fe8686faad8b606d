"""Value types produced by the classification pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

JobStatus = Literal["applied", "interviewing", "offered", "rejected", "ghosted"]
AnalysisMethod = Literal["ai", "regex", "insufficient_data"]

VALID_STATUSES: tuple[JobStatus, ...] = ("applied", "interviewing", "offered", "rejected", "ghosted")


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one email. Never mutated after creation."""

    status: JobStatus
    company: Optional[str]
    job_title: Optional[str]
    confidence: float
    method: AnalysisMethod
    reasoning: str = ""

    def __post_init__(self) -> None:
        if self.status not in VALID_STATUSES:
            raise ValueError(f"Unknown status: {self.status!r}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence out of range: {self.confidence}")

"""Resume-to-job-description scoring: LLM analysis with a keyword fallback."""

from __future__ import annotations

import math
import re
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from job_tracker.config import AppConfig
from job_tracker.extraction.llm import LLMProvider, generate_json

logger = structlog.get_logger(__name__)

MIN_JOB_DESCRIPTION_CHARS = 50
MIN_RESUME_CHARS = 100


class Alignment(BaseModel):
    score: int = Field(ge=0, le=100)
    feedback: str


class ResumeAnalysis(BaseModel):
    """Result of matching a resume against a job description."""

    score: int = Field(ge=0, le=100)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    keyword_gaps: list[str] = Field(default_factory=list)
    experience_alignment: Alignment
    skills_alignment: Alignment
    overall_feedback: str
    actionable_recommendations: list[str] = Field(default_factory=list)
    fallback_used: bool = False


# ── Keyword fallback ──────────────────────────────────────

SKILL_VOCABULARY: list[str] = [
    "react", "angular", "vue", "javascript", "typescript", "python", "java", "node",
    "express", "mongodb", "postgresql", "mysql", "aws", "azure", "docker", "kubernetes",
    "git", "ci/cd", "agile", "scrum", "rest", "graphql", "html", "css", "sass",
    "tailwind", "bootstrap", "webpack", "babel", "jest", "cypress", "testing",
    "leadership", "management", "communication", "problem-solving", "teamwork",
]

_YEARS_RE = re.compile(r"\d+\+?\s*(?:years?|yrs?)")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def extract_keywords(text: str) -> list[str]:
    """Vocabulary skills found in *text*, followed by any "N years" phrases."""
    lowered = text.lower()
    found = [skill for skill in SKILL_VOCABULARY if skill in lowered]
    found.extend(_YEARS_RE.findall(lowered))
    return found


def _matches(keyword: str, resume_keywords: list[str]) -> bool:
    return any(r in keyword or keyword in r for r in resume_keywords)


def _fallback_strengths(matched: list[str]) -> list[str]:
    if not matched:
        return ["Resume contains relevant professional content"]
    strengths = [
        f"Resume includes {len(matched)} relevant technical skills",
        "Good keyword alignment with job requirements",
        "Professional formatting and structure detected",
    ]
    return strengths[: min(len(matched) + 1, 5)]


def _fallback_improvements(score: float) -> list[str]:
    if score < 50:
        improvements = [
            "Consider adding more technical skills that match the job requirements",
            "Include specific technologies mentioned in the job description",
            "Add quantifiable achievements and metrics",
        ]
    elif score < 75:
        improvements = [
            "Fine-tune keyword usage to better match job requirements",
            "Add more specific technical details",
        ]
    else:
        improvements = ["Minor keyword optimizations could improve ATS compatibility"]
    improvements.append("Use action verbs to describe accomplishments")
    improvements.append("Ensure consistent formatting throughout the document")
    return improvements


def _fallback_recommendations(missing: list[str], score: float) -> list[str]:
    recommendations: list[str] = []
    if missing:
        recommendations.append(f"Add these missing skills if you have them: {', '.join(missing[:3])}")
    if score < 60:
        recommendations.append(
            "Consider taking courses or gaining experience in the key technologies "
            "listed in the job description"
        )
        recommendations.append("Restructure your resume to highlight relevant experience first")
    recommendations.append("Use the exact terminology from the job description where applicable")
    recommendations.append("Include a skills section with relevant technologies")
    recommendations.append("Quantify your achievements with specific numbers and metrics")
    return recommendations[:5]


def keyword_analysis(job_description: str, resume_text: str) -> ResumeAnalysis:
    """Deterministic keyword-overlap analysis used when the LLM is unavailable."""
    job_keywords = extract_keywords(job_description)
    resume_keywords = extract_keywords(resume_text)

    matched = [k for k in job_keywords if _matches(k, resume_keywords)]
    missing = [k for k in job_keywords if not _matches(k, resume_keywords)][:10]
    match_rate = len(matched) / len(job_keywords) * 100 if job_keywords else 0.0
    base = min(max(match_rate * 0.8, 20.0), 85.0)

    return ResumeAnalysis(
        score=_round_half_up(base),
        strengths=_fallback_strengths(matched),
        improvements=_fallback_improvements(base),
        missing_skills=missing,
        keyword_gaps=missing[:5],
        experience_alignment=Alignment(
            score=_round_half_up(base * 0.9),
            feedback=(
                "Basic pattern analysis completed. For detailed experience analysis, "
                "AI service is required."
            ),
        ),
        skills_alignment=Alignment(
            score=min(_round_half_up(base * 1.1), 100),
            feedback=(
                f"Found {len(matched)} matching keywords out of "
                f"{len(job_keywords)} job requirements."
            ),
        ),
        overall_feedback=(
            f"Pattern-based analysis complete. Resume matches {_round_half_up(match_rate)}% "
            "of key job requirements. For detailed AI analysis, please try again later."
        ),
        actionable_recommendations=_fallback_recommendations(missing, base),
        fallback_used=True,
    )


# ── LLM analysis ──────────────────────────────────────────

_RESUME_PROMPT = """\
You are an expert ATS (Applicant Tracking System) and resume optimization specialist. \
Analyze how well this resume matches the given job description and provide a comprehensive assessment.

JOB DESCRIPTION:
\"\"\"
{job_description}
\"\"\"

RESUME:
\"\"\"
{resume_text}
\"\"\"

ANALYSIS REQUIREMENTS:
1. Calculate an overall match score (0-100) where 100 = perfect alignment
2. Identify specific strengths where the resume aligns well
3. Point out areas for improvement
4. List missing skills/technologies/keywords from the job description
5. Suggest specific keywords and phrases to add
6. Evaluate experience level alignment
7. Assess technical skills alignment
8. Provide actionable recommendations

Respond with ONLY valid JSON in this exact format:

{{
  "score": number (0-100),
  "strengths": ["..."],
  "improvements": ["..."],
  "missingSkills": ["..."],
  "keywordGaps": ["..."],
  "experienceAlignment": {{"score": number (0-100), "feedback": "..."}},
  "skillsAlignment": {{"score": number (0-100), "feedback": "..."}},
  "overallFeedback": "...",
  "actionableRecommendations": ["..."]
}}

Be specific and actionable, focus on ATS-friendly improvements, and consider both hard and soft skills.
"""


def _clamp_score(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return _round_half_up(min(max(float(value), 0.0), 100.0))


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _alignment(value: Any, default_feedback: str) -> Alignment:
    data = value if isinstance(value, dict) else {}
    feedback = data.get("feedback")
    return Alignment(
        score=_clamp_score(data.get("score")),
        feedback=feedback if isinstance(feedback, str) and feedback else default_feedback,
    )


def analysis_from_payload(payload: dict[str, Any]) -> ResumeAnalysis:
    """Normalize an LLM payload: clamp every score and default missing lists."""
    overall = payload.get("overallFeedback")
    return ResumeAnalysis(
        score=_clamp_score(payload.get("score")),
        strengths=_str_list(payload.get("strengths")),
        improvements=_str_list(payload.get("improvements")),
        missing_skills=_str_list(payload.get("missingSkills")),
        keyword_gaps=_str_list(payload.get("keywordGaps")),
        experience_alignment=_alignment(
            payload.get("experienceAlignment"), "No experience feedback available"
        ),
        skills_alignment=_alignment(payload.get("skillsAlignment"), "No skills feedback available"),
        overall_feedback=overall if isinstance(overall, str) and overall else "Analysis completed",
        actionable_recommendations=_str_list(payload.get("actionableRecommendations")),
    )


class ResumeAnalyzer:
    """Score a resume against a job description."""

    def __init__(self, config: AppConfig, provider: Optional[LLMProvider] = None) -> None:
        self._config = config
        self._provider = provider

    @property
    def ai_available(self) -> bool:
        return self._provider is not None

    def analyze(self, job_description: str, resume_text: str) -> ResumeAnalysis:
        job_description = job_description.strip()
        resume_text = resume_text.strip()
        if self._provider is None:
            logger.info("resume_analysis_fallback", reason="llm_unavailable")
            return keyword_analysis(job_description, resume_text)

        prompt = _RESUME_PROMPT.format(job_description=job_description, resume_text=resume_text)
        try:
            payload = generate_json(
                self._provider, prompt, self._config, max_output_tokens=2048, temperature=0.2
            )
        except Exception as exc:
            logger.warning("resume_analysis_llm_failed", error=str(exc)[:200])
            return keyword_analysis(job_description, resume_text)

        analysis = analysis_from_payload(payload)
        logger.info(
            "resume_analysis_complete",
            score=analysis.score,
            strengths=len(analysis.strengths),
            recommendations=len(analysis.actionable_recommendations),
        )
        return analysis

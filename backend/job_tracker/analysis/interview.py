"""Interview preparation material generation."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictStr

from job_tracker.config import AppConfig
from job_tracker.extraction.llm import LLMProvider, generate_json

logger = structlog.get_logger(__name__)


class StarGuidance(BaseModel):
    situation: StrictStr
    task: StrictStr
    action: StrictStr
    result: StrictStr


class InterviewPrep(BaseModel):
    """Questions, STAR guidance and tips for one job description."""

    model_config = ConfigDict(populate_by_name=True)

    behavioral_questions: list[StrictStr] = Field(alias="behavioralQuestions")
    technical_questions: list[StrictStr] = Field(alias="technicalQuestions")
    star_method_guidance: StarGuidance = Field(alias="starMethodGuidance")
    general_tips: list[StrictStr] = Field(alias="generalTips")
    company_research_tips: list[StrictStr] = Field(alias="companyResearchTips")
    questions_to_ask: list[StrictStr] = Field(alias="questionsToAsk")
    fallback_used: bool = False


FALLBACK_PREP = InterviewPrep(
    behavioral_questions=[
        "Tell me about a time when you had to work under pressure to meet a deadline.",
        "Describe a situation where you had to learn a new technology quickly.",
        "Give me an example of a time when you had to work with a difficult team member.",
        "Tell me about a project you're particularly proud of and your role in it.",
        "Describe a time when you had to make a decision without all the information you needed.",
        "Give me an example of when you had to adapt to a significant change at work.",
        "Tell me about a time when you received constructive criticism and how you handled it.",
        "Describe a situation where you had to take initiative on a project.",
        "Give me an example of a time when you had to explain a complex technical concept "
        "to non-technical stakeholders.",
        "Tell me about a time when you made a mistake and how you handled it.",
    ],
    technical_questions=[
        "How would you approach debugging a performance issue in a web application?",
        "Explain the difference between synchronous and asynchronous programming.",
        "How do you ensure code quality in your projects?",
        "Describe your experience with version control and collaboration workflows.",
        "What factors do you consider when choosing between different technology solutions?",
    ],
    star_method_guidance=StarGuidance(
        situation=(
            "Set the context by briefly describing the background, company, team, "
            "or project you were involved in."
        ),
        task="Explain what you needed to accomplish, your responsibilities, or the challenge you faced.",
        action=(
            "Describe the specific steps you took, decisions you made, and skills you "
            "applied to address the situation."
        ),
        result=(
            "Share the outcomes of your actions, including quantifiable results, lessons "
            "learned, and impact on the team or project."
        ),
    ),
    general_tips=[
        "Research the company's mission, values, and recent news or developments.",
        "Practice your elevator pitch and be ready to explain your background concisely.",
        "Prepare specific examples that demonstrate your problem-solving abilities.",
        "Dress appropriately for the company culture and role level.",
        "Bring multiple copies of your resume and a notepad for taking notes.",
        "Arrive 10-15 minutes early to show punctuality and professionalism.",
        "Maintain good eye contact and positive body language throughout the interview.",
        "Follow up with a thank-you email within 24 hours of the interview.",
    ],
    company_research_tips=[
        "Study the company's website, mission statement, and core values.",
        "Research recent company news, press releases, and industry developments.",
        "Look up the interview team members on LinkedIn if their names are provided.",
        "Understand the company's products, services, and target market.",
        "Research the company's competitors and market position.",
        "Check employee reviews on sites like Glassdoor for company culture insights.",
    ],
    questions_to_ask=[
        "What does success look like in this role after the first 90 days?",
        "What are the biggest challenges facing the team/department right now?",
        "How does this role contribute to the company's overall goals?",
        "What opportunities are there for professional development and growth?",
        "Can you describe the team dynamics and collaboration style?",
        "What technologies or tools does the team currently use?",
        "How do you measure performance and provide feedback?",
        "What do you enjoy most about working at this company?",
    ],
    fallback_used=True,
)

_PREP_PROMPT = """\
Based on the following job description, generate comprehensive interview preparation materials:

JOB DESCRIPTION:
{job_description}

Please provide a JSON response with the following structure:
{{
  "behavioralQuestions": ["8-10 behavioral interview questions tailored to this role"],
  "technicalQuestions": ["5 technical questions matching the technologies mentioned"],
  "starMethodGuidance": {{
    "situation": "guidance for describing situations relevant to this role",
    "task": "how to articulate tasks and responsibilities for this position",
    "action": "types of actions that would impress for this role",
    "result": "what results and metrics matter for this position"
  }},
  "generalTips": ["6-8 interview tips specific to this role/industry"],
  "companyResearchTips": ["5-6 areas to research about this type of company/role"],
  "questionsToAsk": ["6-8 thoughtful questions the candidate should ask the interviewer"]
}}

Return ONLY the JSON object, no additional text or markdown formatting.
"""


def prep_from_payload(payload: dict[str, Any]) -> InterviewPrep:
    """Validate the LLM payload structurally; raises ``ValidationError``."""
    return InterviewPrep.model_validate(payload)


class InterviewPrepGenerator:
    def __init__(self, config: AppConfig, provider: Optional[LLMProvider] = None) -> None:
        self._config = config
        self._provider = provider

    @property
    def ai_available(self) -> bool:
        return self._provider is not None

    def generate(self, job_description: str) -> InterviewPrep:
        """Return tailored prep material, or the fixed fallback set."""
        if self._provider is None:
            logger.info("interview_prep_fallback", reason="llm_unavailable")
            return FALLBACK_PREP

        prompt = _PREP_PROMPT.format(job_description=job_description.strip())
        try:
            payload = generate_json(self._provider, prompt, self._config, max_output_tokens=4096)
            prep = prep_from_payload(payload)
        except Exception as exc:
            logger.warning("interview_prep_llm_failed", error_type=type(exc).__name__, error=str(exc)[:200])
            return FALLBACK_PREP
        logger.info("interview_prep_generated", behavioral=len(prep.behavioral_questions))
        return prep

"""LLM-backed email classification with provider abstraction."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, Literal, Optional, Protocol, TypeVar

import requests
import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictStr, ValidationError

from job_tracker.config import AppConfig
from job_tracker.email.parser import EmailRecord

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ClassifierResponseError(ValueError):
    """The model answered, but not with a usable JSON payload."""


class AIClassification(BaseModel):
    """Validated classifier payload; anything off-schema is a failure."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: Literal["applied", "interviewing", "offered", "rejected", "ghosted"]
    company: Optional[StrictStr]
    job_title: Optional[StrictStr] = Field(alias="jobTitle")
    confidence: StrictFloat = Field(ge=0.0, le=1.0)
    reasoning: Optional[str] = ""


class LLMProvider(Protocol):
    """Protocol that any LLM provider must implement."""

    def generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str: ...


class EmailClassifier(Protocol):
    """External classifier contract: return a validated payload or raise."""

    def classify(self, email: EmailRecord) -> AIClassification: ...


# ── JSON extraction ───────────────────────────────────────


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first balanced ``{...}`` object found in *text*.

    Code fences and surrounding prose are ignored. Braces inside JSON
    strings do not count towards the balance.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            char = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    try:
                        parsed = json.loads(text[start : idx + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
        start = text.find("{", start + 1)
    raise ClassifierResponseError(f"No JSON object in model response: {text[:200]!r}")


# ── Providers ─────────────────────────────────────────────


class GeminiProvider:
    """Google Gemini over the public ``generateContent`` REST endpoint."""

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    def generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        cfg = self._config
        url = f"{cfg.gemini_endpoint.rstrip('/')}/{cfg.llm_model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topP": 0.8,
                "topK": 40,
                "maxOutputTokens": max_output_tokens,
            },
        }
        headers = {
            "x-goog-api-key": cfg.llm_api_key.get_secret_value(),
            "Content-Type": "application/json",
        }
        resp = self._session.post(url, json=body, headers=headers, timeout=cfg.llm_timeout_sec)
        resp.raise_for_status()
        data = resp.json()
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ClassifierResponseError(f"Unexpected Gemini response shape: {str(data)[:200]}") from exc
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class OpenAIProvider:
    """OpenAI chat-completions backed provider (gpt-4o-mini, gpt-4o, ...)."""

    def __init__(self, config: AppConfig) -> None:
        try:
            from openai import OpenAI
        except ImportError as exc:
            raise RuntimeError(
                "openai package is required for LLM_PROVIDER=openai, pip install openai"
            ) from exc

        self._config = config
        self._client = OpenAI(
            api_key=config.llm_api_key.get_secret_value(),
            timeout=config.llm_timeout_sec,
            max_retries=0,
        )

    def generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        resp = self._client.chat.completions.create(
            model=self._config.llm_model,
            temperature=temperature,
            max_tokens=max_output_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return (resp.choices[0].message.content or "").strip()


_PROVIDERS: dict[str, type] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
}


def create_llm_provider(config: AppConfig) -> Optional[LLMProvider]:
    """Instantiate the configured provider, or None when the LLM is not usable."""
    provider_cls = _PROVIDERS.get(config.llm_provider.lower())
    if provider_cls is None:
        raise ValueError(
            f"Unknown LLM provider: {config.llm_provider!r}. "
            f"Available: {', '.join(_PROVIDERS)}"
        )
    if not config.llm_configured:
        logger.info("llm_not_configured", provider=config.llm_provider, enabled=config.llm_enabled)
        return None
    logger.info("llm_provider_ready", provider=config.llm_provider, model=config.llm_model)
    return provider_cls(config)


# ── Hard-timeout wrapper ──────────────────────────────────


def call_with_timeout(fn: Callable[..., T], *args: Any, timeout_sec: float = 45, **kwargs: Any) -> T:
    """Run *fn* with a hard thread-based timeout.

    This guards against an SDK or socket timeout that never fires.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout_sec)
    except FuturesTimeoutError:
        future.cancel()
        raise RuntimeError(f"LLM hard-timeout after {timeout_sec}s")
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def generate_json(
    provider: LLMProvider,
    prompt: str,
    config: AppConfig,
    *,
    max_output_tokens: int = 1024,
    temperature: Optional[float] = None,
) -> dict[str, Any]:
    """Prompt *provider* and return the first JSON object in its answer."""
    text = call_with_timeout(
        provider.generate,
        prompt,
        temperature=config.llm_temperature if temperature is None else temperature,
        max_output_tokens=max_output_tokens,
        timeout_sec=config.llm_timeout_sec,
    )
    logger.debug("llm_raw_response", preview=text[:200])
    return extract_json_object(text)


# ── Email classification ──────────────────────────────────

_CLASSIFY_PROMPT = """\
You are an expert at analyzing job application emails. Analyze this email and extract structured information.

EMAIL DETAILS:
Subject: "{subject}"
From: "{sender}"
Content: "{content}"{truncated}

TASK: Extract the following information and respond with ONLY valid JSON:

{{
  "status": "applied|interviewing|offered|rejected|ghosted",
  "company": "company name or null",
  "jobTitle": "job title or null",
  "confidence": 0.0-1.0,
  "reasoning": "brief explanation"
}}

STATUS DEFINITIONS:
- "applied": Application confirmation, received, under review
- "interviewing": Interview invitation, schedule request, phone screen
- "offered": Job offer, congratulations, welcome to team
- "rejected": Declined, moving forward with other candidates, not selected
- "ghosted": No clear status (very rare, only if truly ambiguous)

COMPANY EXTRACTION:
- Extract from email domain (avoid gmail, yahoo, noreply, etc.)
- Look for "Thank you for applying to [Company]"
- Find company signatures or letterheads
- Return null if clearly generic/automated

JOB TITLE EXTRACTION:
- Look for "applying for [Title]", "position of [Title]"
- Extract from subject line if clear
- Common formats: "Software Engineer", "Product Manager", etc.
- Return null if too generic or unclear

CONFIDENCE SCORING:
- 0.9-1.0: Very clear, unambiguous
- 0.7-0.8: Good indicators, likely correct
- 0.5-0.6: Some ambiguity, moderate confidence
- 0.3-0.4: Unclear, low confidence
- 0.0-0.2: Very uncertain

Respond with ONLY the JSON object, no additional text.
"""


def build_classification_prompt(email: EmailRecord, max_content_chars: int = 2000) -> str:
    content = email.content[:max_content_chars]
    truncated = " ...[truncated]" if len(email.content) > max_content_chars else ""
    return _CLASSIFY_PROMPT.format(
        subject=email.subject,
        sender=email.sender,
        content=content,
        truncated=truncated,
    )


def parse_classification(payload: dict[str, Any]) -> AIClassification:
    """Validate a decoded payload, raising :class:`ClassifierResponseError`."""
    try:
        return AIClassification.model_validate(payload)
    except ValidationError as exc:
        raise ClassifierResponseError(f"Invalid classification payload: {exc.errors()[:3]}") from exc


class LLMEmailClassifier:
    """:class:`EmailClassifier` implemented over any :class:`LLMProvider`."""

    def __init__(self, provider: LLMProvider, config: AppConfig) -> None:
        self._provider = provider
        self._config = config

    def classify(self, email: EmailRecord) -> AIClassification:
        cfg = self._config
        prompt = build_classification_prompt(email, cfg.llm_max_content_chars)
        payload = generate_json(self._provider, prompt, cfg, max_output_tokens=1024)
        result = parse_classification(payload)
        logger.info(
            "llm_classified",
            status=result.status,
            company=result.company,
            job_title=result.job_title,
            confidence=result.confidence,
        )
        return result

"""Tests for the LLM provider layer and classifier payload handling."""

from __future__ import annotations

import time

import pytest

from conftest import StubProvider, make_config
from job_tracker.email.parser import EmailRecord
from job_tracker.extraction.llm import (
    ClassifierResponseError,
    GeminiProvider,
    LLMEmailClassifier,
    build_classification_prompt,
    call_with_timeout,
    create_llm_provider,
    extract_json_object,
    parse_classification,
)


class _FakeResponse:
    def __init__(self, payload: dict) -> None:
        self._payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self) -> dict:
        return self._payload


class _FakeSession:
    def __init__(self, payload: dict) -> None:
        self._payload = payload
        self.requests: list[dict] = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return _FakeResponse(self._payload)


class TestExtractJsonObject:
    def test_code_fenced(self):
        assert extract_json_object('```json\n{"status": "applied"}\n```') == {"status": "applied"}

    def test_prose_and_braces_inside_strings(self):
        text = 'Sure! {"reasoning": "uses { and } here", "confidence": 0.5} Hope this helps.'
        assert extract_json_object(text) == {"reasoning": "uses { and } here", "confidence": 0.5}

    def test_skips_unparsable_candidate(self):
        assert extract_json_object("{not json} then {\"ok\": true}") == {"ok": True}

    def test_no_object_raises(self):
        with pytest.raises(ClassifierResponseError):
            extract_json_object("I could not classify this email.")


class TestParseClassification:
    def test_valid_payload(self):
        result = parse_classification(
            {"status": "interviewing", "company": "Acme", "jobTitle": "SRE", "confidence": 0.9}
        )
        assert result.status == "interviewing"
        assert result.job_title == "SRE"
        assert result.reasoning == ""

    @pytest.mark.parametrize(
        "payload",
        [
            {"status": "pending", "company": None, "jobTitle": None, "confidence": 0.5},
            {"status": "applied", "company": None, "jobTitle": None, "confidence": 1.5},
            {"status": "applied", "company": None, "jobTitle": None, "confidence": "0.9"},
            {"status": "applied", "company": 42, "jobTitle": None, "confidence": 0.5},
            {"status": "applied", "jobTitle": None, "confidence": 0.5},
        ],
    )
    def test_invalid_payload(self, payload):
        with pytest.raises(ClassifierResponseError):
            parse_classification(payload)


class TestProviders:
    def test_disabled_llm_has_no_provider(self):
        assert create_llm_provider(make_config(llm_enabled=False, llm_api_key="k")) is None

    def test_placeholder_key_counts_as_missing(self):
        config = make_config(llm_enabled=True, llm_api_key="your_gemini_api_key_here")
        assert create_llm_provider(config) is None

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_llm_provider(make_config(llm_provider="mystery"))

    def test_gemini_key_fallback(self):
        config = make_config(llm_enabled=True, gemini_api_key="g-key")
        assert config.llm_api_key.get_secret_value() == "g-key"
        assert isinstance(create_llm_provider(config), GeminiProvider)

    def test_gemini_request_shape(self):
        session = _FakeSession({"candidates": [{"content": {"parts": [{"text": "{\"a\": 1}"}]}}]})
        config = make_config(llm_enabled=True, llm_api_key="secret", llm_model="gemini-1.5-flash")
        provider = GeminiProvider(config, session=session)

        text = provider.generate("prompt", temperature=0.2, max_output_tokens=64)

        assert text == '{"a": 1}'
        sent = session.requests[0]
        assert sent["url"].endswith("/gemini-1.5-flash:generateContent")
        assert sent["headers"]["x-goog-api-key"] == "secret"
        assert sent["json"]["generationConfig"]["maxOutputTokens"] == 64
        assert sent["json"]["generationConfig"]["temperature"] == 0.2

    def test_gemini_bad_shape(self):
        provider = GeminiProvider(make_config(llm_api_key="secret"), session=_FakeSession({"error": {}}))
        with pytest.raises(ClassifierResponseError):
            provider.generate("prompt", temperature=0.1, max_output_tokens=10)


def test_call_with_timeout_raises_runtime_error():
    with pytest.raises(RuntimeError, match="hard-timeout"):
        call_with_timeout(time.sleep, 1.0, timeout_sec=0.05)


def test_prompt_truncation_marker():
    email = EmailRecord(subject="Hi", sender="a@b.com", content="x" * 50)
    assert "[truncated]" in build_classification_prompt(email, max_content_chars=10)
    assert "[truncated]" not in build_classification_prompt(email, max_content_chars=100)


def test_llm_email_classifier_end_to_end():
    provider = StubProvider(
        'Here you go:\n```json\n{"status": "offered", "company": "Acme", '
        '"jobTitle": "Data Engineer", "confidence": 0.85, "reasoning": "offer letter"}\n```'
    )
    classifier = LLMEmailClassifier(provider, make_config(llm_temperature=0.1))

    result = classifier.classify(EmailRecord(subject="Offer", sender="hr@acme.com", content="Welcome"))

    assert result.status == "offered"
    assert result.company == "Acme"
    assert provider.kwargs[0] == {"temperature": 0.1, "max_output_tokens": 1024}
    assert 'Subject: "Offer"' in provider.prompts[0]

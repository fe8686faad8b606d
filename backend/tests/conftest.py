"""Shared fixtures: isolated config, in-memory database, scripted classifiers."""

from __future__ import annotations

from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from job_tracker.config import AppConfig
from job_tracker.email.parser import EmailRecord
from job_tracker.extraction.llm import AIClassification
from job_tracker.models import Base


def make_config(**overrides: object) -> AppConfig:
    """Config that ignores any local .env file and has the LLM off by default."""
    values: dict[str, object] = {
        "llm_enabled": False,
        "database_url": "sqlite://",
        "ai_call_delay_sec": 0.0,
    }
    values.update(overrides)
    return AppConfig(_env_file=None, **values)


class StubClassifier:
    """External classifier that replays a scripted answer or error."""

    def __init__(self, result: AIClassification | None = None, error: Exception | None = None) -> None:
        self._result = result
        self._error = error
        self.calls: list[EmailRecord] = []

    def classify(self, email: EmailRecord) -> AIClassification:
        self.calls.append(email)
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result


class StubProvider:
    """LLM provider returning canned text and recording prompts."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self._text = text
        self._error = error
        self.prompts: list[str] = []
        self.kwargs: list[dict] = []

    def generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        self.prompts.append(prompt)
        self.kwargs.append({"temperature": temperature, "max_output_tokens": max_output_tokens})
        if self._error is not None:
            raise self._error
        return self._text


@pytest.fixture
def config() -> AppConfig:
    return make_config()


@pytest.fixture
def db_session() -> Iterator[Session]:
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()

"""Request-scoped accessors for the services built in the app lifespan."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from job_tracker.analysis.interview import InterviewPrepGenerator
from job_tracker.analysis.resume import ResumeAnalyzer
from job_tracker.config import AppConfig
from job_tracker.extraction.llm import EmailClassifier
from job_tracker.extraction.pipeline import HybridClassifier


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_hybrid(request: Request) -> HybridClassifier:
    return request.app.state.hybrid


def get_email_classifier(request: Request) -> Optional[EmailClassifier]:
    return request.app.state.email_classifier


def get_resume_analyzer(request: Request) -> ResumeAnalyzer:
    return request.app.state.resume_analyzer


def get_interview_prep(request: Request) -> InterviewPrepGenerator:
    return request.app.state.interview_prep

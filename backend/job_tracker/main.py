"""FastAPI application entry point."""

from __future__ import annotations

import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from job_tracker.analysis.interview import InterviewPrepGenerator
from job_tracker.analysis.resume import ResumeAnalyzer
from job_tracker.api.ai import router as ai_router
from job_tracker.api.analysis import router as analysis_router
from job_tracker.api.emails import router as emails_router
from job_tracker.api.jobs import router as jobs_router
from job_tracker.api.scan import router as scan_router
from job_tracker.config import AppConfig, get_config
from job_tracker.database import init_db
from job_tracker.email.client import IMAPEmailSource
from job_tracker.extraction.llm import LLMEmailClassifier, LLMProvider, create_llm_provider
from job_tracker.extraction.pipeline import HybridClassifier
from job_tracker.logging_config import setup_logging

logger = structlog.get_logger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    *,
    llm_provider: Optional[LLMProvider] = None,
    email_source_factory: Callable[[AppConfig], IMAPEmailSource] = IMAPEmailSource,
) -> FastAPI:
    """Application factory: create and configure the FastAPI app.

    Args:
        config: Settings; read from the environment when omitted.
        llm_provider: Provider override. When omitted one is built from
            *config* and may be ``None`` if no LLM is configured.
        email_source_factory: Builds the mailbox source used by the scan
            endpoint.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the services once and keep them on ``app.state``."""
        setup_logging(level=config.log_level, log_file=config.log_file, json_console=config.log_json)
        provider = llm_provider if llm_provider is not None else create_llm_provider(config)
        classifier = LLMEmailClassifier(provider, config) if provider is not None else None

        app.state.config = config
        app.state.session_factory = init_db(config)
        app.state.email_classifier = classifier
        app.state.hybrid = HybridClassifier(config, classifier)
        app.state.resume_analyzer = ResumeAnalyzer(config, provider)
        app.state.interview_prep = InterviewPrepGenerator(config, provider)
        app.state.email_source_factory = email_source_factory
        app.state.scan_lock = threading.Lock()

        logger.info(
            "server_starting",
            host=config.host,
            port=config.port,
            ai_available=classifier is not None,
            llm_provider=config.llm_provider if classifier is not None else "disabled",
        )
        yield
        app.state.session_factory.kw["bind"].dispose()
        logger.info("server_shutting_down")

    app = FastAPI(
        title="Job Application Tracker",
        description="Classify job-search emails and track applications, with AI-assisted analysis",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(emails_router)
    app.include_router(scan_router)
    app.include_router(jobs_router)
    app.include_router(analysis_router)
    app.include_router(ai_router)

    @app.get("/api/health", tags=["health"])
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _config = get_config()
    uvicorn.run(
        "job_tracker.main:app",
        host=_config.host,
        port=_config.port,
        reload=True,
    )

"""Recategorization endpoints for stored job applications."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from job_tracker.api.deps import get_app_config, get_hybrid
from job_tracker.config import AppConfig
from job_tracker.database import get_db
from job_tracker.extraction.pipeline import HybridClassifier
from job_tracker.jobs import SqlJobStore, get_recategorization_stats, run_recategorization
from job_tracker.schemas import (
    RecategorizationResultOut,
    RecategorizationStatsOut,
    RecategorizeRequest,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.get("/recategorize", response_model=RecategorizationStatsOut)
def recategorization_stats(
    owner_id: str = Query(..., min_length=1, max_length=128),
    config: AppConfig = Depends(get_app_config),
    db: Session = Depends(get_db),
) -> RecategorizationStatsOut:
    """How many of the owner's jobs are due for re-analysis."""
    stats = get_recategorization_stats(SqlJobStore(db), owner_id, config)
    return RecategorizationStatsOut.model_validate(stats)


@router.post("/recategorize", response_model=RecategorizationResultOut)
def recategorize_jobs(
    body: RecategorizeRequest,
    config: AppConfig = Depends(get_app_config),
    hybrid: HybridClassifier = Depends(get_hybrid),
    db: Session = Depends(get_db),
) -> RecategorizationResultOut:
    """Re-classify the owner's jobs; ``update`` mode writes changes back."""
    logger.info("recategorize_requested", owner_id=body.owner_id, mode=body.mode, force=body.force_update)
    result = run_recategorization(
        SqlJobStore(db),
        body.owner_id,
        hybrid,
        config,
        mode=body.mode,
        force_update=body.force_update,
    )
    return RecategorizationResultOut.model_validate(result)

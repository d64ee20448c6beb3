"""Health endpoint: database connectivity and whether the external reviewer is switched on."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import get_pipeline
from app.core.config import get_settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.analysis import AnalysisPipeline

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    pipeline: Annotated[AnalysisPipeline, Depends(get_pipeline)],
) -> HealthResponse:
    """Used by load balancers and monitoring; never fails when the database is down."""
    return HealthResponse(
        status="ok",
        environment=get_settings().APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        reasoning_configured=pipeline.external_available,
    )

"""Shared endpoint dependencies."""

from fastapi import HTTPException, Request

from app.services.analysis import AnalysisPipeline


def get_pipeline(request: Request) -> AnalysisPipeline:
    """Return the analysis pipeline built by the application lifespan."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Analysis pipeline is not initialized.")
    return pipeline

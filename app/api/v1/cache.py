"""Cache statistics endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_pipeline
from app.schemas.cache import CacheStatsResponse
from app.services.analysis import AnalysisPipeline

router = APIRouter()


@router.get("/stats", response_model=CacheStatsResponse)
def get_cache_stats(
    pipeline: Annotated[AnalysisPipeline, Depends(get_pipeline)],
) -> CacheStatsResponse:
    """Return hit/miss counters and size estimates for the general and reasoning caches."""
    return CacheStatsResponse(
        general=pipeline.cache.stats() if pipeline.cache is not None else None,
        reasoning=pipeline.reasoner.cache.stats() if pipeline.reasoner is not None else None,
    )

"""Pydantic schemas for cache statistics responses."""

from pydantic import BaseModel, Field

from app.services.cache import CacheStats


class CacheStatsResponse(BaseModel):
    """Statistics for both cache instances owned by the analysis pipeline."""

    general: CacheStats | None = Field(default=None, description="General memoization cache (heuristic results).")
    reasoning: CacheStats | None = Field(default=None, description="External reviewer result cache.")

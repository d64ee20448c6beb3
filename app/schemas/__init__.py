"""Pydantic request/response schemas."""

from app.schemas.health import HealthResponse
from app.schemas.reasoning import ExternalReview, LLMReviewIssue, LLMReviewOutput
from app.schemas.review import (
    Issue,
    IssueKind,
    Metrics,
    Pattern,
    PatternCategory,
    QualityReport,
    ReviewRequest,
    ReviewResponse,
    Severity,
    SubScores,
)

__all__ = [
    "ExternalReview",
    "HealthResponse",
    "Issue",
    "IssueKind",
    "LLMReviewIssue",
    "LLMReviewOutput",
    "Metrics",
    "Pattern",
    "PatternCategory",
    "QualityReport",
    "ReviewRequest",
    "ReviewResponse",
    "Severity",
    "SubScores",
]

"""Pydantic schemas for code review: issues, metrics, patterns, and the fused quality report."""

import uuid
from typing import Literal

from pydantic import BaseModel, Field

IssueKind = Literal["bug", "security", "performance", "refactor", "style"]
Severity = Literal["high", "medium", "low"]
PatternCategory = Literal["antipattern", "smell", "vulnerability", "best-practice"]

ISSUE_KIND_VALUES: frozenset[str] = frozenset({"bug", "security", "performance", "refactor", "style"})
SEVERITY_VALUES: frozenset[str] = frozenset({"high", "medium", "low"})

# Namespace for deterministic issue ids (stable across runs for identical input).
_ISSUE_ID_NAMESPACE = uuid.UUID("6f1c2b7e-4d0a-5c3e-9b8f-2a7d1e0c4b55")


def make_issue_id(origin: str, ordinal: int, line: int, kind: str, message: str) -> str:
    """Return a deterministic identifier for the ordinal-th issue emitted by a detector."""
    return str(uuid.uuid5(_ISSUE_ID_NAMESPACE, f"{origin}\0{ordinal}\0{line}\0{kind}\0{message}"))


class Issue(BaseModel):
    """One reported finding. Created by exactly one detector and never mutated."""

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1, description="Opaque identifier assigned at detection time.")
    kind: IssueKind = Field(..., description="Defect category.")
    severity: Severity = Field(..., description="high, medium, or low.")
    line: int = Field(
        default=1,
        ge=1,
        description="1-based source line; 1 is also used for file-level findings.",
    )
    message: str = Field(..., description="Human-readable description, possibly prefixed with an origin tag.")
    suggestion: str | None = Field(default=None, description="Actionable remediation text.")
    rationale: str | None = Field(default=None, description="Why the finding matters.")
    fix_code: str | None = Field(default=None, description="Replacement code for the flagged line, when one is known.")


class Metrics(BaseModel):
    """Structural measurement of one analyzed source unit."""

    model_config = {"frozen": True}

    lines_of_code: int = Field(..., ge=0)
    blank_lines: int = Field(..., ge=0)
    comment_lines: int = Field(..., ge=0)
    code_lines: int = Field(..., ge=0)
    avg_line_length: float = Field(..., ge=0)
    max_line_length: int = Field(..., ge=0)
    indentation_consistency: float = Field(..., ge=0, le=1)
    nesting_depth: int = Field(..., ge=0)
    function_count: int = Field(..., ge=0)
    class_count: int = Field(..., ge=0)
    import_count: int = Field(..., ge=0)
    variable_count: int = Field(..., ge=0)
    comment_ratio: float = Field(..., ge=0, le=1)


class Pattern(BaseModel):
    """A structural finding (smell, antipattern, vulnerability) with a confidence score."""

    model_config = {"frozen": True}

    name: str
    category: PatternCategory
    confidence: float = Field(..., ge=0, le=1)
    description: str
    suggestion: str


class SubScores(BaseModel):
    """The four independent quality dimensions, each an integer in [0, 100]."""

    model_config = {"frozen": True}

    readability: int = Field(..., ge=0, le=100)
    maintainability: int = Field(..., ge=0, le=100)
    security: int = Field(..., ge=0, le=100)
    performance: int = Field(..., ge=0, le=100)


class QualityReport(BaseModel):
    """Fused output of all active detectors for one analysis request."""

    model_config = {"frozen": True}

    issues: list[Issue] = Field(default_factory=list, description="Deduplicated issues in detector order.")
    total_issues: int = Field(..., ge=0)
    high_severity: int = Field(..., ge=0)
    medium_severity: int = Field(..., ge=0)
    low_severity: int = Field(..., ge=0)
    readability: int = Field(..., ge=0, le=100)
    maintainability: int = Field(..., ge=0, le=100)
    security: int = Field(..., ge=0, le=100)
    performance: int = Field(..., ge=0, le=100)
    overall_score: int = Field(
        ...,
        ge=0,
        le=100,
        description="Weighted combination: maintainability .30, security .30, readability .20, performance .20.",
    )
    bug_risk_estimate: float = Field(..., ge=0, le=100)
    metrics: Metrics | None = Field(
        default=None,
        description="Structural metrics; None when the heuristic detector did not run.",
    )
    patterns: list[Pattern] = Field(default_factory=list)
    lines_of_code: int = Field(..., ge=0)
    complexity: float = Field(..., ge=0, description="Branch lines per function line from the rule scanner.")
    ai_enabled: bool = Field(default=False, description="True when the external reasoning detector contributed.")
    ai_summary: str | None = None
    ai_assessment: str | None = None
    suggested_improvements: list[str] = Field(default_factory=list)
    positive_aspects: list[str] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    """Request body for POST /api/v1/reviews."""

    code: str | None = Field(default=None, description="Source code to analyze. Required; checked by the endpoint.")
    language: str | None = Field(
        default=None,
        description="Free-form language tag of any length; unknown tags fall back to a default rule family.",
    )
    file_name: str | None = Field(default=None, max_length=1024, description="Optional original file name.")
    enable_heuristic: bool = Field(default=True, description="Run the heuristic metrics and pattern detector.")
    enable_external: bool = Field(default=True, description="Ask the external reviewer when one is configured.")
    persist: bool = Field(default=False, description="If true, store the report and return its id.")


class ReviewResponse(QualityReport):
    """QualityReport plus the stored row id when the report was persisted."""

    review_id: int | None = Field(default=None, description="Id of the stored review, when persist was requested.")

"""Pydantic schemas for the external reasoning detector: LLM output shape and the parsed review."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.review import ISSUE_KIND_VALUES, SEVERITY_VALUES, Issue

OverallAssessment = Literal["excellent", "good", "needs_improvement", "poor"]


class LLMReviewIssue(BaseModel):
    """One issue as returned by the model. Unknown labels are coerced rather than rejected."""

    type: str = Field(default="refactor", description="bug|security|performance|refactor|style")
    severity: str = Field(default="medium", description="high|medium|low")
    line: int = Field(default=1, description="1-based line; anything unusable becomes 1.")
    message: str = Field(..., min_length=1)
    suggestion: str | None = None
    rationale: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> str:
        value = str(v).strip().lower() if v is not None else ""
        return value if value in ISSUE_KIND_VALUES else "refactor"

    @field_validator("severity", mode="before")
    @classmethod
    def coerce_severity(cls, v: Any) -> str:
        value = str(v).strip().lower() if v is not None else ""
        return value if value in SEVERITY_VALUES else "medium"

    @field_validator("line", mode="before")
    @classmethod
    def coerce_line(cls, v: Any) -> int:
        if isinstance(v, bool):
            return 1
        if isinstance(v, int):
            return v if v >= 1 else 1
        if isinstance(v, float) and v.is_integer():
            return int(v) if v >= 1 else 1
        if isinstance(v, str) and v.strip().isdigit():
            return max(1, int(v.strip()))
        return 1


class LLMReviewOutput(BaseModel):
    """Top-level JSON object the model is instructed to produce."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(default="", description="Brief summary of code quality.")
    overall_assessment: OverallAssessment | None = Field(default=None, alias="overallAssessment")
    issues: list[LLMReviewIssue] = Field(default_factory=list)
    suggested_improvements: list[str] = Field(default_factory=list, alias="suggestedImprovements")
    positive_aspects: list[str] = Field(default_factory=list, alias="positiveAspects")

    @field_validator("overall_assessment", mode="before")
    @classmethod
    def coerce_assessment(cls, v: Any) -> str | None:
        if v is None:
            return None
        value = str(v).strip().lower().replace(" ", "_")
        return value if value in ("excellent", "good", "needs_improvement", "poor") else None


class ExternalReview(BaseModel):
    """Parsed contribution of the external reasoning detector to a report."""

    model_config = {"frozen": True}

    issues: list[Issue] = Field(default_factory=list, description="Issues tagged with the [AI] origin marker.")
    summary: str = ""
    assessment: OverallAssessment | None = None
    suggested_improvements: list[str] = Field(default_factory=list)
    positive_aspects: list[str] = Field(default_factory=list)

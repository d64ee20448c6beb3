"""ORM model for persisted code review reports."""

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB

from app.models.base import Base


class Review(Base):
    """
    One stored QualityReport plus the source it was computed from.

    Issues, metrics and patterns are kept as JSONB exactly as the report serialized them.
    """

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(String(1024), nullable=True)
    language = Column(String(32), nullable=False, index=True)
    code = Column(Text, nullable=False)
    overall_score = Column(Integer, nullable=False, index=True)
    readability = Column(Integer, nullable=False)
    maintainability = Column(Integer, nullable=False)
    security = Column(Integer, nullable=False)
    performance = Column(Integer, nullable=False)
    bug_risk_estimate = Column(Float, nullable=False)
    total_issues = Column(Integer, nullable=False)
    high_severity = Column(Integer, nullable=False)
    medium_severity = Column(Integer, nullable=False)
    low_severity = Column(Integer, nullable=False)
    lines_of_code = Column(Integer, nullable=False)
    complexity = Column(Float, nullable=False)
    ai_enabled = Column(Boolean, nullable=False, default=False)
    ai_summary = Column(Text, nullable=True)
    issues = Column(JSONB, nullable=False)
    metrics = Column(JSONB, nullable=True)
    patterns = Column(JSONB, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

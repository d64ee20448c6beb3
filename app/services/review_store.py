"""Persist QualityReports. The engine never calls this; only the HTTP layer does."""

import logging

from sqlalchemy.orm import Session

from app.models import Review
from app.schemas.review import QualityReport

logger = logging.getLogger(__name__)


def save_report(
    session: Session,
    report: QualityReport,
    *,
    code: str,
    language: str,
    file_name: str | None = None,
) -> int:
    """Insert one Review row for report and commit. Returns the new row id."""
    row = Review(
        file_name=file_name,
        language=language,
        code=code,
        overall_score=report.overall_score,
        readability=report.readability,
        maintainability=report.maintainability,
        security=report.security,
        performance=report.performance,
        bug_risk_estimate=report.bug_risk_estimate,
        total_issues=report.total_issues,
        high_severity=report.high_severity,
        medium_severity=report.medium_severity,
        low_severity=report.low_severity,
        lines_of_code=report.lines_of_code,
        complexity=report.complexity,
        ai_enabled=report.ai_enabled,
        ai_summary=report.ai_summary,
        issues=[issue.model_dump(mode="json") for issue in report.issues],
        metrics=report.metrics.model_dump(mode="json") if report.metrics is not None else None,
        patterns=[pattern.model_dump(mode="json") for pattern in report.patterns],
    )
    session.add(row)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(row)
    logger.info(
        "Review persisted",
        extra={"review_id": row.id, "language": language, "overall_score": report.overall_score},
    )
    return row.id

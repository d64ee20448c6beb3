"""Fusion: merge detector outputs into one deduplicated QualityReport with the report's own weighting."""

from app.schemas.reasoning import ExternalReview
from app.schemas.review import Issue, QualityReport, SubScores
from app.services.heuristics import ORIGIN_TAG as HEURISTIC_TAG
from app.services.heuristics import HeuristicAnalysis
from app.services.reasoning import ORIGIN_TAG as EXTERNAL_TAG
from app.services.rule_scanner import RuleScanResult

ORIGIN_TAGS: tuple[str, ...] = (HEURISTIC_TAG, EXTERNAL_TAG)

# Report weighting; independent of any detector's internal overall score.
OVERALL_WEIGHTS = {
    "maintainability": 0.30,
    "security": 0.30,
    "readability": 0.20,
    "performance": 0.20,
}


def normalize_message(message: str) -> str:
    """Strip origin tags, trim, and lowercase; two issues with equal results are duplicates."""
    for tag in ORIGIN_TAGS:
        message = message.replace(tag, "")
    return message.strip().lower()


def merge_issues(
    static: list[Issue],
    heuristic: list[Issue],
    external: list[Issue] | None = None,
) -> list[Issue]:
    """Concatenate in detector order and keep the first issue for each normalized message."""
    merged: list[Issue] = []
    seen: set[str] = set()
    for issue in [*static, *heuristic, *(external or [])]:
        key = normalize_message(issue.message)
        if key in seen:
            continue
        seen.add(key)
        merged.append(issue)
    return merged


def weighted_overall(scores: SubScores) -> int:
    total = sum(getattr(scores, name) * weight for name, weight in OVERALL_WEIGHTS.items())
    return int(max(0.0, min(100.0, total)) + 0.5)


def fuse(
    rule_result: RuleScanResult,
    heuristic: HeuristicAnalysis | None = None,
    external: ExternalReview | None = None,
) -> QualityReport:
    """
    Build the report from whichever detectors ran.

    Sub-scores and bug risk come from the heuristic detector when present; otherwise the rule
    scanner's quality score is used for all four dimensions and bug risk is 0.
    """
    issues = merge_issues(
        rule_result.issues,
        heuristic.issues if heuristic is not None else [],
        external.issues if external is not None else None,
    )

    if heuristic is not None:
        scores = heuristic.scores
        bug_risk = heuristic.bug_risk_estimate
    else:
        fallback = int(max(0.0, min(100.0, rule_result.stats.quality_score)) + 0.5)
        scores = SubScores(
            readability=fallback,
            maintainability=fallback,
            security=fallback,
            performance=fallback,
        )
        bug_risk = 0.0

    return QualityReport(
        issues=issues,
        total_issues=len(issues),
        high_severity=sum(1 for i in issues if i.severity == "high"),
        medium_severity=sum(1 for i in issues if i.severity == "medium"),
        low_severity=sum(1 for i in issues if i.severity == "low"),
        readability=scores.readability,
        maintainability=scores.maintainability,
        security=scores.security,
        performance=scores.performance,
        overall_score=weighted_overall(scores),
        bug_risk_estimate=bug_risk,
        metrics=heuristic.metrics if heuristic is not None else None,
        patterns=heuristic.patterns if heuristic is not None else [],
        lines_of_code=rule_result.stats.lines_of_code,
        complexity=rule_result.stats.complexity,
        ai_enabled=external is not None,
        ai_summary=external.summary if external is not None else None,
        ai_assessment=external.assessment if external is not None else None,
        suggested_improvements=external.suggested_improvements if external is not None else [],
        positive_aspects=external.positive_aspects if external is not None else [],
    )

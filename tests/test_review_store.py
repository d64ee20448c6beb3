"""Unit tests for save_report: row mapping, commit, and rollback on failure."""

import asyncio
import unittest
from unittest.mock import MagicMock

from app.models import Review
from app.services.analysis import AnalysisOptions, AnalysisPipeline
from app.services.review_store import save_report

CODE = 'const password = "abc123";\neval(userInput);'


def _report(enable_heuristic: bool = True):
    return asyncio.run(
        AnalysisPipeline().analyze_code(CODE, "javascript", AnalysisOptions(enable_heuristic=enable_heuristic))
    )


def _session_assigning_id(row_id: int) -> MagicMock:
    session = MagicMock()

    def refresh(row: Review) -> None:
        row.id = row_id

    session.refresh.side_effect = refresh
    return session


class TestSaveReport(unittest.TestCase):
    def test_maps_report_to_row(self) -> None:
        report = _report()
        session = _session_assigning_id(7)
        review_id = save_report(session, report, code=CODE, language="javascript", file_name="a.js")

        self.assertEqual(review_id, 7)
        session.add.assert_called_once()
        session.commit.assert_called_once()
        row = session.add.call_args.args[0]
        self.assertIsInstance(row, Review)
        self.assertEqual(row.file_name, "a.js")
        self.assertEqual(row.language, "javascript")
        self.assertEqual(row.code, CODE)
        self.assertEqual(row.overall_score, report.overall_score)
        self.assertEqual(row.total_issues, report.total_issues)
        self.assertEqual(len(row.issues), report.total_issues)
        self.assertEqual(row.issues[0]["message"], report.issues[0].message)
        self.assertEqual(row.metrics["lines_of_code"], report.metrics.lines_of_code)

    def test_metrics_none_without_heuristic(self) -> None:
        session = _session_assigning_id(1)
        save_report(session, _report(enable_heuristic=False), code=CODE, language="javascript")
        row = session.add.call_args.args[0]
        self.assertIsNone(row.metrics)
        self.assertEqual(row.patterns, [])
        self.assertIsNone(row.file_name)

    def test_rolls_back_and_reraises(self) -> None:
        session = MagicMock()
        session.commit.side_effect = RuntimeError("db down")
        with self.assertRaises(RuntimeError):
            save_report(session, _report(), code=CODE, language="javascript")
        session.rollback.assert_called_once()
        session.refresh.assert_not_called()


if __name__ == "__main__":
    unittest.main()

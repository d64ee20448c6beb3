"""Unit tests for app.services.rule_scanner: per-line rules, file-level rule, and stats."""

import time
import unittest

from app.schemas.review import Issue
from app.services.rule_scanner import MAX_FILE_LINES, scan, scan_issues


def _messages(issues: list[Issue]) -> list[str]:
    return [issue.message for issue in issues]


def _find(issues: list[Issue], message: str) -> Issue:
    for issue in issues:
        if issue.message == message:
            return issue
    raise AssertionError(f"{message!r} not in {_messages(issues)}")


class TestLineRules(unittest.TestCase):
    """Each rule maps to a fixed kind and severity on the right line."""

    def test_dynamic_execution_is_high_security(self) -> None:
        issue = _find(scan_issues("let a = 1;\neval(input);", "javascript"), "Dangerous function usage detected")
        self.assertEqual((issue.kind, issue.severity, issue.line), ("security", "high", 2))

    def test_debug_print_is_low_style(self) -> None:
        issue = _find(scan_issues('console.log("hi");', "javascript"), "Debug statement detected")
        self.assertEqual((issue.kind, issue.severity), ("style", "low"))

    def test_debugger_is_high_bug(self) -> None:
        issue = _find(scan_issues("debugger;", "javascript"), "Debugger/breakpoint statement found")
        self.assertEqual((issue.kind, issue.severity), ("bug", "high"))

    def test_todo_marker_is_low_refactor(self) -> None:
        issue = _find(scan_issues("// TODO: handle errors", "typescript"), "TODO/FIXME comment found")
        self.assertEqual((issue.kind, issue.severity), ("refactor", "low"))

    def test_python_uses_hash_comments_and_print(self) -> None:
        messages = _messages(scan_issues('# FIXME later\nprint("x")', "python"))
        self.assertIn("TODO/FIXME comment found", messages)
        self.assertIn("Debug statement detected", messages)

    def test_hardcoded_secret(self) -> None:
        issue = _find(scan_issues('const password = "abc123";', "javascript"), "Potential hardcoded secret detected")
        self.assertEqual((issue.kind, issue.severity), ("security", "high"))

    def test_short_literal_is_not_a_secret(self) -> None:
        messages = _messages(scan_issues('const token = "ab";', "javascript"))
        self.assertNotIn("Potential hardcoded secret detected", messages)

    def test_empty_block_with_whitespace(self) -> None:
        messages = _messages(scan_issues("if (ready) { }", "javascript"))
        self.assertIn("Empty code block detected", messages)

    def test_empty_literal_is_not_flagged(self) -> None:
        messages = _messages(scan_issues("const opts = {};\nuse(opts);", "javascript"))
        self.assertNotIn("Empty code block detected", messages)

    def test_magic_number_outside_index(self) -> None:
        messages = _messages(scan_issues("setTimeout(run, 5000);", "javascript"))
        self.assertIn("Magic number detected", messages)
        messages = _messages(scan_issues("const first = items[42];\nuse(first);", "javascript"))
        self.assertNotIn("Magic number detected", messages)

    def test_loose_equality_only_for_javascript_family(self) -> None:
        issue = _find(scan_issues("if (a == b) run();", "javascript"), "Loose equality (==) used")
        self.assertEqual((issue.kind, issue.severity), ("bug", "medium"))
        self.assertNotIn("Loose equality (==) used", _messages(scan_issues("if a == b:\n    run()", "python")))
        self.assertNotIn("Loose equality (==) used", _messages(scan_issues("if (a === b) run();", "javascript")))

    def test_weak_type(self) -> None:
        issue = _find(scan_issues("function f(x: any) { return x; }", "typescript"), "Weak/any type detected")
        self.assertEqual((issue.kind, issue.severity), ("style", "medium"))

    def test_long_line_uses_language_limit(self) -> None:
        self.assertIn("Line exceeds 120 characters (130)", _messages(scan_issues("a" * 130, "javascript")))
        self.assertIn("Line exceeds 88 characters (90)", _messages(scan_issues("a" * 90, "python")))
        self.assertIn("Line exceeds 100 characters (101)", _messages(scan_issues("a" * 101, "go")))

    def test_consecutive_loops_are_nested(self) -> None:
        code = "for (let i = 0; i < n; i++) {\n  for (let j = 0; j < n; j++) {\n    use(i, j);\n  }\n}"
        issue = _find(scan_issues(code, "javascript"), "Nested loop detected")
        self.assertEqual((issue.kind, issue.severity, issue.line), ("performance", "medium", 2))

    def test_loop_after_closed_block_is_not_nested(self) -> None:
        code = "for (const a of xs) { use(a); }\nfor (const b of ys) { use(b); }"
        self.assertNotIn("Nested loop detected", _messages(scan_issues(code, "javascript")))

    def test_unused_variable(self) -> None:
        issue = _find(scan_issues("const lonely = compute();", "javascript"), "Potentially unused variable")
        self.assertEqual((issue.kind, issue.severity), ("refactor", "low"))
        code = "const used = compute();\nreport(used);"
        self.assertNotIn("Potentially unused variable", _messages(scan_issues(code, "javascript")))

    def test_sql_injection(self) -> None:
        code = "const sql = \"SELECT * FROM users WHERE name = '\" + name + \"'\";"
        issue = _find(scan_issues(code, "javascript"), "Potential SQL injection vulnerability")
        self.assertEqual((issue.kind, issue.severity), ("security", "high"))

    def test_interpolated_query_call(self) -> None:
        code = "db.query(`SELECT * FROM users WHERE id = ${id}`);"
        self.assertIn("Potential SQL injection vulnerability", _messages(scan_issues(code, "javascript")))

    def test_concatenated_execute_call(self) -> None:
        code = 'cursor.execute("SELECT * FROM users WHERE id = " + uid)'
        self.assertIn("Potential SQL injection vulnerability", _messages(scan_issues(code, "python")))

    def test_parameterized_query_is_not_injection(self) -> None:
        code = 'cursor.execute("SELECT * FROM users WHERE id = %s", (uid,))'
        self.assertNotIn("Potential SQL injection vulnerability", _messages(scan_issues(code, "python")))

    def test_html_injection_only_for_javascript_family(self) -> None:
        code = "el.innerHTML = userInput;"
        self.assertIn("Potential XSS vulnerability", _messages(scan_issues(code, "javascript")))
        self.assertNotIn("Potential XSS vulnerability", _messages(scan_issues(code, "java")))

    def test_multiple_rules_on_one_line(self) -> None:
        issues = scan_issues('console.log(eval("x")); // TODO', "javascript")
        messages = _messages(issues)
        self.assertIn("Debug statement detected", messages)
        self.assertIn("Dangerous function usage detected", messages)
        self.assertIn("TODO/FIXME comment found", messages)
        self.assertTrue(all(issue.line == 1 for issue in issues))

    def test_unknown_language_uses_default_rules(self) -> None:
        messages = _messages(scan_issues('console.log("x");', "brainfuck"))
        self.assertIn("Debug statement detected", messages)


class TestFixCode(unittest.TestCase):
    """Rules with a mechanical remedy attach replacement code in the language's own syntax."""

    def _fix(self, code: str, language: str, message: str) -> str | None:
        return _find(scan_issues(code, language), message).fix_code

    def test_debug_print_is_commented_out(self) -> None:
        self.assertEqual(
            self._fix('  console.log("hi");', "javascript", "Debug statement detected"),
            '// console.log("hi");',
        )
        self.assertEqual(self._fix('print("hi")', "python", "Debug statement detected"), '# print("hi")')
        self.assertEqual(
            self._fix('System.out.println("hi");', "java", "Debug statement detected"),
            '// System.out.println("hi"); // Use logger instead',
        )

    def test_debugger_is_removed(self) -> None:
        message = "Debugger/breakpoint statement found"
        self.assertEqual(self._fix("debugger;", "javascript", message), "// Removed debugger statement")
        self.assertEqual(self._fix("breakpoint()", "python", message), "# Removed debugger statement")

    def test_secret_reads_environment(self) -> None:
        message = "Potential hardcoded secret detected"
        self.assertEqual(
            self._fix('const password = "hunter22";', "javascript", message),
            "const secret = process.env.SECRET_KEY;",
        )
        self.assertEqual(
            self._fix('password = "hunter22"', "python", message),
            'secret = os.environ.get("SECRET_KEY")',
        )
        self.assertEqual(self._fix('password := "hunter22"', "go", message), 'secret := os.Getenv("SECRET_KEY")')

    def test_magic_number_becomes_constant(self) -> None:
        message = "Magic number detected"
        self.assertEqual(
            self._fix("setTimeout(run, 5000);", "javascript", message),
            "const CONSTANT_5000 = 5000; // Define at top of file",
        )
        self.assertEqual(
            self._fix("timeout = 3600", "python", message),
            "CONSTANT_3600 = 3600  # Define at module level",
        )
        self.assertEqual(
            self._fix("int timeout = 3600;", "java", message),
            "private static final int CONSTANT_3600 = 3600;",
        )

    def test_loose_equality_becomes_strict(self) -> None:
        message = "Loose equality (==) used"
        self.assertEqual(self._fix("if (a == b) run();", "javascript", message), "if (a === b) run();")
        self.assertEqual(
            self._fix("if (a == b && c === d && e != f) run();", "javascript", message),
            "if (a === b && c === d && e != f) run();",
        )

    def test_rules_without_remedy_leave_it_empty(self) -> None:
        self.assertIsNone(self._fix("eval(input);", "javascript", "Dangerous function usage detected"))


class TestFileLevelRule(unittest.TestCase):
    """Files over the line threshold get one refactor issue on line 1."""

    def test_long_file(self) -> None:
        code = "\n" * MAX_FILE_LINES
        result = scan(code, "javascript")
        issue = _find(result.issues, "File is too long (>300 lines)")
        self.assertEqual((issue.kind, issue.severity, issue.line), ("refactor", "low", 1))
        self.assertEqual(result.stats.lines_of_code, MAX_FILE_LINES + 1)

    def test_file_at_threshold(self) -> None:
        code = "\n" * (MAX_FILE_LINES - 1)
        self.assertEqual(scan_issues(code, "javascript"), [])


class TestStats(unittest.TestCase):
    """Severity counts, quality score formula, and complexity."""

    def test_empty_input(self) -> None:
        result = scan("", "javascript")
        self.assertEqual(result.issues, [])
        self.assertEqual(result.stats.total_issues, 0)
        self.assertEqual(result.stats.quality_score, 100.0)
        self.assertEqual(result.stats.lines_of_code, 1)
        self.assertEqual(result.stats.complexity, 0.0)

    def test_quality_score_penalties(self) -> None:
        result = scan("eval(a)\neval(b)", "javascript")
        self.assertEqual(result.stats.high_severity, 2)
        self.assertEqual(result.stats.quality_score, 70.0)

    def test_large_file_penalty(self) -> None:
        result = scan("\n" * MAX_FILE_LINES, "javascript")
        # one low issue (-2) and more than 300 lines (-5)
        self.assertEqual(result.stats.quality_score, 93.0)

    def test_counts_match_issues(self) -> None:
        code = 'const password = "hunter22";\neval(x);\nif (a == b) { }\nconsole.log(a);'
        result = scan(code, "javascript")
        stats = result.stats
        self.assertEqual(stats.total_issues, len(result.issues))
        self.assertEqual(stats.high_severity + stats.medium_severity + stats.low_severity, stats.total_issues)

    def test_complexity_is_branch_lines_per_function(self) -> None:
        code = "function run(a) {\n  if (a) {\n    go();\n  } else {\n    stop();\n  }\n}"
        result = scan(code, "javascript")
        self.assertEqual(result.stats.complexity, 2.0)

    def test_quality_score_never_negative(self) -> None:
        result = scan("\n".join(["eval(x)"] * 20), "javascript")
        self.assertEqual(result.stats.quality_score, 0.0)


class TestDeterminism(unittest.TestCase):
    """Identical input gives identical issues, ids included."""

    def test_repeatable(self) -> None:
        code = 'const password = "abc123";\neval(input);\n// TODO'
        self.assertEqual(scan(code, "javascript"), scan(code, "javascript"))

    def test_ids_unique(self) -> None:
        issues = scan_issues('console.log(eval("x")); // TODO\nconsole.log(eval("x")); // TODO', "javascript")
        ids = [issue.id for issue in issues]
        self.assertEqual(len(ids), len(set(ids)))

    def test_pathological_input_does_not_raise(self) -> None:
        for code in ("\x00\x01\x02", "{" * 5000, "a" * 100_000, "\r\n" * 50, "\ud800"):
            scan(code, "javascript")


class TestLinearScans(unittest.TestCase):
    """Long single lines built from repeated rule prefixes finish in linear time."""

    TIME_LIMIT_SECONDS = 5.0

    def _assert_fast(self, code: str, language: str) -> None:
        started = time.perf_counter()
        scan(code, language)
        elapsed = time.perf_counter() - started
        self.assertLess(elapsed, self.TIME_LIMIT_SECONDS, f"{code[:20]!r}... took {elapsed:.2f}s")

    def test_repeated_sql_keywords(self) -> None:
        self._assert_fast('"SELECT ' * 37_500, "javascript")
        self._assert_fast("'DELETE +" * 33_000, "python")

    def test_repeated_query_and_execute_calls(self) -> None:
        self._assert_fast('query("' * 40_000, "javascript")
        self._assert_fast('execute("' * 35_000, "python")

    def test_long_cpp_declaration(self) -> None:
        self._assert_fast("int " + "a" * 300_000, "cpp")
        self._assert_fast("int a(" * 50_000, "cpp")

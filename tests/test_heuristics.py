"""Unit tests for app.services.heuristics: metrics, patterns, derived issues, and scores."""

import time
import unittest

from app.services.heuristics import (
    ORIGIN_TAG,
    analyze,
    cyclomatic_complexity,
    max_nesting_depth,
)

CLEAN_JS = """// Add two numbers and return the sum.
function add(a, b) {
  // Both arguments are numbers.
  return a + b;
}"""

FLAT_JS = """function check(a) {
  if (a) {
    return 1;
  }
}"""

NESTED_JS = """function check(a) {
  if (a) {
    if (a) {
      if (a) {
        if (a) {
          if (a) {
            return 1;
          }
        }
      }
    }
  }
}"""


def _pattern_names(code: str, language: str = "javascript") -> list[str]:
    return [p.name for p in analyze(code, language).patterns]


def _messages(code: str, language: str = "javascript") -> list[str]:
    return [i.message for i in analyze(code, language).issues]


class TestMetrics(unittest.TestCase):
    """Line classification, counts, indentation, and nesting."""

    def test_c_like_line_classification(self) -> None:
        code = (
            "// comment\n"
            "/* block\n"
            "   still block */\n"
            "const total = 1;\n"
            "\n"
            "function add(a, b) {\n"
            "  return a + b;\n"
            "}"
        )
        metrics = analyze(code, "javascript").metrics
        self.assertEqual(metrics.lines_of_code, 8)
        self.assertEqual(metrics.blank_lines, 1)
        self.assertEqual(metrics.comment_lines, 3)
        self.assertEqual(metrics.code_lines, 4)
        self.assertEqual(metrics.function_count, 1)
        self.assertEqual(metrics.variable_count, 1)
        self.assertEqual(metrics.nesting_depth, 1)

    def test_python_docstrings_and_hash_comments(self) -> None:
        code = '"""Module doc."""\n# comment\ndef f():\n    """\n    Docstring.\n    """\n    return 1'
        metrics = analyze(code, "python").metrics
        self.assertEqual(metrics.blank_lines, 0)
        self.assertEqual(metrics.comment_lines, 5)
        self.assertEqual(metrics.code_lines, 2)
        self.assertEqual(metrics.function_count, 1)

    def test_each_line_counted_once(self) -> None:
        code = "/*\n\n*/\n// a\nx();"
        metrics = analyze(code, "javascript").metrics
        self.assertEqual(metrics.blank_lines + metrics.comment_lines + metrics.code_lines, metrics.lines_of_code)

    def test_indentation_consistency_levels(self) -> None:
        self.assertEqual(analyze("a\n    b\n        c", "javascript").metrics.indentation_consistency, 1.0)
        self.assertEqual(analyze("a\n  b\n    c", "javascript").metrics.indentation_consistency, 0.9)
        self.assertEqual(analyze("a\n   b", "javascript").metrics.indentation_consistency, 0.7)

    def test_nesting_depth_never_negative(self) -> None:
        self.assertEqual(max_nesting_depth("{{}}{"), 2)
        self.assertEqual(max_nesting_depth("}}}{"), 1)
        self.assertEqual(max_nesting_depth(""), 0)

    def test_comment_ratio_bounds(self) -> None:
        metrics = analyze("// only\n// comments", "javascript").metrics
        self.assertEqual(metrics.comment_ratio, 1.0)
        self.assertEqual(analyze("", "javascript").metrics.comment_ratio, 0.0)

    def test_family_specific_counts(self) -> None:
        go = analyze("package main\nimport \"fmt\"\ntype User struct {}\nfunc main() {\n  x := 1\n}", "go").metrics
        self.assertEqual(go.class_count, 1)
        self.assertEqual(go.function_count, 1)
        self.assertEqual(go.import_count, 1)
        rust = analyze("use std::io;\nstruct Point {}\nfn main() {\n  let mut p = 1;\n}", "rust").metrics
        self.assertEqual(rust.class_count, 1)
        self.assertEqual(rust.function_count, 1)
        self.assertEqual(rust.import_count, 1)
        self.assertEqual(rust.variable_count, 1)


class TestPatterns(unittest.TestCase):
    """Each pattern check fires on its shape and stays quiet otherwise."""

    def test_clean_code_has_no_patterns(self) -> None:
        self.assertEqual(_pattern_names(CLEAN_JS), [])

    def test_god_object(self) -> None:
        methods = "".join(f"  method{i}() {{\n    return {i};\n  }}\n" for i in range(11))
        code = f"class Big {{\n{methods}}}"
        result = analyze(code, "javascript")
        god = [p for p in result.patterns if p.name == "God Object"]
        self.assertEqual(len(god), 1)
        self.assertEqual(god[0].category, "antipattern")
        self.assertAlmostEqual(god[0].confidence, 0.55)

    def test_python_class_methods_by_indentation(self) -> None:
        methods = "".join(f"    def method{i}(self):\n        return {i}\n\n" for i in range(12))
        code = f"class Big:\n{methods}"
        self.assertIn("God Object", _pattern_names(code, "python"))

    def test_long_method(self) -> None:
        code = "def long_one():\n" + "    total = 1\n" * 35
        result = analyze(code, "python")
        long_methods = [p for p in result.patterns if p.name == "Long Method"]
        self.assertEqual(len(long_methods), 1)
        self.assertEqual(long_methods[0].category, "smell")

    def test_deep_nesting(self) -> None:
        result = analyze(NESTED_JS, "javascript")
        deep = [p for p in result.patterns if p.name == "Deep Nesting"]
        self.assertEqual(len(deep), 1)
        self.assertAlmostEqual(deep[0].confidence, 0.8)
        self.assertNotIn("Deep Nesting", _pattern_names(FLAT_JS))

    def test_duplicate_code(self) -> None:
        block = [
            "total = total + values[0] * weight;",
            "count = count + values[1] * weight;",
            "limit = limit + values[2] * weight;",
            "score = score + values[3] * weight;",
            "delta = delta + values[4] * weight;",
        ]
        code = "\n".join(block + block + ["done();"])
        self.assertIn("Duplicate Code", _pattern_names(code))

    def test_callback_chain_only_c_like(self) -> None:
        code = "load().then(a).then(b).then(c).then(d);"
        self.assertIn("Callback Chain", _pattern_names(code, "javascript"))
        self.assertNotIn("Callback Chain", _pattern_names(code, "python"))

    def test_sql_injection(self) -> None:
        code = 'const q = "SELECT * FROM users WHERE id = " + id;'
        self.assertIn("SQL Injection Risk", _pattern_names(code))

    def test_interpolated_query(self) -> None:
        code = "db.query(`SELECT * FROM users WHERE id = ${id}`);"
        self.assertIn("SQL Injection Risk", _pattern_names(code))

    def test_parameterized_query_is_not_injection(self) -> None:
        code = 'db.query("SELECT * FROM users WHERE id = ?", [id]);'
        self.assertNotIn("SQL Injection Risk", _pattern_names(code))

    def test_hardcoded_credentials(self) -> None:
        self.assertIn("Hardcoded Credentials", _pattern_names('password = "abc123"', "python"))
        self.assertIn("Hardcoded Credentials", _pattern_names('headers.auth = "Bearer abc.def";'))

    def test_resource_leak(self) -> None:
        self.assertIn("Potential Resource Leak", _pattern_names('window.addEventListener("resize", onResize);'))
        code = 'window.addEventListener("resize", onResize);\nwindow.removeEventListener("resize", onResize);'
        self.assertNotIn("Potential Resource Leak", _pattern_names(code))
        self.assertNotIn("Potential Resource Leak", _pattern_names("setInterval(tick)", "python"))


class TestDerivedIssues(unittest.TestCase):
    """Pattern projection, complexity, naming, and error-handling issues."""

    def test_pattern_projection(self) -> None:
        issues = analyze('password = "abc123"', "python").issues
        projected = [i for i in issues if "Hardcoded Credentials" in i.message]
        self.assertEqual(len(projected), 1)
        issue = projected[0]
        self.assertEqual((issue.kind, issue.severity, issue.line), ("security", "high", 1))
        self.assertTrue(issue.message.startswith(ORIGIN_TAG))
        self.assertEqual(issue.rationale, "Pattern detected with 95% confidence")

    def test_smell_severity_follows_confidence(self) -> None:
        issues = analyze(NESTED_JS, "javascript").issues
        deep = [i for i in issues if "Deep Nesting" in i.message][0]
        self.assertEqual((deep.kind, deep.severity), ("style", "low"))

    def test_complexity_issue(self) -> None:
        code = "if (a) { run(); }\n" * 11
        self.assertEqual(cyclomatic_complexity(code, "javascript"), 12)
        issue = [i for i in analyze(code, "javascript").issues if "cyclomatic" in i.message][0]
        self.assertEqual(issue.message, f"{ORIGIN_TAG} High cyclomatic complexity (12)")
        self.assertEqual((issue.kind, issue.severity), ("refactor", "medium"))

        code = "if (a) { run(); }\n" * 21
        issue = [i for i in analyze(code, "javascript").issues if "cyclomatic" in i.message][0]
        self.assertEqual(issue.severity, "high")

    def test_decision_points(self) -> None:
        self.assertEqual(cyclomatic_complexity("", "javascript"), 1)
        self.assertEqual(cyclomatic_complexity("x = a ? b : c;", "javascript"), 2)
        self.assertEqual(cyclomatic_complexity("if (a && b || c) {}", "javascript"), 4)
        self.assertEqual(cyclomatic_complexity("if a and b:\n    pass\nelif c:\n    pass", "python"), 4)

    def test_naming_issues_capped(self) -> None:
        code = "\n".join(f"const {letter} = {n};" for n, letter in enumerate("abcdefg"))
        naming = [i for i in analyze(code, "javascript").issues if "Poor naming" in i.message]
        self.assertEqual(len(naming), 5)
        self.assertEqual(naming[0].message, f'{ORIGIN_TAG} Poor naming: "a" - Single letter variable name')

    def test_naming_allowlist_and_short_functions(self) -> None:
        messages = _messages("const i = 0;\nfunction ab() { return i; }")
        self.assertNotIn(f'{ORIGIN_TAG} Poor naming: "i" - Single letter variable name', messages)
        self.assertIn(f'{ORIGIN_TAG} Poor naming: "ab" - Very short function name', messages)

    def test_empty_catch(self) -> None:
        issue = [i for i in analyze("try { run(); } catch (e) {}", "javascript").issues if "catch" in i.message][0]
        self.assertEqual(issue.message, f"{ORIGIN_TAG} Empty catch block swallows errors")
        self.assertEqual((issue.kind, issue.severity), ("bug", "medium"))

    def test_catch_that_only_logs(self) -> None:
        code = "try {\n  run();\n} catch (e) {\n  console.log(e);\n}"
        self.assertIn(f"{ORIGIN_TAG} Catch block only logs error", _messages(code))

    def test_python_handlers(self) -> None:
        code = "try:\n    run()\nexcept ValueError:\n    pass\n"
        self.assertIn(f"{ORIGIN_TAG} Empty catch block swallows errors", _messages(code, "python"))
        code = "try:\n    run()\nexcept Exception as e:\n    logger.warning(e)\n"
        self.assertIn(f"{ORIGIN_TAG} Catch block only logs error", _messages(code, "python"))
        code = "try:\n    run()\nexcept ValueError:\n    raise\n"
        self.assertFalse([m for m in _messages(code, "python") if "atch block" in m])

    def test_issue_ids_unique_and_stable(self) -> None:
        code = "try { run(); } catch (e) {}\ntry { run(); } catch (e) {}"
        first = analyze(code, "javascript").issues
        second = analyze(code, "javascript").issues
        self.assertEqual([i.id for i in first], [i.id for i in second])
        self.assertEqual(len({i.id for i in first}), len(first))


class TestScores(unittest.TestCase):
    """Sub-score formulas and bounds."""

    def test_clean_code_scores_high(self) -> None:
        result = analyze(CLEAN_JS, "javascript")
        self.assertEqual(result.scores.security, 100)
        self.assertEqual(result.scores.performance, 100)
        self.assertGreaterEqual(result.overall_score, 80)

    def test_dangerous_code_security(self) -> None:
        result = analyze('const password = "abc123";\neval(userInput);', "javascript")
        # credentials pattern (0.95 * 30), eval (20), password literal (25)
        self.assertEqual(result.scores.security, 27)

    def test_nesting_lowers_readability(self) -> None:
        flat = analyze(FLAT_JS, "javascript").scores.readability
        nested = analyze(NESTED_JS, "javascript").scores.readability
        self.assertEqual(flat, 88)
        self.assertEqual(nested, 78)

    def test_performance_penalties(self) -> None:
        self.assertEqual(analyze("new RegExp(a);\nnew RegExp(b);", "javascript").scores.performance, 90)
        self.assertEqual(analyze("for (a) {\n  for (b) {}\n}", "javascript").scores.performance, 90)

    def test_json_round_trip_penalty(self) -> None:
        code = "const copy = JSON.parse(JSON.stringify(obj));"
        self.assertEqual(analyze(code, "javascript").scores.performance, 95)
        self.assertEqual(analyze(code + "\n" + code, "javascript").scores.performance, 90)
        # stringify before parse is not a deep copy
        self.assertEqual(analyze("JSON.stringify(JSON.parse(s));", "javascript").scores.performance, 100)

    def test_bug_risk(self) -> None:
        result = analyze(FLAT_JS, "javascript")
        # depth 2 * 5 + (1 - 0) * 10
        self.assertEqual(result.bug_risk_estimate, 20.0)

    def test_bounds_on_pathological_input(self) -> None:
        samples = [
            "",
            "{" * 3000,
            "}" * 3000,
            "a" * 50_000,
            "\x00\x01\x02",
            "?" * 5000 + ":",
            "\n" * 2000,
            "eval(x); exec(y); shell_exec(z); password = 'p';\n" * 200,
        ]
        for code in samples:
            for language in ("javascript", "python", "go", "rust"):
                result = analyze(code, language)
                for value in result.scores.model_dump().values():
                    self.assertIsInstance(value, int)
                    self.assertGreaterEqual(value, 0)
                    self.assertLessEqual(value, 100)
                self.assertGreaterEqual(result.bug_risk_estimate, 0)
                self.assertLessEqual(result.bug_risk_estimate, 100)


class TestLinearScans(unittest.TestCase):
    """Long single lines built from repeated rule prefixes finish in linear time."""

    TIME_LIMIT_SECONDS = 5.0

    def _assert_fast(self, code: str, language: str = "javascript") -> None:
        started = time.perf_counter()
        analyze(code, language)
        elapsed = time.perf_counter() - started
        self.assertLess(elapsed, self.TIME_LIMIT_SECONDS, f"{code[:20]!r}... took {elapsed:.2f}s")

    def test_repeated_sql_keywords(self) -> None:
        self._assert_fast('"SELECT ' * 37_500)

    def test_repeated_json_parse(self) -> None:
        self._assert_fast("JSON.parse " * 27_000)

    def test_repeated_query_calls(self) -> None:
        self._assert_fast("query(" * 50_000)

    def test_repeated_catch_headers(self) -> None:
        self._assert_fast("catch(" * 50_000)
        self._assert_fast("catch(" * 50_000, "java")

    def test_repeated_function_headers(self) -> None:
        self._assert_fast("func (" * 50_000, "go")
        self._assert_fast("const a = (" * 30_000)

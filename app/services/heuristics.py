"""
Heuristic metrics and pattern detector.

Measures structural metrics, detects pattern-level findings (smells, antipatterns, vulnerabilities),
and turns both into four sub-scores plus a bug-risk estimate. Pure and deterministic; every scan is
linear in the input so pathological sources (one huge line, thousands of nested braces) stay cheap.
"""

import re
from collections import Counter
from dataclasses import dataclass

from pydantic import BaseModel, Field

from app.schemas.review import Issue, Metrics, Pattern, SubScores, make_issue_id
from app.services.languages import Language, LanguageFamily, language_family, resolve_language

ORIGIN = "heuristic"
ORIGIN_TAG = "[Heuristic]"

GOD_OBJECT_METHODS = 10
LONG_METHOD_LINES = 30
DEEP_NESTING_DEPTH = 4
DUPLICATE_WINDOW = 5
DUPLICATE_MIN_CHARS = 50
CALLBACK_CHAIN_LIMIT = 3
COMPLEXITY_LIMIT = 10
HIGH_COMPLEXITY_LIMIT = 20
MAX_NAMING_ISSUES = 5
NAMING_ALLOWLIST = frozenset({"i", "j", "k", "x", "y"})

# Overall score weights used for this detector's own reporting.
SCORE_WEIGHTS = {
    "readability": 0.20,
    "maintainability": 0.30,
    "security": 0.30,
    "performance": 0.20,
}

# (pattern, penalty); each applied at most once.
_SECURITY_CHECKS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"\beval\s*\("), 20),
    (re.compile(r"innerHTML\s*="), 15),
    (re.compile(r"dangerouslySetInnerHTML"), 15),
    (re.compile(r"document\.write"), 10),
    (re.compile(r"\bexec\s*\("), 20),
    (re.compile(r"shell_exec", re.IGNORECASE), 25),
)
PASSWORD_LITERAL_PENALTY = 25
_QUOTED_LITERAL = re.compile(r"['\"][^'\"\n]+['\"]")

# (pattern, penalty); applied once per match.
_PERFORMANCE_CHECKS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"for.*for", re.DOTALL), 10),
    (re.compile(r"\.forEach.*\.forEach", re.DOTALL), 10),
    (re.compile(r"new RegExp\("), 5),
)
JSON_ROUND_TRIP_PENALTY = 5

# A quoted statement keyword; concatenation is then looked for in the rest of the line.
_SQL_STATEMENT_START = re.compile(r"[\"'`](?:SELECT|INSERT|UPDATE|DELETE)", re.IGNORECASE)
_QUERY_CALL = re.compile(r"query\s*\(")

_CREDENTIAL_PATTERNS = (
    re.compile(r"(password|secret|api_key|apikey|token|auth_token)\s*[:=]\s*['\"][^'\"]{4,}['\"]", re.IGNORECASE),
    re.compile(r"Bearer\s+[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+"),
)

# (acquire token, release token)
_RESOURCE_PAIRS = (
    ("addEventListener", "removeEventListener"),
    ("setInterval", "clearInterval"),
    ("malloc(", "free("),
    ("calloc(", "free("),
)

_CALLBACK_PATTERN = re.compile(r"\.then\s*\(")

_BRACE_CATCH_EMPTY = re.compile(r"catch\s*(?:\([^()]*\))?\s*\{\s*\}")
_BRACE_CATCH_OPEN = re.compile(r"catch\s*(?:\([^()]*\))?\s*\{\s*(.*)$")
_BRACE_LOG_ONLY = re.compile(
    r"^(?:console\.(?:log|error|warn|info)|System\.(?:out|err)\.print|printf|Console\.Write|fmt\.Print)"
)
_HANDLER_HEADER = re.compile(r"^[ \t]*(?:except\b[^:\n]*:|rescue\b[^\n]*?(?:;|$))[ \t]*(.*)$")
_PY_LOG_ONLY = re.compile(r"^(?:print\s*\(|puts\b|(?:logging|logger|log|Rails\.logger)\.\w+)")


@dataclass(frozen=True)
class _FamilySyntax:
    """Counting and extraction patterns for one language family."""

    functions: re.Pattern[str]
    classes: re.Pattern[str]
    imports: re.Pattern[str]
    variables: re.Pattern[str]
    decision_points: tuple[re.Pattern[str], ...]
    function_header: re.Pattern[str]
    class_header: re.Pattern[str]
    single_letter: re.Pattern[str]
    short_function: re.Pattern[str]
    indented_blocks: bool = False


_C_LIKE_FUNCTIONS = re.compile(
    r"\bfunction\b\s*\*?\s*\w*\s*\("
    r"|\b(?:const|let|var)\s+\w+\s*=\s*(?:async\s*)?(?:\([^()\n]*\)|\w+)\s*=>"
    r"|\b(?:fun|func)\s+\w+"
    r"|^[ \t]*(?:(?:public|private|protected|internal|static|final|abstract|override|async|virtual|export)[ \t]+)*"
    r"(?:[\w:<>\[\]*&,]+[ \t]+)?"
    r"(?!(?:if|for|while|switch|catch|return|else|do|new|throw|sizeof|function)\b)"
    r"\w+[ \t]*\([^)\n]*\)[ \t]*(?:const[ \t]*)?(?:throws[ \t]+[\w., ]+)?\{",
    re.MULTILINE,
)

_FAMILY_SYNTAX: dict[LanguageFamily, _FamilySyntax] = {
    LanguageFamily.C_LIKE: _FamilySyntax(
        functions=_C_LIKE_FUNCTIONS,
        classes=re.compile(r"\bclass\s+\w+"),
        imports=re.compile(r"^[ \t]*(?:import|using|#include)\b|\brequire\s*\(", re.MULTILINE),
        variables=re.compile(
            r"\b(?:const|let|var|val)\s+\w+|\b(?:int|String|string|boolean|bool|double|float|long|char|auto)\s+\w+\s*[=;]"
        ),
        decision_points=(
            re.compile(r"\bif\s*\("),
            re.compile(r"\belse\s+if\b"),
            re.compile(r"\bwhile\s*\("),
            re.compile(r"\bfor\s*\("),
            re.compile(r"\bcase\s+"),
            re.compile(r"\bcatch\s*\("),
            re.compile(r"&&|\|\|"),
        ),
        function_header=_C_LIKE_FUNCTIONS,
        class_header=re.compile(r"\bclass\s+\w+"),
        single_letter=re.compile(r"\b(?:const|let|var)\s+([a-z])\s*="),
        short_function=re.compile(r"\bfunction\s+([a-z]{1,2})\s*\("),
    ),
    LanguageFamily.PYTHON: _FamilySyntax(
        functions=re.compile(r"\bdef\s+\w+"),
        classes=re.compile(r"\bclass\s+\w+"),
        imports=re.compile(r"^[ \t]*(?:import|from)\s+\w+|^[ \t]*require\b", re.MULTILINE),
        variables=re.compile(r"^[ \t]*\w+[ \t]*=(?!=)", re.MULTILINE),
        decision_points=(
            re.compile(r"\b(?:if|elif|unless|while|until|for|except|rescue|case|when)\b"),
            re.compile(r"\b(?:and|or)\b|&&|\|\|"),
        ),
        function_header=re.compile(r"^([ \t]*)(?:async[ \t]+)?def\s+\w+"),
        class_header=re.compile(r"^([ \t]*)class\s+\w+"),
        single_letter=re.compile(r"^[ \t]*([a-z])[ \t]*=(?!=)"),
        short_function=re.compile(r"\bdef\s+([a-z]{1,2})\s*[(\n]"),
        indented_blocks=True,
    ),
    LanguageFamily.GO: _FamilySyntax(
        functions=re.compile(r"\bfunc\b"),
        classes=re.compile(r"\btype\s+\w+\s+struct\b"),
        imports=re.compile(r"\bimport\b"),
        variables=re.compile(r"\bvar\s+\w+|\b\w+\s*:="),
        decision_points=(
            re.compile(r"\b(?:if|for|case)\b"),
            re.compile(r"&&|\|\|"),
        ),
        function_header=re.compile(r"\bfunc\b"),
        class_header=re.compile(r"\btype\s+\w+\s+struct\b"),
        single_letter=re.compile(r"\b(?:var\s+([a-z])\b|([a-z])\s*:=)"),
        short_function=re.compile(r"\bfunc\s+(?:\([^()\n]*\)\s*)?([a-z]{1,2})\s*\("),
    ),
    LanguageFamily.RUST: _FamilySyntax(
        functions=re.compile(r"\bfn\s+\w+"),
        classes=re.compile(r"\bstruct\s+\w+"),
        imports=re.compile(r"^[ \t]*use\s+", re.MULTILINE),
        variables=re.compile(r"\blet\s+(?:mut\s+)?\w+"),
        decision_points=(
            re.compile(r"\b(?:if|while|for)\b"),
            re.compile(r"=>"),
            re.compile(r"&&|\|\|"),
        ),
        function_header=re.compile(r"\bfn\s+\w+"),
        class_header=re.compile(r"\bimpl\b"),
        single_letter=re.compile(r"\blet\s+(?:mut\s+)?([a-z])\s*[=:]"),
        short_function=re.compile(r"\bfn\s+([a-z]{1,2})\s*[(<]"),
    ),
}


class HeuristicAnalysis(BaseModel):
    """Everything the heuristic detector produces for one source unit."""

    model_config = {"frozen": True}

    metrics: Metrics
    patterns: list[Pattern]
    issues: list[Issue]
    scores: SubScores
    overall_score: int = Field(..., ge=0, le=100, description="Detector-internal weighting; not the report score.")
    bug_risk_estimate: float = Field(..., ge=0, le=100)
    cyclomatic_complexity: int = Field(..., ge=1)


def _clamp_score(value: float) -> int:
    """Clamp to [0, 100] and round half up."""
    clamped = max(0.0, min(100.0, value))
    return int(clamped + 0.5)


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip())


# --- metrics ---------------------------------------------------------------


def _classify_lines(lines: list[str], family: LanguageFamily) -> tuple[int, int]:
    """Return (blank, comment) counts; every line lands in exactly one bucket."""
    blank = 0
    comment = 0
    in_block = False
    for line in lines:
        trimmed = line.strip()
        if not trimmed:
            blank += 1
            continue

        if family is LanguageFamily.PYTHON:
            delimiters = trimmed.count('"""') + trimmed.count("'''")
            if in_block:
                comment += 1
                if delimiters % 2 == 1:
                    in_block = False
            elif trimmed.startswith("#"):
                comment += 1
            elif delimiters:
                if delimiters % 2 == 1:
                    in_block = True
                if trimmed.startswith(('"""', "'''")):
                    comment += 1
            continue

        if in_block:
            comment += 1
            if "*/" in trimmed:
                in_block = False
        elif trimmed.startswith("//"):
            comment += 1
        elif trimmed.startswith("/*"):
            comment += 1
            if "*/" not in trimmed[2:]:
                in_block = True
    return blank, comment


def _indentation_consistency(lines: list[str]) -> float:
    indents = [_indent_width(line) for line in lines if line.strip()]
    if not indents:
        return 1.0
    if all(i % 4 == 0 for i in indents):
        return 1.0
    if all(i % 2 == 0 for i in indents):
        return 0.9
    return 0.7


def max_nesting_depth(code: str) -> int:
    """Maximum running depth of brace pairs; depth never goes negative."""
    depth = 0
    deepest = 0
    for char in code:
        if char == "{":
            depth += 1
            if depth > deepest:
                deepest = depth
        elif char == "}" and depth > 0:
            depth -= 1
    return deepest


def _compute_metrics(code: str, lines: list[str], family: LanguageFamily, syntax: _FamilySyntax) -> Metrics:
    blank, comment = _classify_lines(lines, family)
    total = len(lines)
    lengths = [len(line) for line in lines]
    return Metrics(
        lines_of_code=total,
        blank_lines=blank,
        comment_lines=comment,
        code_lines=total - blank - comment,
        avg_line_length=round(sum(lengths) / total, 1) if total else 0.0,
        max_line_length=max(lengths, default=0),
        indentation_consistency=_indentation_consistency(lines),
        nesting_depth=max_nesting_depth(code),
        function_count=len(syntax.functions.findall(code)),
        class_count=len(syntax.classes.findall(code)),
        import_count=len(syntax.imports.findall(code)),
        variable_count=len(syntax.variables.findall(code)),
        comment_ratio=round(comment / total, 2) if total else 0.0,
    )


def _count_ternaries(code: str) -> int:
    """Count `? ... :` pairs on the same line without regex backtracking."""
    count = 0
    for line in code.split("\n"):
        pending = False
        seen_body = False
        for char in line:
            if char == "?" and not pending:
                pending = True
                seen_body = False
            elif char == ":" and pending:
                if seen_body:
                    count += 1
                    pending = False
            elif pending and not char.isspace():
                seen_body = True
    return count


def cyclomatic_complexity(code: str, language: str | Language) -> int:
    """1 plus one per decision point (conditionals, loops, cases, handlers, ternaries, boolean operators)."""
    family = language_family(resolve_language(language))
    syntax = _FAMILY_SYNTAX[family]
    complexity = 1
    for pattern in syntax.decision_points:
        complexity += len(pattern.findall(code))
    if family is not LanguageFamily.PYTHON:
        complexity += _count_ternaries(code)
    return complexity


# --- block extraction ------------------------------------------------------


def _brace_blocks(lines: list[str], header: re.Pattern[str]) -> list[list[str]]:
    """Top-level blocks starting at a header line and ending when their braces balance."""
    blocks: list[list[str]] = []
    current: list[str] = []
    depth = 0
    opened = False
    for line in lines:
        if not current:
            if not header.search(line):
                continue
            depth = 0
            opened = False
        current.append(line)
        opens = line.count("{")
        depth += opens - line.count("}")
        opened = opened or opens > 0
        if opened and depth <= 0:
            blocks.append(current)
            current = []
    return blocks


def _indented_blocks(lines: list[str], header: re.Pattern[str]) -> list[list[str]]:
    """Top-level blocks starting at a header line and running while lines are indented deeper."""
    blocks: list[list[str]] = []
    index = 0
    total = len(lines)
    while index < total:
        match = header.match(lines[index])
        if not match:
            index += 1
            continue
        indent = len(match.group(1))
        end = index + 1
        while end < total and (not lines[end].strip() or _indent_width(lines[end]) > indent):
            end += 1
        stop = end
        while stop > index + 1 and not lines[stop - 1].strip():
            stop -= 1
        blocks.append(lines[index:stop])
        index = end
    return blocks


def _blocks(lines: list[str], syntax: _FamilySyntax, header: re.Pattern[str]) -> list[list[str]]:
    if syntax.indented_blocks:
        return _indented_blocks(lines, header)
    return _brace_blocks(lines, header)


# --- patterns --------------------------------------------------------------


def _duplicate_blocks(lines: list[str]) -> int:
    seen: Counter[str] = Counter()
    duplicates = 0
    for start in range(len(lines) - DUPLICATE_WINDOW):
        window = "".join(
            stripped for stripped in (line.strip() for line in lines[start : start + DUPLICATE_WINDOW]) if stripped
        )
        if len(window) > DUPLICATE_MIN_CHARS:
            if seen[window] > 0:
                duplicates += 1
            seen[window] += 1
    return duplicates


def _has_resource_leak(code: str) -> bool:
    return any(acquire in code and release not in code for acquire, release in _RESOURCE_PAIRS)


def _has_sql_concatenation(code: str) -> bool:
    """A quoted SELECT/INSERT/UPDATE/DELETE followed by '+' on the same line."""
    for line in code.split("\n"):
        match = _SQL_STATEMENT_START.search(line)
        if match and "+" in line[match.end():]:
            return True
    return False


def _has_interpolated_query(code: str) -> bool:
    """query( whose argument text contains ${ before the first closing parenthesis."""
    searched_until = -1
    for match in _QUERY_CALL.finditer(code):
        start = match.end()
        if start <= searched_until:
            continue
        close = code.find(")", start)
        end = close if close >= 0 else len(code)
        if code.find("${", start, end) >= 0:
            return True
        searched_until = end
    return False


def _count_json_round_trips(code: str) -> int:
    """Lines where JSON.parse is later followed by JSON.stringify."""
    count = 0
    for line in code.split("\n"):
        start = line.find("JSON.parse")
        if start >= 0 and line.find("JSON.stringify", start + len("JSON.parse")) >= 0:
            count += 1
    return count


def _detect_patterns(
    code: str,
    lines: list[str],
    family: LanguageFamily,
    syntax: _FamilySyntax,
    nesting_depth: int,
) -> list[Pattern]:
    patterns: list[Pattern] = []

    for block in _blocks(lines, syntax, syntax.class_header):
        methods = len(syntax.functions.findall("\n".join(block)))
        if methods > GOD_OBJECT_METHODS:
            patterns.append(
                Pattern(
                    name="God Object",
                    category="antipattern",
                    confidence=round(min(0.95, 0.5 + (methods - GOD_OBJECT_METHODS) * 0.05), 2),
                    description="Class has too many responsibilities",
                    suggestion="Split into smaller, focused classes following Single Responsibility Principle",
                )
            )

    for block in _blocks(lines, syntax, syntax.function_header):
        length = len(block)
        if length > LONG_METHOD_LINES:
            patterns.append(
                Pattern(
                    name="Long Method",
                    category="smell",
                    confidence=round(min(0.95, 0.6 + (length - LONG_METHOD_LINES) * 0.01), 2),
                    description="Function is too long and complex",
                    suggestion="Extract smaller helper functions",
                )
            )

    if nesting_depth > DEEP_NESTING_DEPTH:
        patterns.append(
            Pattern(
                name="Deep Nesting",
                category="smell",
                confidence=round(min(0.95, 0.6 + (nesting_depth - DEEP_NESTING_DEPTH) * 0.1), 2),
                description=f"Nesting depth of {nesting_depth} is too deep",
                suggestion="Use guard clauses, early returns, or extract methods",
            )
        )

    duplicates = _duplicate_blocks(lines)
    if duplicates > 0:
        patterns.append(
            Pattern(
                name="Duplicate Code",
                category="smell",
                confidence=round(min(0.9, 0.5 + duplicates * 0.1), 2),
                description=f"Found {duplicates} potential duplicate code blocks",
                suggestion="Extract common code into reusable functions",
            )
        )

    if family is LanguageFamily.C_LIKE and len(_CALLBACK_PATTERN.findall(code)) > CALLBACK_CHAIN_LIMIT:
        patterns.append(
            Pattern(
                name="Callback Chain",
                category="antipattern",
                confidence=0.85,
                description="Too many chained callbacks or promises",
                suggestion="Use async/await for better readability",
            )
        )

    if _has_sql_concatenation(code) or _has_interpolated_query(code):
        patterns.append(
            Pattern(
                name="SQL Injection Risk",
                category="vulnerability",
                confidence=0.90,
                description="Code may be vulnerable to SQL injection",
                suggestion="Use parameterized queries or ORM",
            )
        )

    if any(p.search(code) for p in _CREDENTIAL_PATTERNS):
        patterns.append(
            Pattern(
                name="Hardcoded Credentials",
                category="vulnerability",
                confidence=0.95,
                description="Sensitive data hardcoded in source",
                suggestion="Use environment variables or secret management",
            )
        )

    if family is LanguageFamily.C_LIKE and _has_resource_leak(code):
        patterns.append(
            Pattern(
                name="Potential Resource Leak",
                category="vulnerability",
                confidence=0.75,
                description="Resource acquired without a matching release",
                suggestion="Ensure proper cleanup of resources and event listeners",
            )
        )

    return patterns


# --- issues ----------------------------------------------------------------


def _naming_findings(lines: list[str], syntax: _FamilySyntax) -> list[tuple[int, str, str]]:
    findings: list[tuple[int, str, str]] = []
    for index, line in enumerate(lines):
        match = syntax.single_letter.search(line)
        if match:
            name = next(group for group in match.groups() if group)
            if name not in NAMING_ALLOWLIST:
                findings.append((index + 1, name, "Single letter variable name"))
        match = syntax.short_function.search(line)
        if match:
            findings.append((index + 1, match.group(1), "Very short function name"))
        if len(findings) >= MAX_NAMING_ISSUES:
            break
    return findings[:MAX_NAMING_ISSUES]


def _next_statement(lines: list[str], index: int) -> str:
    """First non-blank stripped line after index, or ''."""
    for line in lines[index + 1 :]:
        stripped = line.strip()
        if stripped:
            return stripped
    return ""


_EMPTY_HANDLER = ("Empty catch block swallows errors", "Log the error or handle it appropriately")
_LOG_ONLY_HANDLER = ("Catch block only logs error", "Consider proper error handling or re-throwing")


def _error_handling_findings(lines: list[str], family: LanguageFamily) -> list[tuple[int, str, str]]:
    findings: list[tuple[int, str, str]] = []
    for index, line in enumerate(lines):
        if family is LanguageFamily.PYTHON:
            match = _HANDLER_HEADER.match(line)
            if not match:
                continue
            body = match.group(1).strip() or _next_statement(lines, index)
            if body in ("pass", "...", "end") or body.startswith("pass "):
                findings.append((index + 1, *_EMPTY_HANDLER))
            elif _PY_LOG_ONLY.match(body):
                findings.append((index + 1, *_LOG_ONLY_HANDLER))
            continue

        if _BRACE_CATCH_EMPTY.search(line):
            findings.append((index + 1, *_EMPTY_HANDLER))
            continue
        match = _BRACE_CATCH_OPEN.search(line)
        if not match:
            continue
        body = match.group(1).strip() or _next_statement(lines, index)
        if body.startswith("}"):
            findings.append((index + 1, *_EMPTY_HANDLER))
        elif _BRACE_LOG_ONLY.match(body):
            findings.append((index + 1, *_LOG_ONLY_HANDLER))
    return findings


def _pattern_issue_kind(pattern: Pattern) -> str:
    if pattern.category == "vulnerability":
        return "security"
    if pattern.category == "antipattern":
        return "refactor"
    return "style"


def _pattern_issue_severity(pattern: Pattern) -> str:
    if pattern.category == "vulnerability":
        return "high"
    return "medium" if pattern.confidence > 0.8 else "low"


def _build_issues(
    lines: list[str],
    family: LanguageFamily,
    syntax: _FamilySyntax,
    patterns: list[Pattern],
    complexity: int,
) -> list[Issue]:
    issues: list[Issue] = []

    def add(kind: str, severity: str, line: int, message: str, suggestion: str, rationale: str) -> None:
        tagged = f"{ORIGIN_TAG} {message}"
        issues.append(
            Issue(
                id=make_issue_id(ORIGIN, len(issues), line, kind, tagged),
                kind=kind,
                severity=severity,
                line=line,
                message=tagged,
                suggestion=suggestion,
                rationale=rationale,
            )
        )

    for pattern in patterns:
        add(
            _pattern_issue_kind(pattern),
            _pattern_issue_severity(pattern),
            1,
            f"{pattern.name}: {pattern.description}",
            pattern.suggestion,
            f"Pattern detected with {round(pattern.confidence * 100)}% confidence",
        )

    if complexity > COMPLEXITY_LIMIT:
        add(
            "refactor",
            "high" if complexity > HIGH_COMPLEXITY_LIMIT else "medium",
            1,
            f"High cyclomatic complexity ({complexity})",
            "Consider breaking down complex logic into smaller functions",
            "High complexity makes code harder to test and maintain",
        )

    for line, name, problem in _naming_findings(lines, syntax):
        add(
            "style",
            "low",
            line,
            f'Poor naming: "{name}" - {problem}',
            "Use descriptive, meaningful names",
            "Good naming improves code readability",
        )

    for line, message, suggestion in _error_handling_findings(lines, family):
        add("bug", "medium", line, message, suggestion, "Proper error handling prevents crashes")

    return issues


# --- scoring ---------------------------------------------------------------


def readability_score(metrics: Metrics) -> int:
    score = 100.0
    if metrics.avg_line_length > 80:
        score -= 10
    if metrics.max_line_length > 120:
        score -= 5
    if metrics.comment_ratio < 0.1:
        score -= 15
    elif metrics.comment_ratio < 0.2:
        score -= 5
    score -= (1 - metrics.indentation_consistency) * 20
    if metrics.nesting_depth > DEEP_NESTING_DEPTH:
        score -= (metrics.nesting_depth - DEEP_NESTING_DEPTH) * 5
    if metrics.code_lines / max(1, metrics.function_count) < 30:
        score += 5
    return _clamp_score(score)


def maintainability_score(metrics: Metrics, patterns: list[Pattern]) -> int:
    score = 100.0
    for pattern in patterns:
        if pattern.category == "smell":
            score -= pattern.confidence * 15
        elif pattern.category == "antipattern":
            score -= pattern.confidence * 20
    if metrics.lines_of_code > 500:
        score -= 15
    elif metrics.lines_of_code > 300:
        score -= 10
    if metrics.function_count > 0 and metrics.comment_ratio > 0.15:
        score += 5
    return _clamp_score(score)


def _has_password_literal(code: str) -> bool:
    """A line mentioning password, then '=', then a non-empty quoted literal."""
    for line in code.lower().split("\n"):
        start = line.find("password")
        if start < 0:
            continue
        equals = line.find("=", start + len("password"))
        if equals >= 0 and _QUOTED_LITERAL.search(line, equals + 1):
            return True
    return False


def security_score(code: str, patterns: list[Pattern]) -> int:
    score = 100.0
    for pattern in patterns:
        if pattern.category == "vulnerability":
            score -= pattern.confidence * 30
    for check, penalty in _SECURITY_CHECKS:
        if check.search(code):
            score -= penalty
    if _has_password_literal(code):
        score -= PASSWORD_LITERAL_PENALTY
    return _clamp_score(score)


def performance_score(code: str) -> int:
    score = 100.0
    for check, penalty in _PERFORMANCE_CHECKS:
        score -= penalty * len(check.findall(code))
    score -= JSON_ROUND_TRIP_PENALTY * _count_json_round_trips(code)
    return _clamp_score(score)


def bug_risk(metrics: Metrics, patterns: list[Pattern]) -> float:
    risk = metrics.nesting_depth * 5 + (1 - metrics.comment_ratio) * 10
    for pattern in patterns:
        if pattern.category == "antipattern":
            risk += pattern.confidence * 15
        elif pattern.category == "smell":
            risk += pattern.confidence * 10
        elif pattern.category == "vulnerability":
            risk += pattern.confidence * 20
    if metrics.lines_of_code > 300:
        risk += 10
    if metrics.lines_of_code > 500:
        risk += 10
    return round(max(0.0, min(100.0, risk)), 1)


def analyze(code: str, language: str | Language) -> HeuristicAnalysis:
    """Metrics, patterns, issues and scores for one source unit. Never raises for string input."""
    family = language_family(resolve_language(language))
    syntax = _FAMILY_SYNTAX[family]
    lines = code.split("\n")

    metrics = _compute_metrics(code, lines, family, syntax)
    patterns = _detect_patterns(code, lines, family, syntax, metrics.nesting_depth)
    complexity = cyclomatic_complexity(code, language)
    issues = _build_issues(lines, family, syntax, patterns, complexity)

    scores = SubScores(
        readability=readability_score(metrics),
        maintainability=maintainability_score(metrics, patterns),
        security=security_score(code, patterns),
        performance=performance_score(code),
    )
    overall = _clamp_score(sum(getattr(scores, name) * weight for name, weight in SCORE_WEIGHTS.items()))

    return HeuristicAnalysis(
        metrics=metrics,
        patterns=patterns,
        issues=issues,
        scores=scores,
        overall_score=overall,
        bug_risk_estimate=bug_risk(metrics, patterns),
        cyclomatic_complexity=complexity,
    )

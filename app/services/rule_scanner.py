"""Rule-based detector: single pass over source lines against per-language textual rules.

Pure and deterministic; never raises for any string input. Issues are not deduplicated here
(fusion does that), and several rules may fire on the same line.
"""

import re
from collections import Counter
from dataclasses import dataclass

from pydantic import BaseModel, Field

from app.schemas.review import Issue, make_issue_id
from app.services.languages import Language, resolve_language

ORIGIN = "rules"

# File-level threshold: more lines than this yields one refactor issue on line 1.
MAX_FILE_LINES = 300

# Quality score penalties per severity and for complexity / size.
HIGH_SEVERITY_PENALTY = 15
MEDIUM_SEVERITY_PENALTY = 8
LOW_SEVERITY_PENALTY = 2

_BRANCH_PATTERN = re.compile(r"\b(if|else|switch|case|catch|\?|&&|\|\|)\b")
_WORD_PATTERN = re.compile(r"\w+")
_ARRAY_INDEX_PATTERN = re.compile(r"\[\d+\]")
_JS_VAR_PATTERN = re.compile(r"(?:const|let|var)\s+(\w+)\s*=")
_BARE_ASSIGNMENT_PATTERN = re.compile(r"^(\w+)\s*=\s*[^=]")
_LOOSE_EQUALITY_PATTERN = re.compile(r"[^!=]==[^=]")

# Quoted statement keyword, or a query()/execute() call opening a string literal; what follows
# on the line is then checked for concatenation or interpolation.
_SQL_STATEMENT_START = re.compile(r"[\"'`](?:SELECT|INSERT|UPDATE|DELETE)", re.IGNORECASE)
_SQL_QUERY_CALL = re.compile(r"query\s*\(\s*[\"'`]", re.IGNORECASE)
_SQL_EXECUTE_CALL = re.compile(r"execute\s*\(\s*[\"'`]", re.IGNORECASE)
_QUOTE_CHARS = "\"'`"

_XSS_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"innerHTML\s*=",
        r"dangerouslySetInnerHTML",
        r"document\.write\s*\(",
        r"\.html\s*\(\s*\$?\w+\s*\)",
    )
)

_WEB_LANGUAGES = frozenset({Language.JAVASCRIPT, Language.TYPESCRIPT})

_TODO_SLASH = r"(//|/\*)\s*(TODO|FIXME|HACK|XXX)"
_TODO_HASH = r"#\s*(TODO|FIXME|HACK|XXX)"
_MAGIC_NUMBER = r"(?<![a-zA-Z0-9_.])\b(?!0\b|1\b|2\b|100\b|1000\b)(\d{2,})\b"
_SECRET_NAMES = r"(password|secret|api_key|apikey|token|auth)"


_HASH_COMMENT_LANGUAGES = frozenset({Language.PYTHON, Language.RUBY})
_LOGGER_LANGUAGES = frozenset({Language.JAVA, Language.CPP, Language.CSHARP})
_LOOSE_EQUALITY_OPERATOR = re.compile(r"(?<![!=])==(?!=)")

_SECRET_FIXES: dict[Language, str] = {
    Language.JAVASCRIPT: "const secret = process.env.SECRET_KEY;",
    Language.TYPESCRIPT: "const secret = process.env.SECRET_KEY;",
    Language.PYTHON: 'secret = os.environ.get("SECRET_KEY")',
    Language.JAVA: 'String secret = System.getenv("SECRET_KEY");',
    Language.CPP: 'const char* secret = std::getenv("SECRET_KEY");',
    Language.GO: 'secret := os.Getenv("SECRET_KEY")',
    Language.RUST: 'let secret = std::env::var("SECRET_KEY")?;',
    Language.RUBY: 'secret = ENV["SECRET_KEY"]',
    Language.PHP: '$secret = getenv("SECRET_KEY");',
    Language.CSHARP: 'var secret = Environment.GetEnvironmentVariable("SECRET_KEY");',
    Language.SWIFT: 'let secret = ProcessInfo.processInfo.environment["SECRET_KEY"]',
    Language.KOTLIN: 'val secret = System.getenv("SECRET_KEY")',
}

# Formatted with the matched number.
_CONSTANT_FIXES: dict[Language, str] = {
    Language.JAVASCRIPT: "const CONSTANT_{0} = {0}; // Define at top of file",
    Language.TYPESCRIPT: "const CONSTANT_{0} = {0}; // Define at top of file",
    Language.PYTHON: "CONSTANT_{0} = {0}  # Define at module level",
    Language.JAVA: "private static final int CONSTANT_{0} = {0};",
    Language.CPP: "constexpr int CONSTANT_{0} = {0};",
    Language.GO: "const constant{0} = {0}",
    Language.RUST: "const CONSTANT_{0}: i64 = {0};",
    Language.RUBY: "CONSTANT_{0} = {0}",
    Language.PHP: "const CONSTANT_{0} = {0};",
    Language.CSHARP: "private const int CONSTANT_{0} = {0};",
    Language.SWIFT: "let constant{0} = {0}",
    Language.KOTLIN: "const val CONSTANT_{0} = {0}",
}


def _comment_prefix(language: Language) -> str:
    return "# " if language in _HASH_COMMENT_LANGUAGES else "// "


def _debug_print_fix(language: Language, content: str) -> str:
    """The debug line commented out; languages with a standard logger get a pointer to it."""
    fix = _comment_prefix(language) + content.strip()
    if language in _LOGGER_LANGUAGES:
        fix += " // Use logger instead"
    return fix


def _magic_number_fix(language: Language, number: str) -> str:
    return _CONSTANT_FIXES[language].format(number)


@dataclass(frozen=True)
class LanguageRules:
    """Compiled per-language rule table."""

    debug_print: re.Pattern[str]
    debugger: re.Pattern[str]
    dynamic_exec: re.Pattern[str]
    todo_marker: re.Pattern[str]
    hardcoded_secret: re.Pattern[str]
    empty_block: re.Pattern[str]
    magic_number: re.Pattern[str]
    weak_type: re.Pattern[str]
    long_line: int
    function_keyword: re.Pattern[str]
    loop_keyword: re.Pattern[str]


def _rules(
    *,
    debug_print: str,
    debugger: str,
    dynamic_exec: str,
    todo_marker: str = _TODO_SLASH,
    hardcoded_secret: str = _SECRET_NAMES + r"\s*=\s*\"[^\"]{4,}\"",
    empty_block: str = r"\{\s*\}",
    magic_number: str = _MAGIC_NUMBER,
    weak_type: str,
    long_line: int = 120,
    function_keyword: str,
    loop_keyword: str = r"\b(for|while|do)\s*\(",
) -> LanguageRules:
    return LanguageRules(
        debug_print=re.compile(debug_print),
        debugger=re.compile(debugger),
        dynamic_exec=re.compile(dynamic_exec),
        todo_marker=re.compile(todo_marker, re.IGNORECASE),
        hardcoded_secret=re.compile(hardcoded_secret, re.IGNORECASE),
        empty_block=re.compile(empty_block),
        magic_number=re.compile(magic_number),
        weak_type=re.compile(weak_type),
        long_line=long_line,
        function_keyword=re.compile(function_keyword),
        loop_keyword=re.compile(loop_keyword),
    )


_WEB_RULES = _rules(
    debug_print=r"console\.(log|warn|error|info|debug)\s*\(",
    debugger=r"\bdebugger\b",
    dynamic_exec=r"\beval\s*\(",
    hardcoded_secret=_SECRET_NAMES + r"\s*[:=]\s*['\"`][^'\"`]{4,}['\"`]",
    magic_number=_MAGIC_NUMBER + r"(?!\s*[:\]])",
    weak_type=r":\s*any\b",
    function_keyword=r"\b(function|const\s+\w+\s*=|let\s+\w+\s*=|=>\s*\{)",
)

LANGUAGE_RULES: dict[Language, LanguageRules] = {
    Language.JAVASCRIPT: _WEB_RULES,
    Language.TYPESCRIPT: _WEB_RULES,
    Language.PYTHON: _rules(
        debug_print=r"\bprint\s*\(",
        debugger=r"\b(pdb\.set_trace|breakpoint)\s*\(",
        dynamic_exec=r"\b(eval|exec)\s*\(",
        todo_marker=_TODO_HASH,
        hardcoded_secret=_SECRET_NAMES + r"\s*=\s*['\"][^'\"]{4,}['\"]",
        empty_block=r":\s*pass\b",
        weak_type=r":\s*Any\b",
        long_line=88,
        function_keyword=r"\bdef\s+\w+",
        loop_keyword=r"\b(for|while)\s+",
    ),
    Language.JAVA: _rules(
        debug_print=r"System\.out\.print(ln)?\s*\(",
        debugger=r"//\s*DEBUG",
        dynamic_exec=r"\.invoke\s*\(",
        weak_type=r"Object\s+\w+\s*[=;]",
        function_keyword=r"(public|private|protected)\s+(static\s+)?[\w<>\[\]]+\s+\w+\s*\(",
    ),
    Language.CPP: _rules(
        debug_print=r"(std::)?cout\s*<<",
        debugger=r"#ifdef\s+DEBUG",
        dynamic_exec=r"\bsystem\s*\(",
        weak_type=r"void\s*\*",
        function_keyword=r"(?<![\w<>*&])[\w<>*&]+\s+\w+\s*\([^()]*\)\s*\{",
    ),
    Language.GO: _rules(
        debug_print=r"fmt\.Print(ln|f)?\s*\(",
        debugger=r"//\s*DEBUG",
        dynamic_exec=r"reflect\.Value",
        todo_marker=r"//\s*(TODO|FIXME|HACK|XXX)",
        hardcoded_secret=_SECRET_NAMES + r"\s*:?=\s*\"[^\"]{4,}\"",
        weak_type=r"interface\{\}",
        long_line=100,
        function_keyword=r"func\s+(\(\w+\s+\*?\w+\)\s+)?\w+\s*\(",
        loop_keyword=r"\bfor\s+",
    ),
    Language.RUST: _rules(
        debug_print=r"(println|print|eprintln|eprint)!\s*\(",
        debugger=r"dbg!\s*\(",
        dynamic_exec=r"unsafe\s*\{",
        todo_marker=r"//\s*(TODO|FIXME|HACK|XXX)",
        hardcoded_secret=_SECRET_NAMES + r"\s*[:=]\s*\"[^\"]{4,}\"",
        weak_type=r"dyn\s+Any",
        long_line=100,
        function_keyword=r"fn\s+\w+",
        loop_keyword=r"\b(for|while|loop)\s+",
    ),
    Language.RUBY: _rules(
        debug_print=r"\bputs\b|\bprint\b|\bp\b\s+",
        debugger=r"\bbinding\.pry\b|\bbyebug\b",
        dynamic_exec=r"\beval\s*\(",
        todo_marker=_TODO_HASH,
        hardcoded_secret=_SECRET_NAMES + r"\s*=\s*['\"][^'\"]{4,}['\"]",
        empty_block=r"do\s*end",
        weak_type=r"Object",
        long_line=100,
        function_keyword=r"def\s+\w+",
        loop_keyword=r"\b(for|while|until|each)\b",
    ),
    Language.PHP: _rules(
        debug_print=r"\b(echo|print|var_dump|print_r)\s*[(;]",
        debugger=r"\bdd\s*\(|\bdie\s*\(",
        dynamic_exec=r"\beval\s*\(",
        todo_marker=r"(//|#|/\*)\s*(TODO|FIXME|HACK|XXX)",
        hardcoded_secret=r"\$" + _SECRET_NAMES + r"\s*=\s*['\"][^'\"]{4,}['\"]",
        magic_number=r"(?<![a-zA-Z0-9_$])\b(?!0\b|1\b|2\b|100\b|1000\b)(\d{2,})\b",
        weak_type=r"mixed\s+\$",
        function_keyword=r"function\s+\w+",
        loop_keyword=r"\b(for|foreach|while|do)\s*\(",
    ),
    Language.CSHARP: _rules(
        debug_print=r"Console\.Write(Line)?\s*\(",
        debugger=r"Debug\.Write(Line)?\s*\(",
        dynamic_exec=r"Activator\.CreateInstance",
        weak_type=r"\bobject\s+\w+",
        function_keyword=r"(public|private|protected|internal)\s+(static\s+)?[\w<>\[\]]+\s+\w+\s*\(",
        loop_keyword=r"\b(for|foreach|while|do)\s*\(",
    ),
    Language.SWIFT: _rules(
        debug_print=r"print\s*\(",
        debugger=r"debugPrint\s*\(",
        dynamic_exec=r"NSExpression",
        todo_marker=r"//\s*(TODO|FIXME|HACK|XXX)",
        hardcoded_secret=_SECRET_NAMES + r"\s*[:=]\s*\"[^\"]{4,}\"",
        weak_type=r":\s*Any\b",
        function_keyword=r"func\s+\w+",
        loop_keyword=r"\b(for|while|repeat)\s+",
    ),
    Language.KOTLIN: _rules(
        debug_print=r"println\s*\(",
        debugger=r"//\s*DEBUG",
        dynamic_exec=r"\.invoke\s*\(",
        weak_type=r":\s*Any\b",
        function_keyword=r"fun\s+\w+",
        loop_keyword=r"\b(for|while|do)\s+",
    ),
}


class RuleScanStats(BaseModel):
    """Aggregate view of one rule scan, including the scanner's own quality number."""

    model_config = {"frozen": True}

    total_issues: int = Field(..., ge=0)
    high_severity: int = Field(..., ge=0)
    medium_severity: int = Field(..., ge=0)
    low_severity: int = Field(..., ge=0)
    quality_score: float = Field(..., ge=0, le=100)
    complexity: float = Field(..., ge=0, description="Branch lines per function line.")
    lines_of_code: int = Field(..., ge=0)


class RuleScanResult(BaseModel):
    """Issues plus stats from one rule scan."""

    model_config = {"frozen": True}

    issues: list[Issue]
    stats: RuleScanStats


class _IssueSink:
    """Collects issues in emission order and assigns deterministic ids."""

    def __init__(self) -> None:
        self.issues: list[Issue] = []

    def add(
        self,
        kind: str,
        severity: str,
        line: int,
        message: str,
        *,
        suggestion: str | None = None,
        rationale: str | None = None,
        fix_code: str | None = None,
    ) -> None:
        self.issues.append(
            Issue(
                id=make_issue_id(ORIGIN, len(self.issues), line, kind, message),
                kind=kind,
                severity=severity,
                line=line,
                message=message,
                suggestion=suggestion,
                rationale=rationale,
                fix_code=fix_code,
            )
        )


def _is_unused_assignment(line: str, line_counts: Counter[str]) -> bool:
    """True if the line assigns a name that appears on no other line."""
    match = _JS_VAR_PATTERN.search(line) or _BARE_ASSIGNMENT_PATTERN.match(line)
    if not match:
        return False
    name = match.group(1)
    if name.startswith("_"):
        return False
    # line_counts[name] counts lines containing the word, this one included.
    return line_counts[name] <= 1


def _is_sql_injection(line: str) -> bool:
    """String-built SQL: a quoted statement with '+' and another quote after it, or an
    interpolated query() / concatenated execute() argument."""
    statement = _SQL_STATEMENT_START.search(line)
    if statement:
        plus = line.find("+", statement.end())
        if plus >= 0 and any(q in line[plus + 1:] for q in _QUOTE_CHARS):
            return True
    query = _SQL_QUERY_CALL.search(line)
    if query and "${" in line[query.end():]:
        return True
    execute = _SQL_EXECUTE_CALL.search(line)
    return bool(execute and "+" in line[execute.end():])


def _is_html_injection(line: str, language: Language) -> bool:
    if language not in _WEB_LANGUAGES:
        return False
    return any(p.search(line) for p in _XSS_PATTERNS)


def _scan_line(
    sink: _IssueSink,
    rules: LanguageRules,
    language: Language,
    lines: list[str],
    index: int,
    line_counts: Counter[str],
) -> None:
    """Apply every per-line rule, in fixed order, to lines[index]."""
    content = lines[index]
    line = index + 1

    if rules.debug_print.search(content):
        sink.add(
            "style",
            "low",
            line,
            "Debug statement detected",
            suggestion="Remove or use a proper logging framework",
            rationale="Debug statements can clutter output and leak sensitive information in production.",
            fix_code=_debug_print_fix(language, content),
        )

    if rules.debugger.search(content):
        sink.add(
            "bug",
            "high",
            line,
            "Debugger/breakpoint statement found",
            suggestion="Remove debugger statement before deployment",
            rationale="Debugger statements will pause execution in production.",
            fix_code=_comment_prefix(language) + "Removed debugger statement",
        )

    if rules.dynamic_exec.search(content):
        sink.add(
            "security",
            "high",
            line,
            "Dangerous function usage detected",
            suggestion="Avoid eval/exec. Use safer alternatives like JSON.parse or specific parsers.",
            rationale="These functions can execute arbitrary code and pose security risks.",
        )

    if rules.todo_marker.search(content):
        sink.add(
            "refactor",
            "low",
            line,
            "TODO/FIXME comment found",
            rationale="Track technical debt in your issue tracker for better visibility.",
        )

    if rules.hardcoded_secret.search(content):
        sink.add(
            "security",
            "high",
            line,
            "Potential hardcoded secret detected",
            suggestion="Use environment variables or a secrets manager.",
            rationale="Hardcoded credentials can be exposed in version control.",
            fix_code=_SECRET_FIXES[language],
        )

    # "{}" is an intentional empty literal; only blocks holding whitespace are flagged.
    if rules.empty_block.search(content) and "{}" not in content:
        sink.add(
            "style",
            "low",
            line,
            "Empty code block detected",
            rationale="Empty blocks may indicate missing logic or can be removed.",
        )

    magic = rules.magic_number.search(content)
    if magic and not _ARRAY_INDEX_PATTERN.search(content):
        sink.add(
            "refactor",
            "low",
            line,
            "Magic number detected",
            suggestion="Extract magic numbers to named constants for better readability.",
            rationale="Magic numbers make code harder to understand and maintain.",
            fix_code=_magic_number_fix(language, magic.group(1)),
        )

    if language in _WEB_LANGUAGES and _LOOSE_EQUALITY_PATTERN.search(content):
        sink.add(
            "bug",
            "medium",
            line,
            "Loose equality (==) used",
            suggestion="Use strict equality (===) instead.",
            rationale="Loose equality can lead to unexpected type coercion.",
            fix_code=_LOOSE_EQUALITY_OPERATOR.sub("===", content),
        )

    if rules.weak_type.search(content):
        sink.add(
            "style",
            "medium",
            line,
            "Weak/any type detected",
            suggestion="Use a more specific type for better type safety.",
            rationale="Using any/Any bypasses type checking.",
        )

    if len(content) > rules.long_line:
        sink.add(
            "style",
            "low",
            line,
            f"Line exceeds {rules.long_line} characters ({len(content)})",
            suggestion="Break long lines for better readability.",
            rationale="Long lines can be hard to read and may cause horizontal scrolling.",
        )

    if index > 0 and rules.loop_keyword.search(content):
        previous = lines[index - 1]
        if rules.loop_keyword.search(previous) and "}" not in previous:
            sink.add(
                "performance",
                "medium",
                line,
                "Nested loop detected",
                rationale="Nested loops can lead to O(n^2) complexity. Consider optimization.",
            )

    if _is_unused_assignment(content, line_counts):
        sink.add(
            "refactor",
            "low",
            line,
            "Potentially unused variable",
            suggestion="Remove unused variables or use them.",
            rationale="Unused variables clutter code and may indicate incomplete logic.",
        )

    if _is_sql_injection(content):
        sink.add(
            "security",
            "high",
            line,
            "Potential SQL injection vulnerability",
            suggestion="Use parameterized queries or an ORM.",
            rationale="String concatenation in SQL queries can lead to injection attacks.",
        )

    if _is_html_injection(content, language):
        sink.add(
            "security",
            "high",
            line,
            "Potential XSS vulnerability",
            suggestion="Sanitize user input before rendering.",
            rationale="Unsanitized input can lead to cross-site scripting attacks.",
        )


def _quality_score(
    issues: list[Issue],
    lines_of_code: int,
    complexity: float,
) -> float:
    """Single 0-100 quality number: severity-weighted issue penalties plus complexity and size."""
    high = sum(1 for i in issues if i.severity == "high")
    medium = sum(1 for i in issues if i.severity == "medium")
    low = sum(1 for i in issues if i.severity == "low")

    score = 100.0
    score -= high * HIGH_SEVERITY_PENALTY
    score -= medium * MEDIUM_SEVERITY_PENALTY
    score -= low * LOW_SEVERITY_PENALTY

    if complexity > 10:
        score -= 10
    elif complexity > 5:
        score -= 5

    if lines_of_code > 500:
        score -= 10
    elif lines_of_code > 300:
        score -= 5

    return round(max(0.0, min(100.0, score)), 1)


def scan(code: str, language: str | Language) -> RuleScanResult:
    """
    Run every rule over code and return issues (in emission order) plus stats.

    Unknown language tags use the default rule table.
    """
    resolved = resolve_language(language)
    rules = LANGUAGE_RULES[resolved]
    lines = code.split("\n")

    line_counts: Counter[str] = Counter()
    for content in lines:
        line_counts.update(set(_WORD_PATTERN.findall(content)))

    sink = _IssueSink()
    function_count = 0
    branch_count = 0
    for index, content in enumerate(lines):
        if rules.function_keyword.search(content):
            function_count += 1
        if _BRANCH_PATTERN.search(content):
            branch_count += 1
        _scan_line(sink, rules, resolved, lines, index, line_counts)

    if len(lines) > MAX_FILE_LINES:
        sink.add(
            "refactor",
            "low",
            1,
            f"File is too long (>{MAX_FILE_LINES} lines)",
            rationale="Large files are harder to maintain. Consider splitting into modules.",
        )

    issues = sink.issues
    complexity = branch_count / function_count if function_count > 0 else float(branch_count)
    stats = RuleScanStats(
        total_issues=len(issues),
        high_severity=sum(1 for i in issues if i.severity == "high"),
        medium_severity=sum(1 for i in issues if i.severity == "medium"),
        low_severity=sum(1 for i in issues if i.severity == "low"),
        quality_score=_quality_score(issues, len(lines), complexity),
        complexity=round(complexity, 1),
        lines_of_code=len(lines),
    )
    return RuleScanResult(issues=issues, stats=stats)


def scan_issues(code: str, language: str | Language) -> list[Issue]:
    """Issues only; see scan()."""
    return scan(code, language).issues

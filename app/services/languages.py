"""Resolve free-form language tags to a closed set of languages and rule families."""

import re
from enum import Enum


class Language(str, Enum):
    """Languages with dedicated rule tables."""

    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    JAVA = "java"
    CPP = "cpp"
    GO = "go"
    RUST = "rust"
    RUBY = "ruby"
    PHP = "php"
    CSHARP = "csharp"
    SWIFT = "swift"
    KOTLIN = "kotlin"


class LanguageFamily(str, Enum):
    """Syntax families sharing comment markers and declaration patterns."""

    C_LIKE = "c_like"
    PYTHON = "python"
    GO = "go"
    RUST = "rust"


DEFAULT_LANGUAGE = Language.JAVASCRIPT

# Common alternate spellings (after lowercasing and whitespace removal).
_LANGUAGE_ALIASES: dict[str, Language] = {
    "js": Language.JAVASCRIPT,
    "jsx": Language.JAVASCRIPT,
    "node": Language.JAVASCRIPT,
    "ts": Language.TYPESCRIPT,
    "tsx": Language.TYPESCRIPT,
    "py": Language.PYTHON,
    "python3": Language.PYTHON,
    "c++": Language.CPP,
    "c": Language.CPP,
    "cc": Language.CPP,
    "golang": Language.GO,
    "rs": Language.RUST,
    "rb": Language.RUBY,
    "c#": Language.CSHARP,
    "cs": Language.CSHARP,
    "kt": Language.KOTLIN,
}

_FAMILIES: dict[Language, LanguageFamily] = {
    Language.PYTHON: LanguageFamily.PYTHON,
    Language.RUBY: LanguageFamily.PYTHON,
    Language.GO: LanguageFamily.GO,
    Language.RUST: LanguageFamily.RUST,
}

_WHITESPACE = re.compile(r"\s+")


def resolve_language(tag: str | None) -> Language:
    """
    Map a language tag to a Language. Case and whitespace are ignored.
    Unknown or missing tags fall back to DEFAULT_LANGUAGE; this never raises.
    """
    if not tag or not isinstance(tag, str):
        return DEFAULT_LANGUAGE
    normalized = _WHITESPACE.sub("", tag).lower()
    try:
        return Language(normalized)
    except ValueError:
        return _LANGUAGE_ALIASES.get(normalized, DEFAULT_LANGUAGE)


def language_family(language: Language) -> LanguageFamily:
    """Return the syntax family for a language; anything not listed is C-like."""
    return _FAMILIES.get(language, LanguageFamily.C_LIKE)

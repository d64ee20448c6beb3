"""
CLI entrypoint for one-off analysis. Prints the QualityReport as JSON, e.g.:

  python -m app.analyze src/index.ts
  cat main.py | python -m app.analyze - --language python --no-heuristic

Exit codes: 0 on success, 1 when the input cannot be read, 2 when it is empty.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from app.core.config import get_settings
from app.services.analysis import AnalysisOptions, build_pipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

_SUFFIX_LANGUAGES = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".c": "cpp",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".h": "cpp",
    ".hpp": "cpp",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".swift": "swift",
    ".kt": "kotlin",
}


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="python -m app.analyze", description="Analyze one source file.")
    parser.add_argument("path", help="File to analyze, or - to read stdin.")
    parser.add_argument("--language", default=None, help="Language tag; guessed from the file suffix when omitted.")
    parser.add_argument("--no-heuristic", action="store_true", help="Skip the heuristic detector.")
    parser.add_argument("--external", action="store_true", help="Ask the external reviewer (needs OLLAMA_ENABLED).")
    return parser.parse_args(argv)


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8", errors="replace")


def main(argv: list[str] | None = None) -> int:
    """Analyze one file and print the report."""
    args = _parse_args(argv)
    settings = get_settings()

    try:
        code = _read_source(args.path)
    except OSError as e:
        logger.error("Cannot read %s: %s", args.path, e)
        return 1
    if not code:
        logger.error("Input is empty: %s", args.path)
        return 2

    language = args.language or _SUFFIX_LANGUAGES.get(Path(args.path).suffix.lower(), settings.DEFAULT_LANGUAGE)
    options = AnalysisOptions(enable_heuristic=not args.no_heuristic, enable_external=args.external)

    pipeline = build_pipeline(settings)
    report = asyncio.run(
        pipeline.analyze_code(code, language, options, deadline=settings.REASONING_DEADLINE_SEC)
    )
    print(report.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Reasoning service: send source code to a local LLM (Ollama) and return a structured review."""

import json
import logging
import time
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from app.schemas.reasoning import ExternalReview, LLMReviewOutput
from app.schemas.review import Issue, make_issue_id
from app.services.cache import CacheStore, make_key

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

ORIGIN = "external"
ORIGIN_TAG = "[AI]"


class ReasoningServiceError(Exception):
    """Raised when the reasoning service cannot complete (Ollama unreachable, timeout, or invalid JSON)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def _build_prompt(code: str, language: str) -> str:
    """Build a single prompt that includes the code and instructs the model to return only JSON."""
    return f"""You are an expert code reviewer. Analyze the following {language} code and provide a comprehensive review.

Code to review:
```{language}
{code}
```

Respond with ONLY a single valid JSON object (no markdown, no code fence, no extra text). The JSON must have exactly this shape:
{{
  "summary": "A brief 1-2 sentence summary of the code quality",
  "overallAssessment": "excellent|good|needs_improvement|poor",
  "issues": [
    {{
      "type": "bug|security|performance|refactor|style",
      "severity": "high|medium|low",
      "line": <line number, or 1 if general>,
      "message": "Description of the issue",
      "suggestion": "How to fix it",
      "rationale": "Why this matters"
    }}
  ],
  "suggestedImprovements": ["Improvement suggestion"],
  "positiveAspects": ["What the code does well"]
}}

Review guidelines:
1. Check for bugs, logic errors, and edge cases.
2. Identify security vulnerabilities (SQL injection, XSS, hardcoded secrets).
3. Find performance issues (inefficient algorithms, resource leaks).
4. Suggest refactoring opportunities (code smells, duplication).
5. Note style issues (naming, formatting, comments).
6. Be specific about line numbers where possible.

Output only the JSON object."""


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence if present."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    lines = text.split("\n")
    if lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines)


def _to_review(output: LLMReviewOutput) -> ExternalReview:
    issues: list[Issue] = []
    for raw in output.issues:
        message = f"{ORIGIN_TAG} {raw.message}"
        issues.append(
            Issue(
                id=make_issue_id(ORIGIN, len(issues), raw.line, raw.type, message),
                kind=raw.type,
                severity=raw.severity,
                line=raw.line,
                message=message,
                suggestion=raw.suggestion,
                rationale=raw.rationale,
            )
        )
    return ExternalReview(
        issues=issues,
        summary=output.summary,
        assessment=output.overall_assessment,
        suggested_improvements=output.suggested_improvements,
        positive_aspects=output.positive_aspects,
    )


async def run_reasoning(code: str, language: str, settings: "Settings") -> ExternalReview:
    """
    Send code to the local LLM (Ollama) and return the parsed review.

    Raises ReasoningServiceError on connection failure, timeout, or invalid JSON.
    """
    base_url = settings.OLLAMA_BASE_URL.rstrip("/")
    url = f"{base_url}/api/generate"
    payload = {
        "model": settings.OLLAMA_MODEL,
        "prompt": _build_prompt(code, language),
        "stream": False,
        "format": "json",
        "options": {
            "temperature": settings.OLLAMA_TEMPERATURE,
            "top_p": settings.OLLAMA_TOP_P,
            "repeat_penalty": settings.OLLAMA_REPEAT_PENALTY,
            "seed": settings.OLLAMA_SEED,
        },
    }
    timeout = httpx.Timeout(settings.OLLAMA_REQUEST_TIMEOUT_SEC)
    failure_extra = {
        "code_length": len(code),
        "language": language,
        "model": settings.OLLAMA_MODEL,
        "status": "error",
    }
    start = time.perf_counter()

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(url, json=payload)
        elapsed = time.perf_counter() - start
    except httpx.ConnectError as e:
        logger.info(
            "LLM review request failed",
            extra={"llm_latency_seconds": time.perf_counter() - start, **failure_extra},
        )
        raise ReasoningServiceError(
            "Ollama is unreachable. Ensure Ollama is running and OLLAMA_BASE_URL is correct.",
            cause=e,
        ) from e
    except httpx.TimeoutException as e:
        logger.info(
            "LLM review request failed",
            extra={"llm_latency_seconds": time.perf_counter() - start, **failure_extra},
        )
        raise ReasoningServiceError(
            "Ollama request timed out. Try increasing OLLAMA_REQUEST_TIMEOUT_SEC or sending less code.",
            cause=e,
        ) from e
    except httpx.HTTPError as e:
        logger.info(
            "LLM review request failed",
            extra={"llm_latency_seconds": time.perf_counter() - start, **failure_extra},
        )
        raise ReasoningServiceError("Ollama request failed.", cause=e) from e

    if response.status_code != 200:
        raise ReasoningServiceError(
            f"Ollama returned status {response.status_code}. Check that the model is pulled (e.g. ollama pull {settings.OLLAMA_MODEL})."
        )

    try:
        body = response.json()
    except ValueError as e:
        raise ReasoningServiceError("Ollama response body is not valid JSON.", cause=e) from e

    log_extra: dict[str, float | int | str | None] = {
        "llm_latency_seconds": elapsed,
        "code_length": len(code),
        "language": language,
        "model": settings.OLLAMA_MODEL,
    }
    eval_duration_ns = body.get("eval_duration") if isinstance(body, dict) else None
    if eval_duration_ns is not None:
        log_extra["eval_duration_nanoseconds"] = eval_duration_ns
    logger.info("LLM review request completed", extra=log_extra)

    raw_response = body.get("response") if isinstance(body, dict) else None
    if raw_response is None:
        raise ReasoningServiceError("Ollama response missing 'response' field.")

    # Response may be a string (the generated text) or already parsed
    if isinstance(raw_response, str):
        try:
            parsed = json.loads(_strip_code_fence(raw_response))
        except json.JSONDecodeError as e:
            raise ReasoningServiceError(
                "Invalid JSON from model. The model must respond with only valid JSON.",
                cause=e,
            ) from e
    else:
        parsed = raw_response

    if not isinstance(parsed, dict):
        raise ReasoningServiceError("Model output is not a JSON object.")

    try:
        output = LLMReviewOutput.model_validate(parsed)
    except ValidationError as e:
        raise ReasoningServiceError(
            "Model output does not match expected schema (summary, issues with type, severity, line, message).",
            cause=e,
        ) from e
    return _to_review(output)


class ReasoningDetector:
    """
    External reasoning detector with content-addressed memoization.

    Looks up (language, code) in its cache first; on a miss calls the model and stores the
    result. Failures are never cached. Concurrent misses for the same key are not coalesced.
    """

    def __init__(self, settings: "Settings", cache: CacheStore) -> None:
        self._settings = settings
        self._cache = cache

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.OLLAMA_ENABLED)

    @property
    def cache(self) -> CacheStore:
        return self._cache

    async def review(self, code: str, language: str, skip_cache: bool = False) -> ExternalReview:
        """Return the model's review of code. Raises ReasoningServiceError when unavailable or on failure."""
        if not self.is_configured:
            raise ReasoningServiceError("Reasoning detector is not configured (set OLLAMA_ENABLED=true).")

        key = make_key(language, code)
        if not skip_cache:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Reasoning cache hit", extra={"cache_key": key[:12], "language": language})
                return cached
        logger.info("Reasoning cache miss", extra={"cache_key": key[:12], "language": language})

        review = await run_reasoning(code, language, self._settings)
        self._cache.set(key, review)
        return review

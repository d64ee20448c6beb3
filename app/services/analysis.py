"""
Analysis pipeline: fan out to the rule scanner, heuristic detector and external reviewer, then fuse.

The two local detectors run in worker threads; the external review runs concurrently on the event
loop. External failures (service errors, an expired deadline, anything unexpected) are logged and
contribute nothing.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from app.schemas.reasoning import ExternalReview
from app.schemas.review import QualityReport
from app.services import heuristics, rule_scanner
from app.services.cache import CacheStore, make_key
from app.services.fusion import fuse
from app.services.heuristics import HeuristicAnalysis
from app.services.reasoning import ReasoningDetector, ReasoningServiceError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

HEURISTIC_CACHE_CONTEXT = "heuristic"


class AnalysisOptions(BaseModel):
    """Per-call detector switches."""

    model_config = {"frozen": True}

    enable_heuristic: bool = Field(default=True, description="Run the heuristic metrics and pattern detector.")
    enable_external: bool = Field(
        default=True,
        description="Ask the external reviewer; ignored when no reviewer is configured.",
    )


class AnalysisPipeline:
    """Owns the detectors and caches for one application instance."""

    def __init__(
        self,
        reasoner: ReasoningDetector | None = None,
        cache: CacheStore | None = None,
    ) -> None:
        self._reasoner = reasoner
        self._cache = cache

    @property
    def reasoner(self) -> ReasoningDetector | None:
        return self._reasoner

    @property
    def cache(self) -> CacheStore | None:
        return self._cache

    @property
    def external_available(self) -> bool:
        return self._reasoner is not None and self._reasoner.is_configured

    def caches(self) -> list[CacheStore]:
        """Every cache this pipeline owns, general cache first."""
        owned: list[CacheStore] = []
        if self._cache is not None:
            owned.append(self._cache)
        if self._reasoner is not None:
            owned.append(self._reasoner.cache)
        return owned

    def start(self) -> None:
        for cache in self.caches():
            cache.start()

    def close(self) -> None:
        for cache in self.caches():
            cache.close()

    def _heuristic(self, code: str, language: str) -> HeuristicAnalysis:
        if self._cache is None:
            return heuristics.analyze(code, language)
        key = make_key(language, code, HEURISTIC_CACHE_CONTEXT)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = heuristics.analyze(code, language)
        self._cache.set(key, result)
        return result

    async def _external(self, code: str, language: str, deadline: float | None) -> ExternalReview | None:
        assert self._reasoner is not None
        try:
            if deadline is None:
                return await self._reasoner.review(code, language)
            return await asyncio.wait_for(self._reasoner.review(code, language), timeout=deadline)
        except ReasoningServiceError as e:
            logger.warning(
                "External review failed; continuing without it",
                extra={"language": language, "error": e.message},
            )
        except asyncio.TimeoutError:
            logger.warning(
                "External review exceeded deadline; continuing without it",
                extra={"language": language, "deadline_seconds": deadline},
            )
        except Exception:
            logger.exception(
                "External review raised unexpectedly; continuing without it",
                extra={"language": language},
            )
        return None

    async def analyze_code(
        self,
        code: str,
        language: str,
        options: AnalysisOptions | None = None,
        deadline: float | None = None,
    ) -> QualityReport:
        """Analyze code and return the fused report. Any string is valid input; this never raises for it."""
        options = options or AnalysisOptions()
        use_external = options.enable_external and self.external_available

        rules_task = asyncio.to_thread(rule_scanner.scan, code, language)
        if options.enable_heuristic:
            heuristic_task = asyncio.to_thread(self._heuristic, code, language)
        else:
            heuristic_task = _none()
        external_task = self._external(code, language, deadline) if use_external else _none()

        rule_result, heuristic_result, external_result = await asyncio.gather(
            rules_task, heuristic_task, external_task
        )
        report = fuse(rule_result, heuristic_result, external_result)
        logger.info(
            "Analysis completed",
            extra={
                "language": language,
                "lines_of_code": report.lines_of_code,
                "total_issues": report.total_issues,
                "overall_score": report.overall_score,
                "ai_enabled": report.ai_enabled,
            },
        )
        return report


async def _none() -> None:
    return None


def build_pipeline(settings: "Settings") -> AnalysisPipeline:
    """Construct both caches and the external reviewer from settings."""
    general_cache = CacheStore(
        settings.GENERAL_CACHE_MAX_ENTRIES,
        settings.GENERAL_CACHE_TTL_SEC,
        sweep_interval_seconds=settings.CACHE_SWEEP_INTERVAL_SEC,
        name="general",
    )
    reasoning_cache = CacheStore(
        settings.REASONING_CACHE_MAX_ENTRIES,
        settings.REASONING_CACHE_TTL_SEC,
        sweep_interval_seconds=settings.CACHE_SWEEP_INTERVAL_SEC,
        name="reasoning",
    )
    return AnalysisPipeline(
        reasoner=ReasoningDetector(settings, reasoning_cache),
        cache=general_cache,
    )

"""Review endpoint: analyze submitted source code and return a fused quality report."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.v1.deps import get_pipeline
from app.core.config import get_settings
from app.core.database import get_db
from app.schemas.review import ReviewRequest, ReviewResponse
from app.services.analysis import AnalysisOptions, AnalysisPipeline
from app.services.languages import resolve_language
from app.services.review_store import save_report

router = APIRouter()


@router.post("", response_model=ReviewResponse)
async def post_review(
    body: ReviewRequest,
    pipeline: Annotated[AnalysisPipeline, Depends(get_pipeline)],
    db: Annotated[Session, Depends(get_db)],
) -> ReviewResponse:
    """
    Analyze code with the rule scanner, the heuristic detector and (when configured) the
    external reviewer, and return one deduplicated report.

    The external reviewer is skipped silently when Ollama is disabled or fails. Set
    persist=true to store the report; the response then carries review_id.
    """
    settings = get_settings()

    if not body.code:
        raise HTTPException(status_code=400, detail="Code is required")
    if len(body.code) > settings.MAX_CODE_LENGTH:
        raise HTTPException(
            status_code=413,
            detail=f"Code exceeds the maximum length of {settings.MAX_CODE_LENGTH} characters.",
        )

    language = body.language or settings.DEFAULT_LANGUAGE
    report = await pipeline.analyze_code(
        body.code,
        language,
        AnalysisOptions(
            enable_heuristic=body.enable_heuristic,
            enable_external=body.enable_external,
        ),
        deadline=settings.REASONING_DEADLINE_SEC,
    )

    review_id: int | None = None
    if body.persist:
        review_id = save_report(
            db,
            report,
            code=body.code,
            language=resolve_language(language).value,
            file_name=body.file_name,
        )

    return ReviewResponse(**report.model_dump(), review_id=review_id)

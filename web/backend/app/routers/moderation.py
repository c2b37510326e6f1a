"""Moderation router -- classify submissions and inspect violation history.

The engine is shared across requests; its history store serialises appends
per user, so concurrent submissions from the same user are all recorded.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query

from loopguard.config import load_config
from loopguard.moderation.engine import ModerationEngine
from loopguard.moderation.evaluation import accuracy
from loopguard.moderation.models import (
    ContentType,
    Language,
    ModerationAction,
    ModerationCategory,
    ModerationRequest,
    ModerationResult,
)
from web.backend.app.models.api import (
    AccuracyRequest,
    AccuracyResponse,
    ExplainRequest,
    ExplainResponse,
    ModerationRequestBody,
    ModerationResultResponse,
    UserHistoryResponse,
    ViolationRecordResponse,
)

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


@lru_cache(maxsize=1)
def get_engine() -> ModerationEngine:
    """Process-wide engine.

    Settings come from the YAML file named by ``LOOPGUARD_CONFIG`` when set.
    """
    return ModerationEngine.from_config(load_config())


def _to_response(result: ModerationResult, rationale: str | None = None) -> ModerationResultResponse:
    return ModerationResultResponse(**result.to_dict(), rationale=rationale)


def _from_response(body: ModerationResultResponse) -> ModerationResult:
    return ModerationResult(
        is_violation=body.is_violation,
        categories=tuple(ModerationCategory(c) for c in body.categories),
        primary_category=ModerationCategory(body.primary_category),
        confidence=body.confidence,
        recommended_action=ModerationAction(body.recommended_action),
        explanation=body.explanation,
        content_type=ContentType(body.content_type),
        language=Language(body.language),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=ModerationResultResponse,
    summary="Moderate a submission",
)
async def moderate(
    body: ModerationRequestBody,
    explain: bool = Query(False, description="Also generate a rationale"),
    engine: ModerationEngine = Depends(get_engine),
):
    """Classify the content, escalate based on the user's history and
    record the violation when there is one.

    Oracle failures degrade to a safe ``allow`` result rather than an error.
    """
    request = ModerationRequest(
        content=body.content,
        content_type=ContentType(body.content_type),
        user_id=body.user_id,
    )
    if explain:
        result, rationale = await engine.moderate_and_explain(request)
        return _to_response(result, rationale)
    return _to_response(await engine.moderate(request))


@router.post(
    "/explain",
    response_model=ExplainResponse,
    summary="Explain a finished moderation decision",
)
async def explain_decision(
    body: ExplainRequest,
    engine: ModerationEngine = Depends(get_engine),
):
    try:
        result = _from_response(body.result)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    rationale = await engine.explain(body.content, result)
    return ExplainResponse(rationale=rationale)


@router.get(
    "/users/{user_id}/history",
    response_model=UserHistoryResponse,
    summary="Get a user's violation history",
)
async def user_history(
    user_id: str,
    engine: ModerationEngine = Depends(get_engine),
):
    """Return every recorded violation (oldest first) and the 30-day count.

    Unknown users get an empty history.
    """
    snapshot, recent = await engine.user_history(user_id)
    return UserHistoryResponse(
        user_id=user_id,
        total=len(snapshot),
        recent_count=recent,
        records=[ViolationRecordResponse(**r.to_dict()) for r in snapshot.records],
    )


@router.post(
    "/accuracy",
    response_model=AccuracyResponse,
    summary="Compute verdict accuracy against ground truth",
)
async def compute_accuracy(body: AccuracyRequest):
    return AccuracyResponse(
        accuracy=accuracy(body.predictions, body.ground_truth),
        sample_count=len(body.predictions),
    )

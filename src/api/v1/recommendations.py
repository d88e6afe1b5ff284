"""Recommendation endpoints for SarkarMitra API v1.

Provides endpoints for:
    * Generating a user's recommendations (rule engine + AI oracle)
    * Refreshing them (full delete-then-regenerate)
    * Reading the stored set, optionally filtered by scheme category
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from src.models.recommendation import RecommendationWithScheme
from src.services.errors import ProfileNotFoundError
from src.services.recommendations import RecommendationService

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RecommendationListResponse(BaseModel):
    """A user's recommendations, best first."""

    user_id: str
    recommendations: list[dict[str, Any]]
    total: int


def _get_service(request: Request) -> RecommendationService:
    service: RecommendationService | None = getattr(request.app.state, "recommendations", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Recommendation service is not available")
    return service


def _to_response(user_id: str, recs: list[RecommendationWithScheme]) -> RecommendationListResponse:
    return RecommendationListResponse(
        user_id=user_id,
        recommendations=[
            {
                "id": r.id,
                "scheme_id": r.scheme_id,
                "scheme_name": r.scheme.name,
                "category": r.scheme.category,
                "score": round(r.score, 4),
                "eligibility_status": r.eligibility_status.value,
                "reasoning": r.reasoning,
                "benefits": r.scheme.benefits,
                "application_url": r.scheme.application_url,
                "generated_at": r.generated_at.isoformat(),
            }
            for r in recs
        ],
        total=len(recs),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/{user_id}/generate", response_model=RecommendationListResponse)
async def generate_recommendations(user_id: str, request: Request) -> RecommendationListResponse:
    """Generate and store a fresh recommendation set for *user_id*."""
    service = _get_service(request)
    try:
        recs = await service.generate_recommendations(user_id)
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _to_response(user_id, recs)


@router.post("/{user_id}/refresh", response_model=RecommendationListResponse)
async def refresh_recommendations(user_id: str, request: Request) -> RecommendationListResponse:
    """Discard stored recommendations for *user_id* and regenerate them."""
    service = _get_service(request)
    try:
        recs = await service.refresh_recommendations(user_id)
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _to_response(user_id, recs)


@router.get("/{user_id}", response_model=RecommendationListResponse)
async def list_recommendations(
    user_id: str,
    request: Request,
    category: str | None = Query(default=None, description="Only schemes in this category"),
) -> RecommendationListResponse:
    """Return the stored recommendations for *user_id*, best first."""
    service = _get_service(request)
    if category:
        recs = await service.get_recommendations_by_category(user_id, category)
    else:
        recs = await service.get_user_recommendations(user_id)
    return _to_response(user_id, recs)

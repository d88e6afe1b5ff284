"""Scheme-related API endpoints for SarkarMitra v1.

Provides endpoints for listing, filtering and browsing the scheme
catalog, and for the rule-based eligibility shortlist of a citizen.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from src.models.scheme import Scheme
from src.services.eligibility import EligibilityFilter
from src.services.scheme_search import SchemeQueryService
from src.services.stores import ProfileStore, SchemeCatalog

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/schemes", tags=["schemes"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SchemeListResponse(BaseModel):
    """List of schemes."""

    schemes: list[dict[str, Any]]
    total: int


class CategoryListResponse(BaseModel):
    categories: list[str]


class EligibleSchemesResponse(BaseModel):
    """Rule-based shortlist for a citizen."""

    user_id: str
    eligible_schemes: list[dict[str, Any]]
    total: int


def _summarise(scheme: Scheme) -> dict[str, Any]:
    return {
        "id": scheme.id,
        "name": scheme.name,
        "category": scheme.category,
        "state": scheme.state,
        "benefits": scheme.benefits[:200] if scheme.benefits else "",
        "max_income": scheme.max_income,
    }


def _get_queries(request: Request) -> SchemeQueryService:
    queries: SchemeQueryService | None = getattr(request.app.state, "scheme_queries", None)
    if queries is None:
        raise HTTPException(status_code=503, detail="Scheme catalog is not available")
    return queries


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=SchemeListResponse)
async def list_schemes(
    request: Request,
    category: str | None = Query(default=None, description="Filter by scheme category"),
    state: str | None = Query(default=None, description="Keep nationwide schemes and this state's"),
    max_income: float | None = Query(default=None, ge=0, description="Income the scheme must allow"),
    search: str | None = Query(default=None, max_length=200, description="Free-text search"),
) -> SchemeListResponse:
    """List schemes with optional filters."""
    schemes = await _get_queries(request).filter_schemes(
        category=category,
        state=state,
        max_income=max_income,
        search=search,
    )
    return SchemeListResponse(schemes=[_summarise(s) for s in schemes], total=len(schemes))


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(request: Request) -> CategoryListResponse:
    return CategoryListResponse(categories=await _get_queries(request).get_categories())


@router.get("/popular", response_model=SchemeListResponse)
async def popular_schemes(
    request: Request,
    limit: int = Query(default=10, ge=1, le=50),
) -> SchemeListResponse:
    schemes = await _get_queries(request).get_popular(limit)
    return SchemeListResponse(schemes=[_summarise(s) for s in schemes], total=len(schemes))


@router.get("/eligible/{user_id}", response_model=EligibleSchemesResponse)
async def eligible_schemes(user_id: str, request: Request) -> EligibleSchemesResponse:
    """Rule-based eligibility shortlist for *user_id*, with reasons."""
    profiles: ProfileStore | None = getattr(request.app.state, "profiles", None)
    eligibility_filter: EligibilityFilter | None = getattr(request.app.state, "eligibility_filter", None)
    if profiles is None or eligibility_filter is None:
        raise HTTPException(status_code=503, detail="Eligibility service is not available")

    profile = await profiles.get(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Profile '{user_id}' not found")

    shortlisted = await eligibility_filter.filter_eligible(profile)
    return EligibleSchemesResponse(
        user_id=user_id,
        eligible_schemes=[
            {
                **_summarise(s.scheme),
                "eligible": s.eligibility.eligible,
                "score": round(s.eligibility.score, 4),
                "reasons": s.eligibility.reasons,
                "missing_criteria": s.eligibility.missing_criteria,
            }
            for s in shortlisted
        ],
        total=len(shortlisted),
    )


@router.get("/{scheme_id}", response_model=Scheme)
async def get_scheme(scheme_id: str, request: Request) -> Scheme:
    catalog: SchemeCatalog | None = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(status_code=503, detail="Scheme catalog is not available")
    scheme = await catalog.get_by_id(scheme_id)
    if scheme is None:
        raise HTTPException(status_code=404, detail=f"Scheme '{scheme_id}' not found")
    return scheme

"""Citizen profile endpoints for SarkarMitra API v1.

Thin CRUD over the profile store so recommendations have something to
read.  Profiles are replaced whole on every PUT.
"""

from __future__ import annotations

from datetime import date

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from src.models.user_profile import CitizenProfile
from src.services.stores import InMemoryProfileStore

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SaveProfileRequest(BaseModel):
    """Request body for creating or replacing a citizen profile."""

    full_name: str | None = Field(default=None, min_length=2)
    date_of_birth: date | None = None
    gender: str | None = None
    category: str | None = None
    occupation: str | None = None
    education: str | None = None
    state: str = Field(min_length=1)
    district: str | None = None
    pincode: str | None = None
    annual_income: float | None = Field(default=None, ge=0)
    family_size: int | None = Field(default=None, ge=1)
    has_disability: bool = False
    disability_type: str | None = None


def _get_store(request: Request) -> InMemoryProfileStore:
    store: InMemoryProfileStore | None = getattr(request.app.state, "profiles", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Profile store is not available")
    return store


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.put("/{user_id}", response_model=CitizenProfile)
async def save_profile(user_id: str, body: SaveProfileRequest, request: Request) -> CitizenProfile:
    """Create or replace the profile of *user_id*."""
    store = _get_store(request)
    profile = await store.save(CitizenProfile(user_id=user_id, **body.model_dump()))
    logger.info("profile.saved", user_id=user_id)
    return profile


@router.get("/{user_id}", response_model=CitizenProfile)
async def get_profile(user_id: str, request: Request) -> CitizenProfile:
    store = _get_store(request)
    profile = await store.get(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Profile '{user_id}' not found")
    return profile

"""Eligibility and recommendation models.

``EligibilityResult``, ``ScoredScheme``, ``AIRecommendation`` and
``CombinedRecommendation`` live only for the duration of one generation.
``Recommendation`` is the persisted row; a user's rows are always replaced
as a whole batch, never patched.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from src.models.enums import EligibilityStatus
from src.models.scheme import Scheme


class EligibilityResult(BaseModel):
    """Rule-based verdict for one profile-scheme pair."""

    eligible: bool
    score: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)
    missing_criteria: list[str] = Field(default_factory=list)


class ScoredScheme(BaseModel):
    """A catalog scheme together with its rule-based eligibility."""

    scheme: Scheme
    eligibility: EligibilityResult


class AIRecommendation(BaseModel):
    """One per-scheme judgement returned by the AI scoring oracle."""

    scheme_id: str
    score: float = Field(ge=0.0, le=1.0)
    eligibility_status: EligibilityStatus
    reasoning: str = ""


class CombinedRecommendation(BaseModel):
    """Rule and AI output merged into a single score and status."""

    scheme_id: str
    score: float
    reasoning: str
    eligibility_status: EligibilityStatus


class Recommendation(BaseModel):
    """Persisted recommendation row."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str
    scheme_id: str
    score: float
    reasoning: str
    eligibility_status: EligibilityStatus
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class RecommendationWithScheme(Recommendation):
    """A persisted recommendation with its scheme re-attached."""

    scheme: Scheme

    @classmethod
    def attach(cls, record: Recommendation, scheme: Scheme) -> RecommendationWithScheme:
        return cls(**record.model_dump(), scheme=scheme)

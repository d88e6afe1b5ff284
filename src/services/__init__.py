"""SarkarMitra service layer -- eligibility rules, AI scoring, fusion and storage.

The Vertex AI oracle (:mod:`src.services.llm`) is not re-exported here so
that importing the service layer does not pull in the GCP SDK; the
application imports it at startup only when a GCP project is configured.
"""

from __future__ import annotations

from src.services.ai_scorer import AIScorer, SchemeOracle
from src.services.combiner import combine_recommendations
from src.services.eligibility import EligibilityFilter, RuleEvaluator
from src.services.errors import OracleError, ProfileNotFoundError, SarkarMitraError
from src.services.recommendations import RecommendationService
from src.services.scheme_search import SchemeQueryService
from src.services.stores import (
    InMemoryProfileStore,
    InMemoryRecommendationStore,
    InMemorySchemeCatalog,
    ProfileStore,
    RecommendationStore,
    RedisRecommendationStore,
    SchemeCatalog,
)

__all__ = [
    "AIScorer",
    "EligibilityFilter",
    "InMemoryProfileStore",
    "InMemoryRecommendationStore",
    "InMemorySchemeCatalog",
    "OracleError",
    "ProfileNotFoundError",
    "ProfileStore",
    "RecommendationService",
    "RecommendationStore",
    "RedisRecommendationStore",
    "RuleEvaluator",
    "SarkarMitraError",
    "SchemeCatalog",
    "SchemeOracle",
    "SchemeQueryService",
    "combine_recommendations",
]

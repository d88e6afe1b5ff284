from src.models.enums import EligibilityStatus
from src.models.recommendation import (
    AIRecommendation,
    CombinedRecommendation,
    EligibilityResult,
    Recommendation,
    RecommendationWithScheme,
    ScoredScheme,
)
from src.models.scheme import (
    ExtendedCriterion,
    FarmerTypeCriterion,
    HousingCriterion,
    Scheme,
)
from src.models.user_profile import CitizenProfile

__all__ = [
    "AIRecommendation",
    "CitizenProfile",
    "CombinedRecommendation",
    "EligibilityResult",
    "EligibilityStatus",
    "ExtendedCriterion",
    "FarmerTypeCriterion",
    "HousingCriterion",
    "Recommendation",
    "RecommendationWithScheme",
    "ScoredScheme",
    "Scheme",
]

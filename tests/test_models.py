"""Tests for data models: status enum, scheme criteria and recommendation rows."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from src.models.enums import EligibilityStatus
from src.models.recommendation import (
    AIRecommendation,
    EligibilityResult,
    Recommendation,
    RecommendationWithScheme,
)
from src.models.scheme import FarmerTypeCriterion, HousingCriterion, Scheme


# -----------------------------------------------------------------------
# Enum tests
# -----------------------------------------------------------------------


class TestEligibilityStatus:
    def test_values(self) -> None:
        expected = {"eligible", "partially_eligible", "not_eligible"}
        assert {e.value for e in EligibilityStatus} == expected, "EligibilityStatus should have exactly 3 values"

    def test_str_enum_behavior(self) -> None:
        assert str(EligibilityStatus.ELIGIBLE) == "eligible", "StrEnum value should be directly usable as string"
        assert EligibilityStatus("not_eligible") is EligibilityStatus.NOT_ELIGIBLE

    def test_priority_order(self) -> None:
        ordered = sorted(EligibilityStatus, key=lambda s: s.priority, reverse=True)
        assert ordered == [
            EligibilityStatus.ELIGIBLE,
            EligibilityStatus.PARTIALLY_ELIGIBLE,
            EligibilityStatus.NOT_ELIGIBLE,
        ]


# -----------------------------------------------------------------------
# Scheme tests
# -----------------------------------------------------------------------


class TestScheme:
    def test_minimal_scheme(self) -> None:
        scheme = Scheme(id="s1", name="Scheme", category="Health")
        assert scheme.max_income is None
        assert scheme.target_categories == []
        assert scheme.eligibility_criteria == []
        assert scheme.state is None, "Missing state should mean nationwide"

    def test_null_lists_become_empty(self) -> None:
        scheme = Scheme(
            id="s1",
            name="Scheme",
            category="Health",
            target_categories=None,
            target_occupations=None,
            eligibility_criteria=None,
        )
        assert scheme.target_categories == []
        assert scheme.target_occupations == []
        assert scheme.eligibility_criteria == []

    def test_tagged_criteria_from_dicts(self) -> None:
        scheme = Scheme.model_validate({
            "id": "s1",
            "name": "Scheme",
            "category": "Housing",
            "eligibility_criteria": [
                {"kind": "housing", "requirement": "Does not own a pucca house"},
                {"kind": "farmer_type", "farmer_type": "marginal"},
            ],
        })
        housing, farmer = scheme.eligibility_criteria
        assert isinstance(housing, HousingCriterion)
        assert housing.requires_no_owned_house is True
        assert isinstance(farmer, FarmerTypeCriterion)
        assert farmer.farmer_type == "marginal"

    def test_legacy_bag_converted(self) -> None:
        scheme = Scheme(
            id="s1",
            name="Scheme",
            category="Agriculture",
            eligibility_criteria={"farmerType": "small", "housing": "kutcha house"},
        )
        assert scheme.eligibility_criteria == [
            FarmerTypeCriterion(farmer_type="small"),
            HousingCriterion(requirement="kutcha house"),
        ]

    @pytest.mark.parametrize("value", ["", None, False, 0])
    def test_legacy_bag_empty_values_skipped(self, value) -> None:
        scheme = Scheme(
            id="s1", name="Scheme", category="Agriculture", eligibility_criteria={"farmerType": value}
        )
        assert scheme.eligibility_criteria == [], "Falsy legacy values should mean the criterion is unset"

    def test_unknown_legacy_key_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unsupported eligibility criteria: landSize"):
            Scheme(
                id="s1",
                name="Scheme",
                category="Agriculture",
                eligibility_criteria={"farmerType": "small", "landSize": "2 acres"},
            )

    def test_unknown_criterion_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Scheme(
                id="s1",
                name="Scheme",
                category="Agriculture",
                eligibility_criteria=[{"kind": "caste_certificate", "value": "yes"}],
            )

    def test_housing_requirement_match_is_literal(self) -> None:
        assert HousingCriterion(requirement="Must not own any house").requires_no_owned_house
        assert not HousingCriterion(requirement="Must NOT OWN any house").requires_no_owned_house
        assert not HousingCriterion(requirement="owns land").requires_no_owned_house

    def test_frozen(self) -> None:
        scheme = Scheme(id="s1", name="Scheme", category="Health")
        with pytest.raises(ValidationError):
            scheme.name = "Other"  # type: ignore[misc]


# -----------------------------------------------------------------------
# Recommendation tests
# -----------------------------------------------------------------------


class TestRecommendationModels:
    def test_eligibility_score_bounds(self) -> None:
        with pytest.raises(ValidationError):
            EligibilityResult(eligible=True, score=1.2)
        with pytest.raises(ValidationError):
            EligibilityResult(eligible=False, score=-0.1)

    def test_ai_recommendation_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AIRecommendation(scheme_id="s", score=2.0, eligibility_status=EligibilityStatus.ELIGIBLE)

    def test_recommendation_defaults(self) -> None:
        before = datetime.now(UTC)
        rec = Recommendation(
            user_id="u1",
            scheme_id="s1",
            score=0.8,
            reasoning="r",
            eligibility_status=EligibilityStatus.ELIGIBLE,
        )
        other = Recommendation(
            user_id="u1",
            scheme_id="s1",
            score=0.8,
            reasoning="r",
            eligibility_status=EligibilityStatus.ELIGIBLE,
        )
        assert rec.id != other.id, "Each row should get its own id"
        assert rec.generated_at >= before
        assert rec.generated_at.tzinfo is not None

    def test_attach_scheme(self) -> None:
        scheme = Scheme(id="s1", name="Scheme", category="Health")
        rec = Recommendation(
            user_id="u1",
            scheme_id="s1",
            score=0.5,
            reasoning="r",
            eligibility_status=EligibilityStatus.PARTIALLY_ELIGIBLE,
        )
        enriched = RecommendationWithScheme.attach(rec, scheme)
        assert enriched.id == rec.id
        assert enriched.generated_at == rec.generated_at
        assert enriched.scheme == scheme

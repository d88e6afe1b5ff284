"""Tests for the rule-based eligibility engine.

Covers age computation, every applicable check of RuleEvaluator, the
score / threshold contract, and the EligibilityFilter shortlist
(boundary, ordering, catalog reads).  Also runs the evaluator over the
bundled catalog loaded via load_schemes().
"""

from __future__ import annotations

from datetime import date

import pytest

from src.data.seed import load_schemes
from src.models.recommendation import EligibilityResult
from src.models.scheme import FarmerTypeCriterion, HousingCriterion, Scheme
from src.models.user_profile import CitizenProfile
from src.services.eligibility import EligibilityFilter, RuleEvaluator
from src.services.stores import InMemorySchemeCatalog

TODAY = date(2026, 10, 19)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def evaluator() -> RuleEvaluator:
    return RuleEvaluator()


@pytest.fixture
def farmer() -> CitizenProfile:
    """45-year-old OBC farmer from Odisha earning Rs 80,000 a year."""
    return CitizenProfile(
        user_id="farmer-1",
        date_of_birth=date(1981, 5, 10),
        category="OBC",
        occupation="Farmer",
        state="Odisha",
        annual_income=80000.0,
        family_size=5,
    )


@pytest.fixture
def bare_profile() -> CitizenProfile:
    """Profile with only the required fields."""
    return CitizenProfile(user_id="bare-1", state="Bihar")


def _scheme(**kwargs) -> Scheme:
    base = {"id": "s", "name": "Test Scheme", "category": "Test"}
    base.update(kwargs)
    return Scheme(**base)


# ---------------------------------------------------------------------------
# Age computation
# ---------------------------------------------------------------------------


class TestAgeComputation:
    def test_day_before_anniversary_is_one_year_younger(self) -> None:
        profile = CitizenProfile(user_id="u", state="Goa", date_of_birth=date(1996, 10, 20))
        assert profile.age_on(TODAY) == 29

    def test_on_anniversary_counts_full_year(self) -> None:
        profile = CitizenProfile(user_id="u", state="Goa", date_of_birth=date(1996, 10, 19))
        assert profile.age_on(TODAY) == 30

    def test_later_month_not_yet_reached(self) -> None:
        profile = CitizenProfile(user_id="u", state="Goa", date_of_birth=date(2000, 12, 1))
        assert profile.age_on(TODAY) == 25

    def test_missing_date_of_birth(self, bare_profile: CitizenProfile) -> None:
        assert bare_profile.age_on(TODAY) is None


# ---------------------------------------------------------------------------
# RuleEvaluator
# ---------------------------------------------------------------------------


class TestRuleEvaluator:
    def test_scheme_without_constraints_never_eligible(
        self, evaluator: RuleEvaluator, farmer: CitizenProfile
    ) -> None:
        result = evaluator.evaluate(farmer, _scheme(), today=TODAY)
        assert result.score == 0
        assert result.eligible is False
        assert result.reasons == []
        assert result.missing_criteria == []

    def test_income_within_limit(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        result = evaluator.evaluate(farmer, _scheme(max_income=100000), today=TODAY)
        assert result.score == 1.0
        assert result.eligible is True
        assert result.reasons == ["Annual income ₹80,000 is within the limit of ₹100,000"]

    def test_income_at_limit_is_satisfied(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        result = evaluator.evaluate(farmer, _scheme(max_income=80000), today=TODAY)
        assert result.score == 1.0

    def test_missing_income_fails_income_check(
        self, evaluator: RuleEvaluator, bare_profile: CitizenProfile
    ) -> None:
        result = evaluator.evaluate(bare_profile, _scheme(max_income=100000), today=TODAY)
        assert result.score == 0
        assert result.missing_criteria == ["Annual income should be below ₹100,000"]

    def test_age_band_satisfied(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        result = evaluator.evaluate(farmer, _scheme(min_age=18, max_age=60), today=TODAY)
        assert result.eligible is True
        assert result.reasons == ["Age 45 meets the requirement"]

    def test_age_band_only_max(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        result = evaluator.evaluate(farmer, _scheme(max_age=40), today=TODAY)
        assert result.score == 0
        assert result.missing_criteria == ["Age should be between 0 and 40"]

    def test_age_band_only_min(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        result = evaluator.evaluate(farmer, _scheme(min_age=60), today=TODAY)
        assert result.missing_criteria == ["Age should be between 60 and any"]

    def test_missing_date_of_birth_counts_as_unsatisfied(
        self, evaluator: RuleEvaluator, bare_profile: CitizenProfile
    ) -> None:
        result = evaluator.evaluate(bare_profile, _scheme(min_age=18, state="Bihar"), today=TODAY)
        # State satisfied, age applicable but unverifiable -> 1 of 2.
        assert result.score == pytest.approx(0.5)
        assert result.missing_criteria == ["Date of birth required for age verification"]

    def test_category_membership(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        ok = evaluator.evaluate(farmer, _scheme(target_categories=["SC", "OBC"]), today=TODAY)
        assert ok.reasons == ["Category OBC is eligible"]

        miss = evaluator.evaluate(farmer, _scheme(target_categories=["SC", "ST"]), today=TODAY)
        assert miss.missing_criteria == ["Category should be one of: SC, ST"]

    def test_empty_category_list_not_applicable(
        self, evaluator: RuleEvaluator, farmer: CitizenProfile
    ) -> None:
        result = evaluator.evaluate(
            farmer, _scheme(target_categories=[], max_income=100000), today=TODAY
        )
        assert result.score == 1.0
        assert len(result.reasons) == 1

    def test_missing_category_fails(self, evaluator: RuleEvaluator, bare_profile: CitizenProfile) -> None:
        result = evaluator.evaluate(bare_profile, _scheme(target_categories=["General"]), today=TODAY)
        assert result.score == 0

    def test_occupation_membership(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        result = evaluator.evaluate(farmer, _scheme(target_occupations=["Farmer"]), today=TODAY)
        assert result.reasons == ["Occupation Farmer is eligible"]

    def test_missing_occupation_fails(self, evaluator: RuleEvaluator, bare_profile: CitizenProfile) -> None:
        result = evaluator.evaluate(bare_profile, _scheme(target_occupations=["Student"]), today=TODAY)
        assert result.missing_criteria == ["Occupation should be one of: Student"]

    def test_state_is_case_sensitive(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        assert evaluator.evaluate(farmer, _scheme(state="Odisha"), today=TODAY).score == 1.0
        result = evaluator.evaluate(farmer, _scheme(state="odisha"), today=TODAY)
        assert result.score == 0
        assert result.missing_criteria == ["Scheme is only for residents of odisha"]

    def test_nationwide_scheme_skips_state_check(
        self, evaluator: RuleEvaluator, farmer: CitizenProfile
    ) -> None:
        result = evaluator.evaluate(farmer, _scheme(state=None, max_income=100000), today=TODAY)
        assert len(result.reasons) + len(result.missing_criteria) == 1

    def test_farmer_type_criterion(
        self, evaluator: RuleEvaluator, farmer: CitizenProfile, bare_profile: CitizenProfile
    ) -> None:
        scheme = _scheme(eligibility_criteria=[FarmerTypeCriterion(farmer_type="marginal")])
        assert evaluator.evaluate(farmer, scheme, today=TODAY).reasons == [
            "Occupation as farmer meets the requirement"
        ]
        assert evaluator.evaluate(bare_profile, scheme, today=TODAY).missing_criteria == [
            "Must be a farmer"
        ]

    def test_farmer_type_requires_exact_occupation(self, evaluator: RuleEvaluator) -> None:
        profile = CitizenProfile(user_id="u", state="Goa", occupation="farmer")
        scheme = _scheme(eligibility_criteria=[FarmerTypeCriterion(farmer_type="any")])
        assert evaluator.evaluate(profile, scheme, today=TODAY).score == 0

    def test_housing_not_own_is_assumed_satisfied(
        self, evaluator: RuleEvaluator, bare_profile: CitizenProfile
    ) -> None:
        scheme = _scheme(eligibility_criteria=[HousingCriterion(requirement="Does not own a house")])
        result = evaluator.evaluate(bare_profile, scheme, today=TODAY)
        assert result.score == 1.0
        assert result.eligible is True
        assert result.reasons == [
            "Housing eligibility check required (to be verified during application)"
        ]

    def test_other_housing_requirement_not_applicable(
        self, evaluator: RuleEvaluator, bare_profile: CitizenProfile
    ) -> None:
        scheme = _scheme(eligibility_criteria=[HousingCriterion(requirement="kutcha house")])
        result = evaluator.evaluate(bare_profile, scheme, today=TODAY)
        assert result.score == 0
        assert result.eligible is False

    def test_reasons_follow_check_order(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        scheme = _scheme(
            max_income=100000,
            min_age=18,
            target_categories=["OBC"],
            target_occupations=["Farmer"],
            state="Odisha",
        )
        result = evaluator.evaluate(farmer, scheme, today=TODAY)
        assert [r.split()[0] for r in result.reasons] == ["Annual", "Age", "Category", "Occupation", "State"]

    def test_two_of_three_is_below_threshold(
        self, evaluator: RuleEvaluator, farmer: CitizenProfile
    ) -> None:
        scheme = _scheme(max_income=100000, state="Odisha", target_categories=["SC"])
        result = evaluator.evaluate(farmer, scheme, today=TODAY)
        assert result.score == pytest.approx(2 / 3)
        assert result.eligible is False

    def test_three_of_four_is_eligible(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        scheme = _scheme(
            max_income=100000, state="Odisha", target_occupations=["Farmer"], target_categories=["SC"]
        )
        result = evaluator.evaluate(farmer, scheme, today=TODAY)
        assert result.score == pytest.approx(0.75)
        assert result.eligible is True

    @pytest.mark.parametrize(
        "scheme_kwargs",
        [
            {},
            {"max_income": 10},
            {"min_age": 18, "max_age": 30},
            {"target_categories": ["OBC"], "state": "Kerala"},
            {"target_occupations": ["Farmer"], "max_income": 50000, "state": "Odisha"},
            {"eligibility_criteria": {"farmerType": "small", "housing": "does not own"}},
            {"max_income": 100000, "min_age": 60, "target_categories": ["ST"], "state": "Odisha"},
        ],
    )
    def test_score_in_range_and_threshold_consistent(
        self, evaluator: RuleEvaluator, farmer: CitizenProfile, scheme_kwargs: dict
    ) -> None:
        result = evaluator.evaluate(farmer, _scheme(**scheme_kwargs), today=TODAY)
        assert 0.0 <= result.score <= 1.0
        assert result.eligible == (result.score >= 0.7)

    def test_evaluate_is_deterministic(self, evaluator: RuleEvaluator, farmer: CitizenProfile) -> None:
        scheme = _scheme(max_income=100000, min_age=18, target_categories=["SC"])
        assert evaluator.evaluate(farmer, scheme, today=TODAY) == evaluator.evaluate(
            farmer, scheme, today=TODAY
        )


# ---------------------------------------------------------------------------
# EligibilityFilter
# ---------------------------------------------------------------------------


class _FixedScoreEvaluator:
    """Evaluator stub returning a preset score per scheme id."""

    def __init__(self, scores: dict[str, float]) -> None:
        self._scores = scores

    def evaluate(self, profile, scheme, today=None) -> EligibilityResult:
        score = self._scores[scheme.id]
        return EligibilityResult(eligible=score >= 0.7, score=score)


class TestEligibilityFilter:
    async def test_half_match_kept_below_dropped(self, farmer: CitizenProfile) -> None:
        schemes = [_scheme(id="half"), _scheme(id="almost")]
        flt = EligibilityFilter(
            InMemorySchemeCatalog(schemes),
            evaluator=_FixedScoreEvaluator({"half": 0.5, "almost": 0.49}),
        )
        result = await flt.filter_eligible(farmer, today=TODAY)
        assert [s.scheme.id for s in result] == ["half"]

    async def test_sorted_desc_with_stable_ties(self, farmer: CitizenProfile) -> None:
        ids = ["a", "b", "c", "d", "e"]
        scores = {"a": 0.6, "b": 1.0, "c": 0.6, "d": 0.2, "e": 1.0}
        flt = EligibilityFilter(
            InMemorySchemeCatalog([_scheme(id=i) for i in ids]),
            evaluator=_FixedScoreEvaluator(scores),
        )
        result = await flt.filter_eligible(farmer, today=TODAY)
        assert [s.scheme.id for s in result] == ["b", "e", "a", "c"]

    async def test_uses_given_schemes_instead_of_catalog(self, farmer: CitizenProfile) -> None:
        flt = EligibilityFilter(InMemorySchemeCatalog([]))
        result = await flt.filter_eligible(
            farmer, schemes=[_scheme(id="x", state="Odisha")], today=TODAY
        )
        assert [s.scheme.id for s in result] == ["x"]
        assert result[0].eligibility.eligible is True

    async def test_real_rules_on_partial_match(self, farmer: CitizenProfile) -> None:
        # Exactly one of two checks satisfied -> 0.5, kept as partial match.
        scheme = _scheme(id="partial", state="Odisha", target_categories=["SC"])
        flt = EligibilityFilter(InMemorySchemeCatalog([scheme]))
        result = await flt.filter_eligible(farmer, today=TODAY)
        assert len(result) == 1
        assert result[0].eligibility.eligible is False
        assert result[0].eligibility.score == pytest.approx(0.5)


# ---------------------------------------------------------------------------
# Bundled catalog
# ---------------------------------------------------------------------------


class TestBundledCatalog:
    async def test_farmer_matches_farm_schemes(self, farmer: CitizenProfile) -> None:
        catalog = InMemorySchemeCatalog(load_schemes())
        result = await EligibilityFilter(catalog).filter_eligible(farmer, today=TODAY)
        by_id = {s.scheme.id: s.eligibility for s in result}

        assert by_id["pm-kisan"].eligible is True
        assert by_id["pm-kisan"].score == 1.0
        assert by_id["kalia"].eligible is True
        assert "post-matric-sc" not in by_id

    async def test_scores_are_sorted(self, farmer: CitizenProfile) -> None:
        catalog = InMemorySchemeCatalog(load_schemes())
        result = await EligibilityFilter(catalog).filter_eligible(farmer, today=TODAY)
        scores = [s.eligibility.score for s in result]
        assert scores == sorted(scores, reverse=True)

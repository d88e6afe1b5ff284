"""Deterministic rule-based eligibility engine.

Architecture:
    * ``RuleEvaluator`` checks one profile against one scheme.  Every
      constraint the scheme declares is one *applicable check*; the score
      is the fraction of applicable checks the citizen satisfies.
    * ``EligibilityFilter`` runs the evaluator across the whole catalog
      and keeps the schemes worth recommending (eligible or at least a
      50% match), best first.

A scheme that declares no constraints at all scores 0 and is never
eligible: a scheme has to say who it is for before it can be matched.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Final

import structlog

from src.models.recommendation import EligibilityResult, ScoredScheme
from src.models.scheme import FarmerTypeCriterion, HousingCriterion, Scheme
from src.models.user_profile import CitizenProfile

if TYPE_CHECKING:
    from src.services.stores import SchemeCatalog

logger = structlog.get_logger(__name__)

ELIGIBILITY_THRESHOLD: Final[float] = 0.7
SHORTLIST_THRESHOLD: Final[float] = 0.5

_FARMER_OCCUPATION: Final[str] = "Farmer"


class _CheckTally:
    """Accumulates applicable checks and their outcome messages."""

    __slots__ = ("missing", "reasons", "satisfied", "total")

    def __init__(self) -> None:
        self.satisfied = 0
        self.total = 0
        self.reasons: list[str] = []
        self.missing: list[str] = []

    def satisfy(self, reason: str) -> None:
        self.total += 1
        self.satisfied += 1
        self.reasons.append(reason)

    def miss(self, message: str) -> None:
        self.total += 1
        self.missing.append(message)

    def record(self, passed: bool, reason: str, missing: str) -> None:
        if passed:
            self.satisfy(reason)
        else:
            self.miss(missing)

    def result(self) -> EligibilityResult:
        score = self.satisfied / self.total if self.total > 0 else 0.0
        return EligibilityResult(
            eligible=score >= ELIGIBILITY_THRESHOLD,
            score=score,
            reasons=self.reasons,
            missing_criteria=self.missing,
        )


class RuleEvaluator:
    """Pure rules engine for a single profile-scheme pair.

    Checks (in order, each only when the scheme declares it):
    1. Income ceiling
    2. Age band (min / max)
    3. Social category
    4. Occupation
    5. State (nationwide schemes skip this)
    6. Extended criteria (farmer type, housing)
    """

    __slots__ = ()

    def evaluate(
        self,
        profile: CitizenProfile,
        scheme: Scheme,
        today: date | None = None,
    ) -> EligibilityResult:
        today = today or date.today()
        tally = _CheckTally()

        # -- 1. Income ------------------------------------------------------
        if scheme.max_income is not None:
            income = profile.annual_income
            if income is not None and income <= scheme.max_income:
                tally.satisfy(
                    f"Annual income ₹{income:,.0f} is within the limit of ₹{scheme.max_income:,.0f}"
                )
            else:
                tally.miss(f"Annual income should be below ₹{scheme.max_income:,.0f}")

        # -- 2. Age band ----------------------------------------------------
        if scheme.min_age is not None or scheme.max_age is not None:
            age = profile.age_on(today)
            if age is None:
                tally.miss("Date of birth required for age verification")
            else:
                in_band = (scheme.min_age is None or age >= scheme.min_age) and (
                    scheme.max_age is None or age <= scheme.max_age
                )
                lower = scheme.min_age if scheme.min_age is not None else 0
                upper = scheme.max_age if scheme.max_age is not None else "any"
                tally.record(
                    in_band,
                    f"Age {age} meets the requirement",
                    f"Age should be between {lower} and {upper}",
                )

        # -- 3. Social category ---------------------------------------------
        if scheme.target_categories:
            tally.record(
                profile.category is not None and profile.category in scheme.target_categories,
                f"Category {profile.category} is eligible",
                f"Category should be one of: {', '.join(scheme.target_categories)}",
            )

        # -- 4. Occupation --------------------------------------------------
        if scheme.target_occupations:
            tally.record(
                profile.occupation is not None and profile.occupation in scheme.target_occupations,
                f"Occupation {profile.occupation} is eligible",
                f"Occupation should be one of: {', '.join(scheme.target_occupations)}",
            )

        # -- 5. State -------------------------------------------------------
        if scheme.state is not None:
            tally.record(
                profile.state == scheme.state,
                f"State {profile.state} matches scheme requirement",
                f"Scheme is only for residents of {scheme.state}",
            )

        # -- 6. Extended criteria -------------------------------------------
        for criterion in scheme.eligibility_criteria:
            if isinstance(criterion, FarmerTypeCriterion):
                tally.record(
                    profile.occupation == _FARMER_OCCUPATION,
                    "Occupation as farmer meets the requirement",
                    "Must be a farmer",
                )
            elif isinstance(criterion, HousingCriterion) and criterion.requires_no_owned_house:
                # Ownership cannot be verified from the profile; checked on application.
                tally.satisfy("Housing eligibility check required (to be verified during application)")

        return tally.result()


class EligibilityFilter:
    """Shortlists catalog schemes for a profile using :class:`RuleEvaluator`."""

    __slots__ = ("_catalog", "_evaluator")

    def __init__(self, catalog: SchemeCatalog, evaluator: RuleEvaluator | None = None) -> None:
        self._catalog = catalog
        self._evaluator = evaluator or RuleEvaluator()

    async def filter_eligible(
        self,
        profile: CitizenProfile,
        schemes: list[Scheme] | None = None,
        today: date | None = None,
    ) -> list[ScoredScheme]:
        """Evaluate every scheme and keep the eligible or >= 50% matches.

        Parameters
        ----------
        profile:
            The citizen to evaluate.
        schemes:
            Already-loaded catalog.  Read from the catalog when omitted.
        today:
            Reference date for age computation.

        Returns
        -------
        list[ScoredScheme]
            Sorted by score descending; ties keep catalog order.
        """
        if schemes is None:
            schemes = await self._catalog.get_all()

        shortlisted: list[ScoredScheme] = []
        for scheme in schemes:
            result = self._evaluator.evaluate(profile, scheme, today=today)
            if result.eligible or result.score >= SHORTLIST_THRESHOLD:
                shortlisted.append(ScoredScheme(scheme=scheme, eligibility=result))

        # list.sort is stable, so equal scores keep catalog order.
        shortlisted.sort(key=lambda s: s.eligibility.score, reverse=True)

        logger.info(
            "eligibility.filtered",
            user_id=profile.user_id,
            evaluated=len(schemes),
            shortlisted=len(shortlisted),
        )
        return shortlisted

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FarmerTypeCriterion(BaseModel):
    """Scheme restricted to farmers (of a given holding type)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["farmer_type"] = "farmer_type"
    farmer_type: str


class HousingCriterion(BaseModel):
    """Housing requirement, e.g. ``"does not own a pucca house"``.

    Only a requirement containing the exact text ``"not own"`` is treated
    as the no-owned-house rule.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["housing"] = "housing"
    requirement: str

    @property
    def requires_no_owned_house(self) -> bool:
        return "not own" in self.requirement


ExtendedCriterion = Annotated[
    FarmerTypeCriterion | HousingCriterion,
    Field(discriminator="kind"),
]

# Legacy key/value bag keys -> criterion builders.
_LEGACY_CRITERIA_KEYS: dict[str, Any] = {
    "farmerType": lambda v: {"kind": "farmer_type", "farmer_type": str(v)},
    "housing": lambda v: {"kind": "housing", "requirement": str(v)},
}


class Scheme(BaseModel):
    """A welfare scheme and the predicates that decide who it is for.

    Constraint fields left as ``None`` (or empty lists) are not checked.
    ``state=None`` marks a nationwide scheme.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    description: str = ""
    benefits: str = ""
    ministry: str | None = None
    application_url: str | None = None
    documents_required: list[str] = Field(default_factory=list)

    # -- Eligibility predicates -------------------------------------------
    max_income: float | None = None
    min_age: int | None = None
    max_age: int | None = None
    target_categories: list[str] = Field(default_factory=list)
    target_occupations: list[str] = Field(default_factory=list)
    state: str | None = None
    eligibility_criteria: list[ExtendedCriterion] = Field(default_factory=list)

    @field_validator("target_categories", "target_occupations", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("eligibility_criteria", mode="before")
    @classmethod
    def _accept_legacy_bag(cls, value: Any) -> Any:
        """Convert ``{"farmerType": ..., "housing": ...}`` into tagged criteria."""
        if value is None:
            return []
        if not isinstance(value, dict):
            return value
        unknown = sorted(set(value) - set(_LEGACY_CRITERIA_KEYS))
        if unknown:
            raise ValueError(f"unsupported eligibility criteria: {', '.join(unknown)}")
        return [
            _LEGACY_CRITERIA_KEYS[key](raw)
            for key, raw in value.items()
            if raw
        ]

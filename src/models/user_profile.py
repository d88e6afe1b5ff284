"""Citizen profile model consumed by the eligibility engine.

The profile subsystem owns these records; the recommendation engine only
reads them and treats each one as immutable for a whole evaluation.
Only ``user_id`` and ``state`` are required so a citizen can start with a
partial profile -- every missing field simply fails the scheme checks
that depend on it.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class CitizenProfile(BaseModel):
    """Demographic and socio-economic attributes of one citizen."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    full_name: str | None = None

    # ----------------------------------------------------------------
    # Demographic
    # ----------------------------------------------------------------
    date_of_birth: date | None = None
    gender: str | None = None  # "Male", "Female", "Other"
    category: str | None = None  # "General", "OBC", "SC", "ST", "EWS"
    occupation: str | None = None  # "Farmer", "Student", "Daily Wage Worker", ...
    education: str | None = None
    state: str
    district: str | None = None
    pincode: str | None = None

    # ----------------------------------------------------------------
    # Economic / household
    # ----------------------------------------------------------------
    annual_income: float | None = Field(default=None, ge=0)  # In INR
    family_size: int | None = Field(default=None, ge=1)
    has_disability: bool = False
    disability_type: str | None = None

    def age_on(self, today: date) -> int | None:
        """Completed years of age on *today*, or ``None`` without a date of birth."""
        if self.date_of_birth is None:
            return None
        dob = self.date_of_birth
        age = today.year - dob.year
        if (today.month, today.day) < (dob.month, dob.day):
            age -= 1
        return age

    def to_prompt_summary(self, today: date) -> dict:
        """Flat dict describing the citizen for the AI scoring prompt."""
        return {
            "annual_income": self.annual_income,
            "category": self.category or "General",
            "state": self.state,
            "occupation": self.occupation,
            "age": self.age_on(today),
            "has_disability": self.has_disability,
            "family_size": self.family_size,
            "education": self.education,
        }

"""AI scoring adapter: asks the language-model oracle to rate schemes.

The oracle is treated as fallible and non-deterministic.  Its answer is
parsed entry by entry: scores are clamped into [0, 1] and any entry that
does not point at a known scheme, or has a non-numeric score or an
unknown status, is dropped on its own.  If a call fails outright
(exception, timeout, unparseable JSON) that call contributes nothing and
the recommendation pipeline carries on with rule-based results only.

Large catalogs are capped at ``max_schemes`` and split into batches of
``batch_size`` schemes; batches are scored concurrently and fail
independently.
"""

from __future__ import annotations

import asyncio
import math
import re
from datetime import date
from typing import Any, Final, Protocol, runtime_checkable

import orjson
import structlog

from src.models.enums import EligibilityStatus
from src.models.recommendation import AIRecommendation
from src.models.scheme import FarmerTypeCriterion, HousingCriterion, Scheme
from src.models.user_profile import CitizenProfile

logger = structlog.get_logger(__name__)


@runtime_checkable
class SchemeOracle(Protocol):
    """Anything that turns a scoring prompt into the model's JSON text."""

    async def rank_schemes(self, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

_SCORING_PROMPT: Final[str] = """\
Analyze the citizen profile below and assess every listed government \
scheme for this citizen.

Citizen Profile:
{profile}

Available Schemes:
{schemes}

For each scheme, provide:
1. Eligibility assessment (eligible / partially_eligible / not_eligible)
2. Score (0.0 to 1.0) based on how well the citizen matches
3. Clear reasoning in simple language

Return ONLY a JSON object in this format, using the scheme numbers shown \
in square brackets as "schemeIndex":
{{
  "recommendations": [
    {{
      "schemeIndex": 0,
      "score": 0.85,
      "eligibilityStatus": "eligible",
      "reasoning": "You are eligible because..."
    }}
  ]
}}

JSON response:\
"""

_CODE_FENCE_RE: Final[re.Pattern[str]] = re.compile(r"^```(?:json)?\s*|\s*```$")


def _fmt_value(value: Any, empty: str) -> str:
    if value is None or value == [] or value == "":
        return empty
    return str(value)


def _describe_profile(summary: dict) -> str:
    income = summary.get("annual_income")
    return "\n".join([
        f"- Annual Income: {'₹' + format(income, ',.0f') if income is not None else 'Not specified'}",
        f"- Category: {summary['category']}",
        f"- State: {summary['state']}",
        f"- Occupation: {_fmt_value(summary.get('occupation'), 'Not specified')}",
        f"- Age: {_fmt_value(summary.get('age'), 'Not specified')}",
        f"- Has Disability: {'Yes' if summary.get('has_disability') else 'No'}",
        f"- Family Size: {_fmt_value(summary.get('family_size'), 'Not specified')}",
        f"- Education: {_fmt_value(summary.get('education'), 'Not specified')}",
    ])


def _describe_criteria(scheme: Scheme) -> str:
    parts: list[str] = []
    for criterion in scheme.eligibility_criteria:
        if isinstance(criterion, FarmerTypeCriterion):
            parts.append(f"farmer ({criterion.farmer_type})")
        elif isinstance(criterion, HousingCriterion):
            parts.append(f"housing: {criterion.requirement}")
    return "; ".join(parts) or "None"


def _describe_scheme(index: int, scheme: Scheme) -> str:
    max_income = f"₹{scheme.max_income:,.0f}" if scheme.max_income is not None else "No limit"
    return "\n".join([
        f"[{index}] {scheme.name}",
        f"    Category: {scheme.category}",
        f"    Description: {scheme.description}",
        f"    Max Income: {max_income}",
        f"    Target Categories: {_fmt_value(scheme.target_categories, 'Any')}",
        f"    Target Occupations: {_fmt_value(scheme.target_occupations, 'Any')}",
        f"    Min Age: {_fmt_value(scheme.min_age, 'No limit')}",
        f"    Max Age: {_fmt_value(scheme.max_age, 'No limit')}",
        f"    State: {scheme.state or 'All India'}",
        f"    Other Criteria: {_describe_criteria(scheme)}",
    ])


def build_scoring_prompt(profile_summary: dict, schemes: list[Scheme]) -> str:
    """Render the scoring prompt; schemes are numbered from 0 in list order."""
    return _SCORING_PROMPT.format(
        profile=_describe_profile(profile_summary),
        schemes="\n\n".join(_describe_scheme(i, s) for i, s in enumerate(schemes)),
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _parse_entry(entry: Any, schemes: list[Scheme]) -> AIRecommendation | None:
    if not isinstance(entry, dict):
        return None

    index = entry.get("schemeIndex")
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(schemes):
        return None

    score = entry.get("score")
    if isinstance(score, bool) or not isinstance(score, int | float) or not math.isfinite(score):
        return None

    try:
        status = EligibilityStatus(entry.get("eligibilityStatus"))
    except ValueError:
        return None

    reasoning = entry.get("reasoning")
    return AIRecommendation(
        scheme_id=schemes[index].id,
        score=max(0.0, min(1.0, float(score))),
        eligibility_status=status,
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


def parse_oracle_response(raw: str, schemes: list[Scheme]) -> list[AIRecommendation]:
    """Parse the oracle's JSON answer for a batch of *schemes*.

    Returns an empty list when the payload as a whole is unusable;
    otherwise every well-formed entry, in response order.  Only the first
    entry for a given scheme index counts.
    """
    if not isinstance(raw, str):
        logger.warning("ai_scorer.unexpected_type", type=type(raw).__name__)
        return []

    try:
        payload = orjson.loads(_CODE_FENCE_RE.sub("", raw.strip()))
    except orjson.JSONDecodeError:
        logger.warning("ai_scorer.parse_failed", raw=raw[:200])
        return []

    entries = payload.get("recommendations") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        logger.warning("ai_scorer.unexpected_shape", raw=raw[:200])
        return []

    parsed: list[AIRecommendation] = []
    seen: set[str] = set()
    for entry in entries:
        rec = _parse_entry(entry, schemes)
        if rec is None or rec.scheme_id in seen:
            logger.debug("ai_scorer.entry_dropped", entry=entry)
            continue
        seen.add(rec.scheme_id)
        parsed.append(rec)
    return parsed


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class AIScorer:
    """Scores schemes for a citizen through a :class:`SchemeOracle`.

    Parameters
    ----------
    oracle:
        The language-model oracle.
    timeout_seconds:
        Upper bound for a single oracle call; expiry counts as failure.
    batch_size:
        Schemes sent per oracle call.
    max_schemes:
        Schemes considered per scoring run, in catalog order.
    """

    __slots__ = ("_batch_size", "_max_schemes", "_oracle", "_timeout")

    def __init__(
        self,
        oracle: SchemeOracle,
        *,
        timeout_seconds: float = 30.0,
        batch_size: int = 25,
        max_schemes: int = 100,
    ) -> None:
        self._oracle = oracle
        self._timeout = timeout_seconds
        self._batch_size = batch_size
        self._max_schemes = max_schemes

    async def score(
        self,
        profile: CitizenProfile,
        schemes: list[Scheme],
        today: date | None = None,
    ) -> list[AIRecommendation]:
        """Return the oracle's per-scheme judgements; ``[]`` if it failed."""
        if not schemes:
            return []

        considered = schemes[: self._max_schemes]
        if len(considered) < len(schemes):
            logger.info(
                "ai_scorer.catalog_capped",
                total=len(schemes),
                considered=len(considered),
            )

        summary = profile.to_prompt_summary(today or date.today())
        batches = [
            considered[i : i + self._batch_size]
            for i in range(0, len(considered), self._batch_size)
        ]
        batch_results = await asyncio.gather(
            *(self._score_batch(profile.user_id, summary, batch) for batch in batches)
        )
        results = [rec for batch in batch_results for rec in batch]

        logger.info(
            "ai_scorer.scored",
            user_id=profile.user_id,
            batches=len(batches),
            recommendations=len(results),
        )
        return results

    async def _score_batch(
        self, user_id: str, summary: dict, batch: list[Scheme]
    ) -> list[AIRecommendation]:
        prompt = build_scoring_prompt(summary, batch)
        try:
            raw = await asyncio.wait_for(self._oracle.rank_schemes(prompt), timeout=self._timeout)
        except TimeoutError:
            logger.warning(
                "ai_scorer.oracle_timeout",
                user_id=user_id,
                timeout_seconds=self._timeout,
                batch_size=len(batch),
            )
            return []
        except Exception:
            logger.warning(
                "ai_scorer.oracle_failed",
                user_id=user_id,
                batch_size=len(batch),
                exc_info=True,
            )
            return []
        return parse_oracle_response(raw, batch)

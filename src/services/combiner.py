"""Fusion of rule-based eligibility and AI scores into one ranked list.

Rule results are authoritative and explainable, so they seed the list and
carry 60% of the weight when both sources rate a scheme.  The AI oracle
extends recall: a scheme only it found is kept, but discounted, because
nothing verified it.
"""

from __future__ import annotations

from typing import Final

import structlog

from src.models.enums import EligibilityStatus
from src.models.recommendation import (
    AIRecommendation,
    CombinedRecommendation,
    EligibilityResult,
    ScoredScheme,
)

logger = structlog.get_logger(__name__)

RULE_WEIGHT: Final[float] = 0.6
AI_WEIGHT: Final[float] = 0.4
AI_ONLY_DISCOUNT: Final[float] = 0.8
MIN_SCORE: Final[float] = 0.3
MAX_RECOMMENDATIONS: Final[int] = 20

AI_ANALYSIS_PREFIX: Final[str] = "AI Analysis: "


def format_rule_reasoning(result: EligibilityResult) -> str:
    """Bullet list of satisfied criteria followed by unmet ones."""
    sections: list[str] = []
    if result.reasons:
        sections.append("\n".join(["✅ Criteria met:", *(f"• {r}" for r in result.reasons)]))
    if result.missing_criteria:
        sections.append(
            "\n".join(["⚠️ Criteria to check:", *(f"• {m}" for m in result.missing_criteria)])
        )
    return "\n\n".join(sections)


def combine_recommendations(
    rule_results: list[ScoredScheme],
    ai_results: list[AIRecommendation],
) -> list[CombinedRecommendation]:
    """Merge rule and AI output by scheme id.

    Returns at most :data:`MAX_RECOMMENDATIONS` entries scoring at least
    :data:`MIN_SCORE`, best first; equal scores keep merge order.
    """
    merged: dict[str, CombinedRecommendation] = {}

    for scored in rule_results:
        result = scored.eligibility
        merged[scored.scheme.id] = CombinedRecommendation(
            scheme_id=scored.scheme.id,
            score=result.score,
            reasoning=format_rule_reasoning(result),
            eligibility_status=(
                EligibilityStatus.ELIGIBLE if result.eligible else EligibilityStatus.PARTIALLY_ELIGIBLE
            ),
        )

    for ai in ai_results:
        existing = merged.get(ai.scheme_id)
        if existing is None:
            merged[ai.scheme_id] = CombinedRecommendation(
                scheme_id=ai.scheme_id,
                score=ai.score * AI_ONLY_DISCOUNT,
                reasoning=AI_ANALYSIS_PREFIX + ai.reasoning,
                eligibility_status=ai.eligibility_status,
            )
            continue

        status = existing.eligibility_status
        if ai.eligibility_status.priority > status.priority:
            status = ai.eligibility_status
        merged[ai.scheme_id] = CombinedRecommendation(
            scheme_id=ai.scheme_id,
            score=existing.score * RULE_WEIGHT + ai.score * AI_WEIGHT,
            reasoning=f"{existing.reasoning}\n\n{AI_ANALYSIS_PREFIX}{ai.reasoning}",
            eligibility_status=status,
        )

    kept = [rec for rec in merged.values() if rec.score >= MIN_SCORE]
    kept.sort(key=lambda rec: rec.score, reverse=True)

    logger.debug(
        "combiner.merged",
        rule_results=len(rule_results),
        ai_results=len(ai_results),
        merged=len(merged),
        kept=min(len(kept), MAX_RECOMMENDATIONS),
    )
    return kept[:MAX_RECOMMENDATIONS]

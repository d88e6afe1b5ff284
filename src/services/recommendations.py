"""Recommendation lifecycle: generate, refresh and read a user's schemes.

Generation pipeline:
    1. Load the citizen profile and the scheme catalog (concurrently).
    2. Shortlist schemes with the rule-based :class:`EligibilityFilter`.
    3. Score the *full* catalog with the AI oracle so it can surface
       schemes the rules missed.
    4. Fuse both with :func:`combine_recommendations`.
    5. Replace the user's stored recommendations with the new batch in
       one atomic store operation.

Regenerations for the same user are serialized in-process with a
per-user :class:`asyncio.Lock`.
"""

from __future__ import annotations

import asyncio
import time
import weakref
from datetime import date

import structlog

from src.models.recommendation import Recommendation, RecommendationWithScheme
from src.services.ai_scorer import AIScorer
from src.services.combiner import combine_recommendations
from src.services.eligibility import EligibilityFilter
from src.services.errors import ProfileNotFoundError
from src.services.stores import ProfileStore, RecommendationStore, SchemeCatalog

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class RecommendationService:
    """Generates and serves ranked scheme recommendations per citizen.

    Parameters
    ----------
    profiles:
        Source of citizen profiles.
    catalog:
        Scheme catalog.
    store:
        Recommendation persistence.
    scorer:
        AI scorer; ``None`` runs rule-based only.
    eligibility_filter:
        Rule-based shortlister.  Built over *catalog* when omitted.
    """

    __slots__ = ("_catalog", "_filter", "_locks", "_profiles", "_scorer", "_store")

    def __init__(
        self,
        profiles: ProfileStore,
        catalog: SchemeCatalog,
        store: RecommendationStore,
        scorer: AIScorer | None = None,
        eligibility_filter: EligibilityFilter | None = None,
    ) -> None:
        self._profiles = profiles
        self._catalog = catalog
        self._store = store
        self._scorer = scorer
        self._filter = eligibility_filter or EligibilityFilter(catalog)
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_recommendations(
        self, user_id: str, today: date | None = None
    ) -> list[RecommendationWithScheme]:
        """Build, persist and return a fresh recommendation set.

        Raises
        ------
        ProfileNotFoundError
            If the user has no citizen profile.
        """
        lock = self._lock_for(user_id)
        async with lock:
            return await self._generate(user_id, today or date.today())

    async def refresh_recommendations(
        self, user_id: str, today: date | None = None
    ) -> list[RecommendationWithScheme]:
        """Discard the user's recommendations and generate them again."""
        return await self.generate_recommendations(user_id, today=today)

    async def get_user_recommendations(self, user_id: str) -> list[RecommendationWithScheme]:
        """Stored recommendations with their schemes, best first.

        Rows whose scheme has since left the catalog are skipped.
        """
        records = await self._store.get_all_for_user(user_id)
        schemes = await asyncio.gather(*(self._catalog.get_by_id(r.scheme_id) for r in records))

        enriched = [
            RecommendationWithScheme.attach(record, scheme)
            for record, scheme in zip(records, schemes, strict=True)
            if scheme is not None
        ]
        enriched.sort(key=lambda r: r.score, reverse=True)
        return enriched

    async def get_recommendations_by_category(
        self, user_id: str, category: str
    ) -> list[RecommendationWithScheme]:
        """Stored recommendations whose scheme is in *category* (case-insensitive)."""
        wanted = category.lower()
        return [
            rec
            for rec in await self.get_user_recommendations(user_id)
            if rec.scheme.category.lower() == wanted
        ]

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _generate(self, user_id: str, today: date) -> list[RecommendationWithScheme]:
        start = time.perf_counter()

        profile, schemes = await asyncio.gather(
            self._profiles.get(user_id),
            self._catalog.get_all(),
        )
        if profile is None:
            raise ProfileNotFoundError(user_id)

        shortlisted = await self._filter.filter_eligible(profile, schemes, today=today)
        ai_results = (
            await self._scorer.score(profile, schemes, today=today)
            if self._scorer is not None
            else []
        )

        combined = combine_recommendations(shortlisted, ai_results)
        records = [
            Recommendation(
                user_id=user_id,
                scheme_id=rec.scheme_id,
                score=rec.score,
                reasoning=rec.reasoning,
                eligibility_status=rec.eligibility_status,
            )
            for rec in combined
        ]
        persisted = await self._store.replace_for_user(user_id, records)

        by_id = {s.id: s for s in schemes}
        result = [
            RecommendationWithScheme.attach(record, by_id[record.scheme_id])
            for record in persisted
            if record.scheme_id in by_id
        ]
        result.sort(key=lambda r: r.score, reverse=True)

        logger.info(
            "recommendations.generated",
            user_id=user_id,
            shortlisted=len(shortlisted),
            ai_results=len(ai_results),
            persisted=len(persisted),
            processing_time_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return result

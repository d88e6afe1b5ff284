"""Storage collaborators of the recommendation engine.

The engine only talks to three narrow async interfaces -- profile store,
scheme catalog and recommendation store.  In-memory implementations back
development and tests; recommendations can also live in Redis.

Recommendation batches are always swapped with
:meth:`RecommendationStore.replace_for_user`, which deletes a user's old
rows and inserts the new ones as one atomic step so readers never see a
mix of two generations.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Protocol, runtime_checkable

import orjson
import structlog

from src.models.recommendation import Recommendation
from src.models.scheme import Scheme
from src.models.user_profile import CitizenProfile

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


@runtime_checkable
class ProfileStore(Protocol):
    """Read access to citizen profiles."""

    async def get(self, user_id: str) -> CitizenProfile | None: ...


@runtime_checkable
class SchemeCatalog(Protocol):
    """Read access to the scheme catalog."""

    async def get_all(self) -> list[Scheme]: ...

    async def get_by_id(self, scheme_id: str) -> Scheme | None: ...

    async def search(self, query: str) -> list[Scheme]: ...


@runtime_checkable
class RecommendationStore(Protocol):
    """Persistence for generated recommendations, keyed by user."""

    async def delete_all_for_user(self, user_id: str) -> None: ...

    async def create(self, record: Recommendation) -> Recommendation: ...

    async def get_all_for_user(self, user_id: str) -> list[Recommendation]: ...

    async def replace_for_user(
        self, user_id: str, records: list[Recommendation]
    ) -> list[Recommendation]: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


class InMemoryProfileStore:
    """Dict-backed profile store (production: the profile service database)."""

    __slots__ = ("_profiles",)

    def __init__(self, profiles: list[CitizenProfile] | None = None) -> None:
        self._profiles: dict[str, CitizenProfile] = {p.user_id: p for p in profiles or []}

    async def get(self, user_id: str) -> CitizenProfile | None:
        return self._profiles.get(user_id)

    async def save(self, profile: CitizenProfile) -> CitizenProfile:
        self._profiles[profile.user_id] = profile
        return profile


class InMemorySchemeCatalog:
    """Catalog over a fixed list of schemes; preserves catalog order."""

    __slots__ = ("_by_id", "_schemes")

    def __init__(self, schemes: list[Scheme]) -> None:
        self._schemes = list(schemes)
        self._by_id = {s.id: s for s in self._schemes}

    async def get_all(self) -> list[Scheme]:
        return list(self._schemes)

    async def get_by_id(self, scheme_id: str) -> Scheme | None:
        return self._by_id.get(scheme_id)

    async def search(self, query: str) -> list[Scheme]:
        """Case-insensitive substring match on name, description and category."""
        needle = query.strip().lower()
        if not needle:
            return list(self._schemes)
        return [
            s
            for s in self._schemes
            if needle in s.name.lower()
            or needle in s.description.lower()
            or needle in s.category.lower()
        ]


class InMemoryRecommendationStore:
    """Per-user recommendation lists guarded by a single :class:`asyncio.Lock`."""

    __slots__ = ("_lock", "_rows")

    def __init__(self) -> None:
        self._rows: dict[str, list[Recommendation]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def delete_all_for_user(self, user_id: str) -> None:
        async with self._lock:
            self._rows.pop(user_id, None)

    async def create(self, record: Recommendation) -> Recommendation:
        async with self._lock:
            self._rows[record.user_id].append(record)
        return record

    async def get_all_for_user(self, user_id: str) -> list[Recommendation]:
        async with self._lock:
            return list(self._rows.get(user_id, []))

    async def replace_for_user(
        self, user_id: str, records: list[Recommendation]
    ) -> list[Recommendation]:
        async with self._lock:
            self._rows[user_id] = list(records)
        return list(records)


# ---------------------------------------------------------------------------
# Redis implementation
# ---------------------------------------------------------------------------


class RedisRecommendationStore:
    """Recommendations stored as one Redis list per user.

    Each row is an orjson-encoded :class:`Recommendation`.  Replacement
    runs ``DEL`` + ``RPUSH`` inside a ``MULTI``/``EXEC`` pipeline.
    """

    __slots__ = ("_namespace", "_pool", "_redis")

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        namespace: str = "sarkarmitra:",
        max_connections: int = 20,
        client: object | None = None,
    ) -> None:
        self._namespace = namespace
        self._pool = None
        if client is not None:
            self._redis = client
            return

        import redis.asyncio as aioredis

        self._pool = aioredis.ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            decode_responses=False,
        )
        self._redis = aioredis.Redis(connection_pool=self._pool)

    def _key(self, user_id: str) -> str:
        return f"{self._namespace}recommendations:{user_id}"

    @staticmethod
    def _encode(record: Recommendation) -> bytes:
        return orjson.dumps(record.model_dump(mode="json"))

    # -- RecommendationStore interface -----------------------------------------

    async def delete_all_for_user(self, user_id: str) -> None:
        await self._redis.delete(self._key(user_id))

    async def create(self, record: Recommendation) -> Recommendation:
        await self._redis.rpush(self._key(record.user_id), self._encode(record))
        return record

    async def get_all_for_user(self, user_id: str) -> list[Recommendation]:
        raw_rows = await self._redis.lrange(self._key(user_id), 0, -1)
        return [Recommendation.model_validate(orjson.loads(raw)) for raw in raw_rows]

    async def replace_for_user(
        self, user_id: str, records: list[Recommendation]
    ) -> list[Recommendation]:
        key = self._key(user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            if records:
                pipe.rpush(key, *(self._encode(r) for r in records))
            await pipe.execute()
        logger.debug("stores.redis_replaced", user_id=user_id, rows=len(records))
        return list(records)

    # -- Lifecycle -------------------------------------------------------------

    async def close(self) -> None:
        await self._redis.aclose()
        if self._pool is not None:
            await self._pool.aclose()

    async def ping(self) -> bool:
        """Return *True* if the Redis server is reachable."""
        try:
            return bool(await self._redis.ping())
        except Exception:
            return False

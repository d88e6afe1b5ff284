"""Catalog browsing: filtered listing, categories and popular schemes."""

from __future__ import annotations

import structlog

from src.models.scheme import Scheme
from src.services.stores import SchemeCatalog

logger = structlog.get_logger(__name__)


class SchemeQueryService:
    """Read-only queries over a :class:`SchemeCatalog`."""

    __slots__ = ("_catalog",)

    def __init__(self, catalog: SchemeCatalog) -> None:
        self._catalog = catalog

    async def filter_schemes(
        self,
        *,
        category: str | None = None,
        state: str | None = None,
        max_income: float | None = None,
        search: str | None = None,
    ) -> list[Scheme]:
        """List schemes matching every given filter, in catalog order.

        ``state`` keeps nationwide schemes; ``max_income`` keeps schemes
        without an income ceiling or whose ceiling is at least that value.
        """
        schemes = await self._catalog.search(search) if search else await self._catalog.get_all()

        if category:
            wanted = category.lower()
            schemes = [s for s in schemes if s.category.lower() == wanted]
        if state:
            schemes = [s for s in schemes if s.state is None or s.state == state]
        if max_income is not None:
            schemes = [s for s in schemes if s.max_income is None or s.max_income >= max_income]

        logger.debug(
            "scheme_search.filtered",
            category=category,
            state=state,
            max_income=max_income,
            search=search,
            results=len(schemes),
        )
        return schemes

    async def get_categories(self) -> list[str]:
        return sorted({s.category for s in await self._catalog.get_all()})

    async def get_popular(self, limit: int = 10) -> list[Scheme]:
        # TODO: rank by application count once the applications service exposes it.
        return (await self._catalog.get_all())[:limit]

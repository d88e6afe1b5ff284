"""SarkarMitra FastAPI application entry point.

Creates the FastAPI app, configures logging, includes routers, and
manages the lifecycle of the recommendation engine's collaborators
(scheme catalog, profile store, recommendation store, AI oracle).
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.router import api_router

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(settings.log_level),
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of all SarkarMitra services.

    On startup:
      1. Load the scheme catalog
      2. Create the profile and recommendation stores
      3. Initialise the AI oracle and scorer (when a GCP project is set)
      4. Build the eligibility filter, catalog queries and
         recommendation service
      5. Store everything on ``app.state``

    On shutdown:
      - Close the Redis connection pool, if one was opened.
    """
    _configure_logging()
    logger.info("app.startup", env=settings.env, gcp_project=settings.gcp_project_id)

    app.state.start_time = time.time()

    # -- 1. Scheme catalog --------------------------------------------------
    from src.data.seed import build_catalog

    catalog_path = Path(settings.scheme_catalog_path) if settings.scheme_catalog_path else None
    catalog = build_catalog(catalog_path)
    app.state.catalog = catalog

    # -- 2. Stores ----------------------------------------------------------
    from src.services.stores import (
        InMemoryProfileStore,
        InMemoryRecommendationStore,
        RedisRecommendationStore,
    )

    app.state.profiles = InMemoryProfileStore()

    redis_store: RedisRecommendationStore | None = None
    if settings.recommendation_store == "redis":
        redis_store = RedisRecommendationStore(url=settings.redis_url)
        app.state.recommendation_store = redis_store
    else:
        app.state.recommendation_store = InMemoryRecommendationStore()
    logger.info("app.stores_initialised", recommendation_store=settings.recommendation_store)

    # -- 3. AI oracle (Vertex AI / Gemini) ------------------------------------
    from src.services.ai_scorer import AIScorer

    scorer: AIScorer | None = None
    if settings.enable_ai_scoring and settings.gcp_project_id:
        try:
            from src.services.llm import LLMService

            llm = LLMService(
                project_id=settings.gcp_project_id,
                region=settings.vertex_ai_location,
                model_name=settings.vertex_ai_model,
            )
            scorer = AIScorer(
                llm,
                timeout_seconds=settings.oracle_timeout_seconds,
                batch_size=settings.oracle_batch_size,
                max_schemes=settings.oracle_max_schemes,
            )
            logger.info("app.ai_scorer_initialised", model=settings.vertex_ai_model)
        except Exception:
            logger.warning("app.ai_scorer_init_failed", exc_info=True)
    else:
        logger.info("app.ai_scoring_disabled")
    app.state.ai_scorer = scorer

    # -- 4. Engine services ---------------------------------------------------
    from src.services.eligibility import EligibilityFilter
    from src.services.recommendations import RecommendationService
    from src.services.scheme_search import SchemeQueryService

    eligibility_filter = EligibilityFilter(catalog)
    app.state.eligibility_filter = eligibility_filter
    app.state.scheme_queries = SchemeQueryService(catalog)
    app.state.recommendations = RecommendationService(
        profiles=app.state.profiles,
        catalog=catalog,
        store=app.state.recommendation_store,
        scorer=scorer,
        eligibility_filter=eligibility_filter,
    )

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    if redis_store is not None:
        await redis_store.close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SarkarMitra API",
    description=(
        "SarkarMitra -- government welfare scheme eligibility and "
        "recommendation engine combining deterministic rules with AI scoring."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5000", "http://127.0.0.1:8000"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Authorization"],
)

# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "SarkarMitra API",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "profile": "/api/v1/profile/{user_id}",
            "schemes": "/api/v1/schemes",
            "eligible_schemes": "/api/v1/schemes/eligible/{user_id}",
            "recommendations": "/api/v1/recommendations/{user_id}",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.main:app", host=settings.api_host, port=settings.api_port)

"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``SARKARMITRA_`` prefix; GCP / infrastructure settings
use their canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the SarkarMitra recommendation service.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``SARKARMITRA_``; GCP / infra keys
    use their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="SARKARMITRA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── GCP ────────────────────────────────────────────────────────────
    gcp_project_id: str = Field(default="", validation_alias="GCP_PROJECT_ID")

    # ── Vertex AI / Gemini ─────────────────────────────────────────────
    vertex_ai_model: str = Field(default="gemini-2.0-flash", validation_alias="VERTEX_AI_MODEL")
    vertex_ai_location: str = Field(default="asia-south1", validation_alias="VERTEX_AI_LOCATION")

    # ── AI scoring oracle ──────────────────────────────────────────────
    enable_ai_scoring: bool = True
    oracle_timeout_seconds: float = Field(default=30.0, gt=0)
    oracle_batch_size: int = Field(default=25, ge=1)
    oracle_max_schemes: int = Field(default=100, ge=1)

    # ── Storage ────────────────────────────────────────────────────────
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    recommendation_store: Literal["memory", "redis"] = "memory"
    scheme_catalog_path: str | None = None  # None -> bundled catalog

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION


# Module-level singleton: import ``settings`` everywhere.
settings = Settings()

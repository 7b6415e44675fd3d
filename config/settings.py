"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. All keys use the
``COMPLAINTDESK_`` prefix; infrastructure settings additionally accept their
canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the complaint desk service.

    Environment variables are loaded from a ``.env`` file when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMPLAINTDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("COMPLAINTDESK_API_HOST", "API_HOST"))
    api_port: int = Field(default=8000, validation_alias=AliasChoices("COMPLAINTDESK_API_PORT", "API_PORT"))

    # ── Redis (candidate cache) ────────────────────────────────────────
    redis_url: str = Field(default="", validation_alias=AliasChoices("COMPLAINTDESK_REDIS_URL", "REDIS_URL"))

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("COMPLAINTDESK_LOG_LEVEL", "LOG_LEVEL"))
    log_format: str = Field(default="json", validation_alias=AliasChoices("COMPLAINTDESK_LOG_FORMAT", "LOG_FORMAT"))

    # ── Triage ─────────────────────────────────────────────────────────
    triage_base_score: int = Field(default=30, ge=0, le=100)
    repeat_complainant_threshold: int = Field(default=3, ge=0)
    repeat_complainant_bonus: int = Field(default=10, ge=0)
    department_overload_threshold: int = Field(default=50, ge=0)
    department_rebalance_ratio: float = Field(default=0.7, gt=0.0, le=1.0)
    vulnerable_age: int = Field(default=65, ge=0)

    # ── Case linkage ───────────────────────────────────────────────────
    duplicate_similarity_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    duplicate_window_days: int = Field(default=7, ge=0)

    # ── Candidate cache (seconds; 0 disables) ──────────────────────────
    candidate_cache_ttl: int = Field(default=0, ge=0)
    candidate_cache_max_size: int = Field(default=1_000, ge=1)

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION


# Module-level singleton: import ``settings`` everywhere.
settings = Settings()

"""Complaint desk FastAPI application entry point.

Creates the FastAPI app, includes routers, and manages the lifecycle of
the triage and case-linkage services.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.router import api_router

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

__version__ = "0.1.0"


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
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[settings.log_level.upper()],
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
    """Wire the store, notification inbox, engines, and intake onto ``app.state``."""
    _configure_logging()
    logger.info("app.startup", env=settings.env)

    app.state.start_time = time.time()

    from src.services.candidate_cache import CandidateCache
    from src.services.case_linkage import CaseLinkageEngine, LinkageConfig
    from src.services.intake import ComplaintIntakeService
    from src.services.notifications import NotificationService
    from src.services.store import InMemoryComplaintStore
    from src.services.triage import TriageConfig, TriageEngine

    # -- 1. Store and notification inbox -----------------------------------
    store = InMemoryComplaintStore()
    notifications = NotificationService()
    app.state.store = store
    app.state.notifications = notifications

    # -- 2. Candidate cache (optional) -------------------------------------
    candidate_cache: CandidateCache | None = None
    if settings.candidate_cache_ttl > 0:
        candidate_cache = CandidateCache(
            ttl_seconds=settings.candidate_cache_ttl,
            redis_url=settings.redis_url or None,
            max_size=settings.candidate_cache_max_size,
        )
        logger.info("app.candidate_cache_initialised", ttl=settings.candidate_cache_ttl)
    app.state.candidate_cache = candidate_cache

    # -- 3. Engines ---------------------------------------------------------
    triage = TriageEngine(store, TriageConfig.from_settings(settings))
    app.state.triage = triage
    app.state.case_linkage = CaseLinkageEngine(
        store,
        notifications,
        LinkageConfig.from_settings(settings),
        cache=candidate_cache,
    )
    app.state.intake = ComplaintIntakeService(store, triage, notifications, cache=candidate_cache)

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    if candidate_cache is not None:
        await candidate_cache.close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Complaint Desk API",
    description=(
        "Citizen complaint triage and case management: severity scoring, "
        "priority and department routing, duplicate detection, and complaint linking."
    ),
    version=__version__,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.include_router(api_router)


@app.get("/api")
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "Complaint Desk API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "submit_complaint": "/api/v1/complaints",
            "triage": "/api/v1/triage/{complaint_id}",
            "duplicates": "/api/v1/cases/{complaint_id}/duplicates",
            "linked": "/api/v1/cases/{complaint_id}/links",
            "link": "/api/v1/cases/link",
            "unlink": "/api/v1/cases/links/{link_id}",
            "mark_duplicate": "/api/v1/cases/mark-duplicate",
        },
    }


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run("src.main:app", host=settings.api_host, port=settings.api_port)

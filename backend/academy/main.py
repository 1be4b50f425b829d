"""Academy Enrollment API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map AcademyError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py; main.py only wires them
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academy.api.error_handlers import register_error_handlers
from academy.api.routes import catalog, dashboard, enrollments, health
from academy.config import get_settings
from academy.infrastructure import database
from academy.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info(
        "Academy API started",
        extra={"policy": settings.reservation_policy.value},
    )
    yield
    if database.db_manager:
        await database.db_manager.dispose()
    logger.info("Academy API shutting down")


app = FastAPI(
    title="Academy Enrollment API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Idempotent-Replayed"],
)

app.include_router(health.router)
app.include_router(catalog.router)
app.include_router(enrollments.router)
app.include_router(dashboard.router)

register_error_handlers(app)

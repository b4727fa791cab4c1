"""Content Engine API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ContentEngineError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - documents router registered last: its /api/{plural_id} routes are catch-alls
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import content_engine.infrastructure.database as database
from content_engine.infrastructure.database import init_db
from content_engine.infrastructure.observability import setup_logging
from content_engine.config import get_settings
from content_engine.api.error_handlers import register_error_handlers
from content_engine.api.routes import content_types, documents, health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Content Engine API started")
    yield
    logger.info("Content Engine API shutting down")
    if database.db_manager:
        await database.db_manager.dispose()


app = FastAPI(
    title="Content Engine API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes — explicit registration, catch-all content routes last
app.include_router(health.router)
app.include_router(content_types.router)
app.include_router(documents.router)

register_error_handlers(app)

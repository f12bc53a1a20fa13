"""User Directory API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery — ExMA anti-pattern)
    - Global error handlers map UserDirectoryError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, lookup client and task pool initialized on startup via lifespan;
      the lookup client's connections are closed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Shared collaborators on app.state: one httpx pool and one task pool per process
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from user_directory.api.error_handlers import register_error_handlers
from user_directory.api.routes import health, users
from user_directory.config import get_settings
from user_directory.infrastructure.database import init_db
from user_directory.infrastructure.observability import setup_logging
from user_directory.infrastructure.task_pool import IOTaskPool
from user_directory.infrastructure.viacep_client import ViaCepClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_create_schema:
        await manager.create_schema()
    app.state.address_lookup = ViaCepClient(
        settings.viacep_base_url, settings.viacep_timeout_seconds,
    )
    app.state.task_pool = IOTaskPool(settings.batch_max_concurrency)
    logger.info("User Directory API started")
    yield
    logger.info("User Directory API shutting down")
    await app.state.address_lookup.aclose()
    await manager.dispose()


app = FastAPI(
    title="User Directory API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes — explicit registration (ExMA: no convention-over-config)
app.include_router(health.router)
app.include_router(users.router)

register_error_handlers(app)

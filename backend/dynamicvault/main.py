"""DynamicVault API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map DynamicVaultError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - DATABASE_AUTO_CREATE creates tables at startup for local SQLite runs;
      PostgreSQL deployments migrate with alembic
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dynamicvault.api.error_handlers import register_error_handlers
from dynamicvault.api.routes import (
    asset_market, assets, auth, data_sources, health, oracle, transactions, users,
)
from dynamicvault.config import get_settings
from dynamicvault.db.session import create_schema
from dynamicvault.infrastructure import database
from dynamicvault.infrastructure.observability import setup_logging

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
    if settings.database_auto_create:
        await create_schema(database.db_manager.engine)
    logger.info("DynamicVault API started")
    yield
    await database.close_db()
    logger.info("DynamicVault API shutting down")


app = FastAPI(
    title="DynamicVault API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(assets.router)
app.include_router(asset_market.router)
app.include_router(transactions.router)
app.include_router(oracle.router)
app.include_router(data_sources.router)

register_error_handlers(app)

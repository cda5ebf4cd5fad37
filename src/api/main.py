import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import get_rules, get_settings
from src.app_shell.config import validate_ops_rules

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules, validate env and migrate on startup (fail-fast)
    try:
        rules = get_rules(settings)
        validate_ops_rules(rules, settings.data_dir)
        SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    except Exception:
        logger.critical("Startup failed", exc_info=True)
        raise

    logger.info("Rules loaded from %s", settings.rules_path)
    yield


def _cors_origins() -> list[str]:
    try:
        return get_rules(get_settings()).ops.cors_origins
    except (FileNotFoundError, ValueError):
        logger.warning("Rules unavailable; CORS origins not configured")
        return []


app = FastAPI(
    title="Site CMS Analytics API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import (  # noqa: E402
    admin_analytics,
    analytics,
    auth,
    content,
)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
app.include_router(admin_analytics.router, prefix="/api/analytics", tags=["Admin Analytics"])
app.include_router(content.router, prefix="/api/content", tags=["Content"])


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}

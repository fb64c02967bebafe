"""
Gylde Entitlements - FastAPI Application

Main entry point for the entitlement and access-control API.
Provides endpoints for private access, photos, subscriptions, reputation
and live views.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gylde.config.settings import settings
from gylde.infrastructure.exceptions import GyldeError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"Gylde Entitlements starting in {settings.environment} mode...")

    if settings.database_url:
        from gylde.infrastructure.db.database import init_db
        await init_db()
        logger.info("Database connection pool initialized")
    else:
        logger.warning("DATABASE_URL not set; database-backed endpoints will fail")

    yield

    # Shutdown
    if settings.database_url:
        from gylde.infrastructure.db.database import close_db
        await close_db()
        logger.info("Database connection pool closed")

    logger.info("Gylde Entitlements shutting down...")


app = FastAPI(
    title="Gylde Entitlements",
    description="Entitlement and access-control engine for Gylde",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(GyldeError)
async def gylde_error_handler(request: Request, exc: GyldeError):
    """Translate application errors using the status each error carries."""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "gylde-entitlements"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Gylde Entitlements API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from gylde.api.routes import (  # noqa: E402
    entitlements,
    live,
    photos,
    private_access,
    reputation,
    subscriptions,
    webhooks,
)

app.include_router(private_access.router, prefix="/api", tags=["Private Access"])
app.include_router(photos.router, prefix="/api", tags=["Photos"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(reputation.router, prefix="/api", tags=["Reputation"])
app.include_router(entitlements.router, prefix="/api", tags=["Entitlements"])
app.include_router(live.router, prefix="/api", tags=["Live Views"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])

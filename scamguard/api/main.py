"""
ScamGuard FastAPI Application
=============================

REST API for marketplace listing risk scoring.

Endpoints:
    GET  /api/health                  - Health check
    /api/scam/...                     - Analysis and preferences (see scam_routes)

Usage:
    uvicorn scamguard.api.main:app --reload --port 8000

    Or with CLI:
    python -m scamguard.api.main
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import load_settings
from ..logging_config import setup_logging
from ..services import ScamGuardServices, build_services
from .models import HealthResponse
from .scam_routes import router as scam_router

logger = logging.getLogger(__name__)

_default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def create_app(services: Optional[ScamGuardServices] = None) -> FastAPI:
    """
    Build the application.

    Args:
        services: Pre-built services (tests). When None, services are built
            from environment settings at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting ScamGuard API...")
        owned = services is None
        if owned:
            settings = load_settings()
            app.state.services = build_services(settings)
            app.state.preference_backend = settings.engine.preference_backend
        else:
            app.state.services = services
            app.state.preference_backend = type(services.store.backend).__name__

        yield

        if owned:
            app.state.services.close()
        logger.info("Shutting down ScamGuard API...")

    app = FastAPI(
        title="ScamGuard API",
        description="Multi-heuristic scam risk scoring for marketplace listings",
        version=__version__,
        lifespan=lifespan,
    )

    # In production, set CORS_ORIGINS env var (comma-separated), e.g. the extension origin
    origins = list(_default_origins)
    extra_origins = os.getenv("CORS_ORIGINS", "")
    if extra_origins:
        origins.extend([o.strip() for o in extra_origins.split(",") if o.strip()])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scam_router)

    @app.get("/api/health", response_model=HealthResponse, response_model_by_alias=True)
    async def health(request: Request):
        services: ScamGuardServices = request.app.state.services
        cache_stats = services.cache.get_stats()
        return HealthResponse(
            status="ok" if services.cache.ping() else "degraded",
            version=__version__,
            preference_backend=request.app.state.preference_backend,
            cache=cache_stats,
            timestamp=datetime.now(timezone.utc),
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), json_output=os.getenv("LOG_JSON") == "true")
    uvicorn.run(
        "scamguard.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
    )

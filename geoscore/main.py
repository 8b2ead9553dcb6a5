"""
GEO Score - Main Application Entry Point
FastAPI application exposing the single-page analysis and the site report.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from geoscore.api.v1.routes import analyze, health
from geoscore.core.config import get_settings
from geoscore.core.logging import configure_logging

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Manage application lifecycle: startup and shutdown."""
    configure_logging()
    logger.info("Starting GEO Score API", version=settings.APP_VERSION, env=settings.ENV)
    yield
    logger.info("Application shutdown complete")


def create_application() -> FastAPI:
    app = FastAPI(
        title="GEO Score API",
        description="AI-crawler readiness scoring for websites.",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.ENV != "production" else None,
        redoc_url="/redoc" if settings.ENV != "production" else None,
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Routers
    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(analyze.router, prefix="/api/v1", tags=["Analysis"])

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "code": "INTERNAL_ERROR",
                "message": "Internal server error",
                "request_id": request.headers.get("x-request-id"),
            },
        )

    return app


app = create_application()

"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from collabhub.api import router as api_router
from collabhub.config import get_settings
from collabhub.db.session import close_db, init_db
from collabhub.exceptions import CollabHubError, InvalidCredentialError
from collabhub.logging_config import setup_logging
from collabhub.middleware import RequestContextMiddleware

logger = structlog.get_logger()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    setup_logging(settings)
    logger.info("Starting CollabHub API", version=settings.app_version)
    if settings.jwt_secret_key.get_secret_value() == "change-me-in-production":
        logger.warning("jwt_secret_key is not set; using the development default")
    await init_db()
    logger.info("Database connection initialized")

    yield

    logger.info("Shutting down CollabHub API")
    await close_db()
    logger.info("Database connection closed")


async def domain_error_handler(request: Request, exc: CollabHubError) -> ORJSONResponse:
    """Translate domain errors into HTTP responses."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, InvalidCredentialError) else None
    logger.info("domain_error", code=exc.code, error=exc.message, status_code=exc.status_code)
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Contacts and collaborative projects API",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(CollabHubError, domain_error_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.api_prefix)

    return app


app = create_app()

"""FastAPI application factory.

Run with:
    uvicorn thotnet.web.api:create_app --factory
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from thotnet import __version__
from thotnet.errors import ThotNetError
from thotnet.web.routes import ALL_ROUTERS
from thotnet.web.schemas import ErrorEnvelope
from thotnet.web.services import Services, build_services

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    services: Services = app.state.services
    logger.info(
        "api_startup",
        db_path=str(services.db.path),
        providers=services.llm.providers,
        analytics_public=services.config.site.analytics_public,
    )
    yield
    logger.info("api_shutdown")


def _error_response(status_code: int, message: str, details: list[dict] | None = None) -> JSONResponse:
    body = ErrorEnvelope(error=message, details=details or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def handle_domain_error(request: Request, exc: ThotNetError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, status=exc.status_code, error=exc.message)
    return _error_response(exc.status_code, exc.message, exc.details)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path", "header")),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return _error_response(400, "Invalid request", details)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_crashed", path=request.url.path)
    return _error_response(500, "Internal server error")


def create_app(services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built container (tests); built from config if omitted

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="ThotNet API",
        description="AI news, generated courses, knowledge graph and gamification",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services or build_services()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ThotNetError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    for router in ALL_ROUTERS:
        app.include_router(router)

    return app

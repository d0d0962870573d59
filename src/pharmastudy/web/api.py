"""FastAPI application factory.

Main entry point for the PharmaStudy Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from pharmastudy import __version__
from pharmastudy.config.app_config import load_app_config
from pharmastudy.db.content_repository import EntityNotFoundError
from pharmastudy.db.database import init_db, is_initialized
from pharmastudy.web.routes import (
    auth_router,
    chapters_router,
    flashcards_router,
    health_router,
    items_router,
    search_router,
    topics_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    if not is_initialized():
        init_db()
    config = load_app_config()
    logger.info(
        "api_startup",
        version=__version__,
        media_dir=config.server.media_dir,
    )
    yield
    # Shutdown (nothing to do for now)


async def _not_found_handler(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    # Same answer for "missing" and "owned by someone else"
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "api_unhandled_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    config = load_app_config()

    app = FastAPI(
        title="PharmaStudy API",
        description="Chapters, topics, study items, flashcards and search",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(EntityNotFoundError, _not_found_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(chapters_router)
    app.include_router(topics_router)
    app.include_router(items_router)
    app.include_router(flashcards_router)
    app.include_router(search_router)

    app.mount(
        config.server.media_url_prefix,
        StaticFiles(directory=config.server.media_dir, check_dir=False),
        name="media",
    )

    return app


# Default app instance for uvicorn
app = create_app()

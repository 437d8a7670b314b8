"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from src.api import (
    activities,
    auth,
    follows,
    likes,
    notifications,
    push,
    stories,
    streaks,
    tile_config,
    users,
    websocket,
)
from src.config import get_settings
from src.services.errors import ServiceError

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    Path(settings.media_root).mkdir(parents=True, exist_ok=True)
    yield


app = FastAPI(
    title="Growth Tracker API",
    description="Social habit tracker: daily activity hours, streaks, follows and stories",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
            settings.frontend_url,
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Map domain errors to their HTTP status with a machine-readable code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


# Register routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(activities.router)
app.include_router(streaks.router)
app.include_router(tile_config.router)
app.include_router(likes.router)
app.include_router(follows.router)
app.include_router(notifications.router)
app.include_router(push.router)
app.include_router(stories.router)
app.include_router(websocket.router)

# Story photos stored on local disk
app.mount(
    "/media",
    StaticFiles(directory=settings.media_root, check_dir=False),
    name="media",
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}

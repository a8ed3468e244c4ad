"""Prompt Canvas backend: FastAPI application.

This module defines the FastAPI ``app`` instance, the REST routes the canvas
talks to, and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Image generation** is delegated to :class:`~promptcanvas.api.providers.ImageService`,
  which calls fal.ai for the image and OpenAI for prompt variations
  concurrently.
- **Favorites** are kept in a SQLite database
  (:class:`~promptcanvas.core.favorites_db.FavoritesDB`) under a single
  configured user id.
- Both are created in the lifespan handler and stored on ``app.state`` so
  that tests can swap in fakes.

Endpoints
---------
========  ==========================  ====================================
Method    Path                        Purpose
========  ==========================  ====================================
GET       ``/``                       Health check
POST      ``/api/image``              Generate an image plus variations
GET       ``/api/favorites``          List favorites
POST      ``/api/favorites``          Add a favorite
DELETE    ``/api/favorites/{id}``     Remove a favorite
========  ==========================  ====================================

Any other path returns ``404 {"error": "Route not found", "availableRoutes": [...]}``.

Usage
-----
CLI (installed entry point)::

    promptcanvas

Direct invocation::

    python -m promptcanvas.api.main
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptcanvas import __version__
from promptcanvas.api.models import Favorite, FavoritesResponse, ImageRequest, ImageResponse
from promptcanvas.api.providers import (
    FalImageProvider,
    ImageService,
    OpenAIVariationProvider,
    ProviderError,
)
from promptcanvas.core.config import CanvasConfig, config
from promptcanvas.core.favorites_db import FavoritesDB

logger = logging.getLogger(__name__)

AVAILABLE_ROUTES = ["/", "/api/image", "/api/favorites"]


def build_image_service(settings: CanvasConfig) -> ImageService:
    """Create the provider pair from configuration."""
    return ImageService(
        FalImageProvider(
            settings.fal_key,
            base_url=settings.fal_base_url,
            model=settings.fal_model,
            timeout=settings.request_timeout,
        ),
        OpenAIVariationProvider(
            settings.openai_api_key,
            model=settings.variation_model,
            temperature=settings.variation_temperature,
            timeout=settings.request_timeout,
        ),
    )


# ---------------------------------------------------------------------------
# Application lifecycle: providers and favorites database.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the image service and favorites database on startup.

    On shutdown the providers' HTTP connections are closed.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    app.state.image_service = build_image_service(config)
    app.state.favorites_db = FavoritesDB(config.favorites_db_path, config.default_user_id)
    logger.info(f"Backend ready (image model: {config.fal_model})")

    yield

    # --- Shutdown ----------------------------------------------------------
    await app.state.image_service.aclose()
    logger.info("Image providers closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Prompt Canvas",
    description="Image generation and favorites backend for the prompt canvas.",
    version=__version__,
    lifespan=lifespan,
)

# The canvas may be served from any origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error handlers.
# ---------------------------------------------------------------------------


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Answer unknown routes with the list of available ones."""
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"error": "Route not found", "availableRoutes": AVAILABLE_ROUTES},
        )
    return await http_exception_handler(request, exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Something went wrong!", "message": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/")
async def health() -> dict:
    return {
        "message": "ImageGen Backend Server is running",
        "endpoints": ["/api/image", "/api/favorites"],
    }


@app.post("/api/image")
async def generate_image(req: ImageRequest, request: Request):
    """Generate an image for a prompt together with prompt variations.

    Args:
        req: Validated :class:`ImageRequest` payload.

    Returns:
        ``{"prompt", "imageUrl", "variations"}`` on success, or a 500 with
        ``{"message", "error"}`` when a provider fails.
    """
    logger.info(f"Incoming prompt: {req.prompt[:80]}")
    service: ImageService = request.app.state.image_service
    try:
        result: ImageResponse = await service.generate(req.prompt)
    except ProviderError as e:
        logger.error(f"Error generating image: {e}")
        return JSONResponse(
            status_code=500,
            content={"message": "Error generating image", "error": str(e)},
        )
    return result.model_dump(by_alias=True)


@app.get("/api/favorites")
def list_favorites(request: Request) -> dict:
    db: FavoritesDB = request.app.state.favorites_db
    response = FavoritesResponse(favorites=db.get_all_favorites())
    return response.model_dump(by_alias=True)


@app.post("/api/favorites")
def add_favorite(favorite: Favorite, request: Request):
    """Store a favorite.  Adding an existing id is accepted and changes nothing."""
    db: FavoritesDB = request.app.state.favorites_db
    try:
        db.add_favorite(favorite)
    except sqlite3.Error as e:
        return JSONResponse(
            status_code=500,
            content={"message": "Error adding to favorites", "error": str(e)},
        )
    return {"message": "Added to favorites"}


@app.delete("/api/favorites/{favorite_id}")
def remove_favorite(favorite_id: str, request: Request):
    """Remove a favorite.  Removing an unknown id still succeeds."""
    db: FavoritesDB = request.app.state.favorites_db
    try:
        db.remove_favorite(favorite_id)
    except sqlite3.Error as e:
        return JSONResponse(
            status_code=500,
            content={"message": "Error removing from favorites", "error": str(e)},
        )
    return {
        "message": "Removed from favorites",
        "deletedId": favorite_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Configure logging and launch the uvicorn ASGI server.

    Host, port and log level come from :data:`~promptcanvas.core.config.config`
    (``PROMPTCANVAS_SERVER_HOST``, ``PROMPTCANVAS_SERVER_PORT``,
    ``PROMPTCANVAS_LOG_LEVEL``).  Defaults to ``0.0.0.0:8080``.

    This function is registered as the ``promptcanvas`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "promptcanvas.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()

"""Main entry point for the Texting Theory consensus service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from texting_theory.api.v1 import posts_router, votes_router
from texting_theory.core.settings import settings
from texting_theory.db.session import create_tables
from texting_theory.services.engine import build_engine_context, close_engine_context

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Texting Theory API",
    description="Crowd-voted badges and Elo ratings for conversation screenshots",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    create_tables()
    app.state.engine_context = build_engine_context(settings)
    logger.info(
        "Texting Theory started (kv=%s, community=r/%s)",
        settings.kv_backend,
        settings.community_name,
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    context = getattr(app.state, "engine_context", None)
    if context is not None:
        close_engine_context(context)
        app.state.engine_context = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("texting_theory.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

# src/workpunch_relay/main.py
"""Main entry point for the Workpunch relay."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from workpunch_relay.api.middleware import (
    RequestContextMiddleware,
    register_error_handlers,
    server_state,
)
from workpunch_relay.api.v1 import (
    clock_router,
    employees_router,
    oauth_router,
    system_router,
    tokens_router,
)
from workpunch_relay.core.settings import settings
from workpunch_relay.db.session import create_tables

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Relays clock-in/clock-out events to Salesforce",
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

# Correlation ids, request counting and access logging
app.add_middleware(RequestContextMiddleware)
register_error_handlers(app)

# Include API routers
app.include_router(clock_router, prefix="/api/v1")
app.include_router(oauth_router, prefix="/api/v1")
app.include_router(tokens_router, prefix="/api/v1")
app.include_router(employees_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    try:
        create_tables()
    except SQLAlchemyError:
        logger.critical("Database unavailable at startup; refusing to serve", exc_info=True)
        raise
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, object]:
    """Root endpoint with service status and request counters."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs",
        **server_state.snapshot(),
    }


def main() -> None:
    import uvicorn

    uvicorn.run("workpunch_relay.main:app", host="0.0.0.0", port=8000, reload=settings.debug)


if __name__ == "__main__":
    main()

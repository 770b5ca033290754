"""
FastAPI application for Hearth.

This is the HTTP API the web frontend talks to.

Run locally:
    uvicorn hearth.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hearth.api import admin, approvals, budgets, categories, chat, members, roles, setup
from hearth.api import subscriptions, transactions, trips
from hearth.auth.routes import router as auth_router
from hearth.config import Settings, configure_logging, get_settings
from hearth.core.errors import HearthError
from hearth.integrations.sentry import capture_exception, init_sentry
from hearth.services.container import build_container
from hearth.storage import MetadataStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Error handling
# =============================================================================


async def handle_hearth_error(request: Request, exc: HearthError) -> JSONResponse:
    """Map domain errors to their status and a safe message."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        capture_exception(exc, path=request.url.path)

    headers = {"Retry-After": "1"} if exc.status_code == 503 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


# =============================================================================
# App factory
# =============================================================================


def create_app(settings: Settings | None = None, backend: MetadataStorage | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: explicit configuration (defaults to environment)
        backend: document store (defaults to in-memory)
    """
    settings = settings or get_settings()
    settings.validate_for_startup()

    container = build_container(settings, backend)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        init_sentry(settings)
        logger.info("Hearth API starting in %s mode", settings.environment)

        yield

        container.close()
        logger.info("Hearth API shutting down")

    app = FastAPI(
        title="Hearth API",
        description="Family expense tracking: members, roles, budgets and transactions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(HearthError, handle_hearth_error)

    app.include_router(auth_router)
    app.include_router(setup.router)
    app.include_router(roles.router)
    app.include_router(members.router)
    app.include_router(transactions.router)
    app.include_router(categories.router)
    app.include_router(budgets.router)
    app.include_router(trips.router)
    app.include_router(subscriptions.router)
    app.include_router(approvals.router)
    app.include_router(chat.router)
    app.include_router(admin.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


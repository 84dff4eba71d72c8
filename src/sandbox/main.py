"""
Sandbox application factory and configuration.

This module creates the FastAPI sandbox that stands in for the referral
backend and its payment processor during local development and tests.

Run with:
    uvicorn src.sandbox.main:app --port 8000
"""

import logging
import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from src.config.settings import get_settings
from src.sandbox.routes import processor_router, router
from src.sandbox.store import SandboxStore

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {"name": "users", "description": "Paid signup, login and profile"},
    {"name": "processor", "description": "Test-card PaymentIntent confirmation"},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    The store lives in app.state for the life of the process; nothing is
    persisted on shutdown.
    """
    logger.info("Starting sandbox...")
    yield
    store: SandboxStore = app.state.store
    logger.info(
        "Shutting down sandbox (%d users, %d pending registrations)",
        len(store.users),
        len(store.pending),
    )


def _seeded_store() -> SandboxStore:
    settings = get_settings()
    store = SandboxStore(bcrypt_rounds=settings.bcrypt_cost)
    password = settings.sandbox_seed_password
    if not password:
        password = secrets.token_urlsafe(12)
        logger.info("[SANDBOX] Seed user: %s Password: %s", settings.sandbox_seed_email, password)
    store.seed_user(
        settings.sandbox_seed_email,
        settings.sandbox_seed_username,
        password,
        settings.sandbox_referral_code,
        role="admin",
    )
    logger.info("Sandbox referral code: %s", settings.sandbox_referral_code)
    return store


def create_app(store: SandboxStore | None = None) -> FastAPI:
    """
    Build the sandbox application.

    Args:
        store: Pre-populated store (tests). Defaults to one seeded from settings.

    Returns:
        FastAPI app with the user and processor routes mounted
    """
    app = FastAPI(
        title="refnet sandbox",
        description="Local stand-in for the referral backend and its payment processor",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.store = store if store is not None else _seeded_store()
    app.include_router(router)
    app.include_router(processor_router)

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """Returns 200 OK while the sandbox is serving."""
        return {"status": "healthy", "users": str(len(request.app.state.store.users))}

    return app


app = create_app()

"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response

from coworkly.config import Settings
from coworkly.domain.scheduling import SchedulingService
from coworkly.infra.factory import build_store
from coworkly.infra.store import Store
from coworkly.observability.correlation import CORRELATION_ID_HEADER, correlation_scope
from coworkly.observability.logging import configure_logging

from .errors import install_error_handlers
from .routes import payments, reservations


def _attach(app: FastAPI, store: Store, settings: Settings) -> None:
    app.state.store = store
    app.state.scheduling = SchedulingService(
        store, payment_auto_capture=settings.payment_auto_capture
    )


def create_app(settings: Settings | None = None, *, store: Store | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Explicit settings. If None, reads from the environment.
        store: Pre-built store (tests). If None, one is built at startup
               from settings and closed at shutdown.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned: Store | None = None
        if getattr(app.state, "scheduling", None) is None:
            owned = build_store(settings)
            _attach(app, owned, settings)
        try:
            yield
        finally:
            if owned is not None:
                owned.close()

    app = FastAPI(
        title="Coworkly",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    if store is not None:
        _attach(app, store, settings)

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_ID_HEADER)) as cid:
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint."""
        return {"status": "ok"}

    install_error_handlers(app)
    app.include_router(reservations.router)
    app.include_router(payments.router)

    return app

"""FastAPI application factory wiring the bridge state and session lifecycle."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response

from wabridge.infra.credentials import FileCredentialStore
from wabridge.infra.settings import BridgeSettings, get_settings
from wabridge.observability.correlation import (
    CORRELATION_ID_HEADER,
    accept_correlation_id,
    correlation_scope,
)
from wabridge.observability.logging import get_logger
from wabridge.session.lifecycle import SessionLifecycleController, load_session_factory
from wabridge.session.state import BridgeState
from wabridge.whatsapp.qr import QrRenderer

from .routers import public
from .routes import bridge

logger = get_logger(__name__)


def build_controller(settings: BridgeSettings, state: BridgeState | None = None) -> SessionLifecycleController:
    """Assemble the lifecycle controller from settings."""
    return SessionLifecycleController(
        state or BridgeState(),
        load_session_factory(settings.session_factory),
        FileCredentialStore(settings.auth_dir),
        qr_renderer=QrRenderer(print_terminal=settings.print_qr),
        browser=settings.browser,
    )


def create_app(
    state: BridgeState | None = None,
    controller: SessionLifecycleController | None = None,
    settings: BridgeSettings | None = None,
) -> FastAPI:
    """Create the bridge FastAPI app.

    Args:
        state: Bridge state to serve. When given without a controller, the
            app serves it as-is and never opens a session (tests).
        controller: Lifecycle controller started once at boot. Defaults to
            one built from settings.
        settings: Explicit settings. If None, read from the environment.

    Returns:
        Configured FastAPI application.
    """
    if controller is None and state is None:
        controller = build_controller(settings or get_settings())
    if controller is not None:
        state = controller.state

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if controller is not None:
            controller.start()
            logger.info("session lifecycle started")
        try:
            yield
        finally:
            if controller is not None:
                await controller.stop()

    app = FastAPI(
        title="WhatsApp Bridge",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.bridge = state
    app.state.controller = controller

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = accept_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        with correlation_scope(cid):
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response

    app.include_router(public.router)
    app.include_router(bridge.router)

    return app

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mailhub.app import App
from mailhub.config import Config
from mailhub.errors import TransportError, UserError
from mailhub.web.error_handlers import general_exception_handler, transport_error_handler, user_error_handler
from mailhub.web.openapi import set_custom_openapi
from mailhub.web.routers import (
    admin_router,
    auth_router,
    magic_links_router,
    mailboxes_router,
    messages_router,
    profile_router,
)
from mailhub.web.socket import create_socket_server


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="mailhub API",
        lifespan=lifespan,
        openapi_tags=[],
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    # API v1 routes
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(profile_router, prefix="/api/v1")
    app.include_router(messages_router, prefix="/api/v1")
    app.include_router(magic_links_router, prefix="/api/v1")
    app.include_router(mailboxes_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(TransportError, transport_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app


def create_asgi_app(app_instance: App, config: Config) -> socketio.ASGIApp:
    """FastAPI app wrapped by the Socket.IO server, which handles /socket.io/ itself."""
    fastapi_app = create_fastapi_app(app_instance, config)
    sio = create_socket_server(app_instance, config)
    return socketio.ASGIApp(sio, other_asgi_app=fastapi_app)

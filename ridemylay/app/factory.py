"""
FastAPI application factory for RideMyLay realtime.

Builds the REST app, creates the Socket.IO gateway and wraps both in one
ASGI application. Lifespan events pass through the Socket.IO wrapper to
FastAPI.
"""

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..api import notification_router
from ..config import AppConfig, get_config
from ..realtime import SocketGateway, create_socket_server
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The gateway is created here (without a store) so the Socket.IO server
    can be mounted before startup; the lifespan attaches the store.
    """
    cfg = config or get_config()
    app = FastAPI(
        title="RideMyLay Realtime API",
        description="Real-time notification and chat delivery for RideMyLay",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.auth_config = cfg.auth
    app.state.notification_config = cfg.notifications
    app.state.gateway = SocketGateway(auth_config=cfg.auth, notification_config=cfg.notifications)

    logger.info("CORS configuration", allow_origins=cfg.server.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(notification_router)

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {"status": "ok", "realtime": app.state.gateway.get_stats()}

    return app


def create_asgi_app(config: AppConfig | None = None) -> socketio.ASGIApp:
    """FastAPI app with the Socket.IO server mounted in front of it."""
    cfg = config or get_config()
    app = create_app(cfg)
    sio = create_socket_server(app.state.gateway, cfg)
    app.state.sio = sio
    return socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=cfg.server.socketio_path)

"""
Socket.IO server construction.
"""

import socketio

from ..config import AppConfig, get_config
from ..structured_logging.enhanced_logging_config import get_logger
from .socket_gateway import SocketGateway

logger = get_logger(__name__)


def create_socket_server(gateway: SocketGateway, config: AppConfig | None = None) -> socketio.AsyncServer:
    """Build the ASGI Socket.IO server and register the gateway namespace."""
    cfg = config or get_config()
    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cfg.server.cors_origins,
        ping_interval=cfg.server.ping_interval,
        ping_timeout=cfg.server.ping_timeout,
        logger=False,
        engineio_logger=False,
    )
    sio.register_namespace(gateway)
    logger.info(
        "Socket.IO server created",
        namespace=gateway.namespace,
        cors_origins=cfg.server.cors_origins,
        ping_interval=cfg.server.ping_interval,
    )
    return sio

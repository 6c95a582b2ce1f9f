"""
RideMyLay realtime server entry point.

Serves the notifications REST API and the Socket.IO gateway from one ASGI
application.
"""

from .app.factory import create_asgi_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

# Logging must be configured before the first logger is used
config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

app = create_asgi_app(config)


def run() -> None:
    import uvicorn

    uvicorn.run(
        "ridemylay.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
        access_log=True,
        use_colors=False,
    )


if __name__ == "__main__":
    run()

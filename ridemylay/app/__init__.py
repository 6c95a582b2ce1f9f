"""FastAPI application assembly for RideMyLay realtime."""

from .factory import create_app, create_asgi_app

__all__ = ["create_app", "create_asgi_app"]

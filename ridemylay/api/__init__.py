"""REST routers for RideMyLay realtime."""

from .notifications import notification_router

__all__ = ["notification_router"]

"""
FastAPI dependency providers for RideMyLay realtime.

Services live on app.state, set up by the lifespan (or directly by tests);
endpoints reach them only through these providers.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .auth_utils import user_id_from_token
from .exceptions import AuthError
from .persistence import RealtimeStore
from .realtime import NotificationBridge
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> RealtimeStore:
    if not hasattr(request.app.state, "store"):
        raise RuntimeError("RealtimeStore not found in app.state - ensure it is initialized in lifespan context")
    return request.app.state.store


def get_bridge(request: Request) -> NotificationBridge | None:
    """The gateway's notification bridge, or None when no socket server is mounted."""
    gateway = getattr(request.app.state, "gateway", None)
    return gateway.bridge if gateway is not None else None


def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Resolve the bearer token to a user id, or answer 401."""
    token = credentials.credentials if credentials else None
    auth_config = getattr(request.app.state, "auth_config", None)
    try:
        return user_id_from_token(token, auth_config)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.user_friendly,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


StoreDep = Depends(get_store)
BridgeDep = Depends(get_bridge)
CurrentUserId = Depends(get_current_user_id)

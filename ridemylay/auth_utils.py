"""
Bearer token helpers.

Tokens are issued by the REST login (out of scope here); the gateway and the
notifications API only verify them. create_access_token exists for tooling
and tests that need a token the server will accept.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from .config import AuthConfig, get_config
from .exceptions import AuthError
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _auth_config(auth_config: AuthConfig | None) -> AuthConfig:
    return auth_config if auth_config is not None else get_config().auth


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    auth_config: AuthConfig | None = None,
) -> str:
    """Create a signed JWT carrying ``data`` (``sub`` holds the user id)."""
    cfg = _auth_config(auth_config)
    to_encode = data.copy()
    expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=cfg.token_expire_minutes))
    to_encode.update({"exp": expire})

    token = jwt.encode(to_encode, cfg.jwt_secret, algorithm=cfg.jwt_algorithm)
    logger.debug("Access token created", user_id=data.get("sub"))
    return token


def decode_access_token(token: str | None, auth_config: AuthConfig | None = None) -> dict[str, Any] | None:
    """Decode and validate a JWT. Returns None when missing or invalid."""
    if not token:
        logger.debug("No token provided for decoding")
        return None

    cfg = _auth_config(auth_config)
    try:
        payload = jwt.decode(token, cfg.jwt_secret, algorithms=[cfg.jwt_algorithm])
    except JWTError as e:
        logger.warning("JWT decode error", error=str(e))
        return None
    return payload if isinstance(payload, dict) else None


def user_id_from_token(token: str | None, auth_config: AuthConfig | None = None) -> str:
    """
    Resolve the user id a bearer token was issued for.

    Raises:
        AuthError: If the token is missing, invalid, expired or has no subject
    """
    if not token:
        raise AuthError("No token provided", reason="missing_token")
    payload = decode_access_token(token, auth_config)
    if payload is None:
        raise AuthError("Invalid token", reason="invalid_token")
    user_id = payload.get("sub") or payload.get("id")
    if not user_id:
        raise AuthError("Token has no subject", reason="invalid_token")
    return str(user_id)

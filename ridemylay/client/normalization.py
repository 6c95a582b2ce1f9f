"""
Normalization boundary for inbound socket payloads.

The server serializes documents that may still carry MongoDB extended JSON
wrappers ({"$oid": ...}, {"$date": ...}, numeric wrappers). Everything that
crosses from the wire into the client passes through normalize_payload()
exactly once, so downstream code only ever sees plain strings, numbers,
lists and dicts. parse_notification() then validates into the typed model.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..schemas.realtime import MessagePayload, NotificationPayload
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

_NUMBER_WRAPPERS = {
    "$numberLong": int,
    "$numberInt": int,
    "$numberDouble": float,
    "$numberDecimal": float,
}


def _unwrap_date(value: Any) -> str:
    # {"$date": "2024-..."} | {"$date": 1700000000000} | {"$date": {"$numberLong": "..."}}
    if isinstance(value, dict):
        value = _unwrap(value)
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC).isoformat()
    return str(value)


def _unwrap(value: Any) -> Any:
    if isinstance(value, list):
        return [_unwrap(item) for item in value]
    if not isinstance(value, dict):
        return value

    if len(value) == 1:
        key, inner = next(iter(value.items()))
        if key == "$oid":
            return str(inner)
        if key == "$date":
            return _unwrap_date(inner)
        if key in _NUMBER_WRAPPERS:
            return _NUMBER_WRAPPERS[key](inner)

    return {key: _unwrap(inner) for key, inner in value.items()}


def normalize_payload(payload: Any) -> Any:
    """
    Recursively unwrap extended JSON into plain Python values.

    Args:
        payload: Raw decoded payload from the transport

    Returns:
        The same structure with every extended-JSON wrapper replaced
    """
    return _unwrap(payload)


def parse_notification(payload: Any) -> NotificationPayload:
    """
    Validate a normalized notification payload.

    Raises:
        ValidationError: If the payload is not a well-formed notification
    """
    if not isinstance(payload, dict):
        raise ValidationError("Notification payload must be an object", field="notification")
    try:
        return NotificationPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid notification payload", field="notification", details={"errors": e.errors(include_url=False)}
        ) from e


def parse_notifications(payload: Any) -> list[NotificationPayload]:
    """Validate a notifications_init list, skipping malformed entries."""
    if not isinstance(payload, list):
        logger.warning("notifications_init payload is not a list", payload_type=type(payload).__name__)
        return []

    notifications: list[NotificationPayload] = []
    for item in payload:
        try:
            notifications.append(parse_notification(item))
        except ValidationError:
            continue
    return notifications


def parse_message(payload: Any) -> MessagePayload:
    """
    Validate a normalized message payload.

    Raises:
        ValidationError: If the payload is not a well-formed message
    """
    try:
        return MessagePayload.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid message payload", field="message", details={"errors": e.errors(include_url=False)}
        ) from e
